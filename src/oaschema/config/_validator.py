import json
from functools import lru_cache
from importlib import resources

import jsonschema.validators

CONFIG_SCHEMA = json.loads(resources.files("oaschema.config").joinpath("schema.json").read_text(encoding="utf-8"))


@lru_cache(maxsize=1)
def get_validator() -> jsonschema.validators.Draft202012Validator:
    jsonschema.validators.Draft202012Validator.check_schema(CONFIG_SCHEMA)
    return jsonschema.validators.Draft202012Validator(CONFIG_SCHEMA)
