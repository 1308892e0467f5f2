from importlib import metadata

try:
    OASCHEMA_VERSION = metadata.version("oaschema")
except metadata.PackageNotFoundError:
    # Local run without installation
    OASCHEMA_VERSION = "dev"
