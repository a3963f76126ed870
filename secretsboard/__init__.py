"""secretsboard - live dashboard over cert-manager and external-secrets resources."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("secretsboard")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
