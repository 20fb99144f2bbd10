"""
Detecting the package's own version.

The version is determined only once at startup when the code is loaded.
It is used for self-identification in the ``User-Agent`` header and in CLI.
"""
import importlib.metadata

version: str | None = None

try:
    name, *_ = __name__.split('.')  # usually "kuberest", unless renamed/forked.
    version = importlib.metadata.version(name)
except importlib.metadata.PackageNotFoundError:
    pass  # running from a source tree without installation.
