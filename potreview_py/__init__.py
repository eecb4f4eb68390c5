"""potreview-py – all public symbols are re-exported from .core."""

from importlib import metadata

from .core import (  # noqa: F401 – re-exports
    CatalogEntry,
    CatalogIndex,
    DiffResult,
    MatchCache,
    SemanticMatcher,
    build,
    compare,
    load_catalog,
)

try:
    __version__ = metadata.version("potreview-py")
except metadata.PackageNotFoundError:  # editable install before first build
    __version__ = "0.0.0"
