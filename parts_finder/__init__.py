"""Parts price aggregation and caching engine for salvage repair estimates."""

__version__ = "1.0.0"
