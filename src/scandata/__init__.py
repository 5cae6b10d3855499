"""scandata: Local cache of the reference data bundle used by the scanner."""

__version__ = "0.1.0"

from scandata.cache import BundleCache, CacheConfig

__all__ = ["BundleCache", "CacheConfig", "__version__"]
