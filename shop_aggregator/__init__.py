"""Multi-storefront product search aggregator."""

from .version import __version__

__all__ = ["__version__"]
