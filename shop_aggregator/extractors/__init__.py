from .base import FieldRule, SourceExtractor, StorefrontExtractor
from .amazon import AmazonExtractor
from .myntra import MyntraExtractor
from .registry import ExtractorRegistry, registry_from_config

__all__ = [
    "AmazonExtractor",
    "ExtractorRegistry",
    "FieldRule",
    "MyntraExtractor",
    "SourceExtractor",
    "StorefrontExtractor",
    "registry_from_config",
]
