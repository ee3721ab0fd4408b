"""
DATEX II pair extraction module.

Streams traffic measurement documents and emits one line per matched pair
of values (speed / vehicle flow rate, or latitude / longitude) without
loading the document into memory.
"""

from .core.types import ExtractionConfig, ExtractionStats, MatchedPair, VariantDefinition
from .core.variants import VARIANTS, get_variant, variant_names
from .pipeline.extractor import extract_pairs, extract_pairs_from_path, iter_records

__all__ = [
    "ExtractionConfig",
    "ExtractionStats",
    "MatchedPair",
    "VariantDefinition",
    "VARIANTS",
    "get_variant",
    "variant_names",
    "extract_pairs",
    "extract_pairs_from_path",
    "iter_records",
]
