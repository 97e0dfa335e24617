from .engine import DiffFormat, DiffResult, diff, SUPPORTED_FORMATS
from .normalizer import normalize_snapshot, canonical_json, pretty_json

__all__ = [
    "DiffFormat",
    "DiffResult",
    "diff",
    "SUPPORTED_FORMATS",
    "normalize_snapshot",
    "canonical_json",
    "pretty_json",
]
