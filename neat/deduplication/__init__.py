"""Deduplication module."""

from .hash_engine import (
    DeduplicationEngine,
    DuplicateGroup,
    PartialHasher,
    FullHasher,
    files_are_equal,
    find_duplicates,
)
from .perceptual_hash import (
    PerceptualHashEngine,
    SimilarGroup,
    similarity_percent,
    find_similar,
)

__all__ = [
    "DeduplicationEngine",
    "DuplicateGroup",
    "PartialHasher",
    "FullHasher",
    "files_are_equal",
    "find_duplicates",
    "PerceptualHashEngine",
    "SimilarGroup",
    "similarity_percent",
    "find_similar",
]
