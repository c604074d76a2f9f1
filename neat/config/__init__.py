"""Configuration module for neat."""

from .settings import (
    Config,
    ScanConfig,
    OrganizationConfig,
    DeduplicationConfig,
    HistoryConfig,
)
from .categories import FileCategory, CategoryMapping, classify

__all__ = [
    "Config",
    "ScanConfig",
    "OrganizationConfig",
    "DeduplicationConfig",
    "HistoryConfig",
    "FileCategory",
    "CategoryMapping",
    "classify",
]
