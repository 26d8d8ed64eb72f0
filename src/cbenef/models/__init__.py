"""
Models package - Data structures and configuration.
"""
from .benefit import (
    BenefitRecord,
    BenefitType,
    InvoicePurpose,
    DocumentFormat
)
from .results import (
    ExtractionResult,
    ExtractionStatus,
    ValidationError,
    ValidationOutcome,
    CachedResult
)
from .config import (
    Settings,
    ConnectionConfig,
    CacheConfig,
    SyncConfig,
    StateSourceConfig,
    EnvironmentSettings
)

__all__ = [
    # Benefit models
    "BenefitRecord",
    "BenefitType",
    "InvoicePurpose",
    "DocumentFormat",
    # Results
    "ExtractionResult",
    "ExtractionStatus",
    "ValidationError",
    "ValidationOutcome",
    "CachedResult",
    # Configuration
    "Settings",
    "ConnectionConfig",
    "CacheConfig",
    "SyncConfig",
    "StateSourceConfig",
    "EnvironmentSettings",
]
