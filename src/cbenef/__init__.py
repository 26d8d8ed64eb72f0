"""
CBenef - Brazilian state tax-benefit code extraction.
"""
from .library import CBenefLibrary
from .models import BenefitRecord, BenefitType, ExtractionResult, ExtractionStatus, Settings
from .exceptions import CBenefError, ConfigurationError, ExtractionError, SourceUnavailableError

__version__ = "1.0.0"

__all__ = [
    "CBenefLibrary",
    "BenefitRecord",
    "BenefitType",
    "ExtractionResult",
    "ExtractionStatus",
    "Settings",
    "CBenefError",
    "ConfigurationError",
    "ExtractionError",
    "SourceUnavailableError",
]
