"""
Exception hierarchy for CBenef extraction.
"""
from typing import Optional


class CBenefError(Exception):
    """Base class for all library errors"""


class ConfigurationError(CBenefError):
    """Required configuration is missing for a state"""

    def __init__(self, state_code: str, message: str):
        self.state_code = state_code
        super().__init__(f"Configuration error for state {state_code}: {message}")


class SourceUnavailableError(CBenefError):
    """A state's source document could not be downloaded"""

    def __init__(self, state_code: str, source_url: str, message: str = "Source unavailable", attempts: int = 0):
        self.state_code = state_code
        self.source_url = source_url
        self.attempts = attempts
        super().__init__(f"Source for state {state_code} unavailable ({source_url}): {message}")


class ExtractionError(CBenefError):
    """A state's source document could not be parsed"""

    def __init__(self, state_code: str, message: str, cause: Optional[BaseException] = None):
        self.state_code = state_code
        self.cause = cause
        super().__init__(f"Extraction error for state {state_code}: {message}")
