"""
Models for extraction results, validation and cache entries.
"""
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple
from datetime import datetime, timedelta
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from .benefit import BenefitRecord


class ExtractionStatus(str, Enum):
    """Outcome of a state extraction"""
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    PARTIAL_SUCCESS = "PARTIAL_SUCCESS"


class ExtractionResult(BaseModel):
    """
    Result of extracting one state's source document.

    Built once per extraction attempt through one of the named
    constructors (success, error, unavailable) and never mutated.
    """
    state_code: str
    source_name: str = "Unknown"
    extraction_timestamp: datetime = Field(default_factory=datetime.now)
    status: ExtractionStatus
    records: Tuple[BenefitRecord, ...] = ()
    error_message: Optional[str] = None
    metadata: Mapping[str, Any] = Field(default_factory=dict, validate_default=True)

    model_config = {"frozen": True}

    @field_validator('metadata')
    @classmethod
    def read_only_metadata(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @property
    def record_count(self) -> int:
        return len(self.records)

    def is_success(self) -> bool:
        return self.status == ExtractionStatus.SUCCESS

    @classmethod
    def success(cls,
                state_code: str,
                source_name: str,
                records: Sequence[BenefitRecord],
                metadata: Optional[Dict[str, Any]] = None) -> "ExtractionResult":
        return cls(
            state_code=state_code,
            source_name=source_name,
            status=ExtractionStatus.SUCCESS,
            records=records,
            metadata=metadata or {}
        )

    @classmethod
    def error(cls, state_code: str, error_message: Optional[str]) -> "ExtractionResult":
        return cls(
            state_code=state_code,
            status=ExtractionStatus.ERROR,
            error_message=error_message
        )

    @classmethod
    def unavailable(cls, state_code: str) -> "ExtractionResult":
        return cls(
            state_code=state_code,
            status=ExtractionStatus.SOURCE_UNAVAILABLE
        )


class ValidationError(BaseModel):
    """A single invariant violation found in a parsed record"""
    record_index: int
    field: str
    value: Optional[str] = None
    message: str


class ValidationOutcome(BaseModel):
    """Advisory validation summary for a parsed record list"""
    is_valid: bool
    valid_count: int
    invalid_count: int
    errors: List[ValidationError] = Field(default_factory=list)


class CachedResult(BaseModel):
    """A successful extraction result held by the cache"""
    result: ExtractionResult
    cached_at: datetime = Field(default_factory=datetime.now)
    ttl_minutes: int = 1440

    @property
    def expires_at(self) -> datetime:
        return self.cached_at + timedelta(minutes=self.ttl_minutes)

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now()) > self.expires_at
