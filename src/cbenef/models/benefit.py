"""
Data models for CBenef benefit records.
"""
from datetime import date
from types import MappingProxyType
from typing import Mapping, Optional, Tuple
from enum import Enum
from pydantic import BaseModel, Field, field_validator


class BenefitType(str, Enum):
    """Type of tax benefit granted by a CBenef code"""
    EXEMPTION = "Isenção"
    NON_INCIDENCE = "Não Incidência"
    BASE_REDUCTION = "Redução de Base de Cálculo"
    DEFERRAL = "Diferimento"
    SUSPENSION = "Suspensão"
    ZERO_RATE = "Alíquota Zero"
    GRANTED_CREDIT = "Crédito Outorgado"
    OTHER = "Outros"

    @property
    def code(self) -> str:
        """Official numeric code of the benefit type"""
        return _BENEFIT_TYPE_CODES[self]

    @classmethod
    def from_code(cls, code: str) -> Optional["BenefitType"]:
        for member, member_code in _BENEFIT_TYPE_CODES.items():
            if member_code == code:
                return member
        return None


_BENEFIT_TYPE_CODES = {
    BenefitType.EXEMPTION: "1",
    BenefitType.NON_INCIDENCE: "2",
    BenefitType.BASE_REDUCTION: "3",
    BenefitType.DEFERRAL: "4",
    BenefitType.SUSPENSION: "5",
    BenefitType.ZERO_RATE: "6",
    BenefitType.GRANTED_CREDIT: "7",
    BenefitType.OTHER: "9",
}


class InvoicePurpose(str, Enum):
    """Purpose of the invoice a benefit applies to"""
    SALE = "01"
    TRANSFER = "02"
    RETURN = "03"
    CONSIGNMENT = "04"
    DEMONSTRATION = "05"
    GIFT = "06"
    SAMPLE = "07"
    OTHER = "99"

    @classmethod
    def from_code(cls, code: str) -> Optional["InvoicePurpose"]:
        try:
            return cls(code)
        except ValueError:
            return None


class DocumentFormat(str, Enum):
    """Format of a state source document"""
    PDF = "PDF"
    XLS = "XLS"
    XLSX = "XLSX"
    HTML = "HTML"
    JSON = "JSON"
    XML = "XML"


class BenefitRecord(BaseModel):
    """
    A single CBenef benefit parsed from a state source document.

    Records are immutable. Business invariants (dates, state code) are
    checked by the extractor's validation step, not on construction, so
    a malformed record can still be reported alongside the valid ones.
    """
    state_code: str
    code: str  # Código sem UF (ex: 850001)
    description: str = ""
    start_date: date
    end_date: Optional[date] = None
    benefit_type: BenefitType = BenefitType.OTHER
    invoice_purpose: Optional[InvoicePurpose] = None
    applicable_tax_situation_codes: Tuple[str, ...] = ()
    is_situation_specific: bool = False
    notes: Optional[str] = None
    source_metadata: Mapping[str, str] = Field(default_factory=dict, validate_default=True)

    model_config = {"frozen": True}

    @field_validator('state_code', 'code')
    @classmethod
    def strip_identifier(cls, v: str) -> str:
        return v.strip()

    @field_validator('source_metadata')
    @classmethod
    def read_only_metadata(cls, v: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(v))

    @property
    def full_code(self) -> str:
        """State code followed by the state-local code (ex: SC850001)"""
        return f"{self.state_code}{self.code}"

    def is_active(self, reference_date: Optional[date] = None) -> bool:
        reference_date = reference_date or date.today()
        if reference_date < self.start_date:
            return False
        return self.end_date is None or reference_date <= self.end_date

    def is_applicable_for_situation(self, cst: str) -> bool:
        return not self.is_situation_specific or cst in self.applicable_tax_situation_codes

    def is_applicable_for_product(self, cst: str, reference_date: Optional[date] = None) -> bool:
        return self.is_active(reference_date) and self.is_applicable_for_situation(cst)
