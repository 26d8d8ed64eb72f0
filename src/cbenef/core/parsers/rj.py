"""
Rio de Janeiro CBenef parser (benefit code x CST table).
"""
from datetime import date
from typing import List, Optional
import re

from cbenef.models import BenefitRecord, BenefitType
from .base import StateParser, LineExtractor

LEADING_MARKERS = re.compile(r"^(?:(?:SIM|NÃO|NAO|X)\s+)*")


class RJParser(StateParser):
    """
    SEFAZ/RJ cross-references each benefit code with the CSTs it may be
    reported under ("SIM" columns), followed by the validity window and
    the description.
    """

    state_code = "RJ"
    default_start_date = date(2019, 4, 1)
    min_expected_codes = 10
    min_line_length = 8
    description_max_length = 250
    skip_prefixes = ("CÓDIGO", "CST", "DATA", "Tabela", "SEFAZ")
    skip_tokens = (
        "SECRETARIA", "FAZENDA", "GOVERNO", "DESCRIÇÃO", "OBSERVAÇÃO",
        "atualizada em", "SEM PREENCHIMENTO", "Informar apenas",
    )
    separator_pattern = re.compile(r"^[\s\-_=X]+$")

    benefit_type_triggers = (
        (("isenção", "isent"), BenefitType.EXEMPTION),
        (("não incidência", "não tributad"), BenefitType.NON_INCIDENCE),
        (("redução", "reduz"), BenefitType.BASE_REDUCTION),
        (("diferimento", "diferir"), BenefitType.DEFERRAL),
        (("suspensão", "suspend"), BenefitType.SUSPENSION),
        (("crédito",), BenefitType.GRANTED_CREDIT),
        (("alíquota zero", "zero"), BenefitType.ZERO_RATE),
        (("ampliação",), BenefitType.OTHER),
        (("transferência",), BenefitType.GRANTED_CREDIT),
        (("tributação",), BenefitType.OTHER),
    )

    MAIN_PATTERN = re.compile(
        r"^(RJ\d{6})\s+((?:(?:SIM|NÃO|NAO|X)\s+)*)"
        r"(\d{2}/\d{2}/\d{4})(?:\s+(\d{2}/\d{2}/\d{4}))?\s+(.+)$"
    )
    CODE_LINE_PATTERN = re.compile(r"^(RJ\d{6})\s+(.+)$")

    def line_extractors(self) -> List[LineExtractor]:
        return [self.extract_main_row, self.extract_code_line]

    def is_sample_line(self, line: str) -> bool:
        return self.state_code in line

    def extract_main_row(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        match = self.MAIN_PATTERN.match(line)
        if not match:
            return None

        full_code, markers, start_value, end_value, description = match.groups()
        start_date, end_date = self.resolve_dates(start_value, end_value)
        return self.build_record(
            full_code,
            description,
            start_date,
            end_date,
            self.classify(description),
            "PDF_RJ_MAIN_PATTERN",
            index,
            cst_codes=self.codes_from_markers(markers),
            extra_metadata={"documentType": "PDF_RJ_CBENEF_CST", "originalLine": line}
        )

    def extract_code_line(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        """Row without parseable dates; dates and CSTs are taken from the surrounding lines"""
        match = self.CODE_LINE_PATTERN.match(line)
        if not match:
            return None

        full_code, rest = match.groups()
        description = self.clean_text(self.strip_dates(LEADING_MARKERS.sub("", rest)))
        dates = self.scan_dates(lines, index, lookahead=2, stop_at_first_hit=False)
        start_date, end_date = self.dates_from_tokens(dates)

        return self.build_record(
            full_code,
            description,
            start_date,
            end_date,
            self.classify(description),
            "PDF_RJ_FALLBACK_PATTERN",
            index,
            cst_codes=self.codes_from_context(lines, index),
            extra_metadata={"documentType": "PDF_RJ_CBENEF_CST", "originalLine": line}
        )

    def codes_from_context(self, lines: List[str], index: int) -> List[str]:
        """A SIM marker on or next to the row means the first two CST columns apply"""
        window = lines[max(0, index - 1):index + 2]
        if any("SIM" in candidate for candidate in window):
            return list(self.cst_columns[:2])
        return []
