"""
Espírito Santo CBenef table parser.
"""
from datetime import date
from typing import List, Optional
import re

from cbenef.models import BenefitRecord, BenefitType
from .base import StateParser, LineExtractor


class ESParser(StateParser):
    """
    SEFAZ/ES layout: code, "Aplica ao CST" SIM/NÃO columns, start and end
    dates, then description, legal basis (capitulação) and observation.
    """

    state_code = "ES"
    default_start_date = date(2024, 1, 1)
    min_expected_codes = 5
    skip_prefixes = ("Cbenef", "Aplica ao", "CST", "DATA", "TABELA")
    skip_tokens = ("SECRETARIA", "FAZENDA", "GOVERNO", "DESCRIÇÃO", "CAPITULAÇÃO", "OBSERVAÇÃO")

    benefit_type_triggers = (
        (("isenção", "isenta"), BenefitType.EXEMPTION),
        (("não incidência", "não tributada"), BenefitType.NON_INCIDENCE),
        (("redução", "reduz"), BenefitType.BASE_REDUCTION),
        (("diferimento", "diferir"), BenefitType.DEFERRAL),
        (("suspensão", "suspend"), BenefitType.SUSPENSION),
        (("crédito",), BenefitType.GRANTED_CREDIT),
        (("alíquota zero", "zero"), BenefitType.ZERO_RATE),
    )

    TABLE_PATTERN = re.compile(
        r"^(ES\d{6})\s+((?:(?:SIM|NÃO|NAO|X)\s+)*)"
        r"(\d{2}/\d{2}/\d{4})(?:\s+(\d{2}/\d{2}/\d{4}))?\s+(.+)$"
    )
    CODE_LINE_PATTERN = re.compile(r"^(ES\d{6})(?:\s+(.*))?$")
    CODE_PATTERN = re.compile(r"(ES\d{6})")
    OBSERVATION = re.compile(r"\s(?:Obs|OBS|Observação)[.:]?\s+(.*)$")
    LEGAL_BASIS = re.compile(r"\s((?:Arts?\.|Convênio|Decreto|Lei\s|RICMS).*)$")
    TECHNICAL_DATA = re.compile(r"(SIM|NÃO|Art\.|Convênio|ICMS).*")

    def line_extractors(self) -> List[LineExtractor]:
        return [self.extract_table_row, self.extract_code_line, self.extract_embedded_code]

    def extract_table_row(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        match = self.TABLE_PATTERN.match(line)
        if not match:
            return None

        full_code, markers, start_value, end_value, tail = match.groups()
        description, legal_basis, observation = self.split_columns(tail)
        if len(description) < 10:
            description = self.description_from_context(full_code, line, lines, index) or description

        start_date, end_date = self.resolve_dates(start_value, end_value)
        return self.build_record(
            full_code,
            description,
            start_date,
            end_date,
            self.classify(description, observation),
            "PDF_TABLE_EXTRACTION",
            index,
            cst_codes=self.codes_from_markers(markers),
            extra_metadata={
                "documentType": "PDF_TABULAR",
                "legalBasis": legal_basis,
                "observation": observation,
            }
        )

    def split_columns(self, tail: str):
        """Split the free-text tail into description, legal basis and observation"""
        observation = ""
        match = self.OBSERVATION.search(tail)
        if match:
            observation = match.group(1).strip()
            tail = tail[:match.start()]

        legal_basis = ""
        match = self.LEGAL_BASIS.search(tail)
        if match:
            legal_basis = match.group(1).strip()
            tail = tail[:match.start()]

        return self.clean_text(tail), legal_basis, observation

    def extract_code_line(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        match = self.CODE_LINE_PATTERN.match(line)
        if not match:
            return None
        return self._record_from_context(match.group(1), line, lines, index, "PDF_FALLBACK_EXTRACTION")

    def extract_embedded_code(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        match = self.CODE_PATTERN.search(line)
        if not match:
            return None
        return self._record_from_context(match.group(1), line, lines, index, "PDF_CONTEXT_EXTRACTION")

    def _record_from_context(self, full_code: str, line: str, lines: List[str], index: int,
                             method: str) -> BenefitRecord:
        description = self.description_from_context(full_code, line, lines, index)
        start_date, end_date = self.dates_from_tokens(self.scan_dates(lines, index, lookahead=3))
        return self.build_record(
            full_code,
            description,
            start_date,
            end_date,
            self.classify(description),
            method,
            index,
            extra_metadata={"documentType": "PDF_TABULAR"}
        )

    def description_from_context(self, full_code: str, line: str, lines: List[str], index: int) -> str:
        """Text after the code, topped up from the next lines until it reads like a sentence"""
        parts = []
        after_code = line.split(full_code, 1)[-1].strip()
        if after_code:
            parts.append(after_code)
        if len(after_code) < 20:
            parts.extend(self.continuation_lines(lines, index, 4, enough_chars=50))

        text = self.strip_dates(" ".join(parts))
        text = self.TECHNICAL_DATA.sub("", text)
        return self.truncate(self.clean_text(text))
