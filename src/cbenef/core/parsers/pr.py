"""
Paraná CBenef parser (SPED table 5.2).
"""
from datetime import date
from typing import List, Optional
import re

from cbenef.models import BenefitRecord, BenefitType
from .base import StateParser, LineExtractor


class PRParser(StateParser):
    """
    SEFA/PR publishes the benefit codes as SPED table 5.2: code,
    description, start date, optional end date and additional notes.
    """

    state_code = "PR"
    default_start_date = date(2019, 1, 1)
    min_expected_codes = 5
    min_line_length = 8
    description_max_length = 250
    context_description_length = 200
    skip_prefixes = ("CÓDIGO", "Tabela", "TABELA", "CST", "DATA", "SPED", "SEFAZ", "Página")
    skip_tokens = (
        "SECRETARIA", "FAZENDA", "GOVERNO", "DESCRIÇÃO", "VIGÊNCIA", "OBSERVAÇÃO",
        "Sistema Público", "Escrituração Digital",
    )

    benefit_type_triggers = (
        (("isenção", "isent"), BenefitType.EXEMPTION),
        (("não incidência", "não tributad"), BenefitType.NON_INCIDENCE),
        (("redução", "reduz"), BenefitType.BASE_REDUCTION),
        (("diferimento", "diferir"), BenefitType.DEFERRAL),
        (("suspensão", "suspend"), BenefitType.SUSPENSION),
        (("crédito",), BenefitType.GRANTED_CREDIT),
        (("alíquota zero", "zero"), BenefitType.ZERO_RATE),
        (("substituição", "monofásica"), BenefitType.OTHER),
    )

    TABLE_PATTERN = re.compile(
        r"^(PR\d{6})\s+(.+?)\s+(\d{2}/\d{2}/\d{4})(?:\s+(\d{2}/\d{2}/\d{4}))?\s*(.*)$"
    )
    CODE_LINE_PATTERN = re.compile(r"^(PR\d{6})\s+(.+)$")
    CODE_PATTERN = re.compile(r"(PR\d{6})")

    def line_extractors(self) -> List[LineExtractor]:
        return [self.extract_table_row, self.extract_code_line, self.extract_embedded_code]

    def is_sample_line(self, line: str) -> bool:
        return self.state_code in line or len(line) > 20

    def extract_table_row(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        match = self.TABLE_PATTERN.match(line)
        if not match:
            return None

        full_code, description, start_value, end_value, additional_info = match.groups()
        additional_info = self.clean_text(additional_info or "")
        description = self.enhance_description(self.clean_text(description), additional_info, lines, index)

        start_date, end_date = self.resolve_dates(start_value, end_value)
        return self.build_record(
            full_code,
            description,
            start_date,
            end_date,
            self.classify(description, additional_info),
            "PDF_PR_TABLE_STRUCTURE",
            index,
            extra_metadata={"documentType": "PDF_PR_TABELA_5_2", "additionalInfo": additional_info}
        )

    def enhance_description(self, description: str, additional_info: str, lines: List[str], index: int) -> str:
        """Complete a wrapped description and append the notes column when it adds something"""
        if len(description) < 20:
            following = self.continuation_lines(lines, index, 2)
            if following:
                description = f"{description} {' '.join(following)}"

        if additional_info and additional_info.lower() not in description.lower():
            description = f"{description} - {additional_info}"

        return self.truncate(self.clean_text(description))

    def extract_code_line(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        match = self.CODE_LINE_PATTERN.match(line)
        if not match:
            return None
        return self._record_from_context(match.group(1), line, lines, index, "PDF_PR_FALLBACK")

    def extract_embedded_code(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        match = self.CODE_PATTERN.search(line)
        if not match:
            return None
        return self._record_from_context(match.group(1), line, lines, index, "PDF_PR_CONTEXT")

    def _record_from_context(self, full_code: str, line: str, lines: List[str], index: int,
                             method: str) -> BenefitRecord:
        description = self.description_from_context(full_code, line, lines, index)
        dates = self.scan_dates(lines, index, lookahead=2, stop_at_first_hit=False)
        start_date, end_date = self.dates_from_tokens(dates)
        return self.build_record(
            full_code,
            description,
            start_date,
            end_date,
            self.classify(description),
            method,
            index,
            extra_metadata={"documentType": "PDF_PR_TABELA_5_2"}
        )

    def description_from_context(self, full_code: str, line: str, lines: List[str], index: int) -> str:
        description = self.clean_text(self.strip_dates(line.replace(full_code, "")))
        if len(description) < 15:
            following = self.continuation_lines(lines, index, 3)
            description = self.clean_text(self.strip_dates(" ".join([description] + following)))
        return self.truncate(description, self.context_description_length)
