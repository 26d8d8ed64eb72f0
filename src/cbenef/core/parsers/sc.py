"""
Santa Catarina CBenef table parser.
"""
from datetime import date
from typing import List, Optional
import re

from cbenef.models import BenefitRecord, BenefitType
from .base import StateParser, LineExtractor


class SCParser(StateParser):
    """
    SEF/SC publishes a single table: code, description, start date,
    optional end date and the RICMS/SC legal reference. Descriptions
    often wrap onto the following lines.
    """

    state_code = "SC"
    default_start_date = date(2023, 1, 1)
    min_expected_codes = 10
    sample_size = 20
    skip_prefixes = ("Página", "Tabela")
    description_word_limit = 15

    benefit_type_triggers = (
        (("isenção",), BenefitType.EXEMPTION),
        (("não incidência",), BenefitType.NON_INCIDENCE),
        (("redução",), BenefitType.BASE_REDUCTION),
        (("diferimento",), BenefitType.DEFERRAL),
        (("suspensão",), BenefitType.SUSPENSION),
        (("crédito",), BenefitType.GRANTED_CREDIT),
        (("alíquota zero",), BenefitType.ZERO_RATE),
    )

    TABLE_PATTERN = re.compile(
        r"^(SC\d{6})\s+(.+?)\s+(\d{2}/\d{2}/\d{4})(?:\s+(\d{2}/\d{2}/\d{4}))?\s*(.*)$"
    )
    LINE_PATTERN = re.compile(r"^(SC\d{6})(?:\s+(.*))?$")
    CODE_PATTERN = re.compile(r"(SC\d{6})")
    LEGAL_REFERENCE = re.compile(r"(RICMS/SC-\d+|Art\.\s*\d+).*")

    def line_extractors(self) -> List[LineExtractor]:
        return [self.extract_table_row, self.extract_code_line, self.extract_embedded_code]

    def extract_table_row(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        """Full row: code, description and dates on the same line"""
        match = self.TABLE_PATTERN.match(line)
        if not match:
            return None

        full_code, description, start_value, end_value, legal_basis = match.groups()
        description = self.clean_text(self.LEGAL_REFERENCE.sub("", description))
        if len(description) < 10:
            description = self.description_from_next_lines(lines, index) or description

        start_date, end_date = self.resolve_dates(start_value, end_value)
        return self.build_record(
            full_code,
            description,
            start_date,
            end_date,
            self.classify(description, legal_basis or ""),
            "PDF_TABLE_EXTRACTION",
            index,
            extra_metadata={"documentType": "PDF_TABELA_CBENEF", "legalBasis": legal_basis or ""}
        )

    def extract_code_line(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        """Line starting with a code whose row did not fit the table layout"""
        match = self.LINE_PATTERN.match(line)
        if not match:
            return None
        return self._record_from_context(match.group(1), line, lines, index, "PDF_ENHANCED_EXTRACTION")

    def extract_embedded_code(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        """A code anywhere in the line"""
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
            extra_metadata={"documentType": "PDF_TABELA_CBENEF"}
        )

    def description_from_context(self, full_code: str, line: str, lines: List[str], index: int) -> str:
        description = self.clean_text(
            self.LEGAL_REFERENCE.sub("", self.strip_dates(line.replace(full_code, "")))
        )

        if len(description) < 20:
            context = []
            if index > 0:
                previous = lines[index - 1].strip()
                if previous and not self.should_skip_line(previous) and not self.CODE_PATTERN.search(previous):
                    context.append(previous)
            if description:
                context.append(description)
            context.extend(self.continuation_lines(lines, index, 2))
            if context:
                description = self.clean_text(self.strip_dates(" ".join(context)))

        description = " ".join(description.split()[:self.description_word_limit])
        if len(description) <= 5:
            description = ""
        if len(description) < 10:
            description = self.description_from_next_lines(lines, index) or description
        return description

    def description_from_next_lines(self, lines: List[str], index: int) -> str:
        following = self.continuation_lines(lines, index, 4)
        return self.truncate(self.clean_text(self.strip_dates(" ".join(following))))
