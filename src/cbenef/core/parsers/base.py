"""
Shared line-oriented parsing for state CBenef documents.

State documents are tables flattened to text: one benefit row per line,
columns collapsed into whitespace. Each state parser declares its skip
rules, benefit-type triggers and an ordered chain of line extractors;
the first extractor returning a record wins for that line.
"""
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple
import re
from loguru import logger

from cbenef.models import BenefitRecord, BenefitType, DocumentFormat

DATE_PATTERN = re.compile(r"\d{2}/\d{2}/\d{4}")
DATE_ONLY_LINE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
DIGITS_ONLY = re.compile(r"^\d+$")
WHITESPACE = re.compile(r"\s+")
CST_MARKERS = ("SIM", "X")

LineExtractor = Callable[[str, List[str], int], Optional[BenefitRecord]]


class StateParser:
    """Base class for the per-state text parsers"""

    state_code: str = ""
    supported_formats: Tuple[DocumentFormat, ...] = (DocumentFormat.PDF,)

    # Statutory start of mandatory reporting, used when no date is found
    default_start_date: date = date(2023, 1, 1)

    # Fewer codes than this usually means the upstream layout changed
    min_expected_codes: int = 5

    description_max_length: int = 200
    min_line_length: int = 5
    skip_prefixes: Tuple[str, ...] = ()
    skip_tokens: Tuple[str, ...] = ("SECRETARIA", "FAZENDA", "GOVERNO")
    separator_pattern = re.compile(r"^[\s\-_=]+$")
    sample_size: int = 30

    # Column order of the "applies to CST" markers in tabular layouts
    cst_columns: Tuple[str, ...] = ("00", "10", "20", "30", "40", "41", "50", "51", "60", "70", "90")

    # Ordered (lowercase triggers, type) pairs; first match wins
    benefit_type_triggers: Tuple[Tuple[Tuple[str, ...], BenefitType], ...] = ()

    def __init__(self, source_url: str = ""):
        self.source_url = source_url

    def line_extractors(self) -> List[LineExtractor]:
        raise NotImplementedError

    # ==================== DOCUMENT PARSING ====================
    def parse(self, text: str) -> List[BenefitRecord]:
        """Parse a whole document, top to bottom, deduplicated by full code"""
        lines = text.split("\n")
        logger.info(f"{self.state_code} - total lines in document: {len(lines)}")

        records: List[BenefitRecord] = []
        processed_lines = 0

        for index, raw_line in enumerate(lines):
            line = raw_line.strip()
            if self.should_skip_line(line):
                continue

            processed_lines += 1
            record = self.parse_line(line, lines, index)
            if record is not None:
                records.append(record)
                logger.debug(f"{self.state_code} code found: {record.full_code} - {record.description}")

        logger.info(f"{self.state_code} - processed {processed_lines} lines, found {len(records)} CBenef codes")

        if len(records) < self.min_expected_codes:
            logger.warning(f"Few {self.state_code} codes found ({len(records)}). "
                           f"Document layout may have changed.")
            self.log_sample_lines(lines)

        return self.deduplicate(records)

    def parse_line(self, line: str, lines: List[str], index: int) -> Optional[BenefitRecord]:
        for extract in self.line_extractors():
            try:
                record = extract(line, lines, index)
            except Exception as e:
                logger.warning(f"Error processing {self.state_code} line {index} "
                               f"({extract.__name__}): '{line[:100]}' - {e}")
                continue
            if record is not None:
                return record
        return None

    def should_skip_line(self, line: str) -> bool:
        stripped = line.strip()
        return bool(
            len(stripped) < self.min_line_length
            or stripped.startswith(self.skip_prefixes)
            or DIGITS_ONLY.match(stripped)
            or self.separator_pattern.match(stripped)
            or any(token in stripped for token in self.skip_tokens)
        )

    @staticmethod
    def deduplicate(records: List[BenefitRecord]) -> List[BenefitRecord]:
        """Keep the first record of each full code"""
        seen = set()
        unique = []
        for record in records:
            if record.full_code in seen:
                continue
            seen.add(record.full_code)
            unique.append(record)
        return unique

    def is_sample_line(self, line: str) -> bool:
        return True

    def log_sample_lines(self, lines: List[str]):
        logger.info(f"Sample of {self.state_code} document lines:")
        for index, line in enumerate(lines[:self.sample_size]):
            if not self.should_skip_line(line) and self.is_sample_line(line):
                logger.info(f"Line {index}: '{line}'")

    # ==================== DATES ====================
    def parse_date(self, value: Optional[str]) -> Optional[date]:
        if not value:
            return None
        try:
            return datetime.strptime(value, "%d/%m/%Y").date()
        except ValueError:
            logger.warning(f"{self.state_code} - unparsable date '{value}'")
            return None

    def resolve_dates(self, start_value: Optional[str], end_value: Optional[str] = None) -> Tuple[date, Optional[date]]:
        """Start falls back to the state default; an end not after the start is dropped"""
        start_date = self.parse_date(start_value) or self.default_start_date
        end_date = self.parse_date(end_value)
        if end_date is not None and end_date <= start_date:
            end_date = None
        return start_date, end_date

    def dates_from_tokens(self, dates: Sequence[str]) -> Tuple[date, Optional[date]]:
        """First date is the start, the last distinct one the end"""
        if not dates:
            return self.default_start_date, None
        start_value = dates[0]
        end_value = next((d for d in reversed(dates) if d != start_value), None)
        return self.resolve_dates(start_value, end_value)

    @staticmethod
    def scan_dates(lines: List[str], index: int, lookahead: int, stop_at_first_hit: bool = True) -> List[str]:
        """Collect dd/mm/yyyy tokens from the current line and up to `lookahead` following lines"""
        dates: List[str] = []
        for i in range(index, min(index + lookahead + 1, len(lines))):
            dates.extend(DATE_PATTERN.findall(lines[i]))
            if dates and stop_at_first_hit:
                break
        return dates

    # ==================== DESCRIPTION ====================
    @staticmethod
    def clean_text(text: str) -> str:
        return WHITESPACE.sub(" ", text).strip()

    @staticmethod
    def strip_dates(text: str) -> str:
        return DATE_PATTERN.sub("", text)

    def truncate(self, text: str, limit: Optional[int] = None) -> str:
        return text[:limit or self.description_max_length].strip()

    def continuation_lines(self, lines: List[str], index: int, count: int,
                           enough_chars: Optional[int] = None) -> List[str]:
        """Following lines that look like the continuation of a wrapped description"""
        collected: List[str] = []
        for i in range(index + 1, min(index + 1 + count, len(lines))):
            candidate = lines[i].strip()
            if (not candidate
                    or candidate.startswith(self.state_code)
                    or self.should_skip_line(candidate)
                    or DATE_ONLY_LINE.match(candidate)):
                continue
            collected.append(candidate)
            if enough_chars and len(" ".join(collected)) > enough_chars:
                break
        return collected

    # ==================== CLASSIFICATION ====================
    def classify(self, description: str, extra: str = "") -> BenefitType:
        text = f"{description} {extra}".lower()
        for triggers, benefit_type in self.benefit_type_triggers:
            if any(trigger in text for trigger in triggers):
                return benefit_type
        return BenefitType.OTHER

    def codes_from_markers(self, markers: Optional[str]) -> List[str]:
        """Map positional SIM/NÃO/X marker columns to the CSTs they apply to"""
        if not markers:
            return []
        return [
            cst for cst, marker in zip(self.cst_columns, markers.split())
            if marker.upper() in CST_MARKERS
        ]

    # ==================== RECORD ====================
    def build_record(self,
                     full_code: str,
                     description: str,
                     start_date: date,
                     end_date: Optional[date],
                     benefit_type: BenefitType,
                     method: str,
                     line_index: int,
                     cst_codes: Optional[List[str]] = None,
                     extra_metadata: Optional[Dict[str, str]] = None) -> BenefitRecord:
        code = full_code[len(self.state_code):]
        description = self.truncate(self.clean_text(description))
        codes = list(cst_codes or [])

        metadata = {
            "extractionMethod": method,
            "sourceUrl": self.source_url,
            "fullCode": full_code,
            "lineIndex": str(line_index),
        }
        if codes:
            metadata["applicableCSTs"] = ",".join(codes)
        metadata.update(extra_metadata or {})

        return BenefitRecord(
            state_code=self.state_code,
            code=code,
            description=description or f"Benefício fiscal ICMS - {full_code}",
            start_date=start_date,
            end_date=end_date,
            benefit_type=benefit_type,
            applicable_tax_situation_codes=codes,
            is_situation_specific=bool(codes),
            source_metadata=metadata
        )
