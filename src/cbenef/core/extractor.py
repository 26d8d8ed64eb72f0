"""
State extractor - download, convert, parse and validate one state's document.
"""
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple
from loguru import logger

from cbenef.models import (
    BenefitRecord,
    DocumentFormat,
    ExtractionResult,
    Settings,
    ValidationError,
    ValidationOutcome
)
from cbenef.clients import AvailabilityClient, DownloadClient
from cbenef.exceptions import ConfigurationError, ExtractionError, SourceUnavailableError
from .parsers import StateParser
from .pdf_text import text_of

TextConverter = Callable[[bytes, str], str]


class StateExtractor:
    """
    Extracts the CBenef records of a single state.

    The state-specific text layout lives in the parser; everything else
    (configuration lookups, availability, download, validation and the
    result envelope) is shared. extract() never raises.
    """

    def __init__(self,
                 parser: StateParser,
                 settings: Settings,
                 download_client: DownloadClient,
                 availability_client: AvailabilityClient,
                 text_converter: TextConverter = text_of):
        self.parser = parser
        self.settings = settings
        self.download_client = download_client
        self.availability_client = availability_client
        self.text_converter = text_converter

    # ==================== CONFIGURATION ====================
    @property
    def state_code(self) -> str:
        return self.parser.state_code

    @property
    def supported_formats(self) -> Tuple[DocumentFormat, ...]:
        return self.parser.supported_formats

    @property
    def source_name(self) -> str:
        return f"SEFAZ {self.state_code} - CBenef"

    @property
    def source_url(self) -> str:
        url = self.settings.get_source_url(self.state_code)
        if not url:
            raise ConfigurationError(self.state_code, "Source URL not configured")
        return url

    @property
    def connection_timeout(self) -> int:
        return self.settings.get_connection_timeout(self.state_code)

    @property
    def read_timeout(self) -> int:
        return self.settings.get_read_timeout(self.state_code)

    @property
    def max_retries(self) -> int:
        return self.settings.get_max_retries(self.state_code)

    @property
    def custom_headers(self) -> Dict[str, str]:
        return self.settings.get_custom_headers(self.state_code)

    def is_enabled(self) -> bool:
        return self.settings.is_state_enabled(self.state_code)

    def get_priority(self) -> int:
        return self.settings.get_priority(self.state_code)

    def get_display_name(self) -> str:
        formats = ", ".join(f.value for f in self.supported_formats)
        return f"CBenef {self.state_code} ({formats})"

    # ==================== SOURCE ====================
    def is_source_available(self) -> bool:
        return self.availability_client.check_source_availability(self.state_code)

    def get_last_modified(self) -> Optional[datetime]:
        return self.availability_client.get_last_modified(self.state_code)

    # ==================== EXTRACTION ====================
    def extract(self) -> ExtractionResult:
        """
        Run the full pipeline for this state.

        Returns:
            SUCCESS with every parsed record (valid or not), SOURCE_UNAVAILABLE
            when the availability probe fails, ERROR otherwise
        """
        if not self.is_enabled():
            logger.warning(f"State {self.state_code} is disabled")
            return ExtractionResult.error(self.state_code, f"State {self.state_code} disabled")

        logger.info(f"Starting CBenef extraction for {self.state_code}")

        try:
            if not self.is_source_available():
                logger.warning(f"Source for {self.state_code} is unavailable")
                return ExtractionResult.unavailable(self.state_code)

            source_url = self.source_url
            document = self.download_client.download_document(self.state_code)
            text = self.text_converter(document, self.state_code)

            self.parser.source_url = source_url
            records = self.parser.parse(text)

            validation = self.validate_extracted_data(records)
            if not validation.is_valid:
                logger.warning(f"{validation.invalid_count} invalid {self.state_code} records "
                               f"({validation.valid_count} valid)")
                for error in validation.errors:
                    logger.warning(f"  Record {error.record_index} - {error.field}: {error.message}")

            logger.info(f"{self.state_code} extraction finished: {len(records)} benefits")
            return ExtractionResult.success(
                self.state_code,
                self.source_name,
                records,
                metadata={
                    "sourceUrl": source_url,
                    "documentSize": len(document),
                    "extractionMethod": "PDF_PARSING",
                    "validRecords": validation.valid_count,
                    "invalidRecords": validation.invalid_count,
                }
            )

        except SourceUnavailableError as e:
            logger.error(f"Source unavailable for {self.state_code}: {e}")
            return ExtractionResult.error(self.state_code, str(e))
        except (ConfigurationError, ExtractionError) as e:
            logger.error(f"Extraction error for {self.state_code}: {e}")
            return ExtractionResult.error(self.state_code, str(e))
        except Exception as e:
            logger.error(f"Unexpected error extracting {self.state_code}: {e}")
            return ExtractionResult.error(self.state_code, f"Unexpected error: {e}")

    def validate_extracted_data(self, records: List[BenefitRecord]) -> ValidationOutcome:
        """Check parsed records against the record invariants. Never removes records."""
        errors: List[ValidationError] = []
        invalid_indexes = set()

        for index, record in enumerate(records):
            record_errors = []
            if not record.state_code:
                record_errors.append(ValidationError(
                    record_index=index, field="state_code", message="State code is required"
                ))
            elif record.state_code != self.state_code:
                record_errors.append(ValidationError(
                    record_index=index,
                    field="state_code",
                    value=record.state_code,
                    message=f"Expected state {self.state_code}"
                ))
            if not record.code:
                record_errors.append(ValidationError(
                    record_index=index, field="code", message="Benefit code is required"
                ))
            if record.end_date is not None and record.end_date < record.start_date:
                record_errors.append(ValidationError(
                    record_index=index,
                    field="end_date",
                    value=record.end_date.isoformat(),
                    message="End date precedes start date"
                ))

            if record_errors:
                invalid_indexes.add(index)
                errors.extend(record_errors)

        return ValidationOutcome(
            is_valid=not errors,
            valid_count=len(records) - len(invalid_indexes),
            invalid_count=len(invalid_indexes),
            errors=errors
        )
