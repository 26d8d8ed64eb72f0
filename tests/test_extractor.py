"""
Tests for the state extractor, factory and PDF text conversion.
"""
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cbenef.models import BenefitRecord, ExtractionStatus, Settings, StateSourceConfig
from cbenef.core import ExtractorFactory, StateExtractor, SCParser, text_of
from cbenef.exceptions import ConfigurationError, ExtractionError, SourceUnavailableError

SC_TEXT = "\n".join([
    "SC850001 Isenção ICMS produtos 01/01/2023 31/12/2025",
    "SC850002 Redução base cálculo 15/03/2023",
    "ignored boilerplate SECRETARIA line",
])


def make_extractor(settings=None, text=SC_TEXT, available=True):
    settings = settings or Settings()
    download_client = MagicMock()
    download_client.download_document.return_value = b"%PDF-1.4"
    availability_client = MagicMock()
    availability_client.check_source_availability.return_value = available
    converter = MagicMock(return_value=text)

    extractor = StateExtractor(
        SCParser(),
        settings,
        download_client,
        availability_client,
        converter
    )
    return extractor, download_client, availability_client, converter


class TestStateExtractor(unittest.TestCase):
    """Test the extraction pipeline"""

    def test_successful_extraction(self):
        extractor, download_client, _, converter = make_extractor()
        result = extractor.extract()

        self.assertEqual(result.status, ExtractionStatus.SUCCESS)
        self.assertEqual(result.record_count, 2)
        self.assertEqual(result.source_name, "SEFAZ SC - CBenef")
        self.assertEqual(result.metadata["documentSize"], len(b"%PDF-1.4"))
        download_client.download_document.assert_called_once_with("SC")
        converter.assert_called_once_with(b"%PDF-1.4", "SC")
        self.assertEqual(result.records[0].source_metadata["sourceUrl"], Settings().get_source_url("SC"))

    def test_disabled_state_makes_no_network_call(self):
        settings = Settings()
        settings.states["SC"] = StateSourceConfig(enabled=False, source_url="http://x")
        extractor, download_client, availability_client, _ = make_extractor(settings)

        result = extractor.extract()

        self.assertEqual(result.status, ExtractionStatus.ERROR)
        self.assertEqual(result.error_message, "State SC disabled")
        availability_client.check_source_availability.assert_not_called()
        download_client.download_document.assert_not_called()

    def test_unavailable_source(self):
        extractor, download_client, _, _ = make_extractor(available=False)
        result = extractor.extract()

        self.assertEqual(result.status, ExtractionStatus.SOURCE_UNAVAILABLE)
        self.assertEqual(result.records, ())
        download_client.download_document.assert_not_called()

    def test_download_failure_becomes_error(self):
        extractor, download_client, _, _ = make_extractor()
        download_client.download_document.side_effect = SourceUnavailableError(
            "SC", "http://x", "Failed after 9 attempts: timeout", attempts=9
        )

        result = extractor.extract()

        self.assertEqual(result.status, ExtractionStatus.ERROR)
        self.assertIn("Failed after 9 attempts", result.error_message)

    def test_conversion_failure_becomes_error(self):
        extractor, _, _, converter = make_extractor()
        converter.side_effect = ExtractionError("SC", "No text content found in PDF")

        result = extractor.extract()

        self.assertEqual(result.status, ExtractionStatus.ERROR)
        self.assertIn("No text content", result.error_message)

    def test_unexpected_exception_becomes_error(self):
        extractor, _, _, converter = make_extractor()
        converter.side_effect = RuntimeError("kaboom")

        result = extractor.extract()

        self.assertEqual(result.status, ExtractionStatus.ERROR)
        self.assertIn("kaboom", result.error_message)

    def test_invalid_records_are_kept(self):
        extractor, _, _, _ = make_extractor()
        foreign = BenefitRecord(state_code="ES", code="010001", start_date=date(2024, 1, 1))
        extractor.parser.parse = MagicMock(return_value=[foreign])

        result = extractor.extract()

        self.assertTrue(result.is_success())
        self.assertEqual(result.records, (foreign,))
        self.assertEqual(result.metadata["invalidRecords"], 1)

    def test_missing_source_url(self):
        settings = Settings()
        settings.states["SC"] = StateSourceConfig(enabled=True)
        extractor, _, _, _ = make_extractor(settings)

        with self.assertRaises(ConfigurationError):
            extractor.source_url

    def test_config_lookups(self):
        extractor, _, _, _ = make_extractor()

        self.assertEqual(extractor.connection_timeout, 15000)
        self.assertEqual(extractor.max_retries, 3)
        self.assertEqual(extractor.get_priority(), 1)
        self.assertEqual(extractor.get_display_name(), "CBenef SC (PDF)")
        self.assertTrue(extractor.is_enabled())


class TestValidation(unittest.TestCase):
    """Test advisory validation"""

    def setUp(self):
        self.extractor, _, _, _ = make_extractor()

    def test_valid_records(self):
        records = [BenefitRecord(state_code="SC", code="850001", start_date=date(2023, 1, 1))]
        outcome = self.extractor.validate_extracted_data(records)

        self.assertTrue(outcome.is_valid)
        self.assertEqual(outcome.valid_count, 1)
        self.assertEqual(outcome.errors, [])

    def test_flags_foreign_state_blank_code_and_inverted_dates(self):
        records = [
            BenefitRecord(state_code="ES", code="010001", start_date=date(2024, 1, 1)),
            BenefitRecord(state_code="SC", code=" ", start_date=date(2024, 1, 1)),
            BenefitRecord(state_code="SC", code="850003", start_date=date(2024, 6, 1), end_date=date(2024, 1, 1)),
            BenefitRecord(state_code="SC", code="850004", start_date=date(2024, 1, 1)),
        ]
        outcome = self.extractor.validate_extracted_data(records)

        self.assertFalse(outcome.is_valid)
        self.assertEqual(outcome.invalid_count, 3)
        self.assertEqual(outcome.valid_count, 1)
        self.assertEqual(
            [(e.record_index, e.field) for e in outcome.errors],
            [(0, "state_code"), (1, "code"), (2, "end_date")]
        )


class TestExtractorFactory(unittest.TestCase):
    """Test the extractor registry"""

    def setUp(self):
        self.factory = ExtractorFactory(Settings(), http_client=MagicMock())

    def test_create_extractor_is_case_insensitive(self):
        extractor = self.factory.create_extractor("sc")
        self.assertIsInstance(extractor, StateExtractor)
        self.assertEqual(extractor.state_code, "SC")

    def test_unknown_state(self):
        self.assertIsNone(self.factory.create_extractor("XX"))

    def test_available_extractors_sorted_by_priority(self):
        states = [e.state_code for e in self.factory.get_available_extractors()]
        self.assertEqual(states, ["SC", "ES", "RJ"])


class TestTextOf(unittest.TestCase):
    """Test PDF text conversion"""

    @patch("cbenef.core.pdf_text.pdfplumber.open")
    def test_joins_pages(self, mock_open):
        pages = [MagicMock(), MagicMock()]
        pages[0].extract_text.return_value = "SC850001 linha"
        pages[1].extract_text.return_value = None
        mock_open.return_value.__enter__.return_value.pages = pages

        self.assertEqual(text_of(b"%PDF", "SC"), "SC850001 linha\n\n")

    @patch("cbenef.core.pdf_text.pdfplumber.open")
    def test_empty_document(self, mock_open):
        page = MagicMock()
        page.extract_text.return_value = "   "
        mock_open.return_value.__enter__.return_value.pages = [page]

        with self.assertRaises(ExtractionError):
            text_of(b"%PDF", "SC")

    def test_not_a_pdf(self):
        with self.assertRaises(ExtractionError):
            text_of(b"definitely not a pdf", "SC")


if __name__ == '__main__':
    unittest.main()
