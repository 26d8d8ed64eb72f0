"""
Tests for the per-state document parsers.
"""
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import patch
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cbenef.models import BenefitType
from cbenef.core.parsers import PARSERS, SCParser, ESParser, PRParser, RJParser


SC_DOCUMENT = "\n".join([
    "SC850001 Isenção ICMS produtos 01/01/2023 31/12/2025",
    "SC850002 Redução base cálculo 15/03/2023",
    "ignored boilerplate SECRETARIA line",
])


class TestSCParser(unittest.TestCase):
    """Test Santa Catarina parsing"""

    def setUp(self):
        self.parser = SCParser("https://example.com/sc.pdf")

    def test_three_line_document(self):
        records = self.parser.parse(SC_DOCUMENT)

        self.assertEqual(len(records), 2)
        first, second = records
        self.assertEqual(first.full_code, "SC850001")
        self.assertEqual(first.benefit_type, BenefitType.EXEMPTION)
        self.assertEqual(first.start_date, date(2023, 1, 1))
        self.assertEqual(first.end_date, date(2025, 12, 31))
        self.assertEqual(first.description, "Isenção ICMS produtos")
        self.assertEqual(second.full_code, "SC850002")
        self.assertEqual(second.benefit_type, BenefitType.BASE_REDUCTION)
        self.assertEqual(second.start_date, date(2023, 3, 15))
        self.assertIsNone(second.end_date)

    def test_provenance_metadata(self):
        record = self.parser.parse(SC_DOCUMENT)[0]
        self.assertEqual(record.source_metadata["extractionMethod"], "PDF_TABLE_EXTRACTION")
        self.assertEqual(record.source_metadata["sourceUrl"], "https://example.com/sc.pdf")
        self.assertEqual(record.source_metadata["lineIndex"], "0")

    def test_end_date_not_after_start_is_dropped(self):
        records = self.parser.parse("SC850003 Diferimento do imposto 01/06/2024 01/01/2024")
        self.assertEqual(records[0].start_date, date(2024, 6, 1))
        self.assertIsNone(records[0].end_date)
        self.assertEqual(records[0].benefit_type, BenefitType.DEFERRAL)

    def test_duplicate_codes_keep_first(self):
        text = "\n".join([
            "SC850001 Isenção ICMS produtos 01/01/2023",
            "SC850001 Outra descrição qualquer 01/01/2024",
        ])
        records = self.parser.parse(text)

        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].description, "Isenção ICMS produtos")
        self.assertEqual(records[0].start_date, date(2023, 1, 1))

    def test_description_and_dates_recovered_from_following_lines(self):
        text = "\n".join([
            "SC850010",
            "Crédito presumido nas saídas de",
            "01/02/2023 31/12/2026",
        ])
        records = self.parser.parse(text)

        self.assertEqual(len(records), 1)
        record = records[0]
        self.assertEqual(record.description, "Crédito presumido nas saídas de")
        self.assertEqual(record.start_date, date(2023, 2, 1))
        self.assertEqual(record.end_date, date(2026, 12, 31))
        self.assertEqual(record.benefit_type, BenefitType.GRANTED_CREDIT)
        self.assertEqual(record.source_metadata["extractionMethod"], "PDF_ENHANCED_EXTRACTION")

    def test_default_start_date_without_dates(self):
        records = self.parser.parse("Ver código SC850020 Suspensão do imposto em feiras")
        self.assertEqual(records[0].start_date, date(2023, 1, 1))
        self.assertEqual(records[0].benefit_type, BenefitType.SUSPENSION)
        self.assertEqual(records[0].source_metadata["extractionMethod"], "PDF_CONTEXT_EXTRACTION")

    def test_skipped_lines(self):
        self.assertTrue(self.parser.should_skip_line(""))
        self.assertTrue(self.parser.should_skip_line("Página 3 de 10"))
        self.assertTrue(self.parser.should_skip_line("12345"))
        self.assertTrue(self.parser.should_skip_line("------"))
        self.assertTrue(self.parser.should_skip_line("GOVERNO DO ESTADO"))
        self.assertFalse(self.parser.should_skip_line("SC850001 Isenção"))

    def test_failing_step_falls_through_to_next_pattern(self):
        def broken(line, lines, index):
            raise ValueError("boom")

        self.parser.extract_table_row = broken
        records = self.parser.parse("SC850001 Isenção ICMS produtos 01/01/2023")

        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].source_metadata["extractionMethod"], "PDF_ENHANCED_EXTRACTION")
        self.assertEqual(records[0].start_date, date(2023, 1, 1))

    def test_low_yield_is_logged(self):
        with patch("cbenef.core.parsers.base.logger") as mock_logger:
            self.parser.parse(SC_DOCUMENT)

        warnings = [str(c) for c in mock_logger.warning.call_args_list]
        self.assertTrue(any("Few SC codes found (2)" in w for w in warnings))


class TestESParser(unittest.TestCase):
    """Test Espírito Santo parsing"""

    def setUp(self):
        self.parser = ESParser()

    def test_table_row_columns(self):
        line = ("ES010001 SIM NÃO 01/01/2024 31/12/2026 Isenção nas saídas de leite "
                "Art. 5 do Anexo II OBS. Somente produtor rural")
        record = self.parser.parse(line)[0]

        self.assertEqual(record.full_code, "ES010001")
        self.assertEqual(record.description, "Isenção nas saídas de leite")
        self.assertEqual(record.benefit_type, BenefitType.EXEMPTION)
        self.assertEqual(record.end_date, date(2026, 12, 31))
        self.assertEqual(record.applicable_tax_situation_codes, ("00",))
        self.assertTrue(record.is_situation_specific)
        self.assertEqual(record.source_metadata["legalBasis"], "Art. 5 do Anexo II")
        self.assertEqual(record.source_metadata["observation"], "Somente produtor rural")

    def test_observation_drives_classification(self):
        record = self.parser.parse("ES010002 01/01/2024 Operações com produtos agrícolas Obs. redução de 50%")[0]

        self.assertEqual(record.description, "Operações com produtos agrícolas")
        self.assertEqual(record.benefit_type, BenefitType.BASE_REDUCTION)
        self.assertEqual(record.applicable_tax_situation_codes, ())
        self.assertFalse(record.is_situation_specific)

    def test_code_line_with_wrapped_description(self):
        text = "\n".join([
            "ES020001",
            "Diferimento do imposto nas importações",
            "de máquinas e equipamentos",
            "vigência 01/03/2024",
        ])
        records = self.parser.parse(text)

        self.assertEqual(len(records), 1)
        record = records[0]
        self.assertEqual(record.description, "Diferimento do imposto nas importações de máquinas e equipamentos")
        self.assertEqual(record.start_date, date(2024, 3, 1))
        self.assertIsNone(record.end_date)
        self.assertEqual(record.benefit_type, BenefitType.DEFERRAL)
        self.assertEqual(record.source_metadata["extractionMethod"], "PDF_FALLBACK_EXTRACTION")

    def test_default_start_date(self):
        record = self.parser.parse("ES030001 Suspensão nas remessas para conserto")[0]
        self.assertEqual(record.start_date, date(2024, 1, 1))
        self.assertEqual(record.benefit_type, BenefitType.SUSPENSION)

    def test_header_lines_are_skipped(self):
        self.assertTrue(self.parser.should_skip_line("Cbenef Aplica ao CST"))
        self.assertTrue(self.parser.should_skip_line("CAPITULAÇÃO LEGAL"))
        self.assertEqual(self.parser.parse("TABELA ES000001 01/01/2024 Isenção geral"), [])


class TestPRParser(unittest.TestCase):
    """Test Paraná parsing"""

    def setUp(self):
        self.parser = PRParser()

    def test_table_row_appends_additional_info(self):
        line = ("PR800001 Isenção nas saídas de produtos hortifrutigranjeiros "
                "01/01/2019 31/12/2025 Convênio ICMS 44/75")
        record = self.parser.parse(line)[0]

        self.assertEqual(
            record.description,
            "Isenção nas saídas de produtos hortifrutigranjeiros - Convênio ICMS 44/75"
        )
        self.assertEqual(record.benefit_type, BenefitType.EXEMPTION)
        self.assertEqual(record.end_date, date(2025, 12, 31))
        self.assertEqual(record.source_metadata["additionalInfo"], "Convênio ICMS 44/75")
        self.assertEqual(record.source_metadata["extractionMethod"], "PDF_PR_TABLE_STRUCTURE")

    def test_short_description_completed_from_next_line(self):
        text = "\n".join([
            "PR810001 Crédito presumido 01/01/2020",
            "para indústria de laticínios",
        ])
        record = self.parser.parse(text)[0]

        self.assertEqual(record.description, "Crédito presumido para indústria de laticínios")
        self.assertEqual(record.benefit_type, BenefitType.GRANTED_CREDIT)

    def test_zero_rate(self):
        record = self.parser.parse("PR830001 Alíquota zero para medicamentos 01/01/2021")[0]
        self.assertEqual(record.benefit_type, BenefitType.ZERO_RATE)

    def test_inflected_exemption_and_non_incidence(self):
        exempt = self.parser.parse("PR800011 Saídas de produtos isentos do imposto 01/01/2021")[0]
        untaxed = self.parser.parse("PR800010 Fornecimento não tributado pelo imposto 01/01/2021")[0]

        self.assertEqual(exempt.benefit_type, BenefitType.EXEMPTION)
        self.assertEqual(untaxed.benefit_type, BenefitType.NON_INCIDENCE)

    def test_fallback_takes_dates_from_next_lines(self):
        text = "\n".join([
            "PR840001 Redução da base de cálculo nas operações internas",
            "01/05/2021 30/04/2025",
        ])
        record = self.parser.parse(text)[0]

        self.assertEqual(record.description, "Redução da base de cálculo nas operações internas")
        self.assertEqual(record.start_date, date(2021, 5, 1))
        self.assertEqual(record.end_date, date(2025, 4, 30))
        self.assertEqual(record.benefit_type, BenefitType.BASE_REDUCTION)
        self.assertEqual(record.source_metadata["extractionMethod"], "PDF_PR_FALLBACK")

    def test_sped_headers_are_skipped(self):
        self.assertTrue(self.parser.should_skip_line("Sistema Público de Escrituração Digital"))
        self.assertTrue(self.parser.should_skip_line("CÓDIGO DESCRIÇÃO"))
        self.assertTrue(self.parser.should_skip_line("PR8001"))


class TestRJParser(unittest.TestCase):
    """Test Rio de Janeiro parsing"""

    def setUp(self):
        self.parser = RJParser()

    def test_main_pattern_maps_sim_columns(self):
        record = self.parser.parse("RJ000001 SIM SIM 01/04/2019 Isenção nas operações com energia elétrica")[0]

        self.assertEqual(record.applicable_tax_situation_codes, ("00", "10"))
        self.assertTrue(record.is_situation_specific)
        self.assertEqual(record.benefit_type, BenefitType.EXEMPTION)
        self.assertEqual(record.description, "Isenção nas operações com energia elétrica")
        self.assertIn("originalLine", record.source_metadata)

    def test_fallback_uses_context_for_dates_and_csts(self):
        text = "\n".join([
            "RJ000002 Redução de base de cálculo de alimentos",
            "SIM 01/01/2020 31/12/2024",
        ])
        record = self.parser.parse(text)[0]

        self.assertEqual(record.description, "Redução de base de cálculo de alimentos")
        self.assertEqual(record.start_date, date(2020, 1, 1))
        self.assertEqual(record.end_date, date(2024, 12, 31))
        self.assertEqual(record.applicable_tax_situation_codes, ("00", "10"))
        self.assertEqual(record.benefit_type, BenefitType.BASE_REDUCTION)

    def test_transfer_is_granted_credit(self):
        record = self.parser.parse("RJ000003 01/01/2021 Transferência de saldo credor")[0]
        self.assertEqual(record.benefit_type, BenefitType.GRANTED_CREDIT)
        self.assertEqual(record.applicable_tax_situation_codes, ())

    def test_inflected_exemption_and_non_incidence(self):
        exempt = self.parser.parse("RJ000010 01/01/2021 Operações com produtos isentos de ICMS")[0]
        untaxed = self.parser.parse("RJ000011 01/01/2021 Saídas não tributadas de mercadorias")[0]

        self.assertEqual(exempt.benefit_type, BenefitType.EXEMPTION)
        self.assertEqual(untaxed.benefit_type, BenefitType.NON_INCIDENCE)

    def test_default_start_date(self):
        record = self.parser.parse("RJ000004 Ampliação de prazo de recolhimento")[0]
        self.assertEqual(record.start_date, date(2019, 4, 1))
        self.assertEqual(record.benefit_type, BenefitType.OTHER)

    def test_boilerplate_is_skipped(self):
        self.assertTrue(self.parser.should_skip_line("Tabela atualizada em 10/10/2023"))
        self.assertTrue(self.parser.should_skip_line("XXXX ---- XXXX"))
        self.assertTrue(self.parser.should_skip_line("Informar apenas quando houver"))


class TestParserInvariants(unittest.TestCase):
    """Properties shared by every parser"""

    DOCUMENTS = {
        "SC": SC_DOCUMENT + "\nSC850003 Diferimento 01/06/2024 01/01/2024",
        "ES": "ES010001 SIM 31/12/2026 01/01/2024 Isenção nas saídas de leite",
        "PR": "PR800001 Isenção geral de produtos 31/12/2025 01/01/2019",
        "RJ": "RJ000001 SIM 31/12/2025 01/04/2019 Isenção nas operações",
    }

    def test_registry_covers_states(self):
        self.assertEqual(sorted(PARSERS), ["ES", "PR", "RJ", "SC"])

    def test_end_date_never_precedes_start(self):
        for state_code, text in self.DOCUMENTS.items():
            records = PARSERS[state_code]().parse(text)
            self.assertTrue(records, state_code)
            for record in records:
                self.assertEqual(record.state_code, state_code)
                self.assertTrue(record.end_date is None or record.end_date >= record.start_date)


if __name__ == '__main__':
    unittest.main()
