"""
Excel export of benefit records.
"""
from pathlib import Path
from typing import List, Optional
from datetime import date, datetime
import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter
from loguru import logger

from cbenef.models import BenefitRecord


class ExcelReporter:
    """Writes benefit records to a formatted Excel workbook"""

    SHEET_NAME = "Benefícios CBenef"

    # Style definitions
    HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    HEADER_FONT = Font(bold=True, color="FFFFFF", size=11)
    BORDER_THIN = Border(
        left=Side(style='thin'),
        right=Side(style='thin'),
        top=Side(style='thin'),
        bottom=Side(style='thin')
    )

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _format_date(value: Optional[date]) -> Optional[str]:
        """Format date as DD/MM/YYYY"""
        if not value:
            return None
        return value.strftime("%d/%m/%Y")

    def generate_report(self, records: List[BenefitRecord]) -> Path:
        """Write one row per record to cbenef_<timestamp>.xlsx in the output directory"""
        if not records:
            raise ValueError("No benefits to generate report")

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_file = self.output_dir / f"cbenef_{timestamp}.xlsx"

        df_benefits = self._create_benefits_dataframe(records)
        with pd.ExcelWriter(output_file, engine='openpyxl') as writer:
            df_benefits.to_excel(writer, sheet_name=self.SHEET_NAME, index=False)

        self._apply_formatting(output_file)

        logger.info(f"Generated Excel report with {len(records)} benefits: {output_file}")
        return output_file

    def _create_benefits_dataframe(self, records: List[BenefitRecord]) -> pd.DataFrame:
        rows = []
        for record in records:
            rows.append({
                'UF': record.state_code,
                'Código CBenef': record.full_code,
                'Descrição': record.description,
                'Tipo de Benefício': record.benefit_type.value,
                'Início Vigência': self._format_date(record.start_date),
                'Fim Vigência': self._format_date(record.end_date),
                'Vigente': "Sim" if record.is_active() else "Não",
                'CSTs Aplicáveis': ", ".join(record.applicable_tax_situation_codes) or None,
                'Método de Extração': record.source_metadata.get("extractionMethod"),
            })
        return pd.DataFrame(rows)

    def _apply_formatting(self, excel_file: Path):
        """Apply Excel formatting (headers, borders, column widths)"""
        wb = load_workbook(excel_file)

        for sheet_name in wb.sheetnames:
            ws = wb[sheet_name]

            for cell in ws[1]:
                cell.font = self.HEADER_FONT
                cell.fill = self.HEADER_FILL
                cell.alignment = Alignment(horizontal='center', vertical='center')
                cell.border = self.BORDER_THIN

            # Auto-fit columns
            for column in ws.columns:
                column_letter = get_column_letter(column[0].column)
                max_length = max((len(str(cell.value)) for cell in column if cell.value), default=0)
                ws.column_dimensions[column_letter].width = min(max_length + 2, 50)  # Cap at 50

            ws.auto_filter.ref = ws.dimensions
            ws.freeze_panes = 'A2'

        wb.save(excel_file)
        logger.debug(f"Applied formatting to {excel_file}")
