"""
Tests para la ingesta de planillas Excel con el formato de datos.txt.
"""

import io

import pandas as pd
import pytest

from app.utils.excel_parser import clean_cell, parse_excel_file
from tests.utils import make_fields


def build_workbook(sheets):
    """Genera un .xlsx en memoria; cada hoja es una lista de filas sin encabezado."""
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, header=False, index=False)
    return buffer.getvalue()


class TestParseExcel:
    """Tests para parse_excel_file."""

    def test_rows_from_every_sheet(self):
        content = build_workbook({
            "Enero": [make_fields(rut="12345678-9", fecha_parto="01/10/2024")],
            "Febrero": [make_fields(rut="12.345.678-9", fecha_parto="02/10/2024")],
        })
        result = parse_excel_file(content, source="partos.xlsx")

        assert len(result.records) == 2
        assert result.records[0].mes_parto == 1
        assert result.records[1].mes_parto == 2
        assert result.records[0].trace_metadata.source == "partos.xlsx"
        assert len(result.mothers["123456789"]) == 2

    def test_empty_cells_are_missing_values(self):
        content = build_workbook({"Hoja1": [make_fields(comuna="", peso="3100")]})
        record = parse_excel_file(content).records[0]

        assert record.comuna is None
        assert record.peso == 3100.0

    def test_short_row_is_skipped(self):
        content = build_workbook({
            "Hoja1": [make_fields(), ["1", "2", "03/16/2024", "11:00", "VAGINAL"]],
        })
        result = parse_excel_file(content)

        assert len(result.records) == 1
        assert result.skipped == 1
        assert result.warnings[0].line == 2

    def test_invalid_file(self):
        with pytest.raises(ValueError):
            parse_excel_file(b"not an excel file")

    def test_no_records(self):
        content = build_workbook({"Hoja1": [["1", "2", "3"]]})
        with pytest.raises(ValueError):
            parse_excel_file(content)


class TestCleanCell:
    """Tests para clean_cell."""

    def test_values(self):
        assert clean_cell(None) is None
        assert clean_cell(float("nan")) is None
        assert clean_cell("  ") is None
        assert clean_cell(" VAGINAL ") == "VAGINAL"
