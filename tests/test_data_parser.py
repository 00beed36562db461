"""
Tests para el parser de lotes datos.txt.
"""

from app.utils.data_parser import parse_data, parse_rows, split_lines
from tests.utils import make_line, make_text


class TestParseData:
    """Tests para parse_data."""

    def test_short_line_is_skipped_without_stopping_batch(self):
        """Una línea de 5 campos se omite y las siguientes se procesan."""
        text = make_text(
            make_line(sequence_number="1"),
            "1\t2\t3\t4\t5",
            make_line(sequence_number="2", rut="11.111.111-1"),
        )
        result = parse_data(text)

        assert result.ok
        assert len(result.records) == 2
        assert result.skipped == 1
        assert [w.line for w in result.warnings] == [2]
        assert [r.sequence_number for r in result.records] == [1, 2]

    def test_blank_lines_ignored(self):
        result = parse_data(make_text(make_line(), "", "   ", make_line(rut="2-7")))
        assert len(result.records) == 2
        assert result.skipped == 0

    def test_non_text_input(self):
        result = parse_data(None)
        assert not result.ok
        assert result.error == "Input must be text"
        assert result.records == []

    def test_empty_text(self):
        result = parse_data("   \n  ")
        assert result.ok
        assert result.records == []

    def test_crlf_line_endings(self):
        result = parse_data(make_line(comentarios="FIN") + "\r\n" + make_line(rut="2-7"))
        assert result.records[0].comentarios == "FIN"

    def test_trace_ids_unique_in_batch(self):
        result = parse_data(make_text(make_line(), make_line(), make_line()))
        trace_ids = [r.trace_id for r in result.records]
        assert len(set(trace_ids)) == 3

    def test_mothers_map(self):
        result = parse_data(make_text(
            make_line(rut="12345678-9"),
            make_line(rut="12.345.678-9"),
            make_line(rut="9.999.999-9"),
        ))
        assert len(result.mothers) == 2
        assert len(result.mothers["123456789"]) == 2
        assert result.summary()["unique_mothers"] == 2

    def test_source_name(self):
        result = parse_data(make_line(), source="enero.txt")
        assert result.records[0].trace_metadata.source == "enero.txt"


class TestSplitLines:
    """Tests para la separación de columnas."""

    def test_leading_tab_is_empty_first_column(self):
        assert split_lines("\tVAGINAL\r\nB") == [["", "VAGINAL"], ["B"]]

    def test_parse_rows_with_none_cells(self):
        row = make_line().split("\t")
        row[14] = None
        result = parse_rows([row, [None] * 80])
        assert len(result.records) == 1
        assert result.records[0].comuna is None
