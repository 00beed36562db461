"""
Tests para los índices de relaciones entre registros.
"""

import pytest

from app.utils.relations import apply_relations, build_indexes, index_records, mothers_map
from tests.utils import make_record


@pytest.fixture
def records():
    return [
        make_record(0, rut="12345678-9", consultorio="CESFAM NORTE", comuna="TALCA", fecha_parto="03/15/2024"),
        make_record(1, rut="12.345.678-9", consultorio="CESFAM SUR", comuna="TALCA", fecha_parto="03/20/2024"),
        make_record(2, rut="9.999.999-9", consultorio="CESFAM NORTE", comuna="MAULE", fecha_parto="04/01/2024"),
        make_record(3, rut="", consultorio="", comuna="", fecha_parto="03/01/2023"),
    ]


class TestRelations:
    """Tests para la indexación en dos fases."""

    def test_same_mother_related_both_ways(self, records):
        """Dos RUT que normalizan igual quedan relacionados entre sí."""
        enriched, _ = index_records(records)
        first, second = enriched[0], enriched[1]

        assert [p.trace_id for p in first.relations.related_partos] == [second.trace_id]
        assert [p.trace_id for p in second.relations.related_partos] == [first.trace_id]
        assert first.relation_counts.total_related_partos == 1

    def test_projection_fields(self, records):
        enriched, _ = index_records(records)
        related = enriched[0].relations.related_partos[0]
        assert related.fecha_parto == enriched[1].fecha_parto
        assert related.tipo_parto == "VAGINAL"
        assert related.numero == "1"

    def test_own_trace_id_excluded(self, records):
        enriched, _ = index_records(records)
        for record in enriched:
            assert record.trace_id not in record.relations.same_consultorio
            assert record.trace_id not in record.relations.same_comuna
            assert record.trace_id not in record.relations.same_month

    def test_symmetry(self, records):
        enriched, _ = index_records(records)
        by_id = {r.trace_id: r for r in enriched}
        for record in enriched:
            for attribute in ("same_consultorio", "same_comuna", "same_month", "same_medico_obstetra", "same_matrona"):
                for other_id in getattr(record.relations, attribute):
                    assert record.trace_id in getattr(by_id[other_id].relations, attribute)

    def test_month_uses_year_and_month(self, records):
        enriched, _ = index_records(records)
        assert enriched[0].relations.same_month == [enriched[1].trace_id]
        assert enriched[3].relations.same_month == []

    def test_missing_keys_give_empty_lists(self, records):
        enriched, _ = index_records(records)
        orphan = enriched[3]
        assert orphan.relations.related_partos == []
        assert orphan.relations.same_consultorio == []
        assert orphan.relations.same_comuna == []
        assert orphan.relation_counts.total_same_comuna == 0

    def test_counts_match_lists(self, records):
        enriched, _ = index_records(records)
        for record in enriched:
            assert record.relation_counts.total_same_consultorio == len(record.relations.same_consultorio)
            assert record.relation_counts.total_same_comuna == len(record.relations.same_comuna)

    def test_inputs_not_mutated(self, records):
        indexes = build_indexes(records)
        enriched = apply_relations(records, indexes)
        assert records[0].relations.related_partos == []
        assert enriched[0] is not records[0]

    def test_indexes_are_read_only(self, records):
        indexes = build_indexes(records)
        with pytest.raises(TypeError):
            indexes.by_rut["X"] = ("Y",)
        assert isinstance(indexes.by_rut["123456789"], tuple)

    def test_mothers_map(self, records):
        indexes = build_indexes(records)
        mothers = mothers_map(indexes)
        assert set(mothers) == {"123456789", "99999999"}
        assert mothers["123456789"] == [records[0].trace_id, records[1].trace_id]
