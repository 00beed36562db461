"""
Tests para las secciones REM A, A.1, B y D.1.
"""

from app.reports.rem import (
    SECTION_A_ROWS,
    SECTION_B_ROWS,
    compute_rem,
    compute_section_a,
    compute_section_a1,
    compute_section_b,
    compute_section_d1,
    filter_records,
)
from tests.utils import make_form_record, make_record

MOTHER_LOW_WEIGHT = "CONTACTO INMEDIATO PIEL A PIEL >30 MINUTOS - Con la Madre - RN peso menor o igual a 2.499 grs."


def _row(rows, label, subcategory=None):
    for row in rows:
        if row.label == label and getattr(row, "subcategory", None) == subcategory:
            return row
    raise AssertionError(f"Row not found: {label} / {subcategory}")


class TestSectionA:
    """Tests para la sección A."""

    def test_skin_to_skin_low_weight_in_b_and_in_row_pivot(self):
        """RN de 2200 g con apego con la madre cuenta en B y en el pivote de su fila."""
        record = make_record(0, tipo_parto="VAGINAL", peso="2200", apego_con_piel_30_min="MADRE")

        section_b = compute_section_b([record])
        assert _row(section_b, MOTHER_LOW_WEIGHT).total == 1

        section_a = compute_section_a([record])
        assert _row(section_a, "Vaginal").indicadores.contacto_madre_menor2500 == 1
        assert _row(section_a, "TOTAL PARTOS").indicadores.contacto_madre_menor2500 == 1
        assert _row(section_a, "Cesárea Urgencia").indicadores.contacto_madre_menor2500 == 0

    def test_empty_controlled_flag_counts_as_uncontrolled(self):
        record = make_record(0, emb_controlado="")
        section_a = compute_section_a([record])
        assert _row(section_a, "Embarazo no controlado").total == 1

    def test_controlled_pregnancy_not_counted(self):
        section_a = compute_section_a([make_record(0, emb_controlado="SI")])
        assert _row(section_a, "Embarazo no controlado").total == 0

    def test_delivery_rows(self):
        records = [
            make_record(0, tipo_parto="VAGINAL"),
            make_record(1, tipo_parto="VAGINAL INSTRUMENTAL"),
            make_record(2, tipo_parto="CES ELE"),
            make_record(3, tipo_parto="CES URG"),
            make_record(4, tipo_parto="EXTRAHOSPITALARIO"),
            make_record(5, tipo_parto="FUERA RED"),
        ]
        section_a = compute_section_a(records)
        assert _row(section_a, "TOTAL PARTOS").total == 6
        assert _row(section_a, "Vaginal").total == 1
        assert _row(section_a, "Instrumental").total == 1
        assert _row(section_a, "Cesárea Electiva").total == 1
        assert _row(section_a, "Cesárea Urgencia").total == 1
        assert _row(section_a, "Parto prehospitalario (en establecimientos salud o ambulancias)").total == 1
        assert _row(section_a, "Partos fuera de la red de salud").total == 1

    def test_home_births(self):
        records = [
            make_record(0, comentarios="PARTO EN DOMICILIO CON ATENCION PROFESIONAL"),
            make_record(1, comentarios="DOMICILIO SIN ATENCION"),
        ]
        section_a = compute_section_a(records)
        assert _row(section_a, "Parto en domicilio - Con atención profesional").total == 1
        assert _row(section_a, "Parto en domicilio - Sin atención profesional").total == 1

    def test_age_bands(self):
        records = [make_record(i, edad=edad) for i, edad in enumerate(["14", "15", "19", "20", "34", "35", ""])]
        bands = _row(compute_section_a(records), "TOTAL PARTOS").por_edad
        assert bands.menos15 == 1
        assert bands.entre15y19 == 2
        assert bands.entre20y34 == 2
        assert bands.mas35 == 1

    def test_missing_age_counts_in_total_only(self):
        row = _row(compute_section_a([make_record(0, edad="")]), "TOTAL PARTOS")
        assert row.total == 1
        assert row.por_edad.model_dump() == {"menos15": 0, "entre15y19": 0, "entre20y34": 0, "mas35": 0}

    def test_prematurity_bands_cover_fractional_weeks(self):
        weeks = ["21", "22", "23.5", "24", "28.5", "29", "32.9", "33", "36.9", "37"]
        records = [make_record(i, eg=w) for i, w in enumerate(weeks)]
        bands = _row(compute_section_a(records), "TOTAL PARTOS").por_prematuridad
        assert bands.menos24 == 2
        assert bands.entre24y28 == 2
        assert bands.entre29y32 == 2
        assert bands.entre33y36 == 2

    def test_equity_pivots(self):
        record = make_form_record(
            0, tipoParto="VAGINAL", puebloOriginario="SI", migrante="SI", identidadGenero="Trans masculino"
        )
        pivots = _row(compute_section_a([record]), "Vaginal").indicadores
        assert pivots.pueblos_originarios == 1
        assert pivots.migrantes == 1
        assert pivots.pertinencia_cultural == 1
        assert pivots.trans_masculino == 1
        assert pivots.no_binarie == 0

    def test_father_skin_to_skin_from_companion(self):
        record = make_record(0, peso="3000", acompanamiento_parto="SI", parentesco_acompanante_respecto_a_rn="PADRE")
        pivots = _row(compute_section_a([record]), "TOTAL PARTOS").indicadores
        assert pivots.contacto_padre_mayor2500 == 1
        assert pivots.contacto_madre_mayor2500 == 0

    def test_row_order(self):
        labels = [row.label for row in compute_section_a([])]
        assert labels == [label for label, _ in SECTION_A_ROWS]
        assert labels[0] == "TOTAL PARTOS"


class TestSectionA1:
    """Tests para la sección A.1 (partos vaginales)."""

    def test_only_vaginal(self):
        records = [
            make_record(0, tipo_parto="VAGINAL", eg="39", induccion="NO"),
            make_record(1, tipo_parto="VAGINAL INSTRUMENTAL", eg="39", induccion="NO"),
            make_record(2, tipo_parto="CES URG", eg="39", induccion="NO"),
        ]
        row = _row(compute_section_a1(records), "Espontáneo")
        assert row.total == 1
        assert row.mas38 == 1

    def test_week_bands(self):
        records = [make_record(i, eg=w) for i, w in enumerate(["27", "28", "37.9", "38", ""])]
        row = _row(compute_section_a1(records), "Espontáneo")
        assert row.total == 4
        assert row.menos28 == 1
        assert row.entre28y37 == 2
        assert row.mas38 == 1

    def test_induction_kinds(self):
        records = [
            make_record(0, induccion="SI", comentarios="AMNIOTOMIA"),
            make_record(1, induccion="SI", comentarios="MISOTROL 25"),
        ]
        section = compute_section_a1(records)
        assert _row(section, "Inducidos", "Mecánica").total == 1
        assert _row(section, "Inducidos", "Farmacológica").total == 1
        assert _row(section, "Espontáneo").total == 0

    def test_position_and_companion(self):
        records = [
            make_record(0, posicion_materna_en_el_expulsivo="LITOTOMIA", acompanamiento_parto="SI"),
            make_record(1, posicion_materna_en_el_expulsivo="SEMISENTADA", acompanamiento_puerperio_inmediato="SI"),
        ]
        section = compute_section_a1(records)
        assert _row(section, "Posición al momento del expulsivo", "Litotomía").total == 1
        assert _row(section, "Posición al momento del expulsivo", "Otras posiciones").total == 1
        assert _row(section, "Acompañamiento", "Durante el trabajo de parto").total == 1
        assert _row(section, "Acompañamiento", "Sólo en el expulsivo").total == 1


class TestSectionB:
    """Tests para la sección B."""

    def test_anesthesia_rows(self):
        records = [
            make_record(0, tipo_de_anestesia="PERIDURAL"),
            make_record(1, tipo_de_anestesia="OXIDO NITROSO"),
            make_record(2, tipo_de_anestesia="GENERAL"),
            make_record(3, anestesia_local="SI"),
        ]
        section = compute_section_b(records)
        assert _row(section, "Anestesia Neuroaxial").total == 1
        assert _row(section, "Óxido nitroso").total == 1
        assert _row(section, "General").total == 1
        assert _row(section, "Local").total == 1

    def test_rooming_in_from_flag_or_destination(self):
        records = [
            make_form_record(0, alojamientoConjunto="SI", destino="NEONATOLOGIA"),
            make_record(1, destino="SALA CUNA"),
            make_record(2, destino="NEONATOLOGIA"),
        ]
        row = _row(compute_section_b(records), "Alojamiento conjunto en puerperio inmediato")
        assert row.total == 2

    def test_all_rows_present_when_empty(self):
        section = compute_section_b([])
        assert len(section) == len(SECTION_B_ROWS)
        assert all(row.total == 0 for row in section)


class TestSectionD1:
    """Tests para la sección D.1 (recién nacidos vivos)."""

    def test_weight_bands_sum_to_total(self):
        weights = ["400", "500", "999", "1000", "1500", "2000", "2499", "2500", "3000", "3999", "4000", ""]
        records = [make_record(i, peso=w) for i, w in enumerate(weights)]
        row = compute_section_d1(records)
        bands = [
            row.menos500, row.entre500y999, row.entre1000y1499, row.entre1500y1999,
            row.entre2000y2499, row.entre2500y2999, row.entre3000y3999, row.mas4000,
        ]
        assert row.total == 11
        assert sum(bands) == row.total
        assert row.entre500y999 == 2
        assert row.entre3000y3999 == 2
        assert row.mas4000 == 1

    def test_congenital_anomaly(self):
        records = [
            make_record(0, malformaciones="SI"),
            make_record(1, comentarios="Anomalia congénita renal"),
            make_record(2),
        ]
        assert compute_section_d1(records).anomalia_congenita == 2

    def test_serialized_names(self):
        data = compute_section_d1([]).model_dump(by_alias=True)
        assert "entre500y999" in data
        assert "anomaliaCongenita" in data


class TestRemReport:
    """Tests para el reporte completo y los filtros de período."""

    def test_filter_by_year_and_month(self):
        records = [
            make_record(0, fecha_parto="03/15/2024"),
            make_record(1, fecha_parto="04/15/2024"),
            make_record(2, fecha_parto="03/15/2023"),
            make_record(3, fecha_parto=""),
        ]
        assert len(filter_records(records, year=2024)) == 2
        assert len(filter_records(records, month=3)) == 2
        assert len(filter_records(records, year=2024, month=3)) == 1
        assert len(filter_records(records)) == 4

    def test_report_uses_filtered_collection(self):
        records = [
            make_record(0, fecha_parto="03/15/2024", peso="2200", apego_con_piel_30_min="MADRE"),
            make_record(1, fecha_parto="05/15/2024", peso="2200", apego_con_piel_30_min="MADRE"),
        ]
        report = compute_rem(records, year=2024, month=3)
        assert report.total_records == 1
        assert _row(report.seccion_a, "TOTAL PARTOS").indicadores.contacto_madre_menor2500 == 1
        assert report.seccion_d1.total == 1

    def test_empty_collection_is_zero_filled(self):
        report = compute_rem([])
        assert report.total_records == 0
        assert all(row.total == 0 for row in report.seccion_a)
        assert all(row.total == 0 for row in report.seccion_a1)
        assert report.seccion_d1.total == 0

    def test_delivery_rows_do_not_exceed_total(self):
        records = [make_record(i, tipo_parto=t) for i, t in enumerate(["VAGINAL", "CES ELE", "OTRA COSA"])]
        section_a = compute_section_a(records)
        total = _row(section_a, "TOTAL PARTOS").total
        delivery = sum(_row(section_a, label).total for label in (
            "Vaginal", "Instrumental", "Cesárea Electiva", "Cesárea Urgencia",
        ))
        assert delivery <= total
