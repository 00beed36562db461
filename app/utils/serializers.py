"""
Conversions between records, database rows and the flat legacy dict shape.
"""
from typing import Any, Dict

from app.schemas.parto import LabResult, Parto
from app.utils.normalizers import normalize_skin_to_skin
from app.utils.record_builder import FORM_SOURCE, build_from_form

# Fields whose column name differs from the attribute name
DB_COLUMNS: Dict[str, str] = {
    "sequence_number": "n_parto_ano",
    "monthly_number": "n_parto_mes",
    "libertad_de_movimiento_o_en_tdp": "libertad_movimiento_tdp",
    "motivo_sin_libertad_de_movimiento": "motivo_sin_libertad_movimiento",
    "posicion_materna_en_el_expulsivo": "posicion_materna_expulsivo",
    "medidas_no_farmacologicas_para_el_dolor_cuales": "medidas_no_farmacologicas_dolor",
    "tipo_de_anestesia": "tipo_anestesia",
    "hora_de_anestesia": "hora_anestesia",
    "manejo_farmacologico_del_dolor": "manejo_farmacologico_dolor",
    "manejo_no_farmacologico_del_dolor": "manejo_no_farmacologico_dolor",
    "plan_de_parto": "plan_parto",
    "trabajo_de_parto": "trabajo_parto",
    "regimen_hidrico_amplio_en_tdp": "regimen_hidrico_amplio_tdp",
    "atencion_con_pertinencia_cultural": "atencion_pertinencia_cultural",
    "sgb_con_tratamiento_al_parto": "sgb_tratamiento_al_parto",
    "acompanamiento_puerperio_inmediato": "acompanamiento_puerperio",
    "parentesco_acompanante_respecto_a_madre": "parentesco_acompanante_madre",
    "parentesco_acompanante_respecto_a_rn": "parentesco_acompanante_rn",
    "lactancia_precoz_60_min_de_vida": "lactancia_precoz_60min",
    "privada_de_libertad": "privada_libertad",
}

# Fields with a structured value, stored through dedicated columns
COMPOSITE_FIELDS = (
    "trace_metadata",
    "tipo_parto",
    "paridad",
    "presentacion",
    "vih_al_parto",
    "apego_con_piel_30_min",
    "relations",
    "relation_counts",
)

SCALAR_FIELDS = tuple(name for name in Parto.model_fields if name not in COMPOSITE_FIELDS)

def column_for(field: str) -> str:
    return DB_COLUMNS.get(field, field)

def to_db_dict(record: Parto) -> Dict[str, Any]:
    """Column values for a record. Relations are never stored; they are rebuilt on load."""
    values = {column_for(name): getattr(record, name) for name in SCALAR_FIELDS}
    # Categories keep the uppercased source text so reloading classifies them again
    values["tipo_parto"] = record.tipo_parto.raw if record.tipo_parto else None
    values["paridad"] = record.paridad.raw if record.paridad else None
    values["presentacion"] = record.presentacion.raw if record.presentacion else None
    values["vih_al_parto"] = record.vih_al_parto.value
    values["vih_al_parto_original"] = record.vih_al_parto.original
    values["apego_piel_30min"] = int(record.apego_con_piel_30_min.code)
    values["apego_piel_30min_original"] = record.apego_con_piel_30_min.raw
    values["source"] = record.trace_metadata.source
    values["data_hash"] = record.trace_metadata.data_hash
    return values

def from_db_row(row: Any, index: int = 0) -> Parto:
    """Rebuild a record from a ``partos`` row through the same normalizers as a form submission."""
    data: Dict[str, Any] = {name: getattr(row, column_for(name), None) for name in SCALAR_FIELDS}
    data["tipo_parto"] = row.tipo_parto
    data["paridad"] = row.paridad
    data["presentacion"] = row.presentacion

    skin = normalize_skin_to_skin(row.apego_piel_30min or 0)
    if row.apego_piel_30min_original is not None:
        skin = skin.model_copy(update={"raw": row.apego_piel_30min_original})
    data["apego_con_piel_30_min"] = skin
    data["vih_al_parto"] = LabResult(
        value=row.vih_al_parto or 0,
        original=row.vih_al_parto_original or "NEGATIVO",
    )
    # Stored defaults are final; rooming-in must not be inferred again
    data["alojamiento_conjunto"] = row.alojamiento_conjunto or 0
    return build_from_form(data, index=index, source=row.source or FORM_SOURCE)

LEGACY_VIEWS = {
    "numero": "numero",
    "id": "legacy_id",
    "fecha": "fecha",
    "hora": "hora",
    "nombre": "nombre",
    "semanasGestacion": "semanas_gestacion",
    "tipoAnestesia": "tipo_anestesia",
    "perimetroCefalico": "perimetro_cefalico",
}

def to_legacy_dict(record: Parto) -> Dict[str, Any]:
    """
    Flat JSON shape of the old registry front end: categories as labels, coded
    values as integers, plus the duplicated legacy keys it still reads.
    """
    data = record.model_dump(by_alias=True, mode="json")
    data["tipoParto"] = record.tipo_parto_label or None
    data["paridad"] = record.paridad_label or None
    data["presentacion"] = record.presentacion.label if record.presentacion else None
    data["apegoConPiel30Min"] = int(record.apego_con_piel_30_min.code)
    data["apegoConPiel30MinOriginal"] = record.apego_con_piel_30_min.raw
    data["vihAlParto"] = record.vih_al_parto.value
    data["vihAlPartoOriginal"] = record.vih_al_parto.original
    data["_traceId"] = record.trace_id
    data["_rutNormalized"] = record.rut_normalized
    for key, attribute in LEGACY_VIEWS.items():
        data[key] = getattr(record, attribute)
    return data
