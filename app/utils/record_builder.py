import hashlib
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from app.schemas.parto import DeliveryType, Parto, ParseWarning, TraceMetadata
from app.utils.normalizers import (
    BOOLEAN_FIELDS,
    LAB_FIELDS,
    classify_delivery_type,
    classify_parity,
    classify_presentation,
    clean_float,
    clean_integer,
    clean_string,
    infer_rooming_in,
    normalize_boolean_flag,
    normalize_hiv_at_delivery,
    normalize_lab_result,
    normalize_rut,
    normalize_sex,
    normalize_skin_to_skin,
    parse_birth_date,
)

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "datos.txt"
FORM_SOURCE = "formulario"
MIN_FIELDS = 10

# Offsets of the datos.txt layout. Column 34 is shared: it holds the cesarean
# cause for cesareans and the non-pharmacological pain measures otherwise.
COLUMNS: Dict[str, int] = {
    "sequence_number": 0,
    "monthly_number": 1,
    "fecha_parto": 2,
    "hora_parto": 3,
    "tipo_parto": 4,
    "nombre_y_apellido": 5,
    "rut": 6,
    "edad": 7,
    "pueblo_originario": 8,
    "nombre_pueblo_originario": 9,
    "migrante": 10,
    "nacionalidad": 11,
    "emb_controlado": 12,
    "telefono": 13,
    "comuna": 14,
    "consultorio": 15,
    "paridad": 16,
    "cca": 17,
    "presentacion": 18,
    "gemela": 19,
    "eg": 20,
    "dias": 21,
    "rotura_membranas": 22,
    "induccion": 23,
    "misotrol": 24,
    "conduccion_ocitocica": 25,
    "monitoreo": 26,
    "libertad_de_movimiento_o_en_tdp": 27,
    "posicion_materna_en_el_expulsivo": 28,
    "episiotomia": 32,
    "desgarro": 33,
    "causa_cesarea": 34,
    "medidas_no_farmacologicas_para_el_dolor_cuales": 34,
    "eq": 35,
    "tipo_de_anestesia": 36,
    "hora_de_anestesia": 37,
    "medico_anestesista": 38,
    "anestesia_local": 40,
    "manejo_farmacologico_del_dolor": 41,
    "manejo_no_farmacologico_del_dolor": 43,
    "grupo_rh": 44,
    "chagas": 45,
    # RPR/VDRL has no column of its own in datos.txt; it has always been read from 45
    "rpr_vdrl": 45,
    "vih": 46,
    "hepatitis_b": 47,
    "vih_al_parto": 50,
    "peso": 52,
    "talla": 53,
    "cc": 54,
    "apgar1": 55,
    "apgar5": 56,
    "sexo": 58,
    "malformaciones": 59,
    "matrona_preparto": 64,
    "acompanamiento_preparto": 65,
    "acompanamiento_parto": 66,
    "acompanamiento_puerperio_inmediato": 67,
    "nombre_acompanante": 68,
    "parentesco_acompanante_respecto_a_madre": 69,
    "apego_con_piel_30_min": 71,
    "parentesco_acompanante_respecto_a_rn": 72,
    "lactancia_precoz_60_min_de_vida": 74,
    "destino": 78,
    "comentarios": 79,
}

INTEGER_FIELDS = ("sequence_number", "monthly_number", "edad", "dias", "apgar1", "apgar5", "apgar10")
FLOAT_FIELDS = ("eg", "peso", "talla", "cc")

STRING_FIELDS = (
    "hora_parto",
    "nombre_y_apellido",
    "rut",
    "nombre_pueblo_originario",
    "nacionalidad",
    "telefono",
    "comuna",
    "consultorio",
    "identidad_genero",
    "rotura_membranas",
    "misotrol",
    "monitoreo",
    "motivo_sin_libertad_de_movimiento",
    "posicion_materna_en_el_expulsivo",
    "desgarro",
    "eq",
    "tipo_de_anestesia",
    "hora_de_anestesia",
    "medico_anestesista",
    "motivo_no_anestesia",
    "grupo_rh",
    "sgb",
    "sgb_con_tratamiento_al_parto",
    "medico_obstetra",
    "medico_pediatra",
    "matrona_preparto",
    "matrona_parto",
    "matrona_rn",
    "nombre_acompanante",
    "parentesco_acompanante_respecto_a_madre",
    "parentesco_acompanante_respecto_a_rn",
    "causa_no_apego",
    "destino",
    "comentarios",
)

TEXT_DEFAULTS = {
    "desgarro": "NO",
    "eq": "NO",
    "tipo_de_anestesia": "SIN ANESTESIA",
}

# Names the form path accepts besides the field names and their camelCase aliases
LEGACY_KEYS = {
    "_traceId": "trace_id",
    "traceId": "trace_id",
    "_rutNormalized": "rut_normalized",
    "fecha": "fecha_parto",
    "hora": "hora_parto",
    "nombre": "nombre_y_apellido",
    "semanasGestacion": "eg",
    "tipoAnestesia": "tipo_de_anestesia",
    "perimetroCefalico": "cc",
    "apegoConPiel30MinOriginal": "apego_con_piel_30_min",
    "vihAlPartoOriginal": "vih_al_parto",
}

class RecordBuildError(ValueError):
    """Raised when a raw line cannot become a record at all."""

    def __init__(self, message: str, line: Optional[int] = None):
        super().__init__(message)
        self.line = line

def _alias_lookup() -> Dict[str, str]:
    lookup = {}
    for name, field in Parto.model_fields.items():
        lookup[name] = name
        if field.alias:
            lookup[field.alias] = name
    lookup.update(LEGACY_KEYS)
    return lookup

FIELD_LOOKUP = _alias_lookup()

def generate_trace_id(
    sequence_number: Any,
    monthly_number: Any,
    fecha: Any,
    rut: Any,
    nombre: Any,
    index: int,
) -> str:
    """Content fingerprint plus line index: the same line always gets the same id."""
    parts = [sequence_number, monthly_number, fecha, rut, nombre]
    key = "_".join("" if part is None else str(part) for part in parts) + f"_{index}"
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:12]
    return f"PARTO_{digest}_{index}"

def _warn(warnings: Optional[List[ParseWarning]], line: Optional[int], message: str) -> None:
    logger.warning(f"Line {line}: {message}" if line else message)
    if warnings is not None:
        warnings.append(ParseWarning(line=line, message=message))

def _safe(
    field: str,
    func: Callable[[Any], Any],
    value: Any,
    default: Any,
    line: Optional[int],
    warnings: Optional[List[ParseWarning]],
) -> Any:
    try:
        return func(value)
    except Exception as e:
        _warn(warnings, line, f"Could not normalize field {field} ({value!r}): {e}")
        return default

def _resolve_shared_column(
    is_cesarean: bool, causa: Optional[str], medidas: Optional[str]
) -> Tuple[Optional[str], Optional[str]]:
    """Return (causa_cesarea, medidas_no_farmacologicas); exactly one side keeps the value."""
    if is_cesarean:
        return causa or medidas, None
    return None, medidas or causa

def _build(
    raw: Mapping[str, Any],
    index: int,
    source: str,
    line: Optional[int],
    warnings: Optional[List[ParseWarning]],
) -> Parto:
    values: Dict[str, Any] = {}

    # Plain scalar columns, then defaults for the free-text ones
    for field in INTEGER_FIELDS:
        values[field] = _safe(field, clean_integer, raw.get(field), None, line, warnings)
    for field in FLOAT_FIELDS:
        values[field] = _safe(field, clean_float, raw.get(field), None, line, warnings)
    for field in STRING_FIELDS:
        values[field] = _safe(field, clean_string, raw.get(field), None, line, warnings)
    for field, default in TEXT_DEFAULTS.items():
        if values[field] is None:
            values[field] = default

    # Birth date drives month and year; a bad date keeps the record
    raw_date = raw.get("fecha_parto")
    fecha = _safe("fecha_parto", parse_birth_date, raw_date, None, line, warnings)
    if fecha is None and clean_string(raw_date) is not None:
        _warn(warnings, line, f"Invalid birth date: {clean_string(raw_date)}")
    values["fecha_parto"] = fecha
    values["mes_parto"] = fecha.month if fecha else None
    values["ano_parto"] = fecha.year if fecha else None

    # Categories
    tipo_parto = _safe("tipo_parto", classify_delivery_type, raw.get("tipo_parto"), None, line, warnings)
    values["tipo_parto"] = tipo_parto
    values["paridad"] = _safe("paridad", classify_parity, raw.get("paridad"), None, line, warnings)
    values["presentacion"] = _safe("presentacion", classify_presentation, raw.get("presentacion"), None, line, warnings)
    values["sexo"] = _safe("sexo", normalize_sex, raw.get("sexo"), None, line, warnings)

    # 0/1 flags; rooming-in is inferred from the destination when absent
    for field in BOOLEAN_FIELDS:
        values[field] = _safe(field, normalize_boolean_flag, raw.get(field), 0, line, warnings)
    if raw.get("alojamiento_conjunto") in (None, ""):
        values["alojamiento_conjunto"] = _safe(
            "alojamiento_conjunto", infer_rooming_in, values["destino"], 0, line, warnings
        )

    # Lab results and the coded composite fields
    for field in LAB_FIELDS + ("rpr_vdrl",):
        values[field] = _safe(field, normalize_lab_result, raw.get(field), 0, line, warnings)
    values["vih_al_parto"] = _safe(
        "vih_al_parto", normalize_hiv_at_delivery, raw.get("vih_al_parto"),
        normalize_hiv_at_delivery(None), line, warnings,
    )
    values["apego_con_piel_30_min"] = _safe(
        "apego_con_piel_30_min", normalize_skin_to_skin, raw.get("apego_con_piel_30_min"),
        normalize_skin_to_skin(None), line, warnings,
    )

    # Column 34 belongs to one side only
    is_cesarean = tipo_parto is not None and (
        tipo_parto.kind in (DeliveryType.CES_ELE, DeliveryType.CES_URG) or "CES" in tipo_parto.label
    )
    values["causa_cesarea"], values["medidas_no_farmacologicas_para_el_dolor_cuales"] = _resolve_shared_column(
        is_cesarean,
        clean_string(raw.get("causa_cesarea")),
        clean_string(raw.get("medidas_no_farmacologicas_para_el_dolor_cuales")),
    )

    # Traceability
    values["rut_normalized"] = normalize_rut(values["rut"])
    values["source_line"] = clean_integer(raw.get("source_line")) or index + 1

    # The fingerprint uses the date as written in the source when there is one
    date_key = clean_string(raw_date) if isinstance(raw_date, str) else (fecha.strftime("%m/%d/%Y") if fecha else None)
    trace_id = clean_string(raw.get("trace_id")) or generate_trace_id(
        values["sequence_number"],
        values["monthly_number"],
        date_key,
        values["rut"],
        values["nombre_y_apellido"],
        index,
    )
    values["trace_id"] = trace_id
    values["trace_metadata"] = TraceMetadata(
        source=clean_string(raw.get("source")) or source,
        source_line=values["source_line"],
        data_hash=f"{values['sequence_number'] or ''}_{date_key or ''}_{values['rut'] or ''}",
    )

    return Parto(**values)

def build_from_line(
    line: Union[str, Sequence[Any]],
    index: int,
    source: str = DEFAULT_SOURCE,
    warnings: Optional[List[ParseWarning]] = None,
) -> Parto:
    """
    Build one record from a tab-delimited datos.txt line (or an already split row).

    ``index`` is the zero-based position of the line in its batch. Raises
    RecordBuildError when the line has fewer than MIN_FIELDS fields; any other
    problem is recorded in ``warnings`` and the record is still produced.
    """
    fields = line.rstrip("\r").split("\t") if isinstance(line, str) else list(line)
    line_number = index + 1
    if len(fields) < MIN_FIELDS:
        raise RecordBuildError(
            f"Line {line_number} has too few columns ({len(fields)}), skipped", line=line_number
        )

    def column(position: int) -> Any:
        return fields[position] if position < len(fields) else None

    raw = {field: column(position) for field, position in COLUMNS.items()}
    raw["source_line"] = line_number
    return _build(raw, index, source, line_number, warnings)

def normalize_form_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Map camelCase, snake_case and legacy keys onto field names; unknown keys are dropped."""
    raw: Dict[str, Any] = {}
    for key, value in data.items():
        field = FIELD_LOOKUP.get(key)
        if field is None:
            continue
        # A canonical key wins over a legacy alias for the same field
        if field in raw and key in LEGACY_KEYS:
            continue
        raw[field] = value
    if "source" in data:
        raw["source"] = data["source"]
    return raw

def build_from_form(
    data: Mapping[str, Any],
    index: int = 0,
    source: str = FORM_SOURCE,
    warnings: Optional[List[ParseWarning]] = None,
) -> Parto:
    """Build one record from named form fields, running the same normalizers as the text path."""
    raw = normalize_form_keys(data)
    # Nested structures come back from JSON as dicts
    skin = raw.get("apego_con_piel_30_min")
    if isinstance(skin, Mapping):
        if skin.get("code") is not None:
            coded = normalize_skin_to_skin(clean_integer(skin.get("code")))
            raw["apego_con_piel_30_min"] = coded.model_copy(update={"raw": skin.get("raw", coded.raw)})
        else:
            raw["apego_con_piel_30_min"] = skin.get("raw")
    hiv = raw.get("vih_al_parto")
    if isinstance(hiv, Mapping):
        raw["vih_al_parto"] = hiv.get("original") or hiv.get("value")
    for field in ("tipo_parto", "paridad", "presentacion"):
        value = raw.get(field)
        if isinstance(value, Mapping):
            raw[field] = value.get("raw") or value.get("kind")
    return _build(raw, index, source, None, warnings)
