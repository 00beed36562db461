"""
Scalar normalizers for birth registry fields.

Every function here is total: it never raises on odd input and returns
``None`` (or the documented default) when the value is blank or unrecognized.
"""
import math
import re
from datetime import date, datetime
from typing import Any, Optional

from app.schemas.parto import (
    Categorical,
    DeliveryType,
    LabResult,
    Parity,
    Presentation,
    SkinToSkin,
    SkinToSkinCode,
)

NULL_TOKENS = {"", "NA", "na"}
AFFIRMATIVE = {"SI", "SÍ", "1", "TRUE"}
LAB_POSITIVE = {"POSITIVO", "SI", "SÍ", "1", "TRUE"}
HIV_AT_DELIVERY_POSITIVE = {"POSITIVO", "TOMADO"}

# Fields coerced to 0/1 through normalize_boolean_flag
BOOLEAN_FIELDS = (
    "pueblo_originario",
    "migrante",
    "discapacidad",
    "cca",
    "gemela",
    "induccion",
    "conduccion_ocitocica",
    "libertad_de_movimiento_o_en_tdp",
    "episiotomia",
    "anestesia_local",
    "manejo_farmacologico_del_dolor",
    "manejo_no_farmacologico_del_dolor",
    "alumbramiento_conducido",
    "plan_de_parto",
    "trabajo_de_parto",
    "regimen_hidrico_amplio_en_tdp",
    "ligadura_tardia_cordon",
    "atencion_con_pertinencia_cultural",
    "alojamiento_conjunto",
    "acompanamiento_preparto",
    "acompanamiento_parto",
    "acompanamiento_puerperio_inmediato",
    "acompanamiento_rn",
    "lactancia_precoz_60_min_de_vida",
    "emb_controlado",
    "taller_chcc",
    "privada_de_libertad",
    "trans_no_binario",
    "malformaciones",
)

# Fields coerced to 0/1 through normalize_lab_result
LAB_FIELDS = ("chagas", "vih", "hepatitis_b")

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")

def _is_nan(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)

def clean_string(raw: Any) -> Optional[str]:
    """Trim ``raw``; blank values and the literal ``NA``/``na`` tokens become None."""
    if raw is None or _is_nan(raw):
        return None
    cleaned = str(raw).strip()
    if cleaned in NULL_TOKENS:
        return None
    return cleaned

def clean_integer(raw: Any) -> Optional[int]:
    """Leading-integer parse: ``"38.6"`` gives 38, ``"12abc"`` gives 12, ``"abc"`` gives None."""
    if raw is None or isinstance(raw, bool) or _is_nan(raw):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if math.isinf(raw):
            return None
        return int(raw)
    match = _INT_PREFIX.match(str(raw))
    if not match:
        return None
    return int(match.group(1))

def clean_float(raw: Any) -> Optional[float]:
    if raw is None or isinstance(raw, bool) or _is_nan(raw):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    match = _FLOAT_PREFIX.match(str(raw))
    if not match:
        return None
    return float(match.group(1))

def normalize_rut(raw: Any) -> Optional[str]:
    """Strip dots and dashes so that ``12.345.678-9`` and ``123456789`` compare equal."""
    if not raw or _is_nan(raw):
        return None
    normalized = re.sub(r"[.\-]", "", str(raw).strip()).upper().strip()
    return normalized or None

def normalize_boolean_flag(raw: Any) -> int:
    if raw is None or _is_nan(raw):
        return 0
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, (int, float)):
        return 1 if raw == 1 else 0
    return 1 if str(raw).strip().upper() in AFFIRMATIVE else 0

def normalize_lab_result(raw: Any) -> int:
    if raw is None or _is_nan(raw):
        return 0
    if isinstance(raw, bool):
        return int(raw)
    if isinstance(raw, (int, float)):
        return 1 if raw == 1 else 0
    return 1 if str(raw).strip().upper() in LAB_POSITIVE else 0

def normalize_hiv_at_delivery(raw: Any) -> LabResult:
    """TOMADO and POSITIVO both count as 1; the original token is kept to tell them apart."""
    if isinstance(raw, LabResult):
        return raw
    if isinstance(raw, bool) or isinstance(raw, (int, float)) and not _is_nan(raw):
        if raw == 1:
            return LabResult(value=1, original="POSITIVO")
        return LabResult()
    cleaned = clean_string(raw)
    if not cleaned:
        return LabResult()
    token = cleaned.upper()
    if token in HIV_AT_DELIVERY_POSITIVE:
        return LabResult(value=1, original=token)
    return LabResult(value=0, original=token)

_SKIN_TO_SKIN_BY_CODE = {
    SkinToSkinCode.NINGUNO: (0, 0, "NO"),
    SkinToSkinCode.MADRE: (1, 0, "MADRE"),
    SkinToSkinCode.PADRE: (0, 1, "PADRE"),
    SkinToSkinCode.OTRA_PERSONA: (0, 1, "OTRA PERSONA SIGNIFICATIVA"),
}

def _skin_to_skin(code: SkinToSkinCode, raw: Optional[str]) -> SkinToSkin:
    with_mother, with_father, _ = _SKIN_TO_SKIN_BY_CODE[code]
    return SkinToSkin(code=code, with_mother=with_mother, with_father=with_father, raw=raw)

def normalize_skin_to_skin(raw: Any) -> SkinToSkin:
    """
    Map the free-text skin-to-skin answer to its coded form.

    MADRE/SI/SÍ is the mother; anything naming PADRE is the father; anything
    naming OTRA is another significant person (counted with the father); every
    other value is "none". The pre-normalization text is kept in ``raw``.
    """
    if isinstance(raw, SkinToSkin):
        return raw
    if isinstance(raw, int) and not isinstance(raw, bool):
        try:
            code = SkinToSkinCode(raw)
        except ValueError:
            return SkinToSkin(raw=str(raw))
        return _skin_to_skin(code, _SKIN_TO_SKIN_BY_CODE[code][2])
    cleaned = clean_string(raw)
    if cleaned is None:
        return SkinToSkin()
    token = cleaned.upper()
    if token in ("MADRE", "SI", "SÍ"):
        return _skin_to_skin(SkinToSkinCode.MADRE, cleaned)
    if "PADRE" in token:
        return _skin_to_skin(SkinToSkinCode.PADRE, cleaned)
    if "OTRA" in token:
        return _skin_to_skin(SkinToSkinCode.OTRA_PERSONA, cleaned)
    return _skin_to_skin(SkinToSkinCode.NINGUNO, cleaned)

def _upper_token(raw: Any) -> Optional[str]:
    cleaned = clean_string(raw)
    return cleaned.upper() if cleaned else None

def classify_delivery_type(raw: Any) -> Optional[Categorical[DeliveryType]]:
    if isinstance(raw, Categorical):
        return raw
    token = _upper_token(raw)
    if token is None:
        return None
    # INSTRUMENTAL first: "VAGINAL INSTRUMENTAL" must not collapse into VAGINAL
    if "INSTRUMENTAL" in token:
        kind = DeliveryType.INSTRUMENTAL
    elif "VAGINAL" in token:
        kind = DeliveryType.VAGINAL
    elif "CES ELE" in token:
        kind = DeliveryType.CES_ELE
    elif "CES URG" in token:
        kind = DeliveryType.CES_URG
    elif "EXTRAHOSPITALARIO" in token:
        kind = DeliveryType.EXTRAHOSPITALARIO
    else:
        kind = DeliveryType.OTRO
    return Categorical[DeliveryType](kind=kind, raw=token)

def classify_parity(raw: Any) -> Optional[Categorical[Parity]]:
    if isinstance(raw, Categorical):
        return raw
    token = _upper_token(raw)
    if token is None:
        return None
    if "PRIMIPARA" in token:
        kind = Parity.PRIMIPARA
    elif "MULTIPARA" in token:
        kind = Parity.MULTIPARA
    else:
        kind = Parity.OTRO
    return Categorical[Parity](kind=kind, raw=token)

def classify_presentation(raw: Any) -> Optional[Categorical[Presentation]]:
    if isinstance(raw, Categorical):
        return raw
    token = _upper_token(raw)
    if token is None:
        return None
    if "CEFALICA" in token:
        kind = Presentation.CEFALICA
    elif "PODALICA" in token:
        kind = Presentation.PODALICA
    elif "TRANSVERSA" in token:
        kind = Presentation.TRANSVERSA
    else:
        kind = Presentation.OTRO
    return Categorical[Presentation](kind=kind, raw=token)

def normalize_sex(raw: Any) -> Optional[str]:
    token = _upper_token(raw)
    if token in ("FEMENINO", "MASCULINO", "INDETERMINADO"):
        return token
    if token in ("F", "FEM"):
        return "FEMENINO"
    if token in ("M", "MASC"):
        return "MASCULINO"
    return None

def _valid_date(year: Optional[int], month: Optional[int], day: Optional[int]) -> Optional[date]:
    if year is None or month is None or day is None:
        return None
    if not (1 <= month <= 12 and 1 <= day <= 31 and 2000 <= year <= 2100):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        # 02/30 passes the range checks but is not a calendar date
        return None

def parse_birth_date(raw: Any) -> Optional[date]:
    """
    Parse a birth date written as ``MM/DD/YYYY`` (or ISO ``YYYY-MM-DD``).

    Valid only when month is 1-12, day 1-31, year 2000-2100 and the triple is
    a real calendar date.
    """
    if isinstance(raw, datetime):
        raw = raw.date()
    if isinstance(raw, date):
        return _valid_date(raw.year, raw.month, raw.day)
    cleaned = clean_string(raw)
    if not cleaned:
        return None
    iso = _ISO_DATE.match(cleaned)
    if iso:
        return _valid_date(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))
    parts = cleaned.split("/")
    if len(parts) != 3:
        return None
    month, day, year = (clean_integer(part) for part in parts)
    return _valid_date(year, month, day)

def infer_rooming_in(destino: Any) -> int:
    """Rooming-in heuristic: the destination mentions SALA and does not mention NO."""
    token = _upper_token(destino)
    if not token:
        return 0
    return 1 if "SALA" in token and "NO" not in token else 0
