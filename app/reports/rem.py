"""
REM (Registro Estadístico Mensual) birth sections A, A.1, B and D.1.

All functions are pure reducers over a record collection. Records missing the
numeric value a band needs (age, weeks, weight) are left out of that band but
still count in the row total. An empty collection yields zero-filled rows.
"""
import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from app.schemas.parto import DeliveryType, Parto
from app.schemas.rem import (
    AgeBands,
    PrematurityBands,
    RemReport,
    SectionA1Row,
    SectionAPivots,
    SectionARow,
    SectionBRow,
    SectionD1Row,
)
from app.utils.normalizers import infer_rooming_in

logger = logging.getLogger(__name__)

Predicate = Callable[[Parto], bool]

def _upper(value: Optional[str]) -> str:
    return value.upper() if value else ""

def _count(records: Iterable[Parto], predicate: Predicate) -> int:
    return sum(1 for record in records if predicate(record))

def filter_records(
    records: Iterable[Parto], year: Optional[int] = None, month: Optional[int] = None
) -> List[Parto]:
    """Keep the records of ``year`` and/or ``month``; records without a date drop out of an active filter."""
    selected = []
    for record in records:
        if year is not None and record.ano_parto != year:
            continue
        if month is not None and record.mes_parto != month:
            continue
        selected.append(record)
    return selected

# Delivery rows

def is_vaginal(record: Parto) -> bool:
    return record.tipo_parto is not None and record.tipo_parto.kind == DeliveryType.VAGINAL

def is_instrumental(record: Parto) -> bool:
    return record.tipo_parto is not None and record.tipo_parto.kind == DeliveryType.INSTRUMENTAL

def is_elective_cesarean(record: Parto) -> bool:
    return record.tipo_parto is not None and record.tipo_parto.kind == DeliveryType.CES_ELE

def is_urgent_cesarean(record: Parto) -> bool:
    return record.tipo_parto is not None and record.tipo_parto.kind == DeliveryType.CES_URG

def is_prehospital(record: Parto) -> bool:
    if record.tipo_parto is None:
        return False
    return record.tipo_parto.kind == DeliveryType.EXTRAHOSPITALARIO or "PREHOSPITALARIO" in record.tipo_parto.label

def is_outside_network(record: Parto) -> bool:
    return "FUERA RED" in _upper(record.tipo_parto_label) or "FUERA RED SALUD" in _upper(record.comentarios)

def has_birth_plan(record: Parto) -> bool:
    return record.plan_de_parto == 1

def placenta_on_request(record: Parto) -> bool:
    return record.alumbramiento_conducido == 1

def uncontrolled_pregnancy(record: Parto) -> bool:
    # Missing data was normalized to 0, so absence counts as uncontrolled
    return record.emb_controlado == 0

def home_birth_with_care(record: Parto) -> bool:
    comentarios = _upper(record.comentarios)
    if "DOMICILIO" not in comentarios or "SIN ATENCION" in comentarios:
        return False
    return (
        "ATENCION" in comentarios
        or "PROFESIONAL" in comentarios
        or bool(record.medico_obstetra)
        or bool(record.matrona_parto)
    )

def home_birth_without_care(record: Parto) -> bool:
    comentarios = _upper(record.comentarios)
    return "DOMICILIO" in comentarios and "SIN ATENCION" in comentarios

SECTION_A_ROWS: Sequence[Tuple[str, Predicate]] = (
    ("TOTAL PARTOS", lambda r: True),
    ("Vaginal", is_vaginal),
    ("Instrumental", is_instrumental),
    ("Cesárea Electiva", is_elective_cesarean),
    ("Cesárea Urgencia", is_urgent_cesarean),
    ("Parto prehospitalario (en establecimientos salud o ambulancias)", is_prehospital),
    ("Partos fuera de la red de salud", is_outside_network),
    ("Plan de parto", has_birth_plan),
    ("Entrega de placenta a solicitud", placenta_on_request),
    ("Embarazo no controlado", uncontrolled_pregnancy),
    ("Parto en domicilio - Con atención profesional", home_birth_with_care),
    ("Parto en domicilio - Sin atención profesional", home_birth_without_care),
)

# Care and equity indicators, shared by the section A pivots and section B

def delayed_cord_clamping(record: Parto) -> bool:
    return record.ligadura_tardia_cordon == 1

def _low_weight(record: Parto) -> bool:
    return bool(record.peso) and record.peso <= 2499

def _normal_weight(record: Parto) -> bool:
    return bool(record.peso) and record.peso >= 2500

def _skin_to_skin_mother(record: Parto) -> bool:
    return record.apego_con_piel_30_min.with_mother == 1

def _skin_to_skin_father(record: Parto) -> bool:
    if record.apego_con_piel_30_min.with_father == 1:
        return True
    # A father or partner who accompanied the birth also counts
    parentesco = _upper(record.parentesco_acompanante_respecto_a_rn or record.parentesco_acompanante_respecto_a_madre)
    accompanied = 1 in (
        record.acompanamiento_parto,
        record.acompanamiento_puerperio_inmediato,
        record.acompanamiento_rn,
    )
    return accompanied and ("PADRE" in parentesco or "PAREJA" in parentesco)

def skin_to_skin_mother_low_weight(record: Parto) -> bool:
    return _low_weight(record) and _skin_to_skin_mother(record)

def skin_to_skin_mother_normal_weight(record: Parto) -> bool:
    return _normal_weight(record) and _skin_to_skin_mother(record)

def skin_to_skin_father_low_weight(record: Parto) -> bool:
    return _low_weight(record) and _skin_to_skin_father(record)

def skin_to_skin_father_normal_weight(record: Parto) -> bool:
    return _normal_weight(record) and _skin_to_skin_father(record)

def early_breastfeeding(record: Parto) -> bool:
    return _normal_weight(record) and record.lactancia_precoz_60_min_de_vida == 1

def rooming_in(record: Parto) -> bool:
    return record.alojamiento_conjunto == 1 or infer_rooming_in(record.destino) == 1

def cultural_pertinence(record: Parto) -> bool:
    return 1 in (
        record.atencion_con_pertinencia_cultural,
        record.pueblo_originario,
        record.migrante,
        record.discapacidad,
        record.privada_de_libertad,
        record.trans_no_binario,
    )

def indigenous(record: Parto) -> bool:
    return record.pueblo_originario == 1

def migrant(record: Parto) -> bool:
    return record.migrante == 1

def disability(record: Parto) -> bool:
    return record.discapacidad == 1

def incarcerated(record: Parto) -> bool:
    return record.privada_de_libertad == 1

def trans_masculine(record: Parto) -> bool:
    return record.trans_no_binario == 1 or _upper(record.identidad_genero) == "TRANS MASCULINO"

def non_binary(record: Parto) -> bool:
    return _upper(record.identidad_genero) == "NO BINARIE"

PIVOTS: Sequence[Tuple[str, Predicate]] = (
    ("ligadura_tardia", delayed_cord_clamping),
    ("contacto_madre_menor2500", skin_to_skin_mother_low_weight),
    ("contacto_madre_mayor2500", skin_to_skin_mother_normal_weight),
    ("contacto_padre_menor2500", skin_to_skin_father_low_weight),
    ("contacto_padre_mayor2500", skin_to_skin_father_normal_weight),
    ("lactancia", early_breastfeeding),
    ("alojamiento", rooming_in),
    ("pertinencia_cultural", cultural_pertinence),
    ("pueblos_originarios", indigenous),
    ("migrantes", migrant),
    ("discapacidad", disability),
    ("privada_libertad", incarcerated),
    ("trans_masculino", trans_masculine),
    ("no_binarie", non_binary),
)

def age_bands(records: Sequence[Parto]) -> AgeBands:
    ages = [r.edad for r in records if r.edad is not None]
    return AgeBands(
        menos15=sum(1 for a in ages if a < 15),
        entre15y19=sum(1 for a in ages if 15 <= a <= 19),
        entre20y34=sum(1 for a in ages if 20 <= a <= 34),
        mas35=sum(1 for a in ages if a >= 35),
    )

def prematurity_bands(records: Sequence[Parto]) -> PrematurityBands:
    # Half-open bands so fractional weeks (28.5) land in exactly one of them
    weeks = [r.eg for r in records if r.eg is not None]
    return PrematurityBands(
        menos24=sum(1 for w in weeks if 22 <= w < 24),
        entre24y28=sum(1 for w in weeks if 24 <= w < 29),
        entre29y32=sum(1 for w in weeks if 29 <= w < 33),
        entre33y36=sum(1 for w in weeks if 33 <= w < 37),
    )

def compute_section_a(records: Sequence[Parto]) -> List[SectionARow]:
    rows = []
    for label, predicate in SECTION_A_ROWS:
        selected = [r for r in records if predicate(r)]
        pivots = SectionAPivots(**{name: _count(selected, test) for name, test in PIVOTS})
        rows.append(
            SectionARow(
                label=label,
                total=len(selected),
                por_edad=age_bands(selected),
                por_prematuridad=prematurity_bands(selected),
                indicadores=pivots,
            )
        )
    return rows

# Section A.1: vaginal, non-instrumental deliveries only

def _comentarios_mention(record: Parto, *words: str) -> bool:
    comentarios = _upper(record.comentarios)
    return any(word in comentarios for word in words)

def _position(record: Parto) -> str:
    return _upper(record.posicion_materna_en_el_expulsivo)

SECTION_A1_ROWS: Sequence[Tuple[str, Optional[str], Predicate]] = (
    ("Espontáneo", None, lambda r: r.induccion == 0),
    ("Inducidos", "Mecánica", lambda r: r.induccion == 1
        and _comentarios_mention(r, "MECANICA", "AMNIOTOMIA", "ROTURA ARTIFICIAL")),
    ("Inducidos", "Farmacológica", lambda r: r.induccion == 1
        and _comentarios_mention(r, "MISOTROL", "OXITOCINA", "PROSTAGLANDINA", "FARMACOLOGICA")),
    ("Conducción oxitócica", None, lambda r: r.conduccion_ocitocica == 1),
    ("Libertad de movimiento", None, lambda r: r.libertad_de_movimiento_o_en_tdp == 1),
    ("Régimen hídrico amplio", None, lambda r: r.regimen_hidrico_amplio_en_tdp == 1),
    ("Manejo del dolor", "No farmacológico", lambda r: r.manejo_no_farmacologico_del_dolor == 1
        or bool(r.medidas_no_farmacologicas_para_el_dolor_cuales)),
    ("Manejo del dolor", "Farmacológico", lambda r: r.manejo_farmacologico_del_dolor == 1),
    ("Posición al momento del expulsivo", "Litotomía", lambda r: "LITOTOMIA" in _position(r)
        or "LITOTOMÍA" in _position(r)),
    ("Posición al momento del expulsivo", "Otras posiciones", lambda r: bool(_position(r))
        and "LITOTOMIA" not in _position(r) and "LITOTOMÍA" not in _position(r)),
    ("Episiotomía", None, lambda r: r.episiotomia == 1),
    ("Acompañamiento", "Durante el trabajo de parto", lambda r: r.acompanamiento_parto == 1),
    ("Acompañamiento", "Sólo en el expulsivo", lambda r: r.acompanamiento_parto != 1
        and r.acompanamiento_puerperio_inmediato == 1),
)

def compute_section_a1(records: Sequence[Parto]) -> List[SectionA1Row]:
    vaginal = [r for r in records if is_vaginal(r)]
    rows = []
    for label, subcategory, predicate in SECTION_A1_ROWS:
        weeks = [r.eg for r in vaginal if predicate(r) and r.eg is not None]
        rows.append(
            SectionA1Row(
                label=label,
                subcategory=subcategory,
                total=len(weeks),
                menos28=sum(1 for w in weeks if w < 28),
                entre28y37=sum(1 for w in weeks if 28 <= w < 38),
                mas38=sum(1 for w in weeks if w >= 38),
            )
        )
    return rows

# Section B

def _anesthesia(record: Parto) -> str:
    return _upper(record.tipo_de_anestesia)

def neuroaxial(record: Parto) -> bool:
    tipo = _anesthesia(record)
    return any(word in tipo for word in ("NEUROAXIAL", "EPIDURAL", "RAQUIDEA", "PERIDURAL"))

def nitrous_oxide(record: Parto) -> bool:
    tipo = _anesthesia(record)
    return any(word in tipo for word in ("ÓXIDO", "OXIDO", "NITROSO"))

def intravenous_analgesia(record: Parto) -> bool:
    tipo = _anesthesia(record)
    return "ENDOVENOSA" in tipo or "ENDOVENOSO" in tipo

def general_anesthesia(record: Parto) -> bool:
    return "GENERAL" in _anesthesia(record)

def local_anesthesia(record: Parto) -> bool:
    return "LOCAL" in _anesthesia(record) or record.anestesia_local == 1

def non_pharmacological(record: Parto) -> bool:
    if record.manejo_no_farmacologico_del_dolor == 1:
        return True
    medidas = _upper(record.medidas_no_farmacologicas_para_el_dolor_cuales)
    tipo = _anesthesia(record)
    return (
        medidas in ("SI", "SÍ")
        or "MOVIMIENTO" in medidas
        or "ACOMPAÑAMIENTO" in medidas
        or "NO FARMACOLOGICA" in tipo
        or "NO FARMACOLÓGICA" in tipo
    )

SKIN_TO_SKIN = "CONTACTO INMEDIATO PIEL A PIEL >30 MINUTOS"

SECTION_B_ROWS: Sequence[Tuple[str, Predicate]] = (
    ("Uso de oxitocina profiláctica", lambda r: r.conduccion_ocitocica == 1),
    ("Anestesia Neuroaxial", neuroaxial),
    ("Óxido nitroso", nitrous_oxide),
    ("Analgesia endovenosa", intravenous_analgesia),
    ("General", general_anesthesia),
    ("Local", local_anesthesia),
    ("Medidas no farmacológicas", non_pharmacological),
    ("Ligadura tardía del cordón (> a 60 segundos)", delayed_cord_clamping),
    (f"{SKIN_TO_SKIN} - Con la Madre - RN peso menor o igual a 2.499 grs.", skin_to_skin_mother_low_weight),
    (f"{SKIN_TO_SKIN} - Con la Madre - RN con peso de 2.500 grs. o más", skin_to_skin_mother_normal_weight),
    (
        f"{SKIN_TO_SKIN} - Con el padre o acompañante significativo - RN peso menor o igual a 2.499 grs.",
        skin_to_skin_father_low_weight,
    ),
    (
        f"{SKIN_TO_SKIN} - Con el padre o acompañante significativo - RN con peso de 2.500 grs. o más",
        skin_to_skin_father_normal_weight,
    ),
    ("Lactancia materna en los primeros 60 minutos de vida (RN con peso de 2.500 grs. o más)", early_breastfeeding),
    ("Alojamiento conjunto en puerperio inmediato", rooming_in),
    ("Atención con pertinencia cultural", cultural_pertinence),
    ("Pueblos Originarios", indigenous),
    ("Migrantes", migrant),
    ("Discapacidad", disability),
    ("Privada de Libertad", incarcerated),
    ("Trans masculino", trans_masculine),
    ("No binarie", non_binary),
)

def compute_section_b(records: Sequence[Parto]) -> List[SectionBRow]:
    return [SectionBRow(label=label, total=_count(records, predicate)) for label, predicate in SECTION_B_ROWS]

# Section D.1

def congenital_anomaly(record: Parto) -> bool:
    return record.malformaciones == 1 or _comentarios_mention(
        record, "MALFORMACION", "ANOMALIA", "CONGENITA", "CONGÉNITA"
    )

def compute_section_d1(records: Sequence[Parto]) -> SectionD1Row:
    weights = [r.peso for r in records if r.peso]
    return SectionD1Row(
        total=len(weights),
        menos500=sum(1 for w in weights if w < 500),
        entre500y999=sum(1 for w in weights if 500 <= w < 1000),
        entre1000y1499=sum(1 for w in weights if 1000 <= w < 1500),
        entre1500y1999=sum(1 for w in weights if 1500 <= w < 2000),
        entre2000y2499=sum(1 for w in weights if 2000 <= w < 2500),
        entre2500y2999=sum(1 for w in weights if 2500 <= w < 3000),
        entre3000y3999=sum(1 for w in weights if 3000 <= w < 4000),
        mas4000=sum(1 for w in weights if w >= 4000),
        anomalia_congenita=_count(records, congenital_anomaly),
    )

def compute_rem(
    records: Iterable[Parto], year: Optional[int] = None, month: Optional[int] = None
) -> RemReport:
    selected = filter_records(records, year=year, month=month)
    logger.info(f"Computing REM sections over {len(selected)} records (year={year}, month={month})")
    return RemReport(
        year=year,
        month=month,
        total_records=len(selected),
        seccion_a=compute_section_a(selected),
        seccion_a1=compute_section_a1(selected),
        seccion_b=compute_section_b(selected),
        seccion_d1=compute_section_d1(selected),
    )
