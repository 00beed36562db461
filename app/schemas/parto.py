from enum import Enum, IntEnum
from typing import Any, Dict, Generic, List, Optional, TypeVar
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OTHER = "OTRO"

class DeliveryType(str, Enum):
    VAGINAL = "VAGINAL"
    INSTRUMENTAL = "INSTRUMENTAL"
    CES_ELE = "CES ELE"
    CES_URG = "CES URG"
    EXTRAHOSPITALARIO = "EXTRAHOSPITALARIO"
    OTRO = OTHER

class Parity(str, Enum):
    PRIMIPARA = "PRIMIPARA"
    MULTIPARA = "MULTIPARA"
    OTRO = OTHER

class Presentation(str, Enum):
    CEFALICA = "CEFALICA"
    PODALICA = "PODALICA"
    TRANSVERSA = "TRANSVERSA"
    OTRO = OTHER

K = TypeVar("K", DeliveryType, Parity, Presentation)

class Categorical(BaseModel, Generic[K]):
    """A coded category with an explicit fallback for unknown labels.

    ``kind`` is one of the known variants or ``OTRO``; ``raw`` always keeps the
    uppercased source value so an unseen label is never lost.
    """
    model_config = ConfigDict(frozen=True)

    kind: K
    raw: str

    @property
    def is_other(self) -> bool:
        return self.kind.value == OTHER

    @property
    def label(self) -> str:
        return self.raw if self.is_other else self.kind.value

    def __str__(self) -> str:
        return self.label

class SkinToSkinCode(IntEnum):
    NINGUNO = 0
    MADRE = 1
    PADRE = 2
    OTRA_PERSONA = 3

class SkinToSkin(BaseModel):
    """Immediate skin-to-skin contact (>30 min): coded value, projections and source text."""
    model_config = ConfigDict(frozen=True)

    code: SkinToSkinCode = SkinToSkinCode.NINGUNO
    with_mother: int = 0
    with_father: int = 0
    raw: Optional[str] = None

class LabResult(BaseModel):
    """A 0/1 lab value that keeps the original token (TOMADO and POSITIVO both map to 1)."""
    model_config = ConfigDict(frozen=True)

    value: int = 0
    original: str = "NEGATIVO"

class RelatedParto(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    trace_id: str
    fecha_parto: Optional[date] = None
    tipo_parto: Optional[str] = None
    numero: str

class Relations(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    related_partos: List[RelatedParto] = Field(default_factory=list)
    same_consultorio: List[str] = Field(default_factory=list)
    same_comuna: List[str] = Field(default_factory=list)
    same_month: List[str] = Field(default_factory=list)
    same_medico_obstetra: List[str] = Field(default_factory=list)
    same_matrona: List[str] = Field(default_factory=list)

class RelationCounts(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    total_related_partos: int = 0
    total_same_consultorio: int = 0
    total_same_comuna: int = 0
    total_same_month: int = 0
    total_same_medico: int = 0
    total_same_matrona: int = 0

class TraceMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    source: str = "datos.txt"
    source_line: Optional[int] = None
    data_hash: str = ""
    created_at: datetime = Field(default_factory=datetime.now)

class Parto(BaseModel):
    """One normalized birth record.

    Attributes are snake_case; the serialized names are the camelCase keys the
    registry front end and database transforms have always used.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    # Identity
    trace_id: str
    sequence_number: Optional[int] = Field(None, alias="nPartoAno")
    monthly_number: Optional[int] = Field(None, alias="nPartoMes")
    source_line: Optional[int] = None
    rut: Optional[str] = None
    rut_normalized: Optional[str] = None
    trace_metadata: TraceMetadata = Field(default_factory=TraceMetadata)

    # Temporal
    fecha_parto: Optional[date] = None
    hora_parto: Optional[str] = None
    mes_parto: Optional[int] = None
    ano_parto: Optional[int] = None

    # Classification
    tipo_parto: Optional[Categorical[DeliveryType]] = None
    paridad: Optional[Categorical[Parity]] = None
    presentacion: Optional[Categorical[Presentation]] = None

    # Mother
    nombre_y_apellido: Optional[str] = None
    edad: Optional[int] = None
    pueblo_originario: int = 0
    nombre_pueblo_originario: Optional[str] = None
    migrante: int = 0
    nacionalidad: Optional[str] = None
    discapacidad: int = 0
    telefono: Optional[str] = None
    comuna: Optional[str] = None
    consultorio: Optional[str] = None
    emb_controlado: int = 0
    cca: int = 0
    gemela: int = 0
    privada_de_libertad: int = 0
    trans_no_binario: int = 0
    identidad_genero: Optional[str] = None
    taller_chcc: int = Field(0, alias="tallerCHCC")

    # Labor and delivery
    eg: Optional[float] = None
    dias: Optional[int] = None
    rotura_membranas: Optional[str] = None
    induccion: int = 0
    misotrol: Optional[str] = None
    conduccion_ocitocica: int = 0
    monitoreo: Optional[str] = None
    libertad_de_movimiento_o_en_tdp: int = Field(0, alias="libertadDeMovimientoOEnTDP")
    motivo_sin_libertad_de_movimiento: Optional[str] = None
    posicion_materna_en_el_expulsivo: Optional[str] = None
    episiotomia: int = 0
    desgarro: Optional[str] = None
    causa_cesarea: Optional[str] = None
    medidas_no_farmacologicas_para_el_dolor_cuales: Optional[str] = None
    eq: Optional[str] = None
    tipo_de_anestesia: Optional[str] = None
    hora_de_anestesia: Optional[str] = None
    medico_anestesista: Optional[str] = None
    anestesia_local: int = 0
    manejo_farmacologico_del_dolor: int = 0
    manejo_no_farmacologico_del_dolor: int = 0
    motivo_no_anestesia: Optional[str] = None
    plan_de_parto: int = 0
    trabajo_de_parto: int = 0
    regimen_hidrico_amplio_en_tdp: int = Field(0, alias="regimenHidricoAmplioEnTDP")
    ligadura_tardia_cordon: int = 0
    atencion_con_pertinencia_cultural: int = 0
    alumbramiento_conducido: int = 0

    # Labs
    grupo_rh: Optional[str] = Field(None, alias="grupoRH")
    chagas: int = 0
    vih: int = 0
    hepatitis_b: int = 0
    vih_al_parto: LabResult = Field(default_factory=LabResult)
    rpr_vdrl: int = 0
    sgb: Optional[str] = None
    sgb_con_tratamiento_al_parto: Optional[str] = None

    # Newborn
    peso: Optional[float] = None
    talla: Optional[float] = None
    cc: Optional[float] = None
    apgar1: Optional[int] = None
    apgar5: Optional[int] = None
    apgar10: Optional[int] = None
    sexo: Optional[str] = None
    malformaciones: int = 0

    # Staff
    medico_obstetra: Optional[str] = None
    medico_pediatra: Optional[str] = None
    matrona_preparto: Optional[str] = None
    matrona_parto: Optional[str] = None
    matrona_rn: Optional[str] = Field(None, alias="matronaRN")

    # Companionship, attachment and destination
    acompanamiento_preparto: int = 0
    acompanamiento_parto: int = 0
    acompanamiento_puerperio_inmediato: int = 0
    acompanamiento_rn: int = Field(0, alias="acompanamientoRN")
    nombre_acompanante: Optional[str] = None
    parentesco_acompanante_respecto_a_madre: Optional[str] = None
    parentesco_acompanante_respecto_a_rn: Optional[str] = Field(None, alias="parentescoAcompananteRespectoARN")
    apego_con_piel_30_min: SkinToSkin = Field(default_factory=SkinToSkin)
    causa_no_apego: Optional[str] = None
    lactancia_precoz_60_min_de_vida: int = 0
    destino: Optional[str] = None
    alojamiento_conjunto: int = 0
    comentarios: Optional[str] = None

    # Filled by the relations pass
    relations: Relations = Field(default_factory=Relations, alias="_relations")
    relation_counts: RelationCounts = Field(default_factory=RelationCounts, alias="_relationCounts")

    @property
    def tipo_parto_label(self) -> str:
        return self.tipo_parto.label if self.tipo_parto else ""

    @property
    def paridad_label(self) -> str:
        return self.paridad.label if self.paridad else ""

    @property
    def es_cesarea(self) -> bool:
        if self.tipo_parto is None:
            return False
        if self.tipo_parto.kind in (DeliveryType.CES_ELE, DeliveryType.CES_URG):
            return True
        return "CES" in self.tipo_parto.label

    # Legacy views. The old UI reads these names; they are never stored.
    @property
    def numero(self) -> str:
        if self.sequence_number:
            return str(self.sequence_number)
        return str(self.source_line or "")

    @property
    def legacy_id(self) -> str:
        return str(self.monthly_number) if self.monthly_number else self.numero

    @property
    def fecha(self) -> Optional[str]:
        if self.fecha_parto is None:
            return None
        return self.fecha_parto.strftime("%m/%d/%Y")

    @property
    def hora(self) -> Optional[str]:
        return self.hora_parto

    @property
    def nombre(self) -> Optional[str]:
        return self.nombre_y_apellido

    @property
    def semanas_gestacion(self) -> Optional[float]:
        return self.eg

    @property
    def tipo_anestesia(self) -> Optional[str]:
        return self.tipo_de_anestesia

    @property
    def perimetro_cefalico(self) -> Optional[float]:
        return self.cc

class ParseWarning(BaseModel):
    line: Optional[int] = None
    message: str

class ParseResult(BaseModel):
    """Outcome of a batch parse: the records plus everything that went wrong on the way."""
    records: List[Parto] = Field(default_factory=list)
    warnings: List[ParseWarning] = Field(default_factory=list)
    skipped: int = 0
    error: Optional[str] = None
    mothers: Dict[str, List[str]] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    def summary(self) -> Dict[str, Any]:
        return {
            "total_records": len(self.records),
            "skipped": self.skipped,
            "warnings": len(self.warnings),
            "unique_mothers": len(self.mothers),
            "error": self.error,
        }
