from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

class RemModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class AgeBands(BaseModel):
    menos15: int = 0
    entre15y19: int = 0
    entre20y34: int = 0
    mas35: int = 0

class PrematurityBands(BaseModel):
    menos24: int = 0
    entre24y28: int = 0
    entre29y32: int = 0
    entre33y36: int = 0

class SectionAPivots(RemModel):
    ligadura_tardia: int = 0
    contacto_madre_menor2500: int = 0
    contacto_madre_mayor2500: int = 0
    contacto_padre_menor2500: int = 0
    contacto_padre_mayor2500: int = 0
    lactancia: int = 0
    alojamiento: int = 0
    pertinencia_cultural: int = 0
    pueblos_originarios: int = 0
    migrantes: int = 0
    discapacidad: int = 0
    privada_libertad: int = 0
    trans_masculino: int = 0
    no_binarie: int = 0

class SectionARow(RemModel):
    label: str
    total: int = 0
    por_edad: AgeBands = Field(default_factory=AgeBands)
    por_prematuridad: PrematurityBands = Field(default_factory=PrematurityBands)
    indicadores: SectionAPivots = Field(default_factory=SectionAPivots)

class SectionA1Row(BaseModel):
    label: str
    subcategory: Optional[str] = None
    total: int = 0
    menos28: int = 0
    entre28y37: int = 0
    mas38: int = 0

class SectionBRow(RemModel):
    label: str
    total: int = 0

class SectionD1Row(BaseModel):
    # Band names carry digits followed by letters, which camelCase generation would mangle
    model_config = ConfigDict(populate_by_name=True)

    label: str = "Nacidos vivos"
    total: int = 0
    menos500: int = 0
    entre500y999: int = 0
    entre1000y1499: int = 0
    entre1500y1999: int = 0
    entre2000y2499: int = 0
    entre2500y2999: int = 0
    entre3000y3999: int = 0
    mas4000: int = 0
    anomalia_congenita: int = Field(0, alias="anomaliaCongenita")

class RemReport(RemModel):
    year: Optional[int] = None
    month: Optional[int] = None
    total_records: int = 0
    seccion_a: List[SectionARow] = Field(default_factory=list)
    seccion_a1: List[SectionA1Row] = Field(default_factory=list)
    seccion_b: List[SectionBRow] = Field(default_factory=list)
    seccion_d1: SectionD1Row = Field(default_factory=SectionD1Row)

class Alert(BaseModel):
    type: str
    title: str
    message: str
    count: int

class YearCount(BaseModel):
    year: int
    count: int
