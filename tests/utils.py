"""
Utilidades para generar líneas y registros de prueba.
"""

from typing import Any, Dict, List

from app.schemas.parto import Parto
from app.utils.record_builder import COLUMNS, build_from_form, build_from_line

LINE_WIDTH = 80

BASE_VALUES: Dict[str, Any] = {
    "sequence_number": "1",
    "monthly_number": "1",
    "fecha_parto": "03/15/2024",
    "hora_parto": "10:30",
    "tipo_parto": "VAGINAL",
    "nombre_y_apellido": "MARIA PEREZ",
    "rut": "12.345.678-9",
    "edad": "28",
    "emb_controlado": "SI",
    "comuna": "TALCA",
    "consultorio": "CESFAM NORTE",
    "paridad": "PRIMIPARA",
    "presentacion": "CEFALICA",
    "eg": "39",
    "peso": "3300",
    "talla": "50",
    "cc": "34",
    "apgar1": "9",
    "apgar5": "10",
    "sexo": "FEMENINO",
}

def make_fields(**overrides: Any) -> List[str]:
    """Lista de columnas de datos.txt con valores por defecto y los campos indicados."""
    values = {**BASE_VALUES, **overrides}
    fields = [""] * LINE_WIDTH
    for name, value in values.items():
        fields[COLUMNS[name]] = "" if value is None else str(value)
    return fields

def make_line(**overrides: Any) -> str:
    return "\t".join(make_fields(**overrides))

def make_text(*lines: str) -> str:
    return "\n".join(lines)

def make_record(index: int = 0, **overrides: Any) -> Parto:
    """Registro construido por la ruta de texto."""
    return build_from_line(make_line(**overrides), index)

def make_form_record(index: int = 0, **data: Any) -> Parto:
    """Registro construido por la ruta de formulario (acepta campos fuera de datos.txt)."""
    return build_from_form(data, index=index)
