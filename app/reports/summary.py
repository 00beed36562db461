"""
Descriptive statistics, clinical alerts and year listing over a record collection.

The summary keeps the key names the registry dashboards have always consumed
(Spanish, camelCase) so it can be returned as-is by the API.
"""
import logging
from collections import Counter
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from app.schemas.parto import Parity, Parto
from app.schemas.rem import Alert, YearCount

logger = logging.getLogger(__name__)

UNKNOWN_TYPE = "Desconocido"
UNKNOWN_PARITY = "Desconocida"
NO_ANESTHESIA = "Sin anestesia"

LOW_WEIGHT = 2500
MACROSOMIA = 4000
TERM_WEEKS = 37
LOW_APGAR = 7
YOUNG_MOTHER = 18

def age_group(edad: int) -> str:
    if edad < 25:
        return "< 25"
    if edad < 30:
        return "25-29"
    if edad < 35:
        return "30-34"
    return "≥ 35"

def is_low_weight(record: Parto) -> bool:
    return bool(record.peso) and record.peso < LOW_WEIGHT

def is_preterm(record: Parto) -> bool:
    return bool(record.eg) and record.eg < TERM_WEEKS

def has_low_apgar(record: Parto) -> bool:
    return any(score is not None and score < LOW_APGAR for score in (record.apgar1, record.apgar5))

def _type_label(record: Parto) -> str:
    return record.tipo_parto_label or UNKNOWN_TYPE

def _parity_label(record: Parto) -> str:
    return record.paridad_label or UNKNOWN_PARITY

def _anesthesia_label(record: Parto) -> str:
    return record.tipo_de_anestesia or NO_ANESTHESIA

def _mean(values: Sequence[float], digits: int) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), digits)

def _percentage(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0

def _cross(records: Iterable[Parto], row: Callable[[Parto], Optional[str]], column: Callable[[Parto], str]) -> Dict[str, Dict[str, int]]:
    table: Dict[str, Dict[str, int]] = {}
    for record in records:
        key = row(record)
        if key is None:
            continue
        cell = table.setdefault(key, {})
        value = column(record)
        cell[value] = cell.get(value, 0) + 1
    return table

def _split(records: Iterable[Parto], key: Callable[[Parto], str], test: Callable[[Parto], bool], yes: str, no: str) -> Dict[str, Dict[str, int]]:
    table: Dict[str, Dict[str, int]] = {}
    for record in records:
        cell = table.setdefault(key(record), {"total": 0, yes: 0, no: 0})
        cell["total"] += 1
        cell[yes if test(record) else no] += 1
    return table

def _weight_by_age(records: Iterable[Parto]) -> Dict[str, Dict[str, Any]]:
    groups: Dict[str, Dict[str, Any]] = {}
    for record in records:
        if record.edad is None or not record.peso:
            continue
        group = groups.setdefault(
            age_group(record.edad), {"total": 0, "suma": 0.0, "bajoPeso": 0, "normal": 0, "macrosomia": 0}
        )
        group["total"] += 1
        group["suma"] += record.peso
        if record.peso < LOW_WEIGHT:
            group["bajoPeso"] += 1
        elif record.peso < MACROSOMIA:
            group["normal"] += 1
        else:
            group["macrosomia"] += 1
    for group in groups.values():
        group["promedio"] = round(group.pop("suma") / group["total"])
    return groups

def prepare_data_summary(records: Sequence[Parto]) -> Dict[str, Any]:
    """Counts, means and cross tables for a collection; an empty collection gives ``{}``."""
    if not records:
        return {}

    total = len(records)
    tipo_parto = Counter(_type_label(r) for r in records)
    most_common = tipo_parto.most_common(1)[0]

    edades = [r.edad for r in records if r.edad is not None]
    pesos = [r.peso for r in records if r.peso]
    semanas = [r.eg for r in records if r.eg]

    bajo_peso = sum(1 for r in records if is_low_weight(r))
    prematuros = sum(1 for r in records if is_preterm(r))
    apgar_bajo = sum(1 for r in records if has_low_apgar(r))

    related = [r.relation_counts.total_related_partos for r in records]

    logger.debug(f"Preparing data summary for {total} records")
    return {
        "total": total,
        "traceability": {
            "totalRegistros": total,
            "madresUnicas": len({r.rut_normalized for r in records if r.rut_normalized}),
            "registrosConRelaciones": sum(1 for count in related if count > 0),
            "promedioRelacionesPorRegistro": round(sum(related) / total, 2),
        },
        "tipoParto": dict(tipo_parto),
        "tipoPartoMasComun": {
            "tipo": most_common[0],
            "cantidad": most_common[1],
            "porcentaje": _percentage(most_common[1], total),
        },
        "paridad": {
            "primiparas": sum(1 for r in records if r.paridad and r.paridad.kind == Parity.PRIMIPARA),
            "multiparas": sum(1 for r in records if r.paridad and r.paridad.kind == Parity.MULTIPARA),
        },
        "edad": {
            "promedio": _mean(edades, 1),
            "minimo": min(edades) if edades else None,
            "maximo": max(edades) if edades else None,
            "grupos": {group: sum(1 for e in edades if age_group(e) == group) for group in ("< 25", "25-29", "30-34", "≥ 35")},
        },
        "peso": {
            "promedio": _mean(pesos, 0),
            "minimo": min(pesos) if pesos else None,
            "maximo": max(pesos) if pesos else None,
        },
        "semanasPromedio": _mean(semanas, 1),
        "sexo": {
            "masculino": sum(1 for r in records if r.sexo == "MASCULINO"),
            "femenino": sum(1 for r in records if r.sexo == "FEMENINO"),
            "indeterminado": sum(1 for r in records if r.sexo == "INDETERMINADO"),
        },
        "anestesia": dict(Counter(_anesthesia_label(r) for r in records)),
        "casosEspeciales": {
            "bajoPeso": bajo_peso,
            "prematuros": prematuros,
            "apgarBajo": apgar_bajo,
        },
        "porcentajes": {
            "bajoPeso": _percentage(bajo_peso, total),
            "prematuros": _percentage(prematuros, total),
            "apgarBajo": _percentage(apgar_bajo, total),
        },
        "tipoPartoPorEdad": _cross(records, lambda r: age_group(r.edad) if r.edad is not None else None, _type_label),
        "anestesiaPorEdad": _cross(records, lambda r: age_group(r.edad) if r.edad is not None else None, _anesthesia_label),
        "tipoPartoPorParidad": _cross(records, _parity_label, _type_label),
        "anestesiaPorTipoParto": _cross(records, _type_label, _anesthesia_label),
        "pesoPorEdad": _weight_by_age(records),
        "prematuridadPorTipoParto": _split(records, _type_label, is_preterm, "prematuros", "aTermino"),
        "apgarPorTipoParto": _split(records, _type_label, has_low_apgar, "apgarBajo", "apgarNormal"),
        "episiotomiaPorParidad": _split(
            records, _parity_label, lambda r: r.episiotomia == 1, "conEpisiotomia", "sinEpisiotomia"
        ),
    }

def check_alerts(records: Sequence[Parto]) -> List[Alert]:
    alerts: List[Alert] = []

    bajo_peso = sum(1 for r in records if is_low_weight(r))
    if bajo_peso:
        alerts.append(Alert(
            type="warning",
            title="Alertas de Peso Bajo",
            message=f"Se encontraron {bajo_peso} caso(s) con peso menor a 2500g. Se recomienda revisión médica.",
            count=bajo_peso,
        ))

    prematuros = sum(1 for r in records if is_preterm(r))
    if prematuros:
        alerts.append(Alert(
            type="warning",
            title="Partos Prematuros",
            message=f"Se detectaron {prematuros} parto(s) prematuro(s) (menos de 37 semanas).",
            count=prematuros,
        ))

    jovenes = sum(1 for r in records if r.edad and r.edad < YOUNG_MOTHER)
    if jovenes:
        alerts.append(Alert(
            type="info",
            title="Edad Materna",
            message=f"Se registraron {jovenes} caso(s) con edad materna menor a 18 años.",
            count=jovenes,
        ))

    apgar_bajo = sum(1 for r in records if has_low_apgar(r))
    if apgar_bajo:
        alerts.append(Alert(
            type="warning",
            title="APGAR Bajo",
            message=f"Se encontraron {apgar_bajo} caso(s) con puntuación APGAR menor a 7. Requiere atención.",
            count=apgar_bajo,
        ))

    return alerts

def available_years(records: Iterable[Parto]) -> List[YearCount]:
    """Years present in the collection with their record counts, most recent first."""
    counts = Counter(r.ano_parto for r in records if r.ano_parto is not None)
    return [YearCount(year=year, count=counts[year]) for year in sorted(counts, reverse=True)]
