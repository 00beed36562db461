"""
Cross-record relationship indexes.

Indexing is a two-step, whole-collection operation: ``build_indexes`` groups
trace ids by key, ``apply_relations`` returns new records with their relation
lists filled from those groups. Records are never mutated in place.
"""
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple

from app.schemas.parto import Parto, RelatedParto, RelationCounts, Relations

logger = logging.getLogger(__name__)

Index = Mapping[Hashable, Tuple[str, ...]]

def _empty() -> Index:
    return MappingProxyType({})

@dataclass(frozen=True)
class RelationIndexes:
    by_rut: Index = field(default_factory=_empty)
    by_consultorio: Index = field(default_factory=_empty)
    by_comuna: Index = field(default_factory=_empty)
    by_month: Index = field(default_factory=_empty)
    by_medico_obstetra: Index = field(default_factory=_empty)
    by_matrona: Index = field(default_factory=_empty)
    projections: Mapping[str, RelatedParto] = field(default_factory=_empty)

def _month_key(record: Parto) -> Optional[Tuple[int, int]]:
    if record.ano_parto is None or record.mes_parto is None:
        return None
    return (record.ano_parto, record.mes_parto)

KEY_FUNCTIONS = {
    "by_rut": lambda r: r.rut_normalized,
    "by_consultorio": lambda r: r.consultorio,
    "by_comuna": lambda r: r.comuna,
    "by_month": _month_key,
    "by_medico_obstetra": lambda r: r.medico_obstetra,
    "by_matrona": lambda r: r.matrona_parto,
}

def project(record: Parto) -> RelatedParto:
    return RelatedParto(
        trace_id=record.trace_id,
        fecha_parto=record.fecha_parto,
        tipo_parto=record.tipo_parto_label or None,
        numero=record.numero,
    )

def build_indexes(records: Iterable[Parto]) -> RelationIndexes:
    """Group trace ids by every relation key, keeping input order inside each group."""
    groups: Dict[str, Dict[Hashable, List[str]]] = {name: {} for name in KEY_FUNCTIONS}
    projections: Dict[str, RelatedParto] = {}

    for record in records:
        projections[record.trace_id] = project(record)
        for name, key_of in KEY_FUNCTIONS.items():
            key = key_of(record)
            if key is None or key == "":
                continue
            groups[name].setdefault(key, []).append(record.trace_id)

    frozen = {
        name: MappingProxyType({key: tuple(ids) for key, ids in buckets.items()})
        for name, buckets in groups.items()
    }
    return RelationIndexes(projections=MappingProxyType(projections), **frozen)

def _others(index: Index, key: Optional[Hashable], trace_id: str) -> List[str]:
    if key is None or key == "":
        return []
    return [other for other in index.get(key, ()) if other != trace_id]

def relations_for(record: Parto, indexes: RelationIndexes) -> Relations:
    related_ids = _others(indexes.by_rut, record.rut_normalized, record.trace_id)
    return Relations(
        related_partos=[indexes.projections[i] for i in related_ids if i in indexes.projections],
        same_consultorio=_others(indexes.by_consultorio, record.consultorio, record.trace_id),
        same_comuna=_others(indexes.by_comuna, record.comuna, record.trace_id),
        same_month=_others(indexes.by_month, _month_key(record), record.trace_id),
        same_medico_obstetra=_others(indexes.by_medico_obstetra, record.medico_obstetra, record.trace_id),
        same_matrona=_others(indexes.by_matrona, record.matrona_parto, record.trace_id),
    )

def count_relations(relations: Relations) -> RelationCounts:
    return RelationCounts(
        total_related_partos=len(relations.related_partos),
        total_same_consultorio=len(relations.same_consultorio),
        total_same_comuna=len(relations.same_comuna),
        total_same_month=len(relations.same_month),
        total_same_medico=len(relations.same_medico_obstetra),
        total_same_matrona=len(relations.same_matrona),
    )

def apply_relations(records: Sequence[Parto], indexes: RelationIndexes) -> List[Parto]:
    enriched = []
    for record in records:
        relations = relations_for(record, indexes)
        enriched.append(
            record.model_copy(update={"relations": relations, "relation_counts": count_relations(relations)})
        )
    return enriched

def mothers_map(indexes: RelationIndexes) -> Dict[str, List[str]]:
    """Normalized mother RUT -> her trace ids."""
    return {rut: list(ids) for rut, ids in indexes.by_rut.items()}

def index_records(records: Sequence[Parto]) -> Tuple[List[Parto], RelationIndexes]:
    indexes = build_indexes(records)
    enriched = apply_relations(records, indexes)
    logger.info(f"Relations built for {len(enriched)} records, {len(indexes.by_rut)} unique mothers")
    return enriched, indexes
