from typing import List, Optional, Dict, Any, Iterable, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from uuid import UUID
import logging

from app.models.parto import Parto
from app.schemas.parto import Parto as PartoRecord
from app.utils.normalizers import normalize_rut
from app.utils.record_builder import build_from_form, normalize_form_keys
from app.utils.relations import index_records
from app.utils.serializers import from_db_row, to_db_dict

logger = logging.getLogger(__name__)

def _as_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except ValueError:
        return None

class CRUDParto:
    def get(self, db: Session, id: str) -> Optional[Parto]:
        """Retrieve a row by database id or by trace id."""
        conditions = [Parto.trace_id == str(id)]
        row_id = _as_uuid(id)
        if row_id is not None:
            conditions.append(Parto.id == row_id)
        return db.query(Parto).filter(or_(*conditions)).first()

    def get_by_trace_id(self, db: Session, *, trace_id: str) -> Optional[Parto]:
        return db.query(Parto).filter(Parto.trace_id == trace_id).first()

    def get_by_trace_ids(self, db: Session, *, trace_ids: List[str]) -> Dict[str, Parto]:
        """Existing rows for a batch of trace ids, in a single query."""
        if not trace_ids:
            return {}
        rows = db.query(Parto).filter(Parto.trace_id.in_(trace_ids)).all()
        return {row.trace_id: row for row in rows}

    def _filtered(
        self,
        db: Session,
        *,
        tipo_parto: Optional[str] = None,
        paridad: Optional[str] = None,
        mes: Optional[int] = None,
        ano: Optional[int] = None,
        comuna: Optional[str] = None,
        consultorio: Optional[str] = None,
        rut: Optional[str] = None,
    ):
        query = db.query(Parto)
        if tipo_parto:
            query = query.filter(Parto.tipo_parto.ilike(f"%{tipo_parto}%"))
        if paridad:
            query = query.filter(Parto.paridad.ilike(f"%{paridad}%"))
        if mes is not None:
            query = query.filter(Parto.mes_parto == mes)
        if ano is not None:
            query = query.filter(Parto.ano_parto == ano)
        if comuna:
            query = query.filter(Parto.comuna.ilike(f"%{comuna}%"))
        if consultorio:
            query = query.filter(Parto.consultorio.ilike(f"%{consultorio}%"))
        if rut:
            query = query.filter(Parto.rut_normalized == normalize_rut(rut))
        return query

    def get_multi(self, db: Session, *, skip: int = 0, limit: int = 100, **filters: Any) -> List[Parto]:
        """Rows matching the filters, newest correlativo first."""
        return (
            self._filtered(db, **filters)
            .order_by(Parto.correlativo.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def count(self, db: Session, **filters: Any) -> int:
        return self._filtered(db, **filters).count()

    def _next_correlativo(self, db: Session) -> int:
        current = db.query(func.max(Parto.correlativo)).scalar()
        return (current or 0) + 1

    def create(self, db: Session, *, obj_in: PartoRecord) -> Parto:
        """Store a normalized record; a duplicate trace id raises ValueError."""
        try:
            db_obj = Parto(**to_db_dict(obj_in), correlativo=self._next_correlativo(db))
            db.add(db_obj)
            db.commit()
            db.refresh(db_obj)
            logger.info(f"Created parto with ID: {db_obj.id}, trace_id: {db_obj.trace_id}")
            return db_obj
        except IntegrityError as ie:
            db.rollback()
            logger.error(f"Integrity error creating parto: {str(ie)}")
            raise ValueError(f"Parto with trace_id {obj_in.trace_id} already exists")
        except Exception as e:
            db.rollback()
            logger.error(f"Unexpected error creating parto: {str(e)}")
            raise ValueError(f"Error creating parto: {str(e)}")

    def create_many(self, db: Session, *, records: Iterable[PartoRecord]) -> Tuple[List[Parto], List[str]]:
        """
        Insert a batch in one transaction, skipping trace ids already stored or
        repeated within the batch. Returns the new rows and the skipped ids.
        """
        records = list(records)
        existing = self.get_by_trace_ids(db, trace_ids=[r.trace_id for r in records])
        correlativo = self._next_correlativo(db)
        created: List[Parto] = []
        skipped: List[str] = []
        seen = set(existing)

        try:
            for record in records:
                if record.trace_id in seen:
                    skipped.append(record.trace_id)
                    continue
                seen.add(record.trace_id)
                db_obj = Parto(**to_db_dict(record), correlativo=correlativo)
                correlativo += 1
                db.add(db_obj)
                created.append(db_obj)
            db.commit()
        except IntegrityError as ie:
            db.rollback()
            logger.error(f"Integrity error inserting partos: {str(ie)}")
            raise ValueError(f"Database integrity error: {str(ie)}")

        logger.info(f"Inserted {len(created)} partos, skipped {len(skipped)} existing trace ids")
        return created, skipped

    def update(self, db: Session, *, db_obj: Parto, obj_in: Dict[str, Any]) -> Parto:
        """Merge changed fields into the stored record and normalize the result again."""
        try:
            current = from_db_row(db_obj)
            changes = normalize_form_keys(obj_in)
            changes.pop("trace_id", None)
            merged = {**current.model_dump(), **changes}
            # Rooming-in follows the new destination unless it is set explicitly
            if "destino" in changes and "alojamiento_conjunto" not in changes:
                merged.pop("alojamiento_conjunto", None)
            updated = build_from_form(merged, source=db_obj.source or current.trace_metadata.source)
            for field, value in to_db_dict(updated).items():
                setattr(db_obj, field, value)

            db.add(db_obj)
            db.commit()
            db.refresh(db_obj)
            logger.info(f"Updated parto with ID: {db_obj.id}")
            return db_obj
        except IntegrityError as ie:
            db.rollback()
            logger.error(f"Integrity error updating parto: {str(ie)}")
            raise ValueError(f"Database integrity error: {str(ie)}")
        except Exception as e:
            db.rollback()
            logger.error(f"Unexpected error updating parto: {str(e)}")
            raise ValueError(f"Error updating parto: {str(e)}")

    def remove(self, db: Session, *, id: str) -> Parto:
        obj = self.get(db, id=id)
        if obj is None:
            logger.warning(f"Attempted to delete non-existent parto: {id}")
            raise ValueError(f"Parto {id} not found")
        db.delete(obj)
        db.commit()
        logger.info(f"Deleted parto with ID: {obj.id}")
        return obj

    def remove_all(self, db: Session) -> int:
        deleted = db.query(Parto).delete()
        db.commit()
        logger.info(f"Deleted {deleted} partos")
        return deleted

    def get_all_records(self, db: Session) -> List[PartoRecord]:
        """Every stored record, rebuilt and indexed as one collection."""
        rows = db.query(Parto).order_by(Parto.correlativo.asc()).all()
        records = [from_db_row(row, index=i) for i, row in enumerate(rows)]
        enriched, _ = index_records(records)
        return enriched

    def to_record(self, db_obj: Parto) -> PartoRecord:
        return from_db_row(db_obj)

parto = CRUDParto()
