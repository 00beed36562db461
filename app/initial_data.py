import argparse
import logging
from pathlib import Path

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import Base, SessionLocal, engine
from app.crud.parto import parto as parto_crud
from app.models import parto  # noqa: F401  registers the partos table
from app.utils.data_parser import parse_data

logger = logging.getLogger(__name__)

def init_db() -> None:
    """Create the database tables"""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")

def import_file(path: str, clear: bool = False, encoding: str = "utf-8") -> dict:
    """
    Load a datos.txt export into the database.

    Records whose trace id is already stored are skipped, so running the
    import twice over the same file inserts nothing the second time.
    """
    source = Path(path)
    if not source.is_file():
        raise ValueError(f"File not found: {path}")

    text = source.read_text(encoding=encoding)
    result = parse_data(text, source=source.name or settings.SOURCE_NAME)
    if not result.ok:
        raise ValueError(result.error)
    if not result.records:
        raise ValueError(f"No valid records found in {path}")

    for warning in result.warnings:
        logger.warning(f"Line {warning.line}: {warning.message}")

    db: Session = SessionLocal()
    try:
        if clear:
            parto_crud.remove_all(db)
        created, skipped = parto_crud.create_many(db, records=result.records)
    except Exception as e:
        logger.error(f"Error importing {path}: {e}")
        db.rollback()
        raise
    finally:
        db.close()

    totals = {
        "parsed": len(result.records),
        "inserted": len(created),
        "existing": len(skipped),
        "skipped_lines": result.skipped,
        "warnings": len(result.warnings),
        "unique_mothers": len(result.mothers),
    }
    logger.info(f"Import of {source.name} completed: {totals}")
    return totals

def main() -> None:
    parser = argparse.ArgumentParser(description="Import a datos.txt birth registry export")
    parser.add_argument("path", nargs="?", default=settings.SOURCE_NAME, help="tab-separated datos.txt file")
    parser.add_argument("--clear", action="store_true", help="delete every stored parto before importing")
    parser.add_argument("--encoding", default="utf-8")
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL)
    logger.info("Initializing database...")
    init_db()
    import_file(args.path, clear=args.clear, encoding=args.encoding)

if __name__ == "__main__":
    main()
