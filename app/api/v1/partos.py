from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query, UploadFile, File
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
import logging
import traceback

from app.api import deps
from app.core.config import settings
from app.crud.parto import parto as parto_crud
from app.schemas.parto import ParseResult, Parto
from app.utils.data_parser import parse_data
from app.utils.excel_parser import parse_excel_file
from app.utils.record_builder import build_from_form
from app.utils.serializers import to_legacy_dict

logger = logging.getLogger(__name__)

router = APIRouter()

def _indexed(db: Session, rows: List[Any]) -> List[Parto]:
    """Records for ``rows`` with their relations resolved against the whole registry."""
    if not rows:
        return []
    by_trace_id = {record.trace_id: record for record in parto_crud.get_all_records(db)}
    return [by_trace_id[row.trace_id] for row in rows if row.trace_id in by_trace_id]

def _get_or_404(db: Session, parto_id: str):
    record = parto_crud.get(db=db, id=parto_id)
    if not record:
        raise HTTPException(status_code=404, detail="Parto not found")
    return record

@router.get("/", response_model=List[Parto])
def read_partos(
    db: Session = Depends(deps.get_db),
    skip: int = 0,
    limit: int = 100,
    tipo_parto: Optional[str] = None,
    paridad: Optional[str] = None,
    mes: Optional[int] = Query(None, ge=1, le=12),
    ano: Optional[int] = None,
    comuna: Optional[str] = None,
    consultorio: Optional[str] = None,
    rut: Optional[str] = None,
) -> Any:
    """Retrieve partos, newest first"""
    rows = parto_crud.get_multi(
        db, skip=skip, limit=limit, tipo_parto=tipo_parto, paridad=paridad, mes=mes, ano=ano,
        comuna=comuna, consultorio=consultorio, rut=rut,
    )
    return _indexed(db, rows)

@router.get("/count")
def count_partos(
    db: Session = Depends(deps.get_db),
    tipo_parto: Optional[str] = None,
    paridad: Optional[str] = None,
    mes: Optional[int] = Query(None, ge=1, le=12),
    ano: Optional[int] = None,
    comuna: Optional[str] = None,
    consultorio: Optional[str] = None,
    rut: Optional[str] = None,
) -> Any:
    total = parto_crud.count(
        db, tipo_parto=tipo_parto, paridad=paridad, mes=mes, ano=ano,
        comuna=comuna, consultorio=consultorio, rut=rut,
    )
    return {"total": total}

@router.get("/legacy")
def read_partos_legacy(records: List[Parto] = Depends(deps.get_records)) -> Any:
    """Every parto in the flat shape of the old registry front end"""
    return [to_legacy_dict(record) for record in records]

@router.post("/", response_model=Parto, status_code=201)
def create_parto(
    *,
    db: Session = Depends(deps.get_db),
    data: Dict[str, Any] = Body(...),
) -> Any:
    """Create a parto from named form fields"""
    record = build_from_form(data)
    if parto_crud.get_by_trace_id(db, trace_id=record.trace_id):
        raise HTTPException(status_code=409, detail=f"Parto {record.trace_id} already exists")
    try:
        row = parto_crud.create(db=db, obj_in=record)
    except ValueError as ve:
        raise HTTPException(status_code=409, detail=str(ve))
    return _indexed(db, [row])[0]

@router.get("/{parto_id}", response_model=Parto)
def read_parto(
    *,
    db: Session = Depends(deps.get_db),
    parto_id: str,
) -> Any:
    """Get a parto by database id or trace id"""
    row = _get_or_404(db, parto_id)
    return _indexed(db, [row])[0]

@router.put("/{parto_id}", response_model=Parto)
def update_parto(
    *,
    db: Session = Depends(deps.get_db),
    parto_id: str,
    data: Dict[str, Any] = Body(...),
) -> Any:
    """Update a parto; the merged record is normalized again"""
    row = _get_or_404(db, parto_id)
    try:
        row = parto_crud.update(db=db, db_obj=row, obj_in=data)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    return _indexed(db, [row])[0]

@router.delete("/{parto_id}")
def delete_parto(
    *,
    db: Session = Depends(deps.get_db),
    parto_id: str,
) -> Any:
    """Delete a parto"""
    row = _get_or_404(db, parto_id)
    parto_crud.remove(db=db, id=str(row.id))
    return {"message": "Parto deleted successfully", "trace_id": row.trace_id}

def _store_parsed(db: Session, result: ParseResult, dry_run: bool, filename: str) -> Dict[str, Any]:
    """Insert a parsed batch (unless dry run) and report what happened to every line."""
    parse_errors = [f"Line {w.line}: {w.message}" if w.line else w.message for w in result.warnings]
    duplicate_errors: List[str] = []
    database_errors: List[str] = []
    created_records: List[Dict[str, Any]] = []

    existing = parto_crud.get_by_trace_ids(db, trace_ids=[r.trace_id for r in result.records])
    new_records = []
    for record in result.records:
        if record.trace_id in existing:
            duplicate_errors.append(
                f"Line {record.source_line}: Parto already exists in database: {record.trace_id}"
            )
            continue
        new_records.append(record)

    if dry_run:
        created_records = [
            {"line": r.source_line, "trace_id": r.trace_id, "status": "valid"} for r in new_records
        ]
    else:
        try:
            created, skipped = parto_crud.create_many(db, records=new_records)
            created_records = [
                {"id": str(row.id), "trace_id": row.trace_id, "line": row.source_line} for row in created
            ]
            duplicate_errors.extend(f"Duplicate trace id within file: {trace_id}" for trace_id in skipped)
        except (ValueError, SQLAlchemyError) as e:
            database_errors.append(f"Database error - {str(e)}")
            logger.error(f"Database error storing {filename}: {str(e)}")

    success_count = len(created_records)
    error_count = len(duplicate_errors) + len(database_errors) + result.skipped

    if dry_run:
        message = f"Dry run completed. {success_count} records would be created, {error_count} errors found"
    else:
        message = f"Successfully created {success_count} records, {error_count} errors encountered"

    logger.info(f"Upload summary ({filename}) - Parsed: {len(result.records)}, Success: {success_count}, Errors: {error_count}")

    return {
        "message": message,
        "dry_run": dry_run,
        "total_records": len(result.records),
        "success_count": success_count,
        "error_count": error_count,
        "unique_mothers": len(result.mothers),
        "created_records": created_records if dry_run or success_count <= 10 else created_records[:10],
        "errors": {
            "parse_errors": parse_errors,
            "duplicate_errors": duplicate_errors,
            "database_errors": database_errors,
        },
    }

def _check_size(file: UploadFile) -> None:
    if file.size and file.size > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File size too large. Maximum allowed size is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
        )

@router.post("/upload-text/")
async def upload_text_file(
    *,
    db: Session = Depends(deps.get_db),
    file: UploadFile = File(...),
    dry_run: bool = Query(False, description="Preview records without saving"),
) -> Any:
    """
    Upload a datos.txt export: tab-separated, one parto per line, no header.

    Parameters:
    - file: text file
    - dry_run: If True, parses and checks data but doesn't save to database
    """
    _check_size(file)
    logger.info(f"Processing text file: {file.filename}")

    content = await file.read()
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded text")

    result = parse_data(text, source=file.filename or settings.SOURCE_NAME)
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.error)
    if not result.records:
        raise HTTPException(status_code=400, detail="No valid records found in the text file")

    try:
        return _store_parsed(db, result, dry_run, file.filename or settings.SOURCE_NAME)
    except Exception as e:
        logger.error(f"Unexpected error processing text file: {str(e)}")
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail=f"Error processing text file: {str(e)}")

@router.post("/upload-excel/")
async def upload_excel_file(
    *,
    db: Session = Depends(deps.get_db),
    file: UploadFile = File(...),
    dry_run: bool = Query(False, description="Preview records without saving"),
) -> Any:
    """
    Upload an Excel workbook laid out like datos.txt

    Parameters:
    - file: Excel file (.xlsx or .xls)
    - dry_run: If True, parses and checks data but doesn't save to database
    """
    if not file.filename or not file.filename.endswith(('.xlsx', '.xls')):
        raise HTTPException(
            status_code=400,
            detail="File must be an Excel file (.xlsx or .xls)"
        )
    _check_size(file)
    logger.info(f"Processing Excel file: {file.filename}")

    content = await file.read()
    try:
        result = parse_excel_file(content, source=file.filename)
    except ValueError as ve:
        logger.error(f"Value error: {str(ve)}")
        raise HTTPException(status_code=400, detail=str(ve))

    try:
        return _store_parsed(db, result, dry_run, file.filename)
    except Exception as e:
        logger.error(f"Unexpected error processing Excel file: {str(e)}")
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail=f"Error processing Excel file: {str(e)}")
