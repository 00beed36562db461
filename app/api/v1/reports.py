from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query

from app.api import deps
from app.reports.rem import (
    compute_rem,
    compute_section_a,
    compute_section_a1,
    compute_section_b,
    compute_section_d1,
    filter_records,
)
from app.reports.summary import available_years, check_alerts, prepare_data_summary
from app.schemas.parto import Parto
from app.schemas.rem import Alert, RemReport, SectionA1Row, SectionARow, SectionBRow, SectionD1Row, YearCount

router = APIRouter()

def period_records(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    records: List[Parto] = Depends(deps.get_records),
) -> List[Parto]:
    return filter_records(records, year=year, month=month)

@router.get("/rem", response_model=RemReport)
def read_rem(
    year: Optional[int] = Query(None, ge=2000, le=2100),
    month: Optional[int] = Query(None, ge=1, le=12),
    records: List[Parto] = Depends(deps.get_records),
) -> Any:
    """All REM birth sections for a period"""
    return compute_rem(records, year=year, month=month)

@router.get("/rem/a", response_model=List[SectionARow])
def read_section_a(records: List[Parto] = Depends(period_records)) -> Any:
    return compute_section_a(records)

@router.get("/rem/a1", response_model=List[SectionA1Row])
def read_section_a1(records: List[Parto] = Depends(period_records)) -> Any:
    return compute_section_a1(records)

@router.get("/rem/b", response_model=List[SectionBRow])
def read_section_b(records: List[Parto] = Depends(period_records)) -> Any:
    return compute_section_b(records)

@router.get("/rem/d1", response_model=SectionD1Row)
def read_section_d1(records: List[Parto] = Depends(period_records)) -> Any:
    return compute_section_d1(records)

@router.get("/summary")
def read_summary(records: List[Parto] = Depends(period_records)) -> Dict[str, Any]:
    """Descriptive statistics and cross tables for a period"""
    return prepare_data_summary(records)

@router.get("/alerts", response_model=List[Alert])
def read_alerts(records: List[Parto] = Depends(period_records)) -> Any:
    return check_alerts(records)

@router.get("/years", response_model=List[YearCount])
def read_years(records: List[Parto] = Depends(deps.get_records)) -> Any:
    """Years with stored partos, most recent first"""
    return available_years(records)
