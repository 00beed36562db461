from fastapi import APIRouter
from app.api.v1 import partos, reports

api_router = APIRouter()
api_router.include_router(partos.router, prefix="/partos", tags=["partos"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
