from typing import List

from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.crud.parto import parto as parto_crud
from app.schemas.parto import Parto

def get_records(db: Session = Depends(get_db)) -> List[Parto]:
    """The whole stored collection, normalized and indexed."""
    return parto_crud.get_all_records(db)
