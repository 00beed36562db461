import pandas as pd
from typing import Any, List, Optional
import io
import logging

from app.schemas.parto import ParseResult
from app.utils.data_parser import parse_rows

logger = logging.getLogger(__name__)

def parse_excel_file(file_content: bytes, source: str = "excel") -> ParseResult:
    """
    Parse an Excel workbook laid out like datos.txt: one birth per row, columns
    in the same positions, no header row. Every sheet is read.
    """
    try:
        xls = pd.ExcelFile(io.BytesIO(file_content))
    except Exception as e:
        logger.error(f"Error opening Excel file: {str(e)}")
        raise ValueError(f"Error parsing Excel file: {str(e)}")

    all_rows: List[List[Optional[str]]] = []

    for sheet_name in xls.sheet_names:
        logger.info(f"Processing sheet: {sheet_name}")
        try:
            df = pd.read_excel(xls, sheet_name=sheet_name, header=None, dtype=str)
        except Exception as e:
            logger.error(f"Error processing sheet {sheet_name}: {str(e)}")
            continue

        df = df.dropna(how='all')
        if df.empty:
            logger.warning(f"Sheet {sheet_name} has no data, skipping")
            continue

        sheet_rows = dataframe_to_rows(df)
        all_rows.extend(sheet_rows)
        logger.info(f"Extracted {len(sheet_rows)} rows from sheet {sheet_name}")

    result = parse_rows(all_rows, source=source)

    if not result.records:
        raise ValueError("No valid records found in any sheet of the Excel file")

    logger.info(f"Total valid records parsed: {len(result.records)}")
    return result

def dataframe_to_rows(df: pd.DataFrame) -> List[List[Optional[str]]]:
    """Turn a header-less frame into positional field lists; NaN cells become None."""
    rows = []
    for _, row in df.iterrows():
        cells = [clean_cell(value) for value in row.tolist()]
        # pandas pads every row to the widest one in the sheet
        while cells and cells[-1] is None:
            cells.pop()
        rows.append(cells)
    return rows

def clean_cell(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None
