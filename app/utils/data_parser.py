import logging
from typing import Any, Iterable, List, Sequence

from app.schemas.parto import ParseResult, ParseWarning, Parto
from app.utils.record_builder import DEFAULT_SOURCE, RecordBuildError, build_from_line
from app.utils.relations import index_records, mothers_map

logger = logging.getLogger(__name__)

def _is_blank(row: Sequence[Any]) -> bool:
    return all(value is None or str(value).strip() == "" for value in row)

def parse_rows(rows: Iterable[Sequence[Any]], source: str = DEFAULT_SOURCE) -> ParseResult:
    """
    Build and index records from pre-split rows.

    Blank rows are ignored but still count for line numbering. A row that
    cannot be built is skipped with a warning; it never stops the batch.
    """
    records: List[Parto] = []
    warnings: List[ParseWarning] = []
    skipped = 0

    for index, row in enumerate(rows):
        if _is_blank(row):
            continue
        try:
            records.append(build_from_line(row, index, source=source, warnings=warnings))
        except RecordBuildError as e:
            logger.warning(str(e))
            warnings.append(ParseWarning(line=e.line, message=str(e)))
            skipped += 1
        except Exception as e:
            logger.error(f"Error processing line {index + 1}: {e}")
            warnings.append(ParseWarning(line=index + 1, message=f"Error processing line: {e}"))
            skipped += 1

    enriched, indexes = index_records(records)
    logger.info(f"Parsed {len(enriched)} records from {source} ({skipped} skipped)")
    return ParseResult(
        records=enriched,
        warnings=warnings,
        skipped=skipped,
        mothers=mothers_map(indexes),
    )

def split_lines(text: str) -> List[List[str]]:
    # Only line breaks are trimmed: a leading tab is an empty first column
    return [line.rstrip("\r").split("\t") for line in text.split("\n")]

def parse_data(text: Any, source: str = DEFAULT_SOURCE) -> ParseResult:
    """Parse datos.txt content: one record per line, tab-separated fields, no header row."""
    if not isinstance(text, str):
        logger.error("parse_data: input is not text")
        return ParseResult(error="Input must be text")
    if not text.strip():
        return ParseResult()
    return parse_rows(split_lines(text), source=source)
