"""Workbook loader — reads one sheet of an uploaded .xlsx into raw rows."""

import io
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger


def _source(workbook: bytes | str | Path):
    return io.BytesIO(workbook) if isinstance(workbook, bytes) else workbook


def sheet_names(workbook: bytes | str | Path) -> list[str]:
    with pd.ExcelFile(_source(workbook)) as xls:
        return [str(name) for name in xls.sheet_names]


def frame_to_rows(frame: pd.DataFrame) -> list[list[Any]]:
    """DataFrame cells to plain Python rows; missing cells become ""."""
    rows = []
    for record in frame.itertuples(index=False, name=None):
        row = []
        for cell in record:
            if cell is None or (not isinstance(cell, str) and pd.isna(cell)):
                row.append("")
            elif isinstance(cell, pd.Timestamp):
                row.append(cell.to_pydatetime())
            else:
                row.append(cell)
        rows.append(row)
    return rows


def load_sheet(workbook: bytes | str | Path, sheet_name: str | int = 0) -> list[list[Any]]:
    """All rows of a sheet, header rows and label column included."""
    frame = pd.read_excel(_source(workbook), sheet_name=sheet_name, header=None, dtype=object)
    rows = frame_to_rows(frame)
    logger.info(f"Loaded sheet {sheet_name!r}: {len(rows)} rows")
    return rows
