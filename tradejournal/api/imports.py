"""Import API — preview pasted rows or workbook sheets, then commit them."""

import zipfile

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import BaseModel

from tradejournal.api.main import app_state
from tradejournal.config import settings
from tradejournal.importer.batch import ImportPreview, NoRowsParsedError
from tradejournal.importer.workbook import load_sheet, sheet_names
from tradejournal.models.trade import Trade

router = APIRouter(prefix="/api/imports", tags=["imports"])

MAX_UPLOAD_BYTES = settings.upload_max_mb * 1024 * 1024


class TextImportRequest(BaseModel):
    text: str


class CommitRequest(BaseModel):
    user_id: str
    trades: list[Trade]


def _preview_response(preview: ImportPreview) -> dict:
    return {
        "mode": preview.mode,
        "parsed": len(preview.candidates),
        "skipped": preview.skipped,
        "candidates": [t.model_dump(mode="json") for t in preview.candidates],
        "failures": [f.model_dump() for f in preview.failures],
    }


def _no_rows(e: NoRowsParsedError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={
            "message": str(e),
            "skipped": e.skipped,
            "failures": [f.model_dump() for f in e.failures],
        },
    )


@router.post("/preview")
async def preview_text(req: TextImportRequest):
    """Parse pasted spreadsheet rows into candidate trades."""
    try:
        preview = app_state["importer"].parse_text(req.text)
    except NoRowsParsedError as e:
        raise _no_rows(e)
    return _preview_response(preview)


async def _read_with_limit(file: UploadFile, max_bytes: int) -> bytes:
    """Read the upload in 1MB chunks, refusing anything over max_bytes."""
    chunks = []
    total = 0
    while True:
        chunk = await file.read(1024 * 1024)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise HTTPException(
                status_code=413,
                detail=f"Workbook too large. Maximum upload size is {max_bytes // (1024*1024)} MB",
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/sheets")
async def list_sheets(file: UploadFile = File(...)):
    """Sheet names of an uploaded workbook, for the sheet picker."""
    content = await _read_with_limit(file, MAX_UPLOAD_BYTES)
    try:
        return {"sheets": sheet_names(content)}
    except (ValueError, zipfile.BadZipFile) as e:
        raise HTTPException(status_code=400, detail=f"Unreadable workbook: {e}")


@router.post("/workbook")
async def preview_workbook(file: UploadFile = File(...), sheet_name: str | None = Form(None)):
    """Parse one sheet of an uploaded workbook into candidate trades."""
    content = await _read_with_limit(file, MAX_UPLOAD_BYTES)
    try:
        rows = load_sheet(content, sheet_name if sheet_name else 0)
    except (ValueError, zipfile.BadZipFile) as e:
        raise HTTPException(status_code=400, detail=f"Unreadable workbook: {e}")
    try:
        preview = app_state["importer"].parse_sheet(rows)
    except NoRowsParsedError as e:
        raise _no_rows(e)
    return _preview_response(preview)


@router.post("/commit")
async def commit_import(req: CommitRequest):
    """Save previewed trades; rule violations are recorded as acknowledged."""
    if not req.trades:
        raise HTTPException(status_code=400, detail="Nothing to import")
    result = await app_state["importer"].commit(req.trades, req.user_id)
    if not result.ok:
        raise HTTPException(
            status_code=502,
            detail={"message": "No trades could be saved", **result.model_dump()},
        )
    return {**result.model_dump(), "trade_ids": result.trade_ids}
