"""FastAPI web server – admin REST API for batches and content.

Run:
    python -m web.app                 # or
    uvicorn web.app:app --reload
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from process.intake import DuplicateContent, add_manual_item
from process.merge import InvalidArgument, StoreFailure, execute_merge, preview_merge
from storage.db import get_session, init_db, is_initialised, list_batches_with_counts
from storage.models import NewContent

log = logging.getLogger(__name__)

# ── Paths ────────────────────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent.parent


@asynccontextmanager
async def lifespan(_: FastAPI):
    if not is_initialised():
        init_db()
    yield


# ── App ──────────────────────────────────────────────────────────────
app = FastAPI(title="Newsletter Curator", version="1.0.0", lifespan=lifespan)


# ── Request bodies ───────────────────────────────────────────────────


class MergeRequest(BaseModel):
    batchIds: Optional[list[int]] = None
    previewOnly: bool = False


class ContentRequest(BaseModel):
    title: str
    link: str
    summary: str = ""
    sourceType: str = "article"
    sourceName: Optional[str] = None
    batchId: Optional[int] = None


# ── Error mapping (every failure is a bare {"error": ...}) ───────────


@app.exception_handler(InvalidArgument)
async def _invalid_argument(_: Request, exc: InvalidArgument):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def _bad_request(_: Request, exc: RequestValidationError):
    fields = ", ".join(".".join(str(p) for p in e["loc"][1:]) for e in exc.errors())
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {fields}"})


@app.exception_handler(DuplicateContent)
async def _duplicate(_: Request, exc: DuplicateContent):
    return JSONResponse(status_code=409, content={"error": str(exc)})


@app.exception_handler(StoreFailure)
async def _store_failure(_: Request, exc: StoreFailure):
    return JSONResponse(status_code=500, content={"error": str(exc)})


@app.exception_handler(SQLAlchemyError)
async def _db_error(_: Request, exc: SQLAlchemyError):
    log.error("Database error: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Database error"})


# ── API: batches ─────────────────────────────────────────────────────


@app.get("/api/admin/batches")
def list_batches():
    """Return all scrape batches (newest first) with pending/accepted/discarded counts."""
    with get_session() as session:
        batches = list_batches_with_counts(session)
    return {"batches": batches}


@app.post("/api/admin/batches/merge")
def merge_batches(body: MergeRequest):
    """Preview or perform a deduplicated merge of the selected batches."""
    if body.previewOnly:
        result = preview_merge(body.batchIds)
        return {"preview": True, "stats": result.to_stats()}

    merged, result = execute_merge(body.batchIds)
    return {
        "success": True,
        "mergedBatch": merged.to_dict(),
        "stats": result.to_stats(include_removed=True),
    }


# ── API: content ─────────────────────────────────────────────────────


@app.post("/api/admin/content", status_code=201)
def add_content_item(body: ContentRequest):
    """Add one article by hand; 409 if it (or a near-identical title) exists."""
    record = NewContent(
        title=body.title.strip(),
        link=body.link.strip(),
        summary=body.summary,
        source_type=body.sourceType,
        source_name=body.sourceName,
    )
    if not record.title or not record.link:
        raise InvalidArgument("title and link are required")
    item = add_manual_item(record, batch_id=body.batchId)
    return {"content": item.to_dict()}


# ── Run directly ─────────────────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn

    sys.path.insert(0, str(PROJECT_ROOT))
    uvicorn.run("web.app:app", host="0.0.0.0", port=8000, reload=True)
