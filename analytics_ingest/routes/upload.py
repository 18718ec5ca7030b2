"""File upload route: parse a batch of exports and save it as a dataset."""

import logging
from datetime import datetime, timezone
from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from analytics_ingest.config import settings
from analytics_ingest.database import get_session
from analytics_ingest.ingest import UploadedFile, parse_files
from analytics_ingest.repository import save_dataset

# Chunk size for streaming reads (1 MiB)
_CHUNK_SIZE = 1024 * 1024

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_capped(file: UploadFile) -> UploadedFile:
    """Read an upload into memory, stopping one byte past the size limit.

    An oversized file is never read in full; the truncated content still
    exceeds the limit, so validation rejects it.
    """
    limit = settings.max_upload_size_bytes
    chunks = []
    total = 0
    while total <= limit:
        chunk = await file.read(_CHUNK_SIZE)
        if not chunk:
            break
        chunks.append(chunk)
        total += len(chunk)
    return UploadedFile(
        name=Path(file.filename or "upload").name,
        content=b"".join(chunks),
        content_type=file.content_type,
    )


def _default_dataset_name() -> str:
    return f"Upload {datetime.now(timezone.utc):%Y-%m-%d %H:%M}"


@router.post("/api/uploads")
async def handle_upload(
    files: list[UploadFile] = File(...),
    dataset_name: str | None = Form(None),
    db: Session = Depends(get_session),
):
    """Parse uploaded exports and store their rows as a new dataset.

    Files that are rejected or fail to parse are reported under
    ``failures`` without affecting the others. When no file yields any
    row, nothing is saved and the response is 400.
    """
    uploads = [await _read_capped(f) for f in files]
    parsed = parse_files(uploads)

    failures = [{"filename": f.filename, "reason": f.reason} for f in parsed.failures]
    counts = {
        "posts": len(parsed.posts),
        "daily": len(parsed.daily),
        "followers_daily": len(parsed.followers_daily),
        "followers_demographics": len(parsed.followers_demographics),
    }

    if parsed.total_records == 0:
        logger.warning("Upload produced no records (%d files, %d failed)", len(uploads), len(failures))
        return JSONResponse(
            status_code=400,
            content={
                "detail": "No rows could be imported from the uploaded files.",
                "counts": counts,
                "failures": failures,
                "warnings": parsed.warnings,
            },
        )

    name = (dataset_name or "").strip() or _default_dataset_name()
    dataset = save_dataset(db, name, parsed)
    logger.info("Import succeeded: dataset %d with %d records", dataset.id, parsed.total_records)

    return {
        "dataset_id": dataset.id,
        "dataset_name": dataset.name,
        "counts": counts,
        "failures": failures,
        "warnings": parsed.warnings,
    }
