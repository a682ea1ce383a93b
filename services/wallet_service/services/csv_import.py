"""Batch upload storage and CSV parsing.

Parse failures are whole-file failures (``PipelineFailure``); per-row
validation happens later in the batch pipeline.
"""

import asyncio
import csv
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile
from libs.common.config import get_settings
from libs.common.logging import get_logger
from services.wallet_service.errors import PipelineFailure

logger = get_logger(__name__)

REQUIRED_COLUMNS = ("wallet_name",)


async def save_upload(upload: UploadFile, upload_dir: Optional[str] = None) -> str:
    """Persist an uploaded file and return its path (kept for audit)."""
    directory = Path(upload_dir or get_settings().BATCH_UPLOAD_DIR)
    directory.mkdir(parents=True, exist_ok=True)

    suffix = Path(upload.filename or "").suffix or ".csv"
    path = directory / f"{uuid.uuid4()}{suffix}"
    content = await upload.read()
    path.write_bytes(content)

    logger.info(
        "Stored batch upload %s as %s (%d bytes)", upload.filename, path, len(content)
    )
    return str(path)


def parse_batch_csv(path: str, max_rows: Optional[int] = None) -> list[dict]:
    """Read a batch CSV into ordered row mappings.

    Empty cells are dropped so an absent override stays absent. Raises
    PipelineFailure if the file is unreadable, malformed, missing a required
    column, or longer than ``max_rows``.
    """
    max_rows = max_rows or get_settings().BATCH_MAX_ROWS
    rows: list[dict] = []
    try:
        with open(path, newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f, strict=True)
            fieldnames = [name.strip() for name in reader.fieldnames or []]
            missing = [col for col in REQUIRED_COLUMNS if col not in fieldnames]
            if missing:
                raise PipelineFailure(f"CSV must have a '{missing[0]}' column")
            reader.fieldnames = fieldnames

            for record in reader:
                if None in record:
                    raise PipelineFailure(
                        f"Line {reader.line_num} has more fields than the header"
                    )
                row = {
                    key: value.strip()
                    for key, value in record.items()
                    if value is not None and value.strip()
                }
                if not row:
                    continue
                rows.append(row)
                if len(rows) > max_rows:
                    raise PipelineFailure(f"CSV has more than {max_rows} rows")
    except PipelineFailure:
        raise
    except OSError as exc:
        raise PipelineFailure(f"Could not read batch file: {path}", cause=exc) from exc
    except (csv.Error, UnicodeDecodeError) as exc:
        raise PipelineFailure(f"Could not parse batch file: {exc}", cause=exc) from exc

    logger.info("Parsed %d rows from %s", len(rows), path)
    return rows


async def load_batch_rows(path: str, timeout: Optional[float] = None) -> list[dict]:
    """Parse off the event loop, bounded by BATCH_PARSE_TIMEOUT_SECONDS."""
    timeout = timeout or get_settings().BATCH_PARSE_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(asyncio.to_thread(parse_batch_csv, path), timeout)
    except asyncio.TimeoutError as exc:
        raise PipelineFailure(
            f"Parsing batch file timed out after {timeout}s", cause=exc
        ) from exc
