from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Optional

from .errors import FormatError, MalformedError, SizeError
from .models import DatasetPreview

logger = logging.getLogger(__name__)

ACCEPTED_EXTENSION = ".csv"
MAX_FILE_BYTES = 50 * 1024 * 1024 * 1024
PREVIEW_BYTES = 256 * 1024
SAMPLE_ROWS = 10
# Reported instead of a row count when the file does not fit in the preview.
ROW_COUNT_SENTINEL = 1_000_000


def check_upload(filename: str, size: int) -> None:
    """Reject by name and size before any byte is read."""
    if not filename.endswith(ACCEPTED_EXTENSION):
        raise FormatError("Only CSV files are supported.")
    if size > MAX_FILE_BYTES:
        raise SizeError("File is too large (max 50GB).")


def _split_header(line: str) -> list[str]:
    return [c.replace('"', "").replace("'", "").strip() for c in line.split(",")]


def parse_preview(filename: str, prefix: bytes, *, truncated: bool) -> DatasetPreview:
    """
    Build a DatasetPreview from the first bytes of a CSV.

    The first non-blank line is the header. Up to SAMPLE_ROWS following lines
    become sample rows keyed by header name; fields are kept raw and missing
    trailing fields map to "". The split is a plain comma split, so quoted
    commas inside values are not honoured.
    """
    text = prefix.decode("utf-8-sig", errors="replace")
    lines = [ln.strip() for ln in text.split("\n")]
    lines = [ln for ln in lines if ln]

    if len(lines) < 2:
        raise MalformedError("CSV file is empty or malformed.")

    columns = _split_header(lines[0])
    sample_data: list[dict[str, str]] = []
    for line in lines[1 : SAMPLE_ROWS + 1]:
        values = line.split(",")
        sample_data.append({col: (values[i] if i < len(values) else "") for i, col in enumerate(columns)})

    if truncated:
        row_count = ROW_COUNT_SENTINEL
    else:
        row_count = len(lines) - 1

    return DatasetPreview(
        filename=filename,
        columns=columns,
        row_count=row_count,
        sample_data=sample_data,
        row_count_exact=not truncated,
    )


def read_preview(stream: BinaryIO, filename: str, size: int) -> DatasetPreview:
    """
    Preview an open binary stream of known size. Reads at most PREVIEW_BYTES.

    Works for Streamlit's UploadedFile as well as regular file objects.
    """
    check_upload(filename, size)
    if hasattr(stream, "seek"):
        stream.seek(0)
    prefix = stream.read(PREVIEW_BYTES)
    preview = parse_preview(filename, prefix, truncated=size > PREVIEW_BYTES)
    logger.info(
        "Ingested %s: %d columns, %d sample rows, row_count=%s",
        filename,
        len(preview.columns),
        len(preview.sample_data),
        preview.row_count if preview.row_count_exact else "unknown",
    )
    return preview


def preview_csv(path: Path, filename: Optional[str] = None) -> DatasetPreview:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV not found: {path}")
    name = filename or path.name
    size = path.stat().st_size
    check_upload(name, size)
    with path.open("rb") as f:
        return read_preview(f, name, size)
