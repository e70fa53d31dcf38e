"""Load content records from YAML/JSON record lists or directories of text files."""

import hashlib
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from ..errors import RecordFormatError
from ..models import ContentRecord, ContentType

logger = logging.getLogger(__name__)

RECORD_SUFFIXES = {".yaml", ".yml", ".json"}
TEXT_SUFFIXES = {".txt", ".md", ".markdown"}


def compute_hash(content: str) -> str:
    """SHA256 hash of content, used for ids of records that carry none."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def load_records(path: str | Path) -> list[ContentRecord]:
    """Load records from a record file or a directory of text files.

    Args:
        path: A .yaml/.yml/.json record list, a single .txt/.md file, or a directory.

    Returns:
        Records in file order.

    Raises:
        RecordFormatError: if the path is missing or a record is malformed.
    """
    path = Path(path)
    if path.is_dir():
        return load_directory(path)
    if not path.exists():
        raise RecordFormatError(f"Path not found: {path}")
    suffix = path.suffix.lower()
    if suffix in RECORD_SUFFIXES:
        return load_record_file(path)
    if suffix in TEXT_SUFFIXES:
        return [record_from_text_file(path)]
    raise RecordFormatError(f"Unsupported file type: {path.suffix}")


def load_record_file(path: Path) -> list[ContentRecord]:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise RecordFormatError(f"Could not parse {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("records", [])
    if not isinstance(data, list):
        raise RecordFormatError(f"{path} must contain a list of records")

    records = [record_from_dict(item, default_source=path.stem) for item in data or []]
    logger.info(f"Loaded {len(records)} records from {path}")
    return records


def record_from_dict(data: Any, default_source: str = "unknown") -> ContentRecord:
    if not isinstance(data, dict):
        raise RecordFormatError(f"Record must be a mapping, got {type(data).__name__}")

    title = str(data.get("title") or "")
    body = str(data.get("body") or data.get("content") or "")
    record_id = str(data.get("id") or compute_hash(title + "\n" + body)[:16])

    try:
        content_type = ContentType(data.get("type", ContentType.TEXT.value))
    except ValueError as e:
        raise RecordFormatError(f"Record {record_id}: {e}") from e

    created_at = data.get("created_at")
    if created_at is None:
        created_at = datetime.now()
    elif isinstance(created_at, str):
        try:
            created_at = datetime.fromisoformat(created_at)
        except ValueError as e:
            raise RecordFormatError(f"Record {record_id}: bad created_at {created_at!r}") from e
    elif not isinstance(created_at, datetime):
        raise RecordFormatError(f"Record {record_id}: bad created_at {created_at!r}")

    return ContentRecord(
        id=record_id,
        type=content_type,
        title=title,
        body=body,
        ocr_text=data.get("ocr_text"),
        source=str(data.get("source") or default_source),
        created_at=created_at,
    )


def record_from_text_file(path: Path, root: Path | None = None) -> ContentRecord:
    text = path.read_text(encoding="utf-8", errors="replace")
    title = path.stem
    # Try first line as title if short enough
    first_line = text.split("\n", 1)[0].strip().lstrip("#").strip()
    if first_line and len(first_line) < 120:
        title = first_line

    record_id = path.relative_to(root).as_posix() if root else path.name
    return ContentRecord(
        id=record_id,
        type=ContentType.TEXT,
        title=title,
        body=text,
        source="file",
        created_at=datetime.fromtimestamp(path.stat().st_mtime),
    )


def load_directory(directory: Path) -> list[ContentRecord]:
    """Every .txt/.md file below directory, sorted by path."""
    records = []
    for file_path in sorted(directory.rglob("*")):
        if file_path.is_file() and not file_path.name.startswith("."):
            if file_path.suffix.lower() in TEXT_SUFFIXES:
                records.append(record_from_text_file(file_path, root=directory))
    logger.info(f"Loaded {len(records)} records from {directory}")
    return records
