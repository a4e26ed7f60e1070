"""Transcript files with front matter, plus inbox scanning and archiving."""

import shutil
from datetime import datetime
from pathlib import Path

import frontmatter

from debate_council.models import DebateMetadata

TRANSCRIPT_SUFFIXES = (".md", ".txt")


def ensure_dirs(inbox_dir: Path, archive_dir: Path) -> None:
    """Create inbox and archive directories if they don't exist."""
    inbox_dir.mkdir(parents=True, exist_ok=True)
    archive_dir.mkdir(parents=True, exist_ok=True)


def scan_inbox(inbox_dir: Path) -> list[Path]:
    """Return transcript files in inbox_dir, oldest first by mtime."""
    files = [p for p in inbox_dir.iterdir() if p.is_file() and p.suffix in TRANSCRIPT_SUFFIXES]
    return sorted(files, key=lambda p: p.stat().st_mtime)


def parse_transcript_file(file_path: Path, topic: str | None = None) -> tuple[str, DebateMetadata]:
    """Read a transcript and its optional YAML front matter.

    Front matter may set `topic`, `description` and `thumbnail`. An explicit
    `topic` argument wins over the front matter; the file stem is the last
    resort.

    Returns:
        (transcript_text, metadata)
    """
    post = frontmatter.load(str(file_path))
    meta = post.metadata
    metadata = DebateMetadata(
        topic=topic or str(meta.get("topic") or file_path.stem.replace("_", " ")),
        description=str(meta["description"]) if meta.get("description") else None,
        thumbnail=str(meta["thumbnail"]) if meta.get("thumbnail") else None,
    )
    return post.content.strip(), metadata


def archive_file(file_path: Path, archive_dir: Path, *, failed: bool = False) -> Path:
    """Move file to archive_dir with a timestamp prefix ("FAILED_" first on failure)."""
    timestamp = datetime.now().strftime("%Y-%m-%dT%H%M")
    prefix = "FAILED_" if failed else ""
    dest = archive_dir / f"{prefix}{timestamp}_{file_path.name}"
    shutil.move(str(file_path), str(dest))
    return dest
