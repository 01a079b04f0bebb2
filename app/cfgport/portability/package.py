"""Archive building, extraction and manifest handling.

A package is a deflate-compressed ZIP file whose first entry is
``manifest.json`` (the serialized :class:`ExportMetadata`), followed by the
packaged files at their archive paths.
"""

from __future__ import annotations

import hashlib
import json
import logging
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from cfgport.portability.errors import FormatError, ParseError
from cfgport.portability.models import MANIFEST_NAME, ExportMetadata

logger = logging.getLogger(__name__)


def checksum(content: bytes | str) -> str:
    """Calculate the SHA-256 hex digest of some content.

    Strings are UTF-8 encoded before hashing.
    """
    data = content.encode("utf-8") if isinstance(content, str) else content
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True, slots=True)
class ArchiveEntry:
    """One item to write into an archive.

    Exactly one of ``source`` and ``content`` is set. A directory source is
    added recursively below ``destination``.

    Attributes:
        destination: Archive-internal path.
        source: File or directory on disk.
        content: In-memory content (e.g. a sanitized config file).
    """

    destination: str
    source: Path | None = None
    content: bytes | None = None

    def __post_init__(self) -> None:
        """Validate entry data after initialization."""
        if (self.source is None) == (self.content is None):
            msg = f"Archive entry needs exactly one of source or content: {self.destination}"
            raise ValueError(msg)

    @classmethod
    def from_text(cls, destination: str, text: str) -> ArchiveEntry:
        """Build an entry from text content."""
        return cls(destination=destination, content=text.encode("utf-8"))


def dump_manifest(metadata: ExportMetadata) -> bytes:
    """Serialize a manifest to JSON bytes."""
    return (metadata.model_dump_json(indent=2) + "\n").encode("utf-8")


def load_manifest(data: bytes | str) -> ExportMetadata:
    """Parse manifest JSON.

    Raises:
        ParseError: If the content is not valid JSON or fails validation.
    """
    try:
        raw = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        msg = f"Manifest is not valid JSON: {e}"
        raise ParseError(msg) from e

    try:
        return ExportMetadata.model_validate(raw)
    except ValidationError as e:
        msg = f"Invalid manifest: {e}"
        raise ParseError(msg) from e


def declared_version(data: bytes | str) -> str | None:
    """Get the schema version a manifest declares, without validating it.

    Manifests of other schema versions may carry fields this engine does
    not know, so the version has to be read before model validation.

    Returns:
        The declared ``format_version``, or None when the content is not a
        JSON object or declares no usable version.
    """
    try:
        raw = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if not isinstance(raw, dict):
        return None
    value = raw.get("format_version")
    if isinstance(value, bool) or not isinstance(value, str | int | float):
        return None
    return str(value)


def is_archive(path: Path) -> bool:
    """Check if a path is a readable ZIP archive."""
    return path.is_file() and zipfile.is_zipfile(path)


def list_entries(path: Path) -> list[str]:
    """List the file entries of an archive.

    Raises:
        FormatError: If the file is not a readable archive.
    """
    try:
        with zipfile.ZipFile(path) as archive:
            return [name for name in archive.namelist() if not name.endswith("/")]
    except (zipfile.BadZipFile, OSError) as e:
        msg = f"Cannot read package {path}: {e}"
        raise FormatError(msg) from e


def _write_entry(archive: zipfile.ZipFile, entry: ArchiveEntry) -> int:
    source = entry.source
    if source is None:
        archive.writestr(entry.destination, entry.content or b"")
        return 1

    if source.is_dir():
        count = 0
        for child in sorted(source.rglob("*")):
            if child.is_file():
                rel = child.relative_to(source).as_posix()
                archive.write(child, f"{entry.destination}/{rel}")
                count += 1
        return count

    if not source.is_file():
        msg = f"Source file not found: {source}"
        raise FileNotFoundError(msg)
    archive.write(source, entry.destination)
    return 1


def build_archive(
    entries: Iterable[ArchiveEntry],
    metadata: ExportMetadata,
    output_path: Path,
) -> Path:
    """Write a package archive.

    The manifest is always the first entry.

    Args:
        entries: Items to package.
        metadata: Manifest describing the items.
        output_path: Archive file to create (parent directories are created).

    Returns:
        Path to the written archive.

    Raises:
        OSError: If a source is missing or unreadable, or the archive
            cannot be written.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)

    written = 0
    try:
        with zipfile.ZipFile(output_path, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            archive.writestr(MANIFEST_NAME, dump_manifest(metadata))
            for entry in entries:
                written += _write_entry(archive, entry)
    except OSError:
        output_path.unlink(missing_ok=True)
        raise

    logger.debug("Wrote %d files to %s", written, output_path)
    return output_path


def extract_archive(path: Path, target_dir: Path) -> ExportMetadata:
    """Extract a package into a directory and parse its manifest.

    Args:
        path: Package archive.
        target_dir: Directory to extract into (created if missing).

    Returns:
        The parsed manifest.

    Raises:
        FormatError: If the file is not an archive or has no manifest.
        ParseError: If the manifest is malformed.
    """
    if not is_archive(path):
        msg = f"Not a valid package archive: {path}"
        raise FormatError(msg)

    target_dir.mkdir(parents=True, exist_ok=True)
    try:
        with zipfile.ZipFile(path) as archive:
            archive.extractall(target_dir)
    except (zipfile.BadZipFile, OSError) as e:
        msg = f"Cannot extract package {path}: {e}"
        raise FormatError(msg) from e

    manifest_path = target_dir / MANIFEST_NAME
    if not manifest_path.is_file():
        msg = f"Package has no {MANIFEST_NAME}"
        raise FormatError(msg)

    return load_manifest(manifest_path.read_bytes())
