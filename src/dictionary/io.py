"""Helpers for fetching dictionary archives and reading their JSON members."""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Dict
from urllib.parse import urlparse

import requests

SIDECAR_SUFFIX = ".source.json"
CHUNK_SIZE = 64 * 1024


def archive_digest(archive: Path) -> str:
    """SHA256 of an archive on disk, used to tell whether a cached copy is intact."""
    digest = hashlib.sha256()
    with archive.open("rb") as handle:
        while True:
            block = handle.read(CHUNK_SIZE)
            if not block:
                break
            digest.update(block)
    return digest.hexdigest()


def sidecar_path(archive: Path) -> Path:
    return archive.with_suffix(SIDECAR_SUFFIX)


def load_source_record(archive: Path) -> Dict[str, Any]:
    """Where a cached archive came from; empty when unknown or unreadable."""
    path = sidecar_path(archive)
    try:
        record = json.loads(path.read_text(encoding="utf-8"))
    except (FileNotFoundError, json.JSONDecodeError):
        return {}
    return record if isinstance(record, dict) else {}


def save_source_record(archive: Path, url: str) -> None:
    record = {"url": url, "sha256": archive_digest(archive)}
    sidecar_path(archive).write_text(json.dumps(record, indent=2, sort_keys=True), encoding="utf-8")


def is_cached(archive: Path, url: str) -> bool:
    """True when ``archive`` was downloaded from ``url`` and still matches its recorded digest."""
    if not archive.exists():
        return False
    record = load_source_record(archive)
    if record.get("url") != url:
        return False
    expected = record.get("sha256")
    return not expected or archive_digest(archive) == expected


def download_stream(url: str, dest: Path) -> None:
    """Stream a remote archive into ``dest``; a failed transfer leaves nothing behind."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    handle, partial = tempfile.mkstemp(prefix=f".{dest.name}.", suffix=".part", dir=dest.parent)
    try:
        with os.fdopen(handle, "wb") as out, requests.get(url, stream=True, timeout=60) as response:
            response.raise_for_status()
            for block in response.iter_content(chunk_size=CHUNK_SIZE):
                if block:
                    out.write(block)
        os.replace(partial, dest)
    finally:
        if os.path.exists(partial):
            os.unlink(partial)


def archive_name_from_url(url: str) -> str:
    name = Path(urlparse(url).path).name
    return name if name.endswith(".zip") else f"{name or 'dictionary'}.zip"


def fetch_archive(url: str, archive_root: Path, force: bool = False) -> Path:
    """
    Download a dictionary archive into ``archive_root`` unless a verified copy exists.

    Returns
    -------
    Path
        Location of the archive on disk.
    """
    archive = archive_root / archive_name_from_url(url)
    if not force and is_cached(archive, url):
        print(f"[import] {archive.name} present; skipping download.")
        return archive

    print(f"[import] Downloading {url}")
    download_stream(url, archive)
    save_source_record(archive, url)
    return archive


def read_json_member(archive: zipfile.ZipFile, name: str) -> Any:
    """Decode one JSON member of an open archive."""
    with archive.open(name) as handle:
        return json.loads(handle.read().decode("utf-8-sig"))


__all__ = [
    "SIDECAR_SUFFIX",
    "archive_digest",
    "archive_name_from_url",
    "download_stream",
    "fetch_archive",
    "is_cached",
    "load_source_record",
    "read_json_member",
    "save_source_record",
]
