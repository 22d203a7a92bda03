"""Fetch and parse the TOL industry classification flat file.

The file is semicolon-delimited with quoted text fields:

    "code";"level";"classificationItemName";...
    "'01'";1;"Crop and animal production, hunting and related service activities";...

Only the first three fields are used.
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

import httpx

from pipeline.classifier import ClassificationRecord

RAW_DIR = Path(os.environ.get(
    "COMPANY_FINDER_DATA_DIR", Path(__file__).resolve().parent.parent / "data"
)) / "raw"
RAW_FILE = "classifications.csv"

# Statistics Finland classification service, TOL 2025 level 1-5 items
DEFAULT_SOURCE = (
    "https://data.stat.fi/api/classifications/v2/classifications/"
    "toimiala_1_20250101/classificationItems?content=data&meta=max&lang=en&format=csv"
)

_LINE_RE = re.compile(r'"([^"]*)";(\d+);"([^"]*)";')


def parse_classifications(text: str) -> list[ClassificationRecord]:
    """Parse the flat file into records, in file order.

    The first line is a header. Blank, truncated or otherwise malformed lines
    are skipped.
    """
    records = []
    for line in text.splitlines()[1:]:
        line = line.strip()
        if not line:
            continue
        m = _LINE_RE.search(line)
        if m is None:
            continue
        code, level, name = m.groups()
        records.append(
            ClassificationRecord(code=code.replace("'", ""), level=int(level), name=name)
        )
    return records


def _source() -> str:
    return os.environ.get("CLASSIFICATION_SOURCE", DEFAULT_SOURCE)


def download(source: str, *, force: bool = False) -> Path | None:
    """Copy the flat file into data/raw. Skips if present and force=False.

    Returns None when the source cannot be read.
    """
    dest = RAW_DIR / RAW_FILE
    if dest.exists() and not force:
        print(f"  [skip] {RAW_FILE} (already exists, {dest.stat().st_size:,} bytes)")
        return dest

    RAW_DIR.mkdir(parents=True, exist_ok=True)
    if not source.startswith(("http://", "https://")):
        src = Path(source)
        if not src.exists():
            print(f"  [warn] classification source not found ({src})")
            return None
        dest.write_bytes(src.read_bytes())
        print(f"  [copy] {RAW_FILE} -> {dest.stat().st_size:,} bytes")
        return dest

    print(f"  [download] {RAW_FILE} ...")
    try:
        resp = httpx.get(source, follow_redirects=True, timeout=60)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        print(f"  [warn] failed to download classifications: {e}")
        return None
    dest.write_bytes(resp.content)
    print(f"  [done] {RAW_FILE} -> {dest.stat().st_size:,} bytes")
    return dest


def fetch_classifications(
    source: str | None = None, *, force: bool = False
) -> list[ClassificationRecord]:
    """Load classification records, downloading the flat file if needed.

    Any failure to obtain the file yields an empty list; callers show zero
    classifications rather than failing.
    """
    path = download(source or _source(), force=force)
    if path is None:
        return []
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        print(f"  [warn] failed to read {path}: {e}")
        return []
    return parse_classifications(text)


def ingest(*, force: bool = False) -> list[ClassificationRecord]:
    """Download (if needed) and parse the classification file."""
    records = fetch_classifications(force=force)
    print(f"  [done] {len(records):,} classifications parsed")
    return records


if __name__ == "__main__":
    force = "--force" in sys.argv
    ingest(force=force)
