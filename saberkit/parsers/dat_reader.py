"""Utility to read Beat Saber .dat files with automatic gzip detection."""

import gzip
import json
from pathlib import Path

GZIP_MAGIC = b'\x1f\x8b'


def decode_dat(raw: bytes | str) -> dict:
    """Decode .dat content, auto-detecting gzip compression. Returns parsed JSON."""
    if isinstance(raw, bytes) and raw[:2] == GZIP_MAGIC:
        raw = gzip.decompress(raw)
    if isinstance(raw, bytes):
        # Some editors write a UTF-8 BOM.
        raw = raw.decode("utf-8-sig")
    return json.loads(raw)


def read_dat_file(filepath: Path) -> dict:
    """Read a .dat file, auto-detecting gzip compression. Returns parsed JSON dict."""
    return decode_dat(filepath.read_bytes())
