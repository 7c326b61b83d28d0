"""
util.py
Cross-cutting utilities:
- Logging setup with the "[info] message" prefix used across the CLI
- Identifier helpers: bind-path digest, 12-char truncation
- JSON rendering for inspect output and export manifests
"""

from __future__ import annotations
import hashlib, json, logging, sys

SHORT_ID_LEN = 12


class _PrefixFormatter(logging.Formatter):
    def format(self, record):
        return f"[{record.levelname.lower()}] {record.getMessage()}"


def setup_logging(level: str = "INFO") -> None:
    """Route all dockvol logging to stderr; stdout carries command output."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_PrefixFormatter())
    root = logging.getLogger("dockvol")
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root.propagate = False


def path_digest(s: str) -> str:
    """Deterministic 64-char hex id from sha256(s)."""
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def truncate_id(vol_id: str) -> str:
    return vol_id[:SHORT_ID_LEN]


def to_json(obj) -> str:
    return json.dumps(obj, indent="\t")
