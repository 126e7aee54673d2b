"""Content-addressed cache for rendered invoice PDFs.

The key hashes only what the invoice prints about the order (id, total,
date and each line's product id, name, quantity and price), so unrelated
snapshot changes do not bust the cache. Entries live as ``<key>.pdf`` files
and expire ``ttl`` after their mtime; stale files are deleted when read.
The cache is an optimisation only: every I/O error is logged and treated as
a miss.
"""

import hashlib
import json
import os
import time
from datetime import timedelta
from pathlib import Path

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_DIR = "cache/pdfs"
DEFAULT_TTL = timedelta(hours=1)


def cache_key(snapshot: dict) -> str:
    projection = {
        "id": snapshot.get("id"),
        "total_amount": snapshot.get("total_amount"),
        "order_date": snapshot.get("order_date"),
        "lines": [
            {
                "product_id": line.get("product_id"),
                "name": (line.get("product") or {}).get("name"),
                "quantity": line.get("quantity"),
                "price": line.get("price"),
            }
            for line in snapshot.get("line_items", [])
        ],
    }
    canonical = json.dumps(projection, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.md5(canonical.encode("utf-8")).hexdigest()


class InvoicePdfCache:
    def __init__(self, cache_dir=None, ttl: timedelta = DEFAULT_TTL, clock=time.time):
        self.cache_dir = Path(cache_dir or os.environ.get("INVOICE_CACHE_DIR", DEFAULT_CACHE_DIR))
        self.ttl = ttl
        self._clock = clock

    def path_for(self, snapshot: dict) -> Path:
        return self.cache_dir / f"{cache_key(snapshot)}.pdf"

    def get(self, snapshot: dict) -> bytes | None:
        path = self.path_for(snapshot)
        try:
            if not path.exists():
                return None
            age = self._clock() - path.stat().st_mtime
            if age > self.ttl.total_seconds():
                path.unlink(missing_ok=True)
                logger.debug("Stale invoice PDF evicted", order_id=snapshot.get("id"), age_seconds=round(age))
                return None
            return path.read_bytes()
        except OSError as exc:
            logger.warning("Invoice PDF cache read failed", order_id=snapshot.get("id"), error=str(exc))
            return None

    def set(self, snapshot: dict, pdf: bytes) -> None:
        path = self.path_for(snapshot)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".tmp")
            tmp.write_bytes(pdf)
            tmp.replace(path)
        except OSError as exc:
            logger.warning("Invoice PDF cache write failed", order_id=snapshot.get("id"), error=str(exc))

    def clear(self) -> int:
        removed = 0
        try:
            for path in self.cache_dir.glob("*.pdf"):
                path.unlink(missing_ok=True)
                removed += 1
        except OSError as exc:
            logger.warning("Invoice PDF cache clear failed", error=str(exc))
        return removed
