"""Fallback traces: one JSON file per malformed model response.

Layout: data/llm_traces/<YYYY-MM-DD>/<client>/<HHMMSS.mmm>_<stage>_<id>.json
Date directories older than RETENTION_DAYS are removed at most once a day.
"""

from __future__ import annotations

import json
import os
import re
import shutil
import threading
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any

RETENTION_DAYS = 14

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9_.-]+")

_prune_lock = threading.Lock()
_last_pruned: dict[str, date] = {}  # trace root -> day of last prune


def _client_dir(client_id: str) -> str:
    return _UNSAFE_RE.sub("_", client_id or "").strip("._-") or "no_client"


def _prune_expired(root: str, today: date, retention_days: int):
    with _prune_lock:
        if retention_days <= 0 or _last_pruned.get(root) == today:
            return
        _last_pruned[root] = today

    if not os.path.isdir(root):
        return
    cutoff = today - timedelta(days=retention_days)
    for name in os.listdir(root):
        try:
            day = datetime.strptime(name, "%Y-%m-%d").date()
        except ValueError:
            continue
        if day < cutoff:
            shutil.rmtree(os.path.join(root, name), ignore_errors=True)


def write_trace(
    *,
    data_dir: str,
    stage: str,
    payload: Any,
    client_id: str = "",
    tags: dict | None = None,
    retention_days: int = RETENTION_DAYS,
    now_utc: datetime | None = None,
) -> str | None:
    """Persist one trace record; returns its path, or None if nothing was written."""
    if not data_dir or not stage:
        return None

    now = now_utc or datetime.now(timezone.utc)
    root = os.path.join(data_dir, "llm_traces")
    _prune_expired(root, now.date(), retention_days)

    out_dir = os.path.join(root, now.strftime("%Y-%m-%d"), _client_dir(client_id))
    name = f"{now.strftime('%H%M%S.%f')[:-3]}_{_UNSAFE_RE.sub('_', stage)}_{uuid.uuid4().hex[:8]}.json"
    out_path = os.path.join(out_dir, name)

    record = {
        "created_at": now.isoformat(),
        "client_id": client_id,
        "stage": stage,
        "tags": tags or {},
        "payload": payload,
    }
    try:
        os.makedirs(out_dir, exist_ok=True)
        tmp = out_path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(record, f, ensure_ascii=False, indent=2)
        os.replace(tmp, out_path)
    except OSError:
        return None
    return out_path
