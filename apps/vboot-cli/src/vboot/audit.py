"""Audit trail of host changes: JSONL file + SQLite database.

Every write goes through ``log_event``, which masks secret-looking params
and credentials embedded in URLs before anything reaches disk.
"""

from __future__ import annotations

import getpass
import json
import logging
import os
import re
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

from vboot_common import TOKEN_MASK, AuditEvent, ReconciliationResult

from vboot.config import get_config

log = logging.getLogger(__name__)

_SECRET_KEY_RE = re.compile(r"token|password|passwd|secret|api_?key", re.IGNORECASE)
_URL_CREDENTIAL_RE = re.compile(r"(?P<prefix>https?://[^:/@\s]+:)[^@\s]+@")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS audit_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    host_id TEXT NOT NULL,
    actor TEXT NOT NULL,
    action TEXT NOT NULL,
    target TEXT NOT NULL DEFAULT '',
    params TEXT NOT NULL DEFAULT '{}',
    outcomes TEXT NOT NULL DEFAULT '{}',
    changed INTEGER,
    result TEXT NOT NULL DEFAULT 'success',
    error TEXT,
    duration_ms INTEGER
);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_logs(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action ON audit_logs(action);
"""


def _get_actor() -> str:
    return os.environ.get("VBOOT_ACTOR") or os.environ.get("SUDO_USER") or getpass.getuser()


def _mask_value(value: Any) -> Any:
    if isinstance(value, str):
        return _URL_CREDENTIAL_RE.sub(rf"\g<prefix>{TOKEN_MASK}@", value)
    if isinstance(value, dict):
        return redact_params(value)
    if isinstance(value, (list, tuple)):
        return [_mask_value(v) for v in value]
    return value


def redact_params(params: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``params`` with secret-named keys and URL credentials masked."""
    return {
        key: TOKEN_MASK if _SECRET_KEY_RE.search(key) else _mask_value(value)
        for key, value in params.items()
    }


def redact_text(text: str) -> str:
    return _URL_CREDENTIAL_RE.sub(rf"\g<prefix>{TOKEN_MASK}@", text)


def _init_db(db_path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(str(db_path))
    conn.executescript(_SCHEMA)
    return conn


def _write_jsonl(path: Path, event: AuditEvent) -> None:
    with open(path, "a") as f:
        f.write(event.to_jsonl() + "\n")


def _write_sqlite(db_path: Path, event: AuditEvent) -> None:
    conn = _init_db(db_path)
    try:
        conn.execute(
            """INSERT INTO audit_logs
               (timestamp, host_id, actor, action, target, params, outcomes, changed,
                result, error, duration_ms)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                event.timestamp.isoformat(),
                event.host_id,
                event.actor,
                event.action,
                event.target,
                json.dumps(event.params, default=str),
                json.dumps(event.outcomes),
                None if event.changed is None else int(event.changed),
                event.result,
                event.error,
                event.duration_ms,
            ),
        )
        conn.commit()
    finally:
        conn.close()


def log_event(event: AuditEvent) -> None:
    """Redact, then write an audit event to both JSONL and SQLite."""
    event.target = redact_text(event.target)
    event.params = redact_params(event.params)
    if event.error:
        event.error = redact_text(event.error)

    cfg = get_config()
    cfg.log_dir.mkdir(parents=True, exist_ok=True)
    cfg.audit_db_path.parent.mkdir(parents=True, exist_ok=True)
    _write_jsonl(cfg.audit_jsonl_path, event)
    _write_sqlite(cfg.audit_db_path, event)
    log.debug("audit %s %s: %s", event.action, event.target, event.result)


def record_reconciliation(event: AuditEvent, result: ReconciliationResult) -> None:
    """Attach the per-outcome directive counts of a reconciled file."""
    event.outcomes = result.summary()
    event.changed = result.changed


@contextmanager
def audit(action: str, target: str = "", **params: Any) -> Generator[AuditEvent, None, None]:
    """Context manager that records timing and success/failure."""
    cfg = get_config()
    event = AuditEvent(
        host_id=cfg.host_id,
        actor=_get_actor(),
        action=action,
        target=target,
        params=params,
    )
    start = time.monotonic()
    try:
        yield event
        event.result = "success"
    except Exception as exc:
        event.result = "failure"
        event.error = str(exc)
        raise
    finally:
        event.duration_ms = int((time.monotonic() - start) * 1000)
        log_event(event)
