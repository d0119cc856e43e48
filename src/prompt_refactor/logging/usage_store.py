"""SQLite log of refactor runs: which models were tried and how runs failed."""

from __future__ import annotations

import json
import sqlite3
from collections import Counter
from datetime import datetime
from pathlib import Path

from prompt_refactor.logging.models import UsageLog, UsageReport

DEFAULT_DB_PATH = Path.home() / ".prompt-refactor" / "usage.db"

# attempts_by_model is stored as JSON text
_COLUMNS = (
    "id",
    "timestamp",
    "mode",
    "prompt_id",
    "model",
    "attempts_json",
    "segment_count",
    "elapsed_seconds",
    "input_tokens",
    "output_tokens",
    "cost_usd",
    "failure_kind",
    "error_message",
)


class UsageStore:
    """Append-only run log with a per-month report."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("""
                CREATE TABLE IF NOT EXISTS runs (
                    id TEXT PRIMARY KEY,
                    timestamp TEXT NOT NULL,
                    mode TEXT NOT NULL,
                    prompt_id TEXT,
                    model TEXT,
                    attempts_json TEXT NOT NULL DEFAULT '{}',
                    segment_count INTEGER NOT NULL DEFAULT 0,
                    elapsed_seconds REAL NOT NULL DEFAULT 0,
                    input_tokens INTEGER NOT NULL DEFAULT 0,
                    output_tokens INTEGER NOT NULL DEFAULT 0,
                    cost_usd REAL NOT NULL DEFAULT 0,
                    failure_kind TEXT,
                    error_message TEXT
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS runs_by_time ON runs (timestamp)")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def record(self, log: UsageLog) -> None:
        row = log.model_dump(exclude={"attempts_by_model"})
        row["timestamp"] = log.timestamp.isoformat()
        row["attempts_json"] = json.dumps(log.attempts_by_model)
        placeholders = ", ".join("?" for _ in _COLUMNS)
        with self._connect() as conn:
            conn.execute(
                f"INSERT INTO runs ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                tuple(row[col] for col in _COLUMNS),
            )

    def recent(self, limit: int = 20, mode: str | None = None) -> list[UsageLog]:
        """Newest runs first, optionally only one mode."""
        query = "SELECT * FROM runs"
        params: tuple = ()
        if mode is not None:
            query += " WHERE mode = ?"
            params = (mode,)
        query += " ORDER BY timestamp DESC, rowid DESC LIMIT ?"
        with self._connect() as conn:
            rows = conn.execute(query, (*params, limit)).fetchall()
        return [self._to_log(row) for row in rows]

    def monthly_report(self, now: datetime | None = None) -> UsageReport:
        now = now or datetime.now()
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM runs WHERE timestamp >= ?", (month_start.isoformat(),)
            ).fetchall()
        logs = [self._to_log(row) for row in rows]

        attempts: Counter[str] = Counter()
        for log in logs:
            attempts.update(log.attempts_by_model)
        failures = Counter(log.failure_kind for log in logs if not log.success)
        segments = [log.segment_count for log in logs if log.mode == "refactor" and log.success]

        return UsageReport(
            month=now.strftime("%Y-%m"),
            runs=len(logs),
            failures=sum(failures.values()),
            input_tokens=sum(log.input_tokens for log in logs),
            output_tokens=sum(log.output_tokens for log in logs),
            cost_usd=sum(log.cost_usd for log in logs),
            avg_segments=round(sum(segments) / len(segments), 1) if segments else None,
            failures_by_kind=dict(failures.most_common()),
            attempts_by_model=dict(attempts),
        )

    @staticmethod
    def _to_log(row: sqlite3.Row) -> UsageLog:
        data = dict(row)
        data["attempts_by_model"] = json.loads(data.pop("attempts_json"))
        return UsageLog.model_validate(data)
