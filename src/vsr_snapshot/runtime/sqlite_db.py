# src/vsr_snapshot/runtime/sqlite_db.py
from __future__ import annotations

import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence

from vsr_snapshot.ledger.constants import VE_MNDE_ACCOUNT_TABLE
from vsr_snapshot.runtime.engine import VoterPowerRow

INSERT_VE_MNDE_ACCOUNT_QUERY = (
    f"INSERT OR REPLACE INTO {VE_MNDE_ACCOUNT_TABLE} (pubkey, voter_authority, voting_power, owner) "
    "VALUES (?, ?, ?, ?);"
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except ValueError:
        return int(default)


class SqliteDB:
    """SQLite output database for one snapshot run.

    SQLite allows only one writer at a time. BEGIN IMMEDIATE can transiently
    fail with "database is locked" if another process has the file open for
    writing, so write_tx() retries with bounded backoff.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str, cache_size_mb: int = 64, mmap_size_mb: int = 0) -> None:
        self.path = str(path)
        self.cache_size_mb = max(0, int(cache_size_mb))
        self.mmap_size_mb = max(0, int(mmap_size_mb))

    def ensure_parent_dir(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()

        connect_timeout_s = float(_env_int("VSR_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0
        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # we manage BEGIN/COMMIT ourselves
        )
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        if mode and mode != "wal":
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        # Output is reproducible from the snapshot; NORMAL is durable enough under WAL.
        con.execute("PRAGMA synchronous=NORMAL;")
        con.execute("PRAGMA temp_store=MEMORY;")

        # Negative cache_size means KiB.
        con.execute(f"PRAGMA cache_size={-self.cache_size_mb * 1024};")
        if self.mmap_size_mb:
            con.execute(f"PRAGMA mmap_size={self.mmap_size_mb * 1024 * 1024};")

        busy_ms = max(0, _env_int("VSR_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )
            con.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {VE_MNDE_ACCOUNT_TABLE} (
                  pubkey TEXT NOT NULL PRIMARY KEY,
                  voter_authority TEXT NOT NULL,
                  voting_power TEXT NOT NULL,
                  owner TEXT NOT NULL
                );
                """
            )

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except ValueError:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to write into an incompatible output database."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction with bounded retry on writer-lock contention.

        Policy:
          - retry BEGIN IMMEDIATE until a deadline
          - exponential backoff with jitter
          - then raise if the lock cannot be acquired within the deadline
        """
        deadline_ms = max(250, _env_int("VSR_SQLITE_WRITE_DEADLINE_MS", 30_000))
        deadline_ts = _now_ms() + deadline_ms

        base_sleep = max(0.001, float(_env_int("VSR_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        max_sleep = max(base_sleep, float(_env_int("VSR_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
                    time.sleep(sleep_s * (0.5 + random.random()))
                    attempt += 1

            try:
                yield con
                con.execute("COMMIT;")
            except BaseException:
                con.execute("ROLLBACK;")
                raise


class VeMndeStore:
    """Writes voter power rows into the vemnde_accounts table."""

    def __init__(self, *, db: SqliteDB, tx_bulk: int = 1_000) -> None:
        self._db = db
        self._tx_bulk = max(1, int(tx_bulk))
        self._db.init_schema()

    def insert_rows(self, rows: Iterable[VoterPowerRow]) -> int:
        """Insert rows, committing every tx_bulk inserts. Returns rows written."""
        written = 0
        batch: List[Sequence[str]] = []
        for row in rows:
            batch.append(_row_params(row))
            if len(batch) >= self._tx_bulk:
                written += self._flush(batch)
                batch = []
        if batch:
            written += self._flush(batch)
        return written

    def _flush(self, batch: List[Sequence[str]]) -> int:
        with self._db.write_tx() as con:
            con.executemany(INSERT_VE_MNDE_ACCOUNT_QUERY, batch)
        return len(batch)

    def count(self) -> int:
        with self._db.connection() as con:
            row = con.execute(f"SELECT COUNT(*) FROM {VE_MNDE_ACCOUNT_TABLE};").fetchone()
            return int(row[0]) if row is not None else 0

    def read_all(self) -> List[dict]:
        with self._db.connection() as con:
            cur = con.execute(
                f"SELECT pubkey, voter_authority, voting_power, owner FROM {VE_MNDE_ACCOUNT_TABLE} ORDER BY pubkey;"
            )
            return [dict(r) for r in cur.fetchall()]


def _row_params(row: VoterPowerRow) -> Sequence[str]:
    j = row.to_json()
    return (j["pubkey"], j["voter_authority"], j["voting_power"], j["owner"])


__all__ = ["SqliteDB", "VeMndeStore", "INSERT_VE_MNDE_ACCOUNT_QUERY"]
