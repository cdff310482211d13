# src/vsr_snapshot/cli.py
from __future__ import annotations

"""Voting power extraction from a VSR account snapshot.

Usage:
  vsr-snapshot --filters filters.json --accounts accounts.jsonl --output-sqlite snapshot.db

Every flag can also come from the environment (VSR_*), a .env file, or a
YAML/JSON config file (--config / VSR_CONFIG_PATH). Flags win.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, Iterable, List, Optional

from vsr_snapshot.env import load_dotenv_if_present
from vsr_snapshot.runtime.account_source import iter_accounts
from vsr_snapshot.runtime.config import load_parser_config, resolve_timestamp
from vsr_snapshot.runtime.engine import VoterPowerRow
from vsr_snapshot.runtime.errors import ConfigError, DecodeError
from vsr_snapshot.runtime.filters import load_filters
from vsr_snapshot.runtime.metrics import snapshot as metrics_snapshot
from vsr_snapshot.runtime.processor import ProcessorVeMnde
from vsr_snapshot.runtime.sqlite_db import SqliteDB, VeMndeStore
from vsr_snapshot.runtime.structured_logging import configure_structured_logging, log_event
from vsr_snapshot.util.pubkey import Pubkey

log = logging.getLogger("vsr_snapshot.cli")


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Compute VSR (veMNDE) voting power for every voter in an account snapshot")
    ap.add_argument("--config", dest="config_path", default=None, help="YAML or JSON config file")
    ap.add_argument("--filters", dest="filters_path", default=None, help="filters JSON with vsr_registrar_data")
    ap.add_argument("--accounts", dest="accounts_path", default=None, help="JSON Lines account dump")
    ap.add_argument("--output-sqlite", dest="output_sqlite", default=None)
    ap.add_argument("--timestamp", dest="timestamp", type=int, default=None, help="unix seconds (default: now)")
    ap.add_argument("--program-id", dest="vsr_program_id", default=None)
    ap.add_argument("--sqlite-tx-bulk", dest="sqlite_tx_bulk", type=int, default=None)
    ap.add_argument("--sqlite-cache-size", dest="sqlite_cache_size_mb", type=int, default=None, help="MB")
    ap.add_argument("--sqlite-mmap-size", dest="sqlite_mmap_size_mb", type=int, default=None, help="MB, 0 disables")
    ap.add_argument("--log-level", dest="log_level", default=None)
    ap.add_argument("--dry-run", dest="dry_run", action="store_true", help="print rows as JSON Lines, no SQLite")
    return ap.parse_args(argv)


def _print_rows(rows: Iterable[VoterPowerRow]) -> int:
    n = 0
    for row in rows:
        sys.stdout.write(json.dumps(row.to_json(), sort_keys=True, separators=(",", ":")) + "\n")
        n += 1
    return n


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv_if_present()
    args = _parse_args(argv)

    overrides: Dict[str, Any] = {
        k: v
        for k, v in vars(args).items()
        if k not in {"config_path", "dry_run"} and v is not None
    }
    try:
        cfg = load_parser_config(config_path=args.config_path, overrides=overrides)
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    configure_structured_logging(cfg.log_level)
    current_ts = resolve_timestamp(cfg)
    log_event(log, "run_start", timestamp=current_ts, dry_run=bool(args.dry_run))

    try:
        filters = load_filters(cfg.filters_path)
        log_event(
            log,
            "filters_loaded",
            path=cfg.filters_path,
            account_owners=len(filters.account_owners),
            account_mints=len(filters.account_mints),
        )
        registrar = filters.registrar()
        log_event(
            log,
            "registrar_loaded",
            realm=str(registrar.realm),
            voting_mints=sum(1 for m in registrar.voting_mints if not m.is_unused()),
        )

        processor = ProcessorVeMnde(
            registrar=registrar,
            program_id=Pubkey.from_base58(cfg.vsr_program_id),
            current_ts=current_ts,
        )
        if args.dry_run:
            sink = _print_rows
        else:
            db = SqliteDB(
                path=cfg.output_sqlite,
                cache_size_mb=cfg.sqlite_cache_size_mb,
                mmap_size_mb=cfg.sqlite_mmap_size_mb,
            )
            sink = VeMndeStore(db=db, tx_bulk=cfg.sqlite_tx_bulk).insert_rows

        stats = processor.process(iter_accounts(cfg.accounts_path), sink)
    except (DecodeError, OSError) as e:
        log_event(log, "run_failed", level=logging.ERROR, error=str(e))
        return 1

    summary = {"ok": True, "timestamp": current_ts, **stats}
    log_event(log, "run_done", counters=metrics_snapshot()["counters"], **summary)
    if not args.dry_run:
        print(json.dumps(summary, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
