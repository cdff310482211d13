# src/vsr_snapshot/runtime/config.py
from __future__ import annotations

import os
import time
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from vsr_snapshot.ledger.constants import I64_MAX, I64_MIN, MARINADE_VSR_PROGRAM_ADDR
from vsr_snapshot.runtime.errors import ConfigError, DecodeError
from vsr_snapshot.util.pubkey import Pubkey

Json = Dict[str, Any]


def _as_int(v: Any, default: Optional[int], *, field: str) -> Optional[int]:
    if v is None:
        return default
    if isinstance(v, str) and not v.strip():
        return default
    if isinstance(v, bool):
        raise ConfigError(f"{field} must be an integer; got: {v!r}")
    try:
        return int(str(v).strip()) if isinstance(v, str) else int(v)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{field} must be an integer; got: {v!r}") from e


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class ParserConfig:
    # Output SQLite DB (e.g. snapshot.db)
    output_sqlite: str
    # Filters file produced by the snapshot manager (JSON)
    filters_path: str
    # JSON Lines dump of the program accounts to scan
    accounts_path: str

    vsr_program_id: str

    # Unix seconds to compute voting power at; None means "now" at run start.
    timestamp: Optional[int]

    # Inserts per SQLite write transaction
    sqlite_tx_bulk: int
    sqlite_cache_size_mb: int
    # 0 disables memory-mapped IO
    sqlite_mmap_size_mb: int

    log_level: str


_ENV_KEYS: Dict[str, str] = {
    "output_sqlite": "VSR_OUTPUT_SQLITE",
    "filters_path": "VSR_FILTERS_PATH",
    "accounts_path": "VSR_ACCOUNTS_PATH",
    "vsr_program_id": "VSR_PROGRAM_ID",
    "timestamp": "VSR_TIMESTAMP",
    "sqlite_tx_bulk": "VSR_SQLITE_TX_BULK",
    "sqlite_cache_size_mb": "VSR_SQLITE_CACHE_SIZE_MB",
    "sqlite_mmap_size_mb": "VSR_SQLITE_MMAP_SIZE_MB",
    "log_level": "VSR_LOG_LEVEL",
}

_INT_FIELDS = {"timestamp", "sqlite_tx_bulk", "sqlite_cache_size_mb", "sqlite_mmap_size_mb"}


def default_parser_config() -> ParserConfig:
    return ParserConfig(
        output_sqlite="./data/snapshot.db",
        filters_path="",
        accounts_path="",
        vsr_program_id=MARINADE_VSR_PROGRAM_ADDR,
        timestamp=None,
        sqlite_tx_bulk=1_000,
        sqlite_cache_size_mb=64,
        sqlite_mmap_size_mb=0,
        log_level="INFO",
    )


def _merge(cfg: ParserConfig, raw: Mapping[str, Any]) -> ParserConfig:
    """Overlay the known, non-empty keys of `raw` onto `cfg`."""
    known = {f.name for f in fields(ParserConfig)}
    changes: Json = {}
    for k, v in raw.items():
        if k not in known or v is None:
            continue
        cur = getattr(cfg, k)
        if k in _INT_FIELDS:
            changes[k] = _as_int(v, cur, field=k)
        else:
            changes[k] = _as_str(v, cur)
    return replace(cfg, **changes)


def read_config_file(path: str, base: Optional[ParserConfig] = None) -> ParserConfig:
    """Overlay a YAML (or JSON, a YAML subset) config file onto `base`."""
    p = Path(path)
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config file {path!r}: {e}") from e
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("config file must be a mapping")
    return _merge(base or default_parser_config(), raw)


def apply_env_overrides(cfg: ParserConfig, environ: Optional[Mapping[str, str]] = None) -> ParserConfig:
    env = os.environ if environ is None else environ
    raw = {name: env.get(key) for name, key in _ENV_KEYS.items()}
    return _merge(cfg, raw)


def validate_parser_config(cfg: ParserConfig) -> None:
    """Fail-fast validation: refuse to start a run on a misconfiguration."""
    for name, p in (
        ("output_sqlite", cfg.output_sqlite),
        ("filters_path", cfg.filters_path),
        ("accounts_path", cfg.accounts_path),
    ):
        if not isinstance(p, str) or not p.strip():
            raise ConfigError(f"{name} must be a non-empty string")

    try:
        Pubkey.from_base58(cfg.vsr_program_id)
    except DecodeError as e:
        raise ConfigError(f"vsr_program_id is not a valid address: {cfg.vsr_program_id!r}") from e

    if cfg.timestamp is not None and not (I64_MIN <= int(cfg.timestamp) <= I64_MAX):
        raise ConfigError(f"timestamp must fit in i64; got: {cfg.timestamp}")

    if int(cfg.sqlite_tx_bulk) < 1:
        raise ConfigError(f"sqlite_tx_bulk must be >= 1; got: {cfg.sqlite_tx_bulk}")
    if int(cfg.sqlite_cache_size_mb) < 0:
        raise ConfigError(f"sqlite_cache_size_mb must be >= 0; got: {cfg.sqlite_cache_size_mb}")
    if int(cfg.sqlite_mmap_size_mb) < 0:
        raise ConfigError(f"sqlite_mmap_size_mb must be >= 0; got: {cfg.sqlite_mmap_size_mb}")


def load_parser_config(
    *,
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ParserConfig:
    """defaults < config file < environment < explicit overrides (CLI flags)."""
    env = os.environ if environ is None else environ
    cfg = default_parser_config()

    p = config_path or env.get("VSR_CONFIG_PATH")
    if p:
        cfg = read_config_file(p, cfg)

    cfg = apply_env_overrides(cfg, env)
    if overrides:
        cfg = _merge(cfg, overrides)

    validate_parser_config(cfg)
    return cfg


def resolve_timestamp(cfg: ParserConfig) -> int:
    if cfg.timestamp is not None:
        return int(cfg.timestamp)
    return int(time.time())


__all__ = [
    "ParserConfig",
    "default_parser_config",
    "read_config_file",
    "apply_env_overrides",
    "validate_parser_config",
    "load_parser_config",
    "resolve_timestamp",
]
