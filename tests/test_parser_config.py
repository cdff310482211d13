from __future__ import annotations

from pathlib import Path

import pytest

from vsr_snapshot.ledger.constants import MARINADE_VSR_PROGRAM_ADDR
from vsr_snapshot.runtime.config import (
    default_parser_config,
    load_parser_config,
    resolve_timestamp,
)
from vsr_snapshot.runtime.errors import ConfigError

_PATHS = {"VSR_FILTERS_PATH": "f.json", "VSR_ACCOUNTS_PATH": "a.jsonl"}


def test_defaults() -> None:
    d = default_parser_config()
    assert d.vsr_program_id == MARINADE_VSR_PROGRAM_ADDR
    assert d.timestamp is None
    assert d.sqlite_tx_bulk == 1_000


def test_required_paths() -> None:
    with pytest.raises(ConfigError):
        load_parser_config(environ={})
    cfg = load_parser_config(environ=dict(_PATHS))
    assert cfg.filters_path == "f.json"
    assert cfg.accounts_path == "a.jsonl"


def test_precedence_file_then_env_then_overrides(tmp_path: Path) -> None:
    cfg_file = tmp_path / "vsr.yaml"
    cfg_file.write_text(
        "filters_path: from-file.json\n"
        "accounts_path: from-file.jsonl\n"
        "sqlite_tx_bulk: 10\n"
        "timestamp: 1700000000\n"
        "unknown_key: ignored\n",
        encoding="utf-8",
    )
    env = {"VSR_CONFIG_PATH": str(cfg_file), "VSR_SQLITE_TX_BULK": "20", "VSR_ACCOUNTS_PATH": ""}

    cfg = load_parser_config(environ=env)
    assert cfg.filters_path == "from-file.json"
    # Empty env values do not clobber.
    assert cfg.accounts_path == "from-file.jsonl"
    assert cfg.sqlite_tx_bulk == 20
    assert cfg.timestamp == 1_700_000_000

    cfg2 = load_parser_config(environ=env, overrides={"sqlite_tx_bulk": 30, "timestamp": 5})
    assert cfg2.sqlite_tx_bulk == 30
    assert resolve_timestamp(cfg2) == 5


def test_json_config_file_is_accepted(tmp_path: Path) -> None:
    p = tmp_path / "vsr.json"
    p.write_text('{"filters_path": "x.json", "accounts_path": "y.jsonl", "log_level": "DEBUG"}', encoding="utf-8")
    cfg = load_parser_config(config_path=str(p), environ={})
    assert cfg.log_level == "DEBUG"


@pytest.mark.parametrize(
    "key,value",
    [
        ("VSR_SQLITE_TX_BULK", "0"),
        ("VSR_SQLITE_TX_BULK", "lots"),
        ("VSR_SQLITE_CACHE_SIZE_MB", "-1"),
        ("VSR_TIMESTAMP", str(2**63)),
        ("VSR_PROGRAM_ID", "not-a-key"),
    ],
)
def test_invalid_values_fail_fast(key: str, value: str) -> None:
    env = dict(_PATHS)
    env[key] = value
    with pytest.raises(ConfigError):
        load_parser_config(environ=env)


def test_config_file_must_be_mapping(tmp_path: Path) -> None:
    p = tmp_path / "vsr.yaml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_parser_config(config_path=str(p), environ=dict(_PATHS))


def test_timestamp_defaults_to_wall_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("vsr_snapshot.runtime.config.time.time", lambda: 1_234.9)
    assert resolve_timestamp(load_parser_config(environ=dict(_PATHS))) == 1_234
