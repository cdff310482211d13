# src/vsr_snapshot/runtime/account_source.py
from __future__ import annotations

"""Account dump reader.

Accounts come from a JSON Lines file, one account per line:

    {"pubkey": "<base58>", "owner": "<base58>", "data": "<base64>"}

Blank lines are skipped. A malformed line aborts the scan: a broken dump is
not something a single voter can be skipped over.
"""

import base64
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import BaseModel, ConfigDict, ValidationError

from vsr_snapshot.ledger.constants import VOTER_ACCOUNT_LEN
from vsr_snapshot.runtime.errors import DecodeError
from vsr_snapshot.runtime.filters import decode_base64_field
from vsr_snapshot.util.pubkey import Pubkey


class AccountRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", strict=True)

    pubkey: str
    owner: str
    data: str


@dataclass(frozen=True)
class ProgramAccount:
    pubkey: Pubkey
    owner: Pubkey
    data: bytes


def parse_account_line(line: str, *, lineno: int = 0) -> ProgramAccount:
    try:
        rec = AccountRecord.model_validate_json(line)
    except ValidationError as e:
        raise DecodeError("invalid_account_dump", "bad_line", {"line": lineno, "errors": e.error_count()}) from e
    try:
        return ProgramAccount(
            pubkey=Pubkey.from_base58(rec.pubkey),
            owner=Pubkey.from_base58(rec.owner),
            data=decode_base64_field(rec.data, "data"),
        )
    except DecodeError as e:
        raise DecodeError("invalid_account_dump", e.reason, {"line": lineno, **e.details}) from e


def iter_accounts(path: str) -> Iterator[ProgramAccount]:
    with Path(path).open("r", encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            if not line.strip():
                continue
            yield parse_account_line(line, lineno=lineno)


def is_voter_account(acct: ProgramAccount, program_id: Pubkey) -> bool:
    return acct.owner == program_id and len(acct.data) == VOTER_ACCOUNT_LEN


def filter_voter_accounts(accounts: Iterable[ProgramAccount], program_id: Pubkey) -> Iterator[ProgramAccount]:
    for acct in accounts:
        if is_voter_account(acct, program_id):
            yield acct


def write_account_dump(path: str, accounts: Iterable[ProgramAccount]) -> int:
    """Write accounts in the dump format read by iter_accounts()."""
    n = 0
    with Path(path).open("w", encoding="utf-8") as fh:
        for a in accounts:
            rec = {"pubkey": str(a.pubkey), "owner": str(a.owner), "data": base64.b64encode(a.data).decode("ascii")}
            fh.write(json.dumps(rec, sort_keys=True, separators=(",", ":")) + "\n")
            n += 1
    return n


__all__ = [
    "AccountRecord",
    "ProgramAccount",
    "parse_account_line",
    "iter_accounts",
    "is_voter_account",
    "filter_voter_accounts",
    "write_account_dump",
]
