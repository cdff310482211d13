# src/vsr_snapshot/ledger/layout.py
from __future__ import annotations

"""Fixed binary layout of voter-stake-registry accounts.

Accounts are Anchor (borsh) encoded: little endian integers, bools as a
single 0/1 byte, fixed arrays inline, and an 8-byte discriminator in front.
Decoding reads a prefix of the buffer; trailing bytes are ignored, which
matches how Anchor deserializes account data.

Reserved fields are skipped and not kept.
"""

import struct
from typing import List

from vsr_snapshot.ledger.constants import (
    DEPOSIT_ENTRY_LEN,
    DEPOSIT_SLOTS,
    LOCKUP_LEN,
    REGISTRAR_ACCOUNT_LEN,
    VOTER_ACCOUNT_LEN,
    VOTING_MINT_CONFIG_LEN,
    VOTING_MINT_SLOTS,
)
from vsr_snapshot.ledger.deposit import DepositEntry
from vsr_snapshot.ledger.lockup import Lockup, LockupKind
from vsr_snapshot.ledger.registrar import Registrar, Voter
from vsr_snapshot.ledger.voting_mint import VotingMintConfig
from vsr_snapshot.runtime.errors import DecodeError
from vsr_snapshot.util.pubkey import PUBKEY_LEN, Pubkey

DISCRIMINATOR_LEN: int = 8

_U8 = struct.Struct("<B")
_I8 = struct.Struct("<b")
_U64 = struct.Struct("<Q")
_I64 = struct.Struct("<q")


class _Reader:
    def __init__(self, data: bytes, *, what: str) -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0
        self._what = what

    @property
    def pos(self) -> int:
        return self._pos

    def take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise DecodeError(
                "short_account_data",
                f"{self._what}_truncated",
                {"need": end, "have": len(self._data)},
            )
        out = self._data[self._pos:end].tobytes()
        self._pos = end
        return out

    def skip(self, n: int) -> None:
        self.take(n)

    def _unpack(self, s: struct.Struct) -> int:
        return int(s.unpack(self.take(s.size))[0])

    def u8(self) -> int:
        return self._unpack(_U8)

    def i8(self) -> int:
        return self._unpack(_I8)

    def u64(self) -> int:
        return self._unpack(_U64)

    def i64(self) -> int:
        return self._unpack(_I64)

    def bool(self) -> bool:
        b = self.u8()
        if b not in (0, 1):
            raise DecodeError("invalid_bool", f"{self._what}_bool_not_0_or_1", {"value": b, "offset": self._pos - 1})
        return b == 1

    def pubkey(self) -> Pubkey:
        return Pubkey(self.take(PUBKEY_LEN))


def _read_voting_mint_config(r: _Reader) -> VotingMintConfig:
    start = r.pos
    cfg = VotingMintConfig(
        mint=r.pubkey(),
        grant_authority=r.pubkey(),
        baseline_vote_weight_scaled_factor=r.u64(),
        max_extra_lockup_vote_weight_scaled_factor=r.u64(),
        lockup_saturation_secs=r.u64(),
        digit_shift=r.i8(),
    )
    r.skip(VOTING_MINT_CONFIG_LEN - (r.pos - start))
    return cfg


def _read_lockup(r: _Reader) -> Lockup:
    start = r.pos
    start_ts = r.i64()
    end_ts = r.i64()
    kind = LockupKind.from_u8(r.u8())
    r.skip(LOCKUP_LEN - (r.pos - start))
    return Lockup(start_ts=start_ts, end_ts=end_ts, kind=kind)


def _read_deposit_entry(r: _Reader) -> DepositEntry:
    start = r.pos
    lockup = _read_lockup(r)
    entry = DepositEntry(
        lockup=lockup,
        amount_deposited_native=r.u64(),
        amount_initially_locked_native=r.u64(),
        is_used=r.bool(),
        allow_clawback=r.bool(),
        voting_mint_config_idx=r.u8(),
    )
    r.skip(DEPOSIT_ENTRY_LEN - (r.pos - start))
    return entry


def decode_registrar(data: bytes) -> Registrar:
    if len(data) < REGISTRAR_ACCOUNT_LEN:
        raise DecodeError("short_account_data", "registrar_truncated", {"need": REGISTRAR_ACCOUNT_LEN, "have": len(data)})
    r = _Reader(data, what="registrar")
    r.skip(DISCRIMINATOR_LEN)
    governance_program_id = r.pubkey()
    realm = r.pubkey()
    realm_governing_token_mint = r.pubkey()
    realm_authority = r.pubkey()
    r.skip(32)  # reserved1
    voting_mints: List[VotingMintConfig] = [_read_voting_mint_config(r) for _ in range(VOTING_MINT_SLOTS)]
    time_offset = r.i64()
    bump = r.u8()
    return Registrar(
        governance_program_id=governance_program_id,
        realm=realm,
        realm_governing_token_mint=realm_governing_token_mint,
        realm_authority=realm_authority,
        voting_mints=tuple(voting_mints),
        time_offset=time_offset,
        bump=bump,
    )


def decode_voter(data: bytes) -> Voter:
    if len(data) < VOTER_ACCOUNT_LEN:
        raise DecodeError("short_account_data", "voter_truncated", {"need": VOTER_ACCOUNT_LEN, "have": len(data)})
    r = _Reader(data, what="voter")
    r.skip(DISCRIMINATOR_LEN)
    voter_authority = r.pubkey()
    registrar = r.pubkey()
    deposits = tuple(_read_deposit_entry(r) for _ in range(DEPOSIT_SLOTS))
    voter_bump = r.u8()
    voter_weight_record_bump = r.u8()
    return Voter(
        voter_authority=voter_authority,
        registrar=registrar,
        deposits=deposits,
        voter_bump=voter_bump,
        voter_weight_record_bump=voter_weight_record_bump,
    )


__all__ = ["DISCRIMINATOR_LEN", "decode_registrar", "decode_voter"]
