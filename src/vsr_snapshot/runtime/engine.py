# src/vsr_snapshot/runtime/engine.py
from __future__ import annotations

"""Voting power query.

compute_voting_power() is a pure function of (registrar, voter, now):
no clock, no I/O, no caching. Errors propagate to the caller unchanged;
deciding whether to skip a voter or abort a run is the caller's job.
"""

from dataclasses import dataclass
from typing import Any, Dict

from vsr_snapshot.ledger.constants import I64_MAX, I64_MIN
from vsr_snapshot.ledger.registrar import Registrar, Voter
from vsr_snapshot.util.pubkey import Pubkey

Json = Dict[str, Any]


def compute_voting_power(registrar: Registrar, voter: Voter, now: int) -> int:
    """Total voting power of `voter` at unix time `now` (u64)."""
    if isinstance(now, bool) or not isinstance(now, int):
        raise TypeError(f"now must be int unix seconds (got {type(now).__name__})")
    if now < I64_MIN or now > I64_MAX:
        raise ValueError(f"now out of i64 range: {now}")
    return voter.voting_power(registrar, now)


@dataclass(frozen=True)
class VoterPowerRow:
    """One result row: the voter account, its authority, power and owning program."""

    pubkey: Pubkey
    voter_authority: Pubkey
    voting_power: int
    owner: Pubkey

    def to_json(self) -> Json:
        # u64 does not fit a signed 64-bit column or a JSON double; keep it decimal text.
        return {
            "pubkey": str(self.pubkey),
            "voter_authority": str(self.voter_authority),
            "voting_power": str(int(self.voting_power)),
            "owner": str(self.owner),
        }


def voter_power_row(registrar: Registrar, voter: Voter, now: int, *, pubkey: Pubkey, owner: Pubkey) -> VoterPowerRow:
    return VoterPowerRow(
        pubkey=pubkey,
        voter_authority=voter.voter_authority,
        voting_power=compute_voting_power(registrar, voter, now),
        owner=owner,
    )


__all__ = ["compute_voting_power", "VoterPowerRow", "voter_power_row"]
