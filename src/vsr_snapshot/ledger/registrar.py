# src/vsr_snapshot/ledger/registrar.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

from vsr_snapshot.ledger.constants import DEPOSIT_SLOTS, VOTING_MINT_SLOTS
from vsr_snapshot.ledger.deposit import DepositEntry
from vsr_snapshot.ledger.voting_mint import VotingMintConfig, checked_add_u64
from vsr_snapshot.util.pubkey import Pubkey


@dataclass(frozen=True)
class Registrar:
    """Realm-wide voting configuration.

    voting_mints always holds exactly VOTING_MINT_SLOTS entries. Slots past the
    realm's mint count are zeroed and must never be referenced by a deposit.
    """

    governance_program_id: Pubkey
    realm: Pubkey
    realm_governing_token_mint: Pubkey
    realm_authority: Pubkey
    voting_mints: Tuple[VotingMintConfig, ...]
    time_offset: int = 0
    bump: int = 0

    def __post_init__(self) -> None:
        mints = tuple(self.voting_mints)
        if len(mints) != VOTING_MINT_SLOTS:
            raise ValueError(f"Registrar.voting_mints must have {VOTING_MINT_SLOTS} slots (got {len(mints)})")
        object.__setattr__(self, "voting_mints", mints)

    def voting_mint(self, idx: int) -> VotingMintConfig:
        i = int(idx)
        if i < 0 or i >= VOTING_MINT_SLOTS:
            raise IndexError(f"voting_mint_config_idx {i} out of range 0..{VOTING_MINT_SLOTS - 1}")
        return self.voting_mints[i]


@dataclass(frozen=True)
class Voter:
    """One governance participant: exactly DEPOSIT_SLOTS deposit slots."""

    voter_authority: Pubkey
    registrar: Pubkey
    deposits: Tuple[DepositEntry, ...]
    voter_bump: int = 0
    voter_weight_record_bump: int = 0

    def __post_init__(self) -> None:
        deps = tuple(self.deposits)
        if len(deps) != DEPOSIT_SLOTS:
            raise ValueError(f"Voter.deposits must have {DEPOSIT_SLOTS} slots (got {len(deps)})")
        object.__setattr__(self, "deposits", deps)

    def used_deposits(self) -> Iterator[Tuple[int, DepositEntry]]:
        for slot, d in enumerate(self.deposits):
            if d.is_used:
                yield slot, d

    def voting_power(self, registrar: Registrar, now: int) -> int:
        # Fold in slot order so overflow behaviour is reproducible.
        total = 0
        for _, d in self.used_deposits():
            vp = d.voting_power(registrar.voting_mint(d.voting_mint_config_idx), now)
            total = checked_add_u64(total, vp, what="voter_vote_weight")
        return total


__all__ = ["Registrar", "Voter"]
