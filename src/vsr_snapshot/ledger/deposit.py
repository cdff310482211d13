# src/vsr_snapshot/ledger/deposit.py
from __future__ import annotations

"""Deposit entries and their voting power.

The voting power of a deposit is

    baseline_vote_weight(amount_deposited)
  + locked vote weight, decaying from max_extra_lockup_vote_weight(amount_initially_locked)

The locked part depends on the lockup kind:

  - NONE:              0
  - DAILY / MONTHLY:   linear vesting, see voting_power_linear_vesting()
  - CLIFF / CONSTANT:  max_locked * min(seconds_left, saturation) / saturation

Every u64 step that the on-chain program checks is checked here as well and
raises VoterWeightOverflow instead of wrapping.
"""

from dataclasses import dataclass

from vsr_snapshot.ledger.constants import U8_MAX, U64_MAX
from vsr_snapshot.ledger.lockup import Lockup, LockupKind
from vsr_snapshot.ledger.voting_mint import (
    VotingMintConfig,
    checked_add_u64,
    checked_mul_div_u64,
    checked_mul_u64,
)
from vsr_snapshot.runtime.errors import VoterWeightOverflow, VotingPowerInvariantViolation


@dataclass(frozen=True)
class DepositEntry:
    lockup: Lockup

    # Amount deposited, in native currency. Withdraws of vested tokens reduce it.
    amount_deposited_native: int

    # Amount locked when the lockup began, in native currency. Not adjusted for
    # withdraws, so it may be bigger than amount_deposited_native.
    amount_initially_locked_native: int

    is_used: bool
    allow_clawback: bool

    # Index into Registrar.voting_mints.
    voting_mint_config_idx: int

    def __post_init__(self) -> None:
        for name in ("amount_deposited_native", "amount_initially_locked_native"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, int) or v < 0 or v > U64_MAX:
                raise ValueError(f"DepositEntry.{name} must be a u64 (got {v!r})")
        idx = self.voting_mint_config_idx
        if isinstance(idx, bool) or not isinstance(idx, int) or idx < 0 or idx > U8_MAX:
            raise ValueError(f"DepositEntry.voting_mint_config_idx must be a u8 (got {idx!r})")

    @classmethod
    def unused(cls) -> "DepositEntry":
        return cls(
            lockup=Lockup(start_ts=0, end_ts=0, kind=LockupKind.NONE),
            amount_deposited_native=0,
            amount_initially_locked_native=0,
            is_used=False,
            allow_clawback=False,
            voting_mint_config_idx=0,
        )

    def voting_power_linear_vesting(
        self,
        now: int,
        max_locked_vote_weight: int,
        lockup_saturation_secs: int,
    ) -> int:
        """Locked vote weight of a vesting lockup.

        The lockup is treated as periods_total vesting cliffs, each holding
        max_locked_vote_weight / periods_total. With periods_left cliffs still
        ahead, cliff p (1-based) is

            secs_left_for_cliff_p = min(secs_to_closest_cliff + (p-1) * period_secs,
                                        lockup_saturation_secs)

        away and contributes proportionally, so

            weight = max_locked_vote_weight * sum_p secs_left_for_cliff_p
                     / (periods_total * lockup_saturation_secs)

        Let q be the number of cliffs still below saturation and r = periods_left - q
        the saturated ones. Then the sum is

            q * secs_to_closest_cliff + period_secs * q * (q - 1) / 2 + r * lockup_saturation_secs
        """
        periods_left = self.lockup.periods_left(now)
        periods_total = self.lockup.periods_total()
        period_secs = self.lockup.period_secs()

        if periods_left == 0:
            return 0

        secs_to_closest_cliff = self.lockup.seconds_left(now) - checked_mul_u64(
            period_secs, max(periods_left - 1, 0), what="vesting_full_periods_secs"
        )
        if secs_to_closest_cliff < 0:
            raise VoterWeightOverflow(
                "secs_to_closest_cliff_underflow",
                periods_left=periods_left,
                period_secs=period_secs,
            )

        if secs_to_closest_cliff >= lockup_saturation_secs:
            return max_locked_vote_weight

        denominator = checked_mul_u64(periods_total, lockup_saturation_secs, what="vesting_denominator")

        lockup_saturation_periods = (
            checked_add_u64(
                max(lockup_saturation_secs - secs_to_closest_cliff, 0),
                period_secs,
                what="vesting_saturation_secs",
            )
            // period_secs
        )
        q = min(lockup_saturation_periods, periods_left)
        r = max(periods_left - q, 0)

        # 0 + 1 + ... + (q-1) full periods over the unsaturated cliffs
        sum_full_periods = checked_mul_u64(q, max(q - 1, 0), what="vesting_sum_full_periods") // 2

        lockup_secs_fractional = checked_mul_u64(q, secs_to_closest_cliff, what="vesting_fractional_secs")
        lockup_secs_full = checked_mul_u64(sum_full_periods, period_secs, what="vesting_full_secs")
        lockup_secs_saturated = checked_mul_u64(r, lockup_saturation_secs, what="vesting_saturated_secs")
        lockup_secs = lockup_secs_fractional + lockup_secs_full + lockup_secs_saturated

        return checked_mul_div_u64(max_locked_vote_weight, lockup_secs, denominator, what="vesting_vote_weight")

    def voting_power_cliff(
        self,
        now: int,
        max_locked_vote_weight: int,
        lockup_saturation_secs: int,
    ) -> int:
        remaining = min(self.lockup.seconds_left(now), lockup_saturation_secs)
        return checked_mul_div_u64(max_locked_vote_weight, remaining, lockup_saturation_secs, what="cliff_vote_weight")

    def voting_power_locked(
        self,
        now: int,
        max_locked_vote_weight: int,
        lockup_saturation_secs: int,
    ) -> int:
        if self.lockup.expired(now) or max_locked_vote_weight == 0:
            return 0

        kind = self.lockup.kind
        if kind is LockupKind.NONE:
            return 0
        if kind in (LockupKind.DAILY, LockupKind.MONTHLY):
            return self.voting_power_linear_vesting(now, max_locked_vote_weight, lockup_saturation_secs)
        if kind in (LockupKind.CLIFF, LockupKind.CONSTANT):
            return self.voting_power_cliff(now, max_locked_vote_weight, lockup_saturation_secs)
        raise AssertionError(f"unhandled lockup kind {kind!r}")

    def voting_power(self, voting_mint_config: VotingMintConfig, now: int) -> int:
        baseline_vote_weight = voting_mint_config.baseline_vote_weight(self.amount_deposited_native)
        max_locked_vote_weight = voting_mint_config.max_extra_lockup_vote_weight(
            self.amount_initially_locked_native
        )
        locked_vote_weight = self.voting_power_locked(
            now,
            max_locked_vote_weight,
            voting_mint_config.lockup_saturation_secs,
        )
        if locked_vote_weight > max_locked_vote_weight:
            raise VotingPowerInvariantViolation(
                "locked_vote_weight_exceeds_max",
                max_locked_vote_weight=max_locked_vote_weight,
                locked_vote_weight=locked_vote_weight,
            )
        return checked_add_u64(baseline_vote_weight, locked_vote_weight, what="deposit_vote_weight")


__all__ = ["DepositEntry"]
