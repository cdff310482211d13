# src/vsr_snapshot/ledger/voting_mint.py
from __future__ import annotations

"""Per-mint vote weight configuration.

Vote weights are derived from native token amounts in two steps:

  1) digit shift: amount * 10^digit_shift (or amount / 10^-digit_shift)
  2) factor:      shifted * factor / SCALED_FACTOR_BASE

Both steps run on unbounded Python ints and are narrowed back to u64
explicitly. Anything that does not fit raises VoterWeightOverflow.
"""

from dataclasses import dataclass

from vsr_snapshot.ledger.constants import I8_MAX, I8_MIN, SCALED_FACTOR_BASE, U64_MAX
from vsr_snapshot.runtime.errors import VoterWeightOverflow
from vsr_snapshot.util.pubkey import Pubkey


def _check_u64(v: int, *, field: str) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"{field} must be int (got {type(v).__name__})")
    if v < 0 or v > U64_MAX:
        raise ValueError(f"{field} out of u64 range: {v}")
    return v


def narrow_u64(v: int, *, what: str) -> int:
    """Checked narrowing of a wide intermediate back into u64."""
    if v < 0 or v > U64_MAX:
        raise VoterWeightOverflow(f"{what}_exceeds_u64", value=v)
    return v


def checked_mul_u64(a: int, b: int, *, what: str) -> int:
    return narrow_u64(a * b, what=what)


def checked_add_u64(a: int, b: int, *, what: str) -> int:
    return narrow_u64(a + b, what=what)


def checked_mul_div_u64(a: int, b: int, divisor: int, *, what: str) -> int:
    """a * b / divisor with a wide intermediate and floor division."""
    if divisor == 0:
        raise VoterWeightOverflow(f"{what}_division_by_zero", a=a, b=b)
    return narrow_u64((a * b) // divisor, what=what)


@dataclass(frozen=True)
class VotingMintConfig:
    mint: Pubkey
    grant_authority: Pubkey

    # Vote weight factor for all funds in the account, locked or not.
    # In 1/SCALED_FACTOR_BASE units.
    baseline_vote_weight_scaled_factor: int

    # Extra vote weight factor for lockups lasting lockup_saturation_secs or longer.
    # Shorter lockups receive lockup_time / lockup_saturation_secs of it.
    # In 1/SCALED_FACTOR_BASE units.
    max_extra_lockup_vote_weight_scaled_factor: int

    # Seconds of lockup needed to reach the maximum lockup bonus.
    lockup_saturation_secs: int

    # Number of digits to shift native amounts, applying a 10^digit_shift factor.
    digit_shift: int

    def __post_init__(self) -> None:
        _check_u64(self.baseline_vote_weight_scaled_factor, field="baseline_vote_weight_scaled_factor")
        _check_u64(self.max_extra_lockup_vote_weight_scaled_factor, field="max_extra_lockup_vote_weight_scaled_factor")
        _check_u64(self.lockup_saturation_secs, field="lockup_saturation_secs")
        if isinstance(self.digit_shift, bool) or not isinstance(self.digit_shift, int):
            raise ValueError(f"digit_shift must be int (got {type(self.digit_shift).__name__})")
        if self.digit_shift < I8_MIN or self.digit_shift > I8_MAX:
            raise ValueError(f"digit_shift out of i8 range: {self.digit_shift}")

    def is_unused(self) -> bool:
        """Unused registrar slots are all-zero."""
        return self.mint.is_zero()

    def digit_shift_native(self, amount_native: int) -> int:
        if self.digit_shift < 0:
            val = amount_native // (10 ** (-self.digit_shift))
        else:
            val = amount_native * (10 ** self.digit_shift)
        return narrow_u64(val, what="digit_shift")

    @staticmethod
    def apply_factor(base: int, factor: int) -> int:
        return checked_mul_div_u64(base, factor, SCALED_FACTOR_BASE, what="scaled_factor")

    def baseline_vote_weight(self, amount_native: int) -> int:
        return self.apply_factor(self.digit_shift_native(amount_native), self.baseline_vote_weight_scaled_factor)

    def max_extra_lockup_vote_weight(self, amount_native: int) -> int:
        return self.apply_factor(
            self.digit_shift_native(amount_native),
            self.max_extra_lockup_vote_weight_scaled_factor,
        )


__all__ = [
    "VotingMintConfig",
    "narrow_u64",
    "checked_mul_u64",
    "checked_add_u64",
    "checked_mul_div_u64",
]
