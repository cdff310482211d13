# src/vsr_snapshot/ledger/lockup.py
from __future__ import annotations

"""Lockup schedules of voter-stake-registry deposits.

A lockup is a (start_ts, end_ts, kind) triple. All arithmetic is on unix
seconds and plain ints; results that the on-chain program keeps as u64 are
never negative here either.

Note that vote power computations do not care about start_ts for Cliff,
Daily and Monthly lockups: they always assume the interval from now to end_ts.
Constant lockups never count down: elapsed time is measured from start_ts.
"""

from dataclasses import dataclass
from enum import IntEnum

from vsr_snapshot.ledger.constants import I64_MAX, I64_MIN, SECS_PER_DAY, SECS_PER_MONTH
from vsr_snapshot.runtime.errors import DecodeError, LockupPeriodMismatch


class LockupKind(IntEnum):
    """Decay law of a deposit. The integer value is the on-chain u8 tag."""

    # No lockup, tokens can be withdrawn as long as not engaged in a proposal.
    NONE = 0
    # Linear fraction vests each day.
    DAILY = 1
    # Linear fraction vests each month.
    MONTHLY = 2
    # Locked for a number of days, no vesting.
    CLIFF = 3
    # Locked permanently; the duration is the minimum unlock notice period.
    CONSTANT = 4

    @classmethod
    def from_u8(cls, tag: int) -> "LockupKind":
        try:
            return cls(int(tag))
        except ValueError as e:
            raise DecodeError("invalid_lockup_kind", "unknown_variant_tag", {"tag": tag}) from e

    def period_secs(self) -> int:
        """Length of one lockup period; for vesting kinds also the vesting period."""
        if self is LockupKind.NONE:
            return 0
        if self is LockupKind.DAILY:
            return SECS_PER_DAY
        if self is LockupKind.MONTHLY:
            return SECS_PER_MONTH
        if self is LockupKind.CLIFF:
            return SECS_PER_DAY  # arbitrary, no periods
        if self is LockupKind.CONSTANT:
            return SECS_PER_DAY  # arbitrary, no periods
        raise AssertionError(f"unhandled lockup kind {self!r}")

    def strictness(self) -> int:
        """Lockups cannot decrease in strictness. Cliff and Constant rank equal."""
        if self is LockupKind.NONE:
            return 0
        if self is LockupKind.DAILY:
            return 1
        if self is LockupKind.MONTHLY:
            return 2
        if self in (LockupKind.CLIFF, LockupKind.CONSTANT):
            return 3
        raise AssertionError(f"unhandled lockup kind {self!r}")

    def is_vesting(self) -> bool:
        return self in (LockupKind.DAILY, LockupKind.MONTHLY)


def _check_i64(v: int, *, field: str) -> int:
    if isinstance(v, bool) or not isinstance(v, int):
        raise ValueError(f"Lockup.{field} must be int (got {type(v).__name__})")
    if v < I64_MIN or v > I64_MAX:
        raise ValueError(f"Lockup.{field} out of i64 range: {v}")
    return v


@dataclass(frozen=True)
class Lockup:
    start_ts: int
    end_ts: int
    kind: LockupKind

    def __post_init__(self) -> None:
        _check_i64(self.start_ts, field="start_ts")
        _check_i64(self.end_ts, field="end_ts")
        if not isinstance(self.kind, LockupKind):
            object.__setattr__(self, "kind", LockupKind.from_u8(self.kind))

    def seconds_left(self, now: int) -> int:
        if self.kind is LockupKind.CONSTANT:
            now = self.start_ts
        if now >= self.end_ts:
            return 0
        return self.end_ts - now

    def expired(self, now: int) -> bool:
        return self.seconds_left(now) == 0

    def period_secs(self) -> int:
        return self.kind.period_secs()

    def periods_total(self) -> int:
        period_secs = self.period_secs()
        if period_secs == 0:
            return 0

        lockup_secs = self.seconds_left(self.start_ts)
        if lockup_secs % period_secs != 0:
            raise LockupPeriodMismatch(
                "lockup_secs_not_multiple_of_period",
                lockup_secs=lockup_secs,
                period_secs=period_secs,
                kind=self.kind.name,
            )
        return lockup_secs // period_secs

    def periods_left(self, now: int) -> int:
        period_secs = self.period_secs()
        if period_secs == 0:
            return 0
        if now < self.start_ts:
            # Not started yet: every period remains.
            return self.periods_total()
        return (self.seconds_left(now) + period_secs - 1) // period_secs


__all__ = ["LockupKind", "Lockup"]
