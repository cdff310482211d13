from __future__ import annotations

import pytest

from vsr_snapshot.ledger.constants import SECS_PER_DAY, SECS_PER_MONTH, U64_MAX
from vsr_snapshot.ledger.deposit import DepositEntry
from vsr_snapshot.ledger.lockup import LockupKind
from vsr_snapshot.runtime.errors import LockupPeriodMismatch, VoterWeightOverflow, VotingPowerInvariantViolation
from vsr_snapshot.testing.layout_tools import deposit, mint_config


def _per_cliff_sum(d: DepositEntry, now: int, max_locked: int, saturation: int) -> int:
    """Reference: add up every remaining vesting cliff one by one."""
    lk = d.lockup
    periods_left = lk.periods_left(now)
    if lk.expired(now) or max_locked == 0 or periods_left == 0:
        return 0
    period = lk.period_secs()
    secs_to_closest = lk.seconds_left(now) - period * (periods_left - 1)
    if secs_to_closest >= saturation:
        # Every remaining cliff is saturated: full weight, however many cliffs already vested.
        return max_locked
    total = sum(min(secs_to_closest + p * period, saturation) for p in range(periods_left))
    return max_locked * total // (lk.periods_total() * saturation)


def test_cliff_exactness() -> None:
    cfg = mint_config(baseline=0, max_extra=1_000_000_000, saturation_secs=1_000, digit_shift=0)
    d = deposit(kind=LockupKind.CLIFF, start_ts=0, end_ts=1_000, deposited=1_000_000, initially_locked=1_000_000)

    assert d.voting_power(cfg, 0) == 1_000_000
    assert d.voting_power(cfg, 500) == 500_000
    assert d.voting_power(cfg, 1_000) == 0
    assert d.voting_power(cfg, 1_500) == 0


def test_cliff_caps_at_saturation() -> None:
    cfg = mint_config(saturation_secs=1_000)
    d = deposit(kind=LockupKind.CLIFF, start_ts=0, end_ts=5_000, deposited=1_000_000)
    assert d.voting_power(cfg, 0) == 1_000_000
    assert d.voting_power(cfg, 4_000) == 1_000_000
    assert d.voting_power(cfg, 4_750) == 250_000


def test_constant_does_not_decay_over_time() -> None:
    cfg = mint_config(saturation_secs=2_000)
    d = deposit(kind=LockupKind.CONSTANT, start_ts=0, end_ts=1_000, deposited=1_000_000)
    for now in (0, 999, 1_000, 10**9):
        assert d.voting_power(cfg, now) == 500_000


def test_none_kind_has_no_locked_component() -> None:
    cfg = mint_config(baseline=1_000_000_000, max_extra=3_000_000_000, saturation_secs=1_000)
    d = deposit(kind=LockupKind.NONE, start_ts=0, end_ts=10**9, deposited=7_000, initially_locked=10**12)
    for now in (-5, 0, 1, 10**6, 10**10):
        assert d.voting_power_locked(now, 10**12, 1_000) == 0
        assert d.voting_power(cfg, now) == 7_000


def test_baseline_counts_deposited_not_initially_locked() -> None:
    # After a partial withdraw the deposit is smaller than the initial lock.
    cfg = mint_config(baseline=1_000_000_000, max_extra=1_000_000_000, saturation_secs=1_000)
    d = deposit(kind=LockupKind.CLIFF, start_ts=0, end_ts=500, deposited=100, initially_locked=1_000)
    assert d.voting_power(cfg, 0) == 100 + 500


def test_expired_lockup_stays_at_zero() -> None:
    cfg = mint_config(saturation_secs=1_000)
    d = deposit(kind=LockupKind.CLIFF, start_ts=0, end_ts=800, deposited=1_000)
    powers = [d.voting_power_locked(now, 1_000, 1_000) for now in range(800, 5_000, 250)]
    assert powers == [0] * len(powers)


def test_daily_vesting_hand_computed() -> None:
    # 10 daily cliffs, saturation after 5 days.
    cfg = mint_config(saturation_secs=5 * SECS_PER_DAY)
    d = deposit(kind=LockupKind.DAILY, start_ts=0, end_ts=10 * SECS_PER_DAY, deposited=1_000_000)

    # min(1..10, 5) days = 40 days out of 10 * 5 days
    assert d.voting_power(cfg, 0) == 800_000
    # min(0.5, 1.5, ..., 9.5, 5) = 37.5 days out of 50
    assert d.voting_power(cfg, SECS_PER_DAY // 2) == 750_000
    # last cliff, 1 day left
    assert d.voting_power(cfg, 9 * SECS_PER_DAY) == 20_000
    assert d.voting_power(cfg, 10 * SECS_PER_DAY) == 0


def test_vesting_full_weight_when_closest_cliff_is_saturated() -> None:
    d = deposit(kind=LockupKind.DAILY, start_ts=0, end_ts=30 * SECS_PER_DAY, deposited=1_000_000)
    # closest cliff is a full day away; anything up to a day saturates every cliff
    for saturation in (1, 3_600, SECS_PER_DAY):
        assert d.voting_power_linear_vesting(0, 1_000_000, saturation) == 1_000_000
    d2 = deposit(kind=LockupKind.MONTHLY, start_ts=0, end_ts=2 * SECS_PER_MONTH, deposited=5)
    assert d2.voting_power_linear_vesting(0, 12_345, SECS_PER_DAY) == 12_345


@pytest.mark.parametrize("kind", [LockupKind.DAILY, LockupKind.MONTHLY])
def test_vesting_closed_form_matches_per_cliff_sum(kind: LockupKind) -> None:
    period = kind.period_secs()
    start = 1_000
    d = deposit(kind=kind, start_ts=start, end_ts=start + 12 * period, deposited=987_654_321)
    max_locked = 987_654_321
    for saturation in (period // 3, period, 4 * period + 17, 20 * period):
        for now in (0, start, start + 1, start + period // 2, start + 5 * period, start + 12 * period - 1):
            got = d.voting_power_locked(now, max_locked, saturation)
            assert got == _per_cliff_sum(d, now, max_locked, saturation), (saturation, now)
            assert got <= max_locked


def test_vesting_before_start_counts_all_periods() -> None:
    d = deposit(kind=LockupKind.DAILY, start_ts=1_000, end_ts=1_000 + 3 * SECS_PER_DAY, deposited=1_000_000)
    got = d.voting_power_locked(0, 1_000_000, 5 * SECS_PER_DAY)
    # cliffs 87_400, 173_800, 260_200 seconds away
    assert got == 1_000_000 * (87_400 + 173_800 + 260_200) // (3 * 5 * SECS_PER_DAY)


def test_vesting_period_mismatch_propagates() -> None:
    cfg = mint_config(saturation_secs=SECS_PER_MONTH)
    d = deposit(kind=LockupKind.MONTHLY, start_ts=0, end_ts=100, deposited=1_000)
    with pytest.raises(LockupPeriodMismatch):
        d.voting_power(cfg, 0)
    # Once expired the locked part short-circuits to 0 before any period math.
    assert d.voting_power(cfg, 100) == 0


def test_cliff_with_zero_saturation_is_rejected() -> None:
    cfg = mint_config(saturation_secs=0)
    d = deposit(kind=LockupKind.CLIFF, start_ts=0, end_ts=100, deposited=1_000)
    with pytest.raises(VoterWeightOverflow):
        d.voting_power(cfg, 0)


def test_deposit_sum_overflow() -> None:
    cfg = mint_config(baseline=1_000_000_000, max_extra=1_000_000_000, saturation_secs=1_000)
    d = deposit(kind=LockupKind.CLIFF, start_ts=0, end_ts=1_000, deposited=U64_MAX, initially_locked=U64_MAX)
    with pytest.raises(VoterWeightOverflow):
        d.voting_power(cfg, 0)
    # Expired: only the baseline is left and it fits.
    assert d.voting_power(cfg, 1_000) == U64_MAX


def test_locked_above_max_is_an_invariant_violation(monkeypatch: pytest.MonkeyPatch) -> None:
    cfg = mint_config(saturation_secs=1_000)
    d = deposit(kind=LockupKind.CLIFF, start_ts=0, end_ts=1_000, deposited=1_000)

    monkeypatch.setattr(DepositEntry, "voting_power_locked", lambda self, now, max_locked, sat: max_locked + 1)
    with pytest.raises(VotingPowerInvariantViolation) as ei:
        d.voting_power(cfg, 0)
    assert ei.value.details == {"max_locked_vote_weight": 1_000, "locked_vote_weight": 1_001}


def test_deposit_field_ranges() -> None:
    with pytest.raises(ValueError):
        deposit(deposited=-1)
    with pytest.raises(ValueError):
        deposit(deposited=1, idx=256)
