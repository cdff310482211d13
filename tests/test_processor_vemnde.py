from __future__ import annotations

from typing import Iterable, List

from vsr_snapshot.ledger.constants import MARINADE_VSR_PROGRAM_ADDR, U64_MAX
from vsr_snapshot.ledger.lockup import LockupKind
from vsr_snapshot.runtime.account_source import ProgramAccount
from vsr_snapshot.runtime import metrics
from vsr_snapshot.runtime.engine import VoterPowerRow
from vsr_snapshot.runtime.processor import ProcessorVeMnde
from vsr_snapshot.testing.layout_tools import (
    deposit,
    deterministic_pubkey,
    encode_voter,
    make_registrar,
    make_voter,
    mint_config,
)
from vsr_snapshot.util.pubkey import Pubkey

PROGRAM = Pubkey.from_base58(MARINADE_VSR_PROGRAM_ADDR)


def _account(label: str, data: bytes, owner: Pubkey = PROGRAM) -> ProgramAccount:
    return ProgramAccount(pubkey=deterministic_pubkey(label=label), owner=owner, data=data)


def _accounts() -> List[ProgramAccount]:
    good = make_voter([deposit(kind=LockupKind.CLIFF, start_ts=0, end_ts=1_000, deposited=1_000_000)], label="alice")
    overflow = make_voter([deposit(deposited=U64_MAX), deposit(deposited=U64_MAX)], label="bob")
    bad_bool = bytearray(encode_voter(good))
    bad_bool[8 + 64 + 48] = 7

    return [
        _account("alice-voter", encode_voter(good)),
        _account("bob-voter", encode_voter(overflow)),
        _account("broken-voter", bytes(bad_bool)),
        # Not a voter: wrong size or wrong owner.
        _account("registrar", b"\x00" * 880),
        _account("foreign", encode_voter(good), owner=deterministic_pubkey(label="other-program")),
    ]


class _ListSink:
    def __init__(self) -> None:
        self.rows: List[VoterPowerRow] = []

    def __call__(self, rows: Iterable[VoterPowerRow]) -> int:
        self.rows.extend(rows)
        return len(self.rows)


def test_failing_voters_are_skipped_and_counted() -> None:
    reg = make_registrar([mint_config(baseline=1_000_000_000, max_extra=1_000_000_000, saturation_secs=1_000)])
    proc = ProcessorVeMnde(registrar=reg, program_id=PROGRAM, current_ts=500)
    sink = _ListSink()

    stats = proc.process(_accounts(), sink)

    assert [str(r.pubkey) for r in sink.rows] == [str(deterministic_pubkey(label="alice-voter"))]
    assert sink.rows[0].voting_power == 1_000_000 + 500_000
    assert sink.rows[0].voter_authority == deterministic_pubkey(label="alice")
    assert stats == {
        "voter_accounts_seen": 3,
        "voter_decoded": 2,
        "voter_decode_failed": 1,
        "voter_power_failed": 1,
        "vemnde_inserted": 1,
    }


def test_same_snapshot_and_timestamp_give_same_rows() -> None:
    reg = make_registrar([mint_config(saturation_secs=1_000)])
    a = _ListSink()
    b = _ListSink()
    ProcessorVeMnde(registrar=reg, program_id=PROGRAM, current_ts=123).process(_accounts(), a)
    ProcessorVeMnde(registrar=reg, program_id=PROGRAM, current_ts=123).process(_accounts(), b)
    assert a.rows == b.rows


def test_stats_are_mirrored_into_process_counters() -> None:
    metrics.reset()
    reg = make_registrar([mint_config(baseline=1_000_000_000, saturation_secs=1_000)])
    ProcessorVeMnde(registrar=reg, program_id=PROGRAM, current_ts=0).process(_accounts(), _ListSink())

    assert metrics.get_counter("voter_accounts_seen") == 3
    assert metrics.get_counter("voter_decode_failed") == 1
    assert metrics.get_counter("voter_power_failed") == 1
    assert metrics.snapshot()["counters"]["vemnde_inserted"] == 1
