# src/vsr_snapshot/runtime/processor.py
from __future__ import annotations

"""veMNDE pass: voter accounts -> voting power rows -> sink.

Policy per voter account:
  - cannot decode       -> warn, count, skip
  - engine error        -> error, count, skip
  - anything else       -> propagate (abort the run)

Voters are independent; the pass is a single ordered scan so row order and
overflow behaviour are reproducible for a fixed snapshot and timestamp.
"""

import logging
from typing import Callable, Dict, Iterable, Iterator

from vsr_snapshot.ledger.layout import decode_voter
from vsr_snapshot.ledger.registrar import Registrar
from vsr_snapshot.runtime.account_source import ProgramAccount, filter_voter_accounts
from vsr_snapshot.runtime.engine import VoterPowerRow, voter_power_row
from vsr_snapshot.runtime.errors import DecodeError, EngineError
from vsr_snapshot.runtime.metrics import inc_counter
from vsr_snapshot.runtime.structured_logging import log_event
from vsr_snapshot.util.pubkey import Pubkey

log = logging.getLogger("vsr_snapshot.processor")

RowSink = Callable[[Iterable[VoterPowerRow]], int]

_STAT_KEYS = (
    "voter_accounts_seen",
    "voter_decoded",
    "voter_decode_failed",
    "voter_power_failed",
    "vemnde_inserted",
)


class ProcessorVeMnde:
    def __init__(self, *, registrar: Registrar, program_id: Pubkey, current_ts: int) -> None:
        self.registrar = registrar
        self.program_id = program_id
        self.current_ts = int(current_ts)
        self.stats: Dict[str, int] = {k: 0 for k in _STAT_KEYS}

    def _inc(self, name: str, value: int = 1) -> None:
        self.stats[name] = self.stats.get(name, 0) + int(value)
        inc_counter(name, value)

    def iter_rows(self, accounts: Iterable[ProgramAccount]) -> Iterator[VoterPowerRow]:
        for acct in filter_voter_accounts(accounts, self.program_id):
            self._inc("voter_accounts_seen")
            try:
                voter = decode_voter(acct.data)
            except DecodeError as e:
                self._inc("voter_decode_failed")
                log_event(log, "voter_decode_failed", level=logging.WARNING, pubkey=str(acct.pubkey), error=str(e))
                continue
            self._inc("voter_decoded")

            try:
                row = voter_power_row(
                    self.registrar,
                    voter,
                    self.current_ts,
                    pubkey=acct.pubkey,
                    owner=acct.owner,
                )
            except (EngineError, IndexError) as e:
                # IndexError: deposit points past the registrar's mint slots.
                self._inc("voter_power_failed")
                log_event(
                    log,
                    "voter_power_failed",
                    level=logging.ERROR,
                    pubkey=str(acct.pubkey),
                    voter_authority=str(voter.voter_authority),
                    error=str(e),
                )
                continue
            yield row

    def process(self, accounts: Iterable[ProgramAccount], sink: RowSink) -> Dict[str, int]:
        log_event(log, "vemnde_pass_start", program_id=str(self.program_id), timestamp=self.current_ts)
        inserted = int(sink(self.iter_rows(accounts)))
        self._inc("vemnde_inserted", inserted)
        log_event(log, "vemnde_pass_done", timestamp=self.current_ts, **self.stats)
        return dict(self.stats)


__all__ = ["ProcessorVeMnde", "RowSink"]
