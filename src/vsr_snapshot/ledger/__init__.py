# src/vsr_snapshot/ledger/__init__.py
"""
Voter-stake-registry data model and vote weight arithmetic.

  - constants: scaling base, period lengths, slot counts, account sizes
  - lockup: LockupKind + Lockup time/period arithmetic
  - voting_mint: VotingMintConfig and checked scaled-factor helpers
  - deposit: DepositEntry and the decay formulas
  - registrar: Registrar (4 mint slots) and Voter (32 deposit slots)
  - layout: fixed binary decoding of Registrar / Voter accounts

Nothing in this package performs I/O or reads a clock.
"""

from __future__ import annotations

__all__ = [
    "constants",
    "lockup",
    "voting_mint",
    "deposit",
    "registrar",
    "layout",
]
