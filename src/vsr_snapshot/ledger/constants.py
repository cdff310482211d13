# src/vsr_snapshot/ledger/constants.py
from __future__ import annotations

"""Voter-stake-registry constants.

Anchors:
- Scaled factors are integers in 1/1_000_000_000 units
- A month is 365/12 days, truncated to whole seconds
- Registrar holds 4 voting mint slots, Voter holds 32 deposit slots
"""

# Fixed-point denominator for baseline / max-extra vote weight factors
SCALED_FACTOR_BASE: int = 1_000_000_000

SECS_PER_DAY: int = 86_400
SECS_PER_MONTH: int = 365 * SECS_PER_DAY // 12  # 2_628_000

# Integer domains of the on-chain records
U8_MAX: int = 2**8 - 1
I8_MIN: int = -(2**7)
I8_MAX: int = 2**7 - 1
U64_MAX: int = 2**64 - 1
I64_MIN: int = -(2**63)
I64_MAX: int = 2**63 - 1

VOTING_MINT_SLOTS: int = 4
DEPOSIT_SLOTS: int = 32

# Account sizes (bytes, including the 8-byte Anchor discriminator)
VOTING_MINT_CONFIG_LEN: int = 152
REGISTRAR_ACCOUNT_LEN: int = 880
LOCKUP_LEN: int = 32
DEPOSIT_ENTRY_LEN: int = 80
VOTER_ACCOUNT_LEN: int = 2728

# Marinade deployment of the voter-stake-registry program
MARINADE_VSR_PROGRAM_ADDR: str = "VoteMBhDCqGLRgYpp9o7DGyq81KNmwjXQRAHStjtJsS"

VE_MNDE_ACCOUNT_TABLE: str = "vemnde_accounts"
