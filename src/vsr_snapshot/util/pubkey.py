# src/vsr_snapshot/util/pubkey.py
from __future__ import annotations

"""32-byte account addresses.

Addresses are opaque to the voting power engine. They only travel along with
results so a sink can route rows. The text form is base58 (bitcoin alphabet),
which is what explorers and the original tooling print.
"""

from dataclasses import dataclass

import base58

from vsr_snapshot.runtime.errors import DecodeError

PUBKEY_LEN: int = 32


@dataclass(frozen=True)
class Pubkey:
    raw: bytes

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)):
            raise DecodeError("invalid_pubkey", "raw_must_be_bytes", {"type": type(self.raw).__name__})
        if len(self.raw) != PUBKEY_LEN:
            raise DecodeError("invalid_pubkey", "wrong_length", {"len": len(self.raw)})
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_base58(cls, s: str) -> "Pubkey":
        text = (s or "").strip()
        if not text:
            raise DecodeError("invalid_pubkey", "empty", {})
        try:
            raw = base58.b58decode(text)
        except ValueError as e:
            raise DecodeError("invalid_pubkey", "not_base58", {"value": text}) from e
        if len(raw) != PUBKEY_LEN:
            raise DecodeError("invalid_pubkey", "wrong_length", {"value": text, "len": len(raw)})
        return cls(raw)

    @classmethod
    def zero(cls) -> "Pubkey":
        return cls(bytes(PUBKEY_LEN))

    def is_zero(self) -> bool:
        return not any(self.raw)

    def __str__(self) -> str:
        return base58.b58encode(self.raw).decode("ascii")

    def __repr__(self) -> str:
        return f"Pubkey({self})"


__all__ = ["Pubkey", "PUBKEY_LEN"]
