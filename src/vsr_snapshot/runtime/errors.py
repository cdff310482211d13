from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class EngineError(RuntimeError):
    """Canonical error type for voting power computation failures."""

    code: str
    reason: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class VoterWeightOverflow(EngineError):
    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__("voter_weight_overflow", reason, dict(details))


class LockupPeriodMismatch(EngineError):
    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__("lockup_period_mismatch", reason, dict(details))


class VotingPowerInvariantViolation(EngineError):
    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__("voting_power_invariant_violation", reason, dict(details))


@dataclass
class DecodeError(ValueError):
    """Raised when an account, filters file or account dump cannot be decoded."""

    code: str
    reason: str
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class ConfigError(ValueError):
    pass


__all__ = [
    "EngineError",
    "VoterWeightOverflow",
    "LockupPeriodMismatch",
    "VotingPowerInvariantViolation",
    "DecodeError",
    "ConfigError",
]
