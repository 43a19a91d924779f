from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Precision:
    match: int
    total: int


@dataclass(frozen=True)
class ScoreResult:
    is_valid: bool
    score: float
    time_range: tuple[float, float] | None = None

    @property
    def status(self) -> str:
        return "valid" if self.is_valid else "invalid"
