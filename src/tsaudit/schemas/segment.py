from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Timestamp:
    start: float
    end: float

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"Timestamp end must be >= start, got start={self.start} end={self.end}"
            )


@dataclass(frozen=True)
class Segment:
    start: float
    end: float
    text: str

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError(
                f"Segment end must be >= start, got start={self.start} end={self.end}"
            )

    @property
    def timestamp(self) -> Timestamp:
        return Timestamp(start=self.start, end=self.end)


@dataclass(frozen=True)
class Transcript:
    segments: list[Segment]
    duration: float | None = None
