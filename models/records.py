"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple

SENSOR_NAMES = (
    "temperatura",
    "umidade",
    "luminosidade",
    "ruido",
    "eco2",
    "etvoc",
)
SENSOR_COUNT = len(SENSOR_NAMES)
MAX_DEVICE_LENGTH = 63


@dataclass(frozen=True, slots=True)
class Record:
    """One validated reading event: six sensor values for a device in a month."""

    device: str
    year: int
    month: int
    readings: tuple[float, ...]

    def __post_init__(self) -> None:
        if len(self.readings) != SENSOR_COUNT:
            raise ValueError(
                f"Expected {SENSOR_COUNT} readings, got {len(self.readings)}."
            )
        if not 1 <= self.month <= 12:
            raise ValueError(f"Month {self.month} is out of range.")


class AggregateKey(NamedTuple):
    """Composite identity of one aggregate row."""

    device: str
    year: int
    month: int
    sensor_index: int

    @property
    def year_month(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    @property
    def sensor_name(self) -> str:
        return SENSOR_NAMES[self.sensor_index]
