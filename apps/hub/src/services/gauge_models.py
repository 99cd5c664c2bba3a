from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Union

_NON_DIGITS = re.compile(r"[^0-9]")


class MetricKind(str, Enum):
    """Metrics the hub can serve for a station; values double as URL segments."""

    FLOW = "flow"
    WATER_LEVEL = "waterlevel"
    DISSOLVED_OXYGEN = "dissolved-oxygen"
    CONDUCTIVITY = "conductivity"
    LATEST_SNAPSHOT = "station"


def station_number(station_id: str) -> str:
    """Strip a gauge identifier down to the numeric form WMIS is addressed by.

    "415247B" -> "415247". Applying it twice yields the same result.
    """
    return _NON_DIGITS.sub("", station_id or "")


@dataclass(frozen=True, slots=True)
class Observation:
    """A single (timestamp, value) point of a gauge time series.

    ``timestamp`` is None when the upstream text could not be parsed; such
    points are only kept for series that are not recency-windowed.
    """

    timestamp: Optional[datetime]
    value: float
    dt: str

    def to_payload(self) -> dict[str, object]:
        value: Optional[float] = self.value if math.isfinite(self.value) else None
        return {"dt": self.dt, "v": value}


@dataclass(frozen=True, slots=True)
class SnapshotReading:
    """Latest reading of one physical sensor at a station.

    ``raw`` is the upstream record exactly as received and is what gets served.
    """

    raw: Any

    @classmethod
    def from_record(cls, record: Any) -> "SnapshotReading":
        return cls(raw=record)

    def _field(self, name: str) -> Any:
        return self.raw.get(name) if isinstance(self.raw, dict) else None

    @property
    def parameter_label(self) -> str:
        label = self._field("parameterLabel")
        return label if isinstance(label, str) else ""

    @property
    def value(self) -> Union[float, str, None]:
        return self._field("v")

    @property
    def units(self) -> str:
        units = self._field("units")
        return units if isinstance(units, str) else ""

    @property
    def timestamp(self) -> Optional[str]:
        stamp = self._field("dt")
        return stamp if isinstance(stamp, str) else None

    def to_payload(self) -> Any:
        return self.raw


TimeSeries = tuple[Observation, ...]
MetricPayload = Union[TimeSeries, tuple[SnapshotReading, ...]]


@dataclass(frozen=True, slots=True)
class CacheEntry:
    key: tuple[str, MetricKind]
    payload: MetricPayload
    fetched_at: datetime
    ttl: timedelta

    def is_fresh(self, now: datetime) -> bool:
        return now < self.fetched_at + self.ttl
