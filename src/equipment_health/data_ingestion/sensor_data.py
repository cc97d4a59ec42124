"""
Sensor Data Module
Immutable sensor readings and fixed-length reading windows
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Tuple

import numpy as np

from equipment_health.errors import InsufficientWindowError
from equipment_health.preprocessing.feature_schema import FEATURE_NAMES, N_FEATURES, SEQUENCE_LENGTH

logger = logging.getLogger(__name__)

TIMESTAMP_FORMATS = ('%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M:%S')


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Offset-aware datetimes are converted to UTC; naive ones are taken as UTC already"""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value: Any, default: Optional[datetime] = None) -> datetime:
    """Parse a timestamp to naive UTC, trying the known formats before generic ISO-8601.

    Falls back to ``default`` (the current time when not given) when the value
    is missing or unparsable.
    """
    if value is None:
        logger.warning("Timestamp is null, using fallback time")
        return to_naive_utc(default) if default is not None else utc_now()

    if isinstance(value, datetime):
        return to_naive_utc(value)

    text = str(value)
    for fmt in TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue

    try:
        return to_naive_utc(datetime.fromisoformat(text.replace('Z', '+00:00')))
    except ValueError:
        logger.warning(f"Couldn't parse timestamp '{text}', using fallback time")
        return to_naive_utc(default) if default is not None else utc_now()


def parse_float(value: Any) -> float:
    """Numeric coercion that maps missing or malformed values to 0.0"""
    if value is None:
        return 0.0
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    try:
        return float(str(value))
    except ValueError:
        return 0.0


@dataclass(frozen=True)
class SensorReading:
    """One reading of the 11 physical measurements of a device"""
    device_id: str
    timestamp: datetime
    features: Tuple[float, ...]

    def __post_init__(self):
        if len(self.features) != N_FEATURES:
            raise ValueError(f"Expected {N_FEATURES} features, got {len(self.features)}")
        if isinstance(self.timestamp, datetime):
            object.__setattr__(self, 'timestamp', to_naive_utc(self.timestamp))
        object.__setattr__(self, 'features', tuple(float(v) for v in self.features))

    def feature_array(self) -> np.ndarray:
        """Raw features as a float64 vector in FEATURE_NAMES order"""
        return np.array(self.features, dtype=np.float64)

    def as_dict(self) -> dict:
        return dict(zip(FEATURE_NAMES, self.features))

    @classmethod
    def from_record(cls, record: Mapping[str, Any],
                    fallback_time: Optional[datetime] = None) -> 'SensorReading':
        """Build a reading from a row keyed by column name"""
        device_id = record.get('device_id')
        return cls(
            device_id=str(device_id) if device_id is not None else 'unknown',
            timestamp=parse_timestamp(record.get('timestamp'), fallback_time),
            features=tuple(parse_float(record.get(name)) for name in FEATURE_NAMES),
        )


@dataclass(frozen=True)
class FeatureWindow:
    """
    Time-ordered readings of one device feeding the sequence models.

    Windows shorter than ``required_length`` are rejected; longer windows are
    kept whole.
    """
    readings: Tuple[SensorReading, ...]
    required_length: int = SEQUENCE_LENGTH

    def __post_init__(self):
        readings = tuple(self.readings)
        object.__setattr__(self, 'readings', readings)

        if not readings:
            raise InsufficientWindowError("Reading window is empty")

        if len(readings) < self.required_length:
            raise InsufficientWindowError(
                f"Reading window has {len(readings)} readings, {self.required_length} required"
            )

        devices = {r.device_id for r in readings}
        if len(devices) > 1:
            raise InsufficientWindowError(f"Reading window mixes devices: {sorted(devices)}")

        for previous, current in zip(readings, readings[1:]):
            try:
                ascending = current.timestamp > previous.timestamp
            except TypeError as e:
                raise InsufficientWindowError(f"Reading timestamps are not comparable: {e}") from e
            if not ascending:
                raise InsufficientWindowError(
                    f"Readings not strictly ascending: {previous.timestamp} then {current.timestamp}"
                )

    @classmethod
    def from_readings(cls, readings: Iterable[SensorReading],
                      required_length: Optional[int] = None) -> 'FeatureWindow':
        return cls(tuple(readings), required_length or SEQUENCE_LENGTH)

    @property
    def device_id(self) -> str:
        return self.readings[0].device_id

    @property
    def latest(self) -> SensorReading:
        return self.readings[-1]

    @property
    def sequence_length(self) -> int:
        return len(self.readings)

    def feature_matrix(self) -> np.ndarray:
        """Raw features as a [n, 11] matrix"""
        return np.vstack([r.feature_array() for r in self.readings])

    def __len__(self) -> int:
        return len(self.readings)
