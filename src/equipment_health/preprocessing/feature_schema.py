"""
Feature Schema Module
Feature order, training-time normalization bounds and tree-model schemas
shared by the transformer and the model registry
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import numpy as np

FEATURE_NAMES: Tuple[str, ...] = (
    'evaporator_coil_temperature',
    'fridge_temperature',
    'freezer_temperature',
    'air_temperature',
    'humidity',
    'compressor_vibration_x',
    'compressor_vibration_y',
    'compressor_vibration_z',
    'compressor_current',
    'input_voltage',
    'gas_leakage_level',
)
N_FEATURES = len(FEATURE_NAMES)

VIBRATION_INDICES = (5, 6, 7)
PART_RISK_FEATURE_NAMES: Tuple[str, ...] = FEATURE_NAMES + ('average_vibration',)
N_PART_RISK_FEATURES = len(PART_RISK_FEATURE_NAMES)

SEQUENCE_LENGTH = 11
N_PART_CLASSES = 6

# Min-max bounds the sequence models were trained with
SEQUENCE_FEATURE_MIN = np.array(
    [-5.0, -30.0, -10.0, 15.0, 20.0, 0.0, 0.0, 0.0, 0.0, 100.0, 0.0], dtype=np.float64
)
SEQUENCE_FEATURE_MAX = np.array(
    [0.0, -15.0, 5.0, 35.0, 80.0, 10.0, 10.0, 10.0, 20.0, 240.0, 0.1], dtype=np.float64
)


class TaskKind(str, Enum):
    """The five prediction tasks"""
    ANOMALY = 'anomaly'
    FAILURE = 'failure'
    HEALTH_INDEX = 'health_index'
    RUL = 'rul'
    PART_RISK = 'part_risk'


@dataclass(frozen=True)
class MinMaxBounds:
    """Fixed per-feature bounds for (raw - min) / (max - min) scaling"""
    minimum: np.ndarray
    maximum: np.ndarray

    def __post_init__(self):
        if self.minimum.shape != self.maximum.shape:
            raise ValueError("Min and max bounds must have the same shape")
        if np.any(self.maximum == self.minimum):
            raise ValueError("Min and max bounds must differ for every feature")

    @property
    def span(self) -> np.ndarray:
        return self.maximum - self.minimum

    @property
    def midpoint(self) -> np.ndarray:
        return (self.minimum + self.maximum) / 2.0


SEQUENCE_BOUNDS = MinMaxBounds(SEQUENCE_FEATURE_MIN, SEQUENCE_FEATURE_MAX)


@dataclass(frozen=True)
class StandardStats:
    """Per-feature mean / standard deviation for the tree models"""
    mean: np.ndarray
    std: np.ndarray

    def __post_init__(self):
        mean = np.asarray(self.mean, dtype=np.float64)
        std = np.asarray(self.std, dtype=np.float64)
        if mean.shape != (N_FEATURES,) or std.shape != (N_FEATURES,):
            raise ValueError(f"Normalization stats must have {N_FEATURES} values each")
        if np.any(std == 0):
            raise ValueError("Standard deviation must be non-zero for every feature")
        object.__setattr__(self, 'mean', mean)
        object.__setattr__(self, 'std', std)

    @classmethod
    def identity(cls) -> 'StandardStats':
        """Zero mean, unit variance"""
        return cls(np.zeros(N_FEATURES), np.ones(N_FEATURES))


@dataclass(frozen=True)
class TreeSchema:
    """Column layout a tree model was trained on: features plus the target slot"""
    relation: str
    feature_columns: Tuple[str, ...]
    target_column: str
    class_labels: Optional[Tuple[str, ...]] = None

    @property
    def columns(self) -> Tuple[str, ...]:
        return self.feature_columns + (self.target_column,)

    @property
    def is_classification(self) -> bool:
        return self.class_labels is not None


FAILURE_SCHEMA = TreeSchema(
    relation='failure_data',
    feature_columns=FEATURE_NAMES,
    target_column='class',
    class_labels=('normal', 'failure'),
)

HEALTH_INDEX_SCHEMA = TreeSchema(
    relation='health_index_data',
    feature_columns=FEATURE_NAMES,
    target_column='health_index',
)
