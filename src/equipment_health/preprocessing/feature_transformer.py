"""
Feature Transformer Module
Turns raw sensor readings into the normalized inputs each model family expects:
sequence tensors for the LSTM models, schema-labelled rows for the random
forests and a 12-feature scaled vector for the part-risk classifier
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

import numpy as np
import pandas as pd

from equipment_health.data_ingestion.sensor_data import FeatureWindow, SensorReading
from equipment_health.preprocessing.feature_schema import (
    FAILURE_SCHEMA,
    HEALTH_INDEX_SCHEMA,
    N_FEATURES,
    N_PART_RISK_FEATURES,
    PART_RISK_FEATURE_NAMES,
    SEQUENCE_BOUNDS,
    VIBRATION_INDICES,
    MinMaxBounds,
    StandardStats,
    TaskKind,
    TreeSchema,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SequenceInput:
    """Min-max normalized window, shape [1, sequence_length, 11]"""
    tensor: np.ndarray
    kind: str = 'sequence'

    @property
    def sequence_length(self) -> int:
        return int(self.tensor.shape[1])

    def latest_vector(self) -> np.ndarray:
        """Last timestep as a [1, 11] row (the autoencoder input)"""
        return self.tensor[:, -1, :].reshape(1, N_FEATURES)


@dataclass(frozen=True)
class FlatInput:
    """One standardized row laid out by a tree schema, target slot left missing"""
    frame: pd.DataFrame
    schema: TreeSchema
    kind: str = 'flat'

    def features(self) -> pd.DataFrame:
        """Feature columns only, in schema order"""
        return self.frame.loc[:, list(self.schema.feature_columns)]

    def values(self) -> np.ndarray:
        return self.features().to_numpy(dtype=np.float64)


@dataclass(frozen=True)
class PartRiskInput:
    """12 features (11 raw + mean vibration) after the part-risk scaler"""
    vector: np.ndarray
    raw: np.ndarray
    kind: str = 'part_risk'


ModelInput = Union[SequenceInput, FlatInput, PartRiskInput]


def named_input(estimator: Any, values: np.ndarray, names: Sequence[str]) -> Union[np.ndarray, pd.DataFrame]:
    """Wrap values in a DataFrame when the estimator was fitted with column names"""
    if getattr(estimator, 'feature_names_in_', None) is not None:
        return pd.DataFrame(values, columns=list(names))
    return values


class FeatureTransformer:
    """
    Builds model inputs from raw readings.

    Sequence models use the fixed training bounds; tree models use the
    registry's mean/std statistics; the part-risk model uses its own fitted
    min-max scaler. None of the scalings clamp out-of-range values.
    """

    def __init__(self,
                 standard_stats: Optional[StandardStats] = None,
                 part_risk_scaler: Any = None,
                 sequence_bounds: MinMaxBounds = SEQUENCE_BOUNDS,
                 failure_schema: TreeSchema = FAILURE_SCHEMA,
                 health_index_schema: TreeSchema = HEALTH_INDEX_SCHEMA):
        """
        Initialize feature transformer

        Args:
            standard_stats: Mean/std statistics for the tree models
            part_risk_scaler: Fitted scaler with a ``transform`` method over 12 features
            sequence_bounds: Min/max bounds for the sequence models
            failure_schema: Column layout of the failure forest
            health_index_schema: Column layout of the health-index forest
        """
        self.standard_stats = standard_stats or StandardStats.identity()
        self.part_risk_scaler = part_risk_scaler
        self.sequence_bounds = sequence_bounds
        self.schemas = {
            TaskKind.FAILURE: failure_schema,
            TaskKind.HEALTH_INDEX: health_index_schema,
        }

    @classmethod
    def from_bundle(cls, bundle) -> 'FeatureTransformer':
        """Create a transformer bound to a loaded model bundle"""
        return cls(
            standard_stats=bundle.standard_stats,
            part_risk_scaler=bundle.part_risk_scaler,
            failure_schema=bundle.failure_schema,
            health_index_schema=bundle.health_index_schema,
        )

    def normalize_min_max(self, features: np.ndarray) -> np.ndarray:
        """(raw - min) / (max - min) per feature, unclipped"""
        bounds = self.sequence_bounds
        return (np.asarray(features, dtype=np.float64) - bounds.minimum) / bounds.span

    def standardize(self, features: np.ndarray) -> np.ndarray:
        """(raw - mean) / std per feature"""
        stats = self.standard_stats
        return (np.asarray(features, dtype=np.float64) - stats.mean) / stats.std

    def build_sequence(self, window: FeatureWindow) -> SequenceInput:
        """
        Normalize every reading of the window for the sequence models

        Args:
            window: Time-ordered readings of one device

        Returns:
            Sequence input with tensor shape [1, len(window), 11]
        """
        matrix = self.normalize_min_max(window.feature_matrix())
        tensor = matrix.reshape(1, matrix.shape[0], N_FEATURES)
        logger.debug(f"Built sequence tensor with shape {tensor.shape}")
        return SequenceInput(tensor=tensor)

    def build_flat_instance(self, reading: SensorReading, task_kind: TaskKind) -> FlatInput:
        """
        Build the standardized row for a tree-model task

        Args:
            reading: Latest reading
            task_kind: TaskKind.FAILURE or TaskKind.HEALTH_INDEX

        Returns:
            Flat input with the feature columns plus a missing target column
        """
        schema = self.schemas.get(TaskKind(task_kind))
        if schema is None:
            raise ValueError(f"No tree schema for task {task_kind}")

        normalized = self.standardize(reading.feature_array())
        row = dict(zip(schema.feature_columns, normalized))
        row[schema.target_column] = np.nan
        frame = pd.DataFrame([row], columns=list(schema.columns))
        return FlatInput(frame=frame, schema=schema)

    def build_part_risk_instance(self, reading: SensorReading) -> PartRiskInput:
        """
        Build the scaled 12-feature vector for the part-risk classifier

        Args:
            reading: Latest reading

        Returns:
            Part-risk input with vector shape [1, 12]
        """
        features = reading.feature_array()
        average_vibration = features[list(VIBRATION_INDICES)].sum() / 3.0
        raw = np.append(features, average_vibration).reshape(1, N_PART_RISK_FEATURES)

        if self.part_risk_scaler is None:
            raise RuntimeError("Part-risk scaler not available")

        scaled = self.part_risk_scaler.transform(
            named_input(self.part_risk_scaler, raw, PART_RISK_FEATURE_NAMES)
        )
        return PartRiskInput(vector=np.asarray(scaled, dtype=np.float64), raw=raw)
