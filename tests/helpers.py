"""
Shared builders for readings, windows and small fitted models
"""

from datetime import datetime, timedelta
from types import MappingProxyType
from unittest.mock import Mock

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.preprocessing import MinMaxScaler

from equipment_health.data_ingestion.sensor_data import FeatureWindow, SensorReading
from equipment_health.model_registry.model_registry import ModelBundle
from equipment_health.preprocessing.feature_schema import (
    FEATURE_NAMES,
    PART_RISK_FEATURE_NAMES,
    SEQUENCE_BOUNDS,
    StandardStats,
)

BASE_TIME = datetime(2024, 5, 1, 12, 0, 0)
MIDPOINT_FEATURES = tuple(SEQUENCE_BOUNDS.midpoint)


def make_reading(offset_minutes=0, features=MIDPOINT_FEATURES, device_id='fridge-1'):
    return SensorReading(
        device_id=device_id,
        timestamp=BASE_TIME + timedelta(minutes=offset_minutes),
        features=tuple(features),
    )


def make_readings(n=11, features=MIDPOINT_FEATURES, device_id='fridge-1'):
    return [make_reading(i, features, device_id) for i in range(n)]


def make_window(n=11, features=MIDPOINT_FEATURES, required_length=11):
    return FeatureWindow(tuple(make_readings(n, features)), required_length)


def training_frame(n_rows=40, columns=FEATURE_NAMES, seed=0):
    rng = np.random.RandomState(seed)
    low = np.append(SEQUENCE_BOUNDS.minimum, 0.0)[:len(columns)]
    high = np.append(SEQUENCE_BOUNDS.maximum, 10.0)[:len(columns)]
    return pd.DataFrame(rng.uniform(low, high, size=(n_rows, len(columns))), columns=list(columns))


def fitted_failure_forest(seed=0):
    X = training_frame(seed=seed)
    y = np.where(np.arange(len(X)) % 2 == 0, 'normal', 'failure')
    return RandomForestClassifier(n_estimators=5, random_state=seed).fit(X, y)


def fitted_health_index_forest(seed=0):
    X = training_frame(seed=seed)
    y = np.linspace(0.0, 1.0, len(X))
    return RandomForestRegressor(n_estimators=5, random_state=seed).fit(X, y)


def fitted_part_risk_scaler(seed=0):
    return MinMaxScaler().fit(training_frame(columns=PART_RISK_FEATURE_NAMES, seed=seed))


def identity_autoencoder():
    """Keras-like stand-in that reconstructs its input perfectly"""
    model = Mock()
    model.predict.side_effect = lambda x, verbose=0: np.array(x, copy=True)
    return model


def constant_model(output):
    model = Mock()
    model.predict.return_value = np.asarray(output, dtype=np.float64)
    return model


def make_bundle(**overrides):
    """ModelBundle of fitted tiny models and Keras stand-ins"""
    part_output = np.zeros((1, 6))
    part_output[0, 5] = 1.0
    values = dict(
        autoencoder=identity_autoencoder(),
        rul_model=constant_model([[123.5]]),
        part_risk_model=constant_model(part_output),
        part_risk_scaler=fitted_part_risk_scaler(),
        failure_model=fitted_failure_forest(),
        health_index_model=fitted_health_index_forest(),
        threshold=0.5,
        standard_stats=StandardStats.identity(),
        artifact_status=MappingProxyType({}),
    )
    values.update(overrides)
    return ModelBundle(**values)
