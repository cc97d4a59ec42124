"""
Model Factory Module
Architectures of the five serving models, used to build untrained
shape-compatible fallbacks when an artifact cannot be loaded
"""

import logging
from typing import Optional, Tuple

from tensorflow import keras
from tensorflow.keras import layers, initializers
from sklearn.ensemble import RandomForestClassifier, RandomForestRegressor
from sklearn.preprocessing import MinMaxScaler

from equipment_health.preprocessing.feature_schema import (
    N_FEATURES,
    N_PART_CLASSES,
    N_PART_RISK_FEATURES,
    SEQUENCE_LENGTH,
)

logger = logging.getLogger(__name__)

# Expected serving shapes, batch dimension omitted
AUTOENCODER_INPUT_SHAPE: Tuple[int, ...] = (N_FEATURES,)
AUTOENCODER_OUTPUT_SHAPE: Tuple[int, ...] = (N_FEATURES,)
RUL_INPUT_SHAPE: Tuple[Optional[int], ...] = (SEQUENCE_LENGTH, N_FEATURES)
RUL_OUTPUT_SHAPE: Tuple[int, ...] = (1,)
PART_RISK_INPUT_SHAPE: Tuple[int, ...] = (N_PART_RISK_FEATURES,)
PART_RISK_OUTPUT_SHAPE: Tuple[int, ...] = (N_PART_CLASSES,)


def _glorot(seed: int) -> initializers.Initializer:
    return initializers.GlorotUniform(seed=seed)


def _orthogonal(seed: int) -> initializers.Initializer:
    return initializers.Orthogonal(seed=seed)


def _lstm(units: int, seed: int, return_sequences: bool, name: str) -> layers.LSTM:
    return layers.LSTM(
        units,
        activation='tanh',
        return_sequences=return_sequences,
        kernel_initializer=_glorot(seed),
        recurrent_initializer=_orthogonal(seed + 1),
        name=name,
    )


def build_autoencoder(seed: int = 42) -> keras.Model:
    """
    LSTM autoencoder over a single 11-feature reading

    The reading is treated as a one-step sequence: 11 -> 32 -> 16 -> 16 -> 32 -> 11.
    """
    inputs = keras.Input(shape=AUTOENCODER_INPUT_SHAPE, name='reading')
    x = layers.Reshape((1, N_FEATURES))(inputs)
    x = _lstm(32, seed, True, 'encoder_lstm_1')(x)
    x = _lstm(16, seed + 10, True, 'encoder_lstm_2')(x)
    x = _lstm(16, seed + 20, True, 'decoder_lstm_1')(x)
    x = _lstm(32, seed + 30, True, 'decoder_lstm_2')(x)
    x = layers.TimeDistributed(
        layers.Dense(N_FEATURES, activation='linear', kernel_initializer=_glorot(seed + 40)),
        name='reconstruction',
    )(x)
    outputs = layers.Reshape(AUTOENCODER_OUTPUT_SHAPE)(x)
    return keras.Model(inputs, outputs, name='lstm_autoencoder')


def build_rul_model(seed: int = 42, sequence_length: int = SEQUENCE_LENGTH) -> keras.Model:
    """Stacked LSTM regressor: [seq, 11] -> 64 -> 32 -> 16 -> 1"""
    inputs = keras.Input(shape=(sequence_length, N_FEATURES), name='sequence')
    x = _lstm(64, seed, True, 'rul_lstm_1')(inputs)
    x = _lstm(32, seed + 10, False, 'rul_lstm_2')(x)
    x = layers.Dense(16, activation='relu', kernel_initializer=_glorot(seed + 20), name='rul_dense')(x)
    outputs = layers.Dense(1, activation='linear', kernel_initializer=_glorot(seed + 30), name='rul')(x)
    return keras.Model(inputs, outputs, name='rul_lstm')


def build_part_risk_model(seed: int = 42) -> keras.Model:
    """Dense softmax classifier: 12 -> 32 -> 6"""
    inputs = keras.Input(shape=PART_RISK_INPUT_SHAPE, name='part_features')
    x = layers.Dense(32, activation='relu', kernel_initializer=_glorot(seed), name='part_dense')(inputs)
    outputs = layers.Dense(
        N_PART_CLASSES, activation='softmax', kernel_initializer=_glorot(seed + 10), name='part_class'
    )(x)
    return keras.Model(inputs, outputs, name='part_risk_classifier')


def build_failure_forest(seed: int = 42) -> RandomForestClassifier:
    """Unfitted failure classifier; predicting with it raises NotFittedError"""
    return RandomForestClassifier(n_estimators=100, random_state=seed)


def build_health_index_forest(seed: int = 42) -> RandomForestRegressor:
    """Unfitted health-index regressor; predicting with it raises NotFittedError"""
    return RandomForestRegressor(n_estimators=100, random_state=seed)


def build_part_risk_scaler() -> MinMaxScaler:
    """Unfitted 12-feature scaler; transforming with it raises NotFittedError"""
    return MinMaxScaler(feature_range=(0.0, 1.0))


def model_shape(model, attribute: str) -> Tuple[Optional[int], ...]:
    """Input or output shape of a Keras model without the batch dimension"""
    shape = getattr(model, attribute)
    if isinstance(shape, list):
        if len(shape) != 1:
            raise ValueError(f"Expected a single {attribute}, got {len(shape)}")
        shape = shape[0]
    return tuple(shape)[1:]
