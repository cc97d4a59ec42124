"""
Model Registry Module
Loads the serving artifacts once at startup and substitutes untrained,
shape-compatible fallbacks for anything missing, corrupt or off-contract
"""

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import joblib
import numpy as np
from tensorflow import keras

from equipment_health.model_registry import model_factory
from equipment_health.preprocessing.feature_schema import (
    FAILURE_SCHEMA,
    FEATURE_NAMES,
    HEALTH_INDEX_SCHEMA,
    N_FEATURES,
    N_PART_RISK_FEATURES,
    PART_RISK_FEATURE_NAMES,
    SEQUENCE_LENGTH,
    StandardStats,
    TreeSchema,
)

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.5

ARTIFACT_FILES: Dict[str, str] = {
    'autoencoder': 'autoencoder.keras',
    'rul_model': 'rul.keras',
    'part_risk_model': 'part_risk.keras',
    'part_risk_scaler': 'part_risk_scaler.joblib',
    'failure_model': 'rf_failure.joblib',
    'health_index_model': 'rf_health_index.joblib',
    'threshold': 'threshold.json',
    'normalization': 'normalization.json',
}


@dataclass(frozen=True)
class ArtifactStatus:
    """Load outcome of one artifact"""
    name: str
    path: Path
    loaded: bool
    reason: str = ''

    @property
    def state(self) -> str:
        return 'loaded' if self.loaded else 'fallback'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'path': str(self.path),
            'state': self.state,
            'reason': self.reason,
        }


@dataclass(frozen=True)
class ModelBundle:
    """Every model and constant the orchestrator needs; read-only after load"""
    autoencoder: Any
    rul_model: Any
    part_risk_model: Any
    part_risk_scaler: Any
    failure_model: Any
    health_index_model: Any
    threshold: float
    standard_stats: StandardStats
    failure_schema: TreeSchema = FAILURE_SCHEMA
    health_index_schema: TreeSchema = HEALTH_INDEX_SCHEMA
    artifact_status: Mapping[str, ArtifactStatus] = field(default_factory=dict)

    @property
    def fallback_artifacts(self) -> Tuple[str, ...]:
        return tuple(name for name, status in self.artifact_status.items() if not status.loaded)


# ---------------------------------------------------------------------------
# Contract checks: each raises ValueError when an artifact is off-contract
# ---------------------------------------------------------------------------

def _check_keras_shapes(model, expected_input, expected_output):
    input_shape = model_factory.model_shape(model, 'input_shape')
    output_shape = model_factory.model_shape(model, 'output_shape')

    if len(input_shape) != len(expected_input) or any(
        exp is not None and got is not None and got != exp
        for got, exp in zip(input_shape, expected_input)
    ):
        raise ValueError(f"input shape {input_shape} does not match {expected_input}")

    if output_shape != tuple(expected_output):
        raise ValueError(f"output shape {output_shape} does not match {expected_output}")


def _check_feature_contract(estimator, n_features: int, names):
    n_in = getattr(estimator, 'n_features_in_', None)
    if n_in is None:
        raise ValueError("estimator is not fitted")
    if n_in != n_features:
        raise ValueError(f"expects {n_in} features, serving provides {n_features}")

    fitted_names = getattr(estimator, 'feature_names_in_', None)
    if fitted_names is not None and tuple(fitted_names) != tuple(names):
        raise ValueError(f"feature order {tuple(fitted_names)} does not match {tuple(names)}")


def validate_autoencoder(model):
    _check_keras_shapes(model, model_factory.AUTOENCODER_INPUT_SHAPE, model_factory.AUTOENCODER_OUTPUT_SHAPE)


def validate_rul_model(model):
    # Variable-length time axis is allowed
    input_shape = model_factory.model_shape(model, 'input_shape')
    if len(input_shape) != 2 or input_shape[1] != N_FEATURES or input_shape[0] not in (None, SEQUENCE_LENGTH):
        raise ValueError(f"input shape {input_shape} does not match (11, 11)")
    output_shape = model_factory.model_shape(model, 'output_shape')
    if output_shape != model_factory.RUL_OUTPUT_SHAPE:
        raise ValueError(f"output shape {output_shape} does not match {model_factory.RUL_OUTPUT_SHAPE}")


def validate_part_risk_model(model):
    _check_keras_shapes(model, model_factory.PART_RISK_INPUT_SHAPE, model_factory.PART_RISK_OUTPUT_SHAPE)


def validate_part_risk_scaler(scaler):
    if not hasattr(scaler, 'transform'):
        raise ValueError("scaler has no transform method")
    _check_feature_contract(scaler, N_PART_RISK_FEATURES, PART_RISK_FEATURE_NAMES)


def validate_failure_model(model):
    if not hasattr(model, 'predict_proba'):
        raise ValueError("failure model has no predict_proba method")
    _check_feature_contract(model, N_FEATURES, FEATURE_NAMES)
    classes = getattr(model, 'classes_', ())
    if len(classes) != 2:
        raise ValueError(f"failure model must be binary, has classes {list(classes)}")


def validate_health_index_model(model):
    if not hasattr(model, 'predict'):
        raise ValueError("health index model has no predict method")
    _check_feature_contract(model, N_FEATURES, FEATURE_NAMES)


def read_threshold(path: Path) -> float:
    """Threshold file holds either a bare number or {"threshold": number}"""
    with open(path, 'r') as f:
        payload = json.load(f)

    value = payload.get('threshold') if isinstance(payload, dict) else payload
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"threshold must be a number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"threshold must be finite, got {value}")
    return value


def read_normalization(path: Path) -> StandardStats:
    with open(path, 'r') as f:
        payload = json.load(f)
    return StandardStats(np.asarray(payload['mean']), np.asarray(payload['std']))


class ModelRegistry:
    """
    Loads all model artifacts once and exposes them read-only.

    The registry never hands out "no model": anything that cannot be loaded
    is replaced by a freshly initialised model of the same architecture, and
    missing constants default to identity normalization and threshold 0.5.
    """

    def __init__(self,
                 artifact_dir: Union[str, Path] = 'model',
                 random_seed: int = 42):
        """
        Initialize model registry

        Args:
            artifact_dir: Directory holding the serialized models
            random_seed: Seed for fallback weight initialisation
        """
        self.artifact_dir = Path(artifact_dir)
        self.random_seed = random_seed
        self._bundle: Optional[ModelBundle] = None

    @classmethod
    def from_settings(cls, settings) -> 'ModelRegistry':
        artifact_config = settings.get_artifact_config()
        return cls(artifact_config.model_dir, artifact_config.random_seed)

    def artifact_path(self, name: str) -> Path:
        return self.artifact_dir / ARTIFACT_FILES[name]

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> ModelBundle:
        """
        Load every artifact, falling back per artifact on any failure

        Returns:
            The immutable model bundle; repeated calls return the same bundle
        """
        if self._bundle is not None:
            return self._bundle

        logger.info(f"Loading ML models from {self.artifact_dir.resolve()}")
        seed = self.random_seed
        statuses: Dict[str, ArtifactStatus] = {}

        autoencoder = self._load_artifact(
            'autoencoder', _load_keras, validate_autoencoder,
            lambda: model_factory.build_autoencoder(seed), statuses)
        rul_model = self._load_artifact(
            'rul_model', _load_keras, validate_rul_model,
            lambda: model_factory.build_rul_model(seed), statuses)
        part_risk_model = self._load_artifact(
            'part_risk_model', _load_keras, validate_part_risk_model,
            lambda: model_factory.build_part_risk_model(seed), statuses)
        part_risk_scaler = self._load_artifact(
            'part_risk_scaler', joblib.load, validate_part_risk_scaler,
            model_factory.build_part_risk_scaler, statuses)
        failure_model = self._load_artifact(
            'failure_model', joblib.load, validate_failure_model,
            lambda: model_factory.build_failure_forest(seed), statuses)
        health_index_model = self._load_artifact(
            'health_index_model', joblib.load, validate_health_index_model,
            lambda: model_factory.build_health_index_forest(seed), statuses)
        threshold = self._load_artifact(
            'threshold', read_threshold, None, lambda: DEFAULT_THRESHOLD, statuses)
        standard_stats = self._load_artifact(
            'normalization', read_normalization, None, StandardStats.identity, statuses)

        self._bundle = ModelBundle(
            autoencoder=autoencoder,
            rul_model=rul_model,
            part_risk_model=part_risk_model,
            part_risk_scaler=part_risk_scaler,
            failure_model=failure_model,
            health_index_model=health_index_model,
            threshold=float(threshold),
            standard_stats=standard_stats,
            artifact_status=MappingProxyType(statuses),
        )

        fallbacks = self._bundle.fallback_artifacts
        if fallbacks:
            logger.warning(f"Model registry loaded with fallbacks for: {', '.join(fallbacks)}")
        else:
            logger.info("All models loaded successfully")
        return self._bundle

    def _load_artifact(self,
                       name: str,
                       loader: Callable[[Path], Any],
                       validator: Optional[Callable[[Any], None]],
                       fallback: Callable[[], Any],
                       statuses: Dict[str, ArtifactStatus]) -> Any:
        """Load one artifact; on any failure log it and build the fallback"""
        path = self.artifact_path(name)

        if not path.exists():
            logger.warning(f"{name} artifact not found: {path}, using fallback")
            statuses[name] = ArtifactStatus(name, path, loaded=False, reason='missing')
            return fallback()

        try:
            logger.info(f"Loading {name} from: {path}")
            artifact = loader(path)
            if artifact is None:
                raise ValueError("artifact deserialized to None")
            if validator is not None:
                validator(artifact)
        except Exception as e:
            logger.warning(f"Error loading {name} from {path}: {e}; using fallback")
            statuses[name] = ArtifactStatus(name, path, loaded=False, reason=str(e))
            return fallback()

        logger.info(f"Successfully loaded {name}")
        statuses[name] = ArtifactStatus(name, path, loaded=True)
        return artifact

    # ------------------------------------------------------------------
    # Read-only access
    # ------------------------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self._bundle is not None

    @property
    def bundle(self) -> ModelBundle:
        if self._bundle is None:
            raise RuntimeError("ModelRegistry.load() has not been called")
        return self._bundle

    @property
    def autoencoder(self):
        return self.bundle.autoencoder

    @property
    def rul_model(self):
        return self.bundle.rul_model

    @property
    def part_risk_model(self):
        return self.bundle.part_risk_model

    @property
    def part_risk_scaler(self):
        return self.bundle.part_risk_scaler

    @property
    def failure_model(self):
        return self.bundle.failure_model

    @property
    def health_index_model(self):
        return self.bundle.health_index_model

    @property
    def threshold(self) -> float:
        return self.bundle.threshold

    @property
    def standard_stats(self) -> StandardStats:
        return self.bundle.standard_stats

    @property
    def failure_schema(self) -> TreeSchema:
        return self.bundle.failure_schema

    @property
    def health_index_schema(self) -> TreeSchema:
        return self.bundle.health_index_schema

    def artifact_status(self) -> Mapping[str, ArtifactStatus]:
        return self.bundle.artifact_status


def _load_keras(path: Path):
    return keras.models.load_model(path, compile=False)
