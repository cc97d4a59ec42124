"""
Inference Orchestrator Module
Runs the five sub-predictions against the latest window with per-task
failure containment:

- anomaly, failure probability and health index have no safe default and
  abort the tick when they fail
- remaining useful life falls back to a conservative constant
- part at risk falls back to unknown/normal
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional

import numpy as np

from equipment_health.data_ingestion.sensor_data import FeatureWindow
from equipment_health.errors import InferenceError
from equipment_health.inference.result_assembler import PartRiskLabel, map_part_class
from equipment_health.inference.task_outcome import FailurePolicy, TaskOutcome
from equipment_health.preprocessing.feature_schema import (
    N_FEATURES,
    SEQUENCE_LENGTH,
    TaskKind,
)
from equipment_health.preprocessing.feature_transformer import (
    FeatureTransformer,
    FlatInput,
    ModelInput,
    PartRiskInput,
    SequenceInput,
    named_input,
)

logger = logging.getLogger(__name__)

DEFAULT_RUL_FALLBACK = 500.0


@dataclass(frozen=True)
class AnomalyScore:
    is_anomaly: bool
    reconstruction_error: float
    threshold: float


@dataclass(frozen=True)
class PartRiskPrediction:
    """Arg-max class of the part-risk classifier; class_index None means fallback"""
    class_index: Optional[int] = None
    confidence: Optional[float] = None

    @property
    def label(self) -> PartRiskLabel:
        return map_part_class(self.class_index)


@dataclass(frozen=True)
class InferenceOutputs:
    """Raw outputs of the five tasks for one window"""
    anomaly: AnomalyScore
    failure_probability: float
    health_index: float
    remaining_useful_life: float
    part_risk: PartRiskPrediction
    outcomes: Mapping[TaskKind, TaskOutcome] = field(default_factory=dict)

    @property
    def is_anomaly(self) -> bool:
        return self.anomaly.is_anomaly

    @property
    def degraded_tasks(self):
        return tuple(task for task, outcome in self.outcomes.items() if outcome.is_fallback)


@dataclass(frozen=True)
class TaskSpec:
    """Dispatch entry: how to build a task's input, run it, and what to do on failure"""
    build_input: Callable[[FeatureWindow, SequenceInput], ModelInput]
    run: Callable[[Any], Any]
    policy: FailurePolicy
    fallback_value: Any = None


def _forward(model, x: np.ndarray) -> np.ndarray:
    return np.asarray(model.predict(x, verbose=0), dtype=np.float64)


def _finite(value: float, what: str) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"{what} is not finite: {value}")
    return value


class InferenceOrchestrator:
    """
    Runs every task of a tick through a dispatch table keyed by TaskKind.

    The model bundle is only read, never written, so one orchestrator can
    serve any number of consecutive ticks.
    """

    def __init__(self,
                 bundle,
                 transformer: Optional[FeatureTransformer] = None,
                 rul_fallback: float = DEFAULT_RUL_FALLBACK,
                 sequence_length: int = SEQUENCE_LENGTH):
        """
        Initialize inference orchestrator

        Args:
            bundle: Loaded ModelBundle
            transformer: Feature transformer bound to the bundle's statistics
            rul_fallback: RUL reported when the RUL model cannot be used
            sequence_length: Sequence length the RUL model was trained on
        """
        self.bundle = bundle
        self.transformer = transformer or FeatureTransformer.from_bundle(bundle)
        self.rul_fallback = float(rul_fallback)
        self.sequence_length = sequence_length

        self._tasks: Dict[TaskKind, TaskSpec] = {
            TaskKind.ANOMALY: TaskSpec(
                build_input=lambda window, sequence: sequence,
                run=self._run_anomaly,
                policy=FailurePolicy.PROPAGATE,
            ),
            TaskKind.FAILURE: TaskSpec(
                build_input=lambda window, sequence: self.transformer.build_flat_instance(
                    window.latest, TaskKind.FAILURE),
                run=self._run_failure,
                policy=FailurePolicy.PROPAGATE,
            ),
            TaskKind.HEALTH_INDEX: TaskSpec(
                build_input=lambda window, sequence: self.transformer.build_flat_instance(
                    window.latest, TaskKind.HEALTH_INDEX),
                run=self._run_health_index,
                policy=FailurePolicy.PROPAGATE,
            ),
            TaskKind.RUL: TaskSpec(
                build_input=lambda window, sequence: sequence,
                run=self._run_rul,
                policy=FailurePolicy.FALLBACK,
                fallback_value=self.rul_fallback,
            ),
            TaskKind.PART_RISK: TaskSpec(
                build_input=lambda window, sequence: self.transformer.build_part_risk_instance(window.latest),
                run=self._run_part_risk,
                policy=FailurePolicy.FALLBACK,
                fallback_value=PartRiskPrediction(),
            ),
        }

    @property
    def task_policies(self) -> Dict[TaskKind, FailurePolicy]:
        return {task: spec.policy for task, spec in self._tasks.items()}

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def predict(self, window: FeatureWindow) -> InferenceOutputs:
        """
        Run all five tasks on a window

        Args:
            window: Validated reading window

        Returns:
            Raw outputs of every task

        Raises:
            InferenceError: a task without a safe fallback failed
        """
        sequence = self.transformer.build_sequence(window)
        outcomes: Dict[TaskKind, TaskOutcome] = {}

        for task in self._tasks:
            outcome = self._execute(task, lambda spec: spec.build_input(window, sequence))
            if outcome.is_failed:
                raise InferenceError(task, outcome.error)
            outcomes[task] = outcome

        return InferenceOutputs(
            anomaly=outcomes[TaskKind.ANOMALY].value,
            failure_probability=outcomes[TaskKind.FAILURE].value,
            health_index=outcomes[TaskKind.HEALTH_INDEX].value,
            remaining_useful_life=outcomes[TaskKind.RUL].value,
            part_risk=outcomes[TaskKind.PART_RISK].value,
            outcomes=outcomes,
        )

    def _execute(self, task: TaskKind, build: Callable[[TaskSpec], Any]) -> TaskOutcome:
        """Run one task and apply its failure policy"""
        spec = self._tasks[task]
        try:
            result = spec.run(build(spec))
        except Exception as e:
            if spec.policy is FailurePolicy.FALLBACK:
                logger.error(f"Error in {task.value} prediction: {e}", exc_info=True)
                logger.warning(f"Using fallback {task.value} value due to model error")
                return TaskOutcome.fallback(task, spec.fallback_value, error=e)
            logger.error(f"Error in {task.value} prediction: {e}", exc_info=True)
            return TaskOutcome.failed(task, e)

        if isinstance(result, TaskOutcome):
            return result
        return TaskOutcome.success(task, result)

    # ------------------------------------------------------------------
    # Single-task entry points
    # ------------------------------------------------------------------

    def detect_anomaly(self, sequence: SequenceInput) -> AnomalyScore:
        return self._execute(TaskKind.ANOMALY, lambda spec: sequence).unwrap()

    def predict_failure_probability(self, reading) -> float:
        return self._execute(
            TaskKind.FAILURE,
            lambda spec: self.transformer.build_flat_instance(reading, TaskKind.FAILURE),
        ).unwrap()

    def predict_health_index(self, reading) -> float:
        return self._execute(
            TaskKind.HEALTH_INDEX,
            lambda spec: self.transformer.build_flat_instance(reading, TaskKind.HEALTH_INDEX),
        ).unwrap()

    def predict_rul(self, sequence: SequenceInput) -> float:
        return self._execute(TaskKind.RUL, lambda spec: sequence).unwrap()

    def predict_part_at_risk(self, reading) -> PartRiskLabel:
        prediction = self._execute(
            TaskKind.PART_RISK,
            lambda spec: self.transformer.build_part_risk_instance(reading),
        ).unwrap()
        return prediction.label

    # ------------------------------------------------------------------
    # Task runners
    # ------------------------------------------------------------------

    def reconstruction_error(self, vector: np.ndarray) -> float:
        """Mean squared error between a [1, 11] input and its reconstruction"""
        vector = np.asarray(vector, dtype=np.float64).reshape(1, N_FEATURES)
        reconstruction = _forward(self.bundle.autoencoder, vector).reshape(1, N_FEATURES)
        return float(np.mean(np.square(vector - reconstruction)))

    def _run_anomaly(self, sequence: SequenceInput) -> AnomalyScore:
        threshold = float(self.bundle.threshold)
        mse = _finite(self.reconstruction_error(sequence.latest_vector()), 'reconstruction error')
        logger.debug(f"Anomaly MSE: {mse}, Threshold: {threshold}")
        return AnomalyScore(is_anomaly=mse > threshold, reconstruction_error=mse, threshold=threshold)

    def _run_failure(self, instance: FlatInput) -> float:
        model = self.bundle.failure_model
        X = named_input(model, instance.values(), instance.schema.feature_columns)
        distribution = np.asarray(model.predict_proba(X), dtype=np.float64)
        column = self._failure_class_column(model, instance.schema)
        return _finite(distribution[0, column], 'failure probability')

    @staticmethod
    def _failure_class_column(model, schema) -> int:
        """Column of predict_proba holding the failure class"""
        classes = [c.item() if hasattr(c, 'item') else c for c in getattr(model, 'classes_', [])]
        candidates = []
        if schema.class_labels:
            candidates.append(schema.class_labels[-1])
        candidates.extend([1, '1'])
        for label in candidates:
            if label in classes:
                return classes.index(label)
        return 1

    def _run_health_index(self, instance: FlatInput) -> float:
        model = self.bundle.health_index_model
        X = named_input(model, instance.values(), instance.schema.feature_columns)
        prediction = np.asarray(model.predict(X), dtype=np.float64).ravel()
        return _finite(prediction[0], 'health index')

    def _run_rul(self, sequence: SequenceInput):
        if sequence.sequence_length != self.sequence_length:
            logger.warning(
                f"RUL model expects sequence length {self.sequence_length}, "
                f"but got {sequence.sequence_length}. Using fallback value."
            )
            return TaskOutcome.fallback(
                TaskKind.RUL, self.rul_fallback,
                detail=f"sequence length {sequence.sequence_length}",
            )

        output = _forward(self.bundle.rul_model, sequence.tensor)
        return _finite(output.reshape(-1)[0], 'remaining useful life')

    def _run_part_risk(self, instance: PartRiskInput):
        model = self.bundle.part_risk_model
        # An untrained fallback network would report a random part
        if model is None or 'part_risk_model' in self.bundle.fallback_artifacts:
            logger.warning("Part risk model not available. Using fallback values.")
            return TaskOutcome.fallback(TaskKind.PART_RISK, PartRiskPrediction(), detail='model not available')

        output = _forward(model, instance.vector)
        class_index = int(np.argmax(output, axis=1)[0])
        confidence = float(output[0, class_index])
        logger.debug(f"Part risk prediction: {map_part_class(class_index).part} with confidence {confidence}")
        return PartRiskPrediction(class_index=class_index, confidence=confidence)
