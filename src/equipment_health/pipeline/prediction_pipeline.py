"""
Prediction Pipeline Module
One tick: fetch the latest window, run inference, assemble and store the result
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from equipment_health.data_ingestion.sensor_data import FeatureWindow
from equipment_health.errors import DataSourceError, InferenceError, InsufficientWindowError
from equipment_health.inference.orchestrator import InferenceOrchestrator
from equipment_health.inference.result_assembler import PredictionResult, ResultAssembler
from equipment_health.preprocessing.feature_schema import SEQUENCE_LENGTH
from equipment_health.utils.logger import LogContext, log_execution_time

logger = logging.getLogger(__name__)


class TickStatus(str, Enum):
    COMPLETED = 'completed'
    SKIPPED_NO_DATA = 'skipped_no_data'
    SKIPPED_INVALID_WINDOW = 'skipped_invalid_window'
    SKIPPED_SOURCE_ERROR = 'skipped_source_error'
    FAILED_INFERENCE = 'failed_inference'
    SINK_FAILED = 'sink_failed'


@dataclass
class TickReport:
    """Outcome of one pipeline tick"""
    status: TickStatus
    tick_id: str
    result: Optional[PredictionResult] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    duration: float = 0.0
    degraded_tasks: tuple = ()

    @property
    def succeeded(self) -> bool:
        return self.status is TickStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': self.status.value,
            'tick_id': self.tick_id,
            'result': self.result.to_dict() if self.result else None,
            'error': self.error,
            'started_at': self.started_at.isoformat(),
            'duration': self.duration,
            'degraded_tasks': [task.value for task in self.degraded_tasks],
        }


class PredictionPipeline:
    """
    Runs prediction ticks against a reading source and a result sink.

    Ticks are serialised by a lock, so a manual trigger and the scheduler
    never run one concurrently. ``run_tick`` reports every failure through
    the returned TickReport instead of raising.
    """

    def __init__(self,
                 source,
                 sink,
                 orchestrator: InferenceOrchestrator,
                 assembler: Optional[ResultAssembler] = None,
                 window_size: int = SEQUENCE_LENGTH):
        """
        Initialize prediction pipeline

        Args:
            source: ReadingSource providing the latest readings
            sink: ResultSink storing prediction results
            orchestrator: Inference orchestrator bound to a loaded bundle
            assembler: Result assembler
            window_size: Readings fetched and required per tick
        """
        self.source = source
        self.sink = sink
        self.orchestrator = orchestrator
        self.assembler = assembler or ResultAssembler()
        self.window_size = window_size
        self._lock = threading.Lock()
        self.last_report: Optional[TickReport] = None

    @classmethod
    def from_settings(cls, settings, registry) -> 'PredictionPipeline':
        """Wire the Supabase source and sink and an orchestrator over the registry's bundle"""
        from equipment_health.data_ingestion.supabase_client import (
            SupabaseReadingSource,
            SupabaseResultSink,
        )

        supabase_config = settings.get_supabase_config()
        schedule_config = settings.get_schedule_config()
        bundle = registry.load()

        return cls(
            source=SupabaseReadingSource(supabase_config, device_id=schedule_config.device_id),
            sink=SupabaseResultSink(supabase_config),
            orchestrator=InferenceOrchestrator(bundle, rul_fallback=schedule_config.rul_fallback),
            assembler=ResultAssembler(),
            window_size=schedule_config.window_size,
        )

    def run_tick(self) -> TickReport:
        """
        Run one prediction tick

        Returns:
            TickReport describing what happened
        """
        tick_id = uuid.uuid4().hex[:12]
        with self._lock, LogContext(tick_id=tick_id):
            started_at = datetime.now()
            try:
                report = self._run_tick(tick_id)
            except Exception as e:
                logger.exception(f"Unexpected error in prediction pipeline: {e}")
                report = TickReport(TickStatus.FAILED_INFERENCE, tick_id, error=str(e))
            report.started_at = started_at
            report.duration = (datetime.now() - started_at).total_seconds()
            self.last_report = report
            return report

    @log_execution_time
    def _run_tick(self, tick_id: str) -> TickReport:
        logger.info("Running prediction pipeline...")

        try:
            readings = self.source.fetch_latest(self.window_size)
        except DataSourceError as e:
            logger.error(f"Error fetching sensor data: {e}")
            return TickReport(TickStatus.SKIPPED_SOURCE_ERROR, tick_id, error=str(e))

        if not readings:
            logger.warning("No sensor data available for prediction")
            return TickReport(TickStatus.SKIPPED_NO_DATA, tick_id, error='no readings')

        try:
            window = FeatureWindow.from_readings(readings, self.window_size)
        except InsufficientWindowError as e:
            logger.warning(f"Skipping tick: {e}")
            return TickReport(TickStatus.SKIPPED_INVALID_WINDOW, tick_id, error=str(e))

        with LogContext(device_id=window.device_id):
            try:
                outputs = self.orchestrator.predict(window)
                result = self.assembler.assemble(window.latest, outputs)
            except InferenceError as e:
                logger.error(f"Prediction aborted: {e}")
                return TickReport(TickStatus.FAILED_INFERENCE, tick_id, error=str(e))
            except Exception as e:
                logger.exception(f"Unexpected error in prediction pipeline: {e}")
                return TickReport(TickStatus.FAILED_INFERENCE, tick_id, error=str(e))

            logger.info(
                f"Prediction: anomaly={result.is_anomaly}, "
                f"failure_prob={result.failure_probability}, "
                f"health_index={result.health_index}, "
                f"rul={result.remaining_useful_life}, "
                f"part_at_risk={result.part_at_risk} ({result.condition})"
            )

            degraded = outputs.degraded_tasks
            try:
                stored = self.sink.store(result)
            except Exception as e:
                logger.exception(f"Error storing prediction: {e}")
                stored = False

            if not stored:
                return TickReport(TickStatus.SINK_FAILED, tick_id, result=result,
                                  error='result not stored', degraded_tasks=degraded)

            logger.info("Prediction pipeline completed successfully")
            return TickReport(TickStatus.COMPLETED, tick_id, result=result, degraded_tasks=degraded)
