"""
Pipeline Scheduler Module
Fixed-rate prediction ticks driven by the ``schedule`` library
"""

import logging
import threading
from typing import Optional

import schedule

from equipment_health.pipeline.prediction_pipeline import PredictionPipeline, TickReport

logger = logging.getLogger(__name__)


class PipelineScheduler:
    """
    Runs a PredictionPipeline tick every ``interval_seconds``.

    Ticks run synchronously in the schedule loop; a tick that overruns the
    interval delays the next one instead of overlapping it.
    """

    def __init__(self,
                 pipeline: PredictionPipeline,
                 interval_seconds: float = 60.0,
                 poll_seconds: float = 1.0):
        """
        Initialize pipeline scheduler

        Args:
            pipeline: Pipeline whose ticks are scheduled
            interval_seconds: Seconds between tick starts
            poll_seconds: Sleep between checks for pending jobs
        """
        if interval_seconds <= 0:
            raise ValueError("Schedule interval must be positive")

        self.pipeline = pipeline
        self.interval_seconds = interval_seconds
        self.poll_seconds = poll_seconds
        self._scheduler = schedule.Scheduler()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.tick_count = 0

    @property
    def is_running(self) -> bool:
        return not self._stop_event.is_set() and bool(self._scheduler.jobs)

    def run_once(self) -> TickReport:
        """Run a single tick"""
        self.tick_count += 1
        report = self.pipeline.run_tick()
        logger.info(f"Tick {report.tick_id} finished with status {report.status.value}")
        return report

    def _job(self):
        # run_tick reports its own failures; anything else must not kill the loop
        try:
            self.run_once()
        except Exception as e:
            logger.exception(f"Error in scheduled tick: {e}")

    def start(self):
        """Run one tick now, then every interval until stop() is called"""
        self._stop_event.clear()
        self._scheduler.clear()
        self._scheduler.every(self.interval_seconds).seconds.do(self._job)
        logger.info(f"Prediction scheduler started with {self.interval_seconds}s interval")

        self._job()
        while not self._stop_event.is_set():
            try:
                self._scheduler.run_pending()
            except Exception as e:
                logger.error(f"Error in schedule loop: {str(e)}")
            self._stop_event.wait(self.poll_seconds)

        self._scheduler.clear()
        logger.info("Prediction scheduler stopped")

    def start_background(self) -> threading.Thread:
        """Run the schedule loop on a daemon thread"""
        self._thread = threading.Thread(target=self.start, name='prediction-scheduler', daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None):
        """Stop the schedule loop after the current tick"""
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout)
            self._thread = None
