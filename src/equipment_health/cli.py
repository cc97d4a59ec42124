"""
Prediction pipeline launcher
Loads the models once, then runs prediction ticks on a fixed schedule,
optionally alongside the manual trigger API
"""

import argparse
import logging
import signal
import sys
from dataclasses import replace

from equipment_health.config.settings import Settings
from equipment_health.model_registry.model_registry import ModelRegistry
from equipment_health.pipeline.prediction_pipeline import PredictionPipeline, TickStatus
from equipment_health.pipeline.scheduler import PipelineScheduler
from equipment_health.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Start the equipment health prediction pipeline')
    parser.add_argument('--config', type=str, default=None,
                        help='Path to configuration file')
    parser.add_argument('--once', action='store_true',
                        help='Run a single prediction tick and exit')
    parser.add_argument('--serve', action='store_true',
                        help='Serve the manual trigger API alongside the scheduler')
    parser.add_argument('--model-dir', type=str, default=None,
                        help='Directory holding the model artifacts')
    parser.add_argument('--log-level', type=str, default=None,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')
    return parser


def main(argv=None) -> int:
    """Main execution function"""
    args = build_parser().parse_args(argv)

    settings = Settings(args.config)
    if args.model_dir:
        settings.set('paths.models', args.model_dir)

    logging_config = settings.get_logging_config()
    if args.log_level:
        logging_config = replace(logging_config, level=args.log_level)
    setup_logging(logging_config)

    registry = ModelRegistry.from_settings(settings)
    registry.load()
    pipeline = PredictionPipeline.from_settings(settings, registry)

    if args.once:
        report = pipeline.run_tick()
        logger.info(f"Single tick finished with status {report.status.value}")
        return 1 if report.status is TickStatus.FAILED_INFERENCE else 0

    scheduler = PipelineScheduler(pipeline, settings.get_schedule_config().interval_seconds)

    def _signal_handler(signum, frame):
        logger.info(f"Received signal {signum}. Shutting down gracefully...")
        scheduler.stop()
        if args.serve:
            sys.exit(0)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    if args.serve:
        from equipment_health.api.prediction_api import create_app

        api_config = settings.get_api_config()
        scheduler.start_background()
        app = create_app(pipeline, registry)
        logger.info(f"Serving prediction API on {api_config.host}:{api_config.port}")
        try:
            app.run(host=api_config.host, port=api_config.port, threaded=True, use_reloader=False)
        finally:
            scheduler.stop(timeout=30)
    else:
        scheduler.start()

    return 0


if __name__ == '__main__':
    sys.exit(main())
