"""
Prediction API
Manual trigger and model status endpoints for the prediction pipeline
"""

import logging
from datetime import datetime

from flask import Blueprint, Flask, jsonify

from equipment_health.pipeline.prediction_pipeline import TickStatus

logger = logging.getLogger(__name__)


def create_prediction_blueprint(pipeline, registry) -> Blueprint:
    """
    Create the /api/predictions blueprint

    Args:
        pipeline: PredictionPipeline run by the manual trigger
        registry: Loaded ModelRegistry whose artifact status is reported

    Returns:
        Flask blueprint
    """
    prediction_api = Blueprint('prediction_api', __name__, url_prefix='/api/predictions')

    @prediction_api.route('/run-pipeline', methods=['POST'])
    def run_pipeline():
        """Run one prediction tick now"""
        logger.info("Manual prediction pipeline trigger")
        report = pipeline.run_tick()
        body = report.to_dict()
        body['success'] = report.status is TickStatus.COMPLETED

        if report.status is TickStatus.FAILED_INFERENCE:
            return jsonify(body), 500
        return jsonify(body)

    @prediction_api.route('/models', methods=['GET'])
    def get_model_status():
        """Load state of every model artifact"""
        try:
            status = {name: s.to_dict() for name, s in registry.artifact_status().items()}
        except RuntimeError as e:
            logger.error(f"Error getting model status: {e}")
            return jsonify({'success': False, 'error': str(e)}), 503

        return jsonify({
            'success': True,
            'models': status,
            'timestamp': datetime.now().isoformat(),
        })

    return prediction_api


def create_app(pipeline, registry) -> Flask:
    """Flask application exposing the prediction API"""
    app = Flask(__name__)
    app.register_blueprint(create_prediction_blueprint(pipeline, registry))
    return app
