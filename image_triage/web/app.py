"""Flask web application for the Image Triage System."""

from flask import Flask, request, jsonify
from .blueprints.api import api_bp
from ..core.engine import CategorizationEngine


def create_app(engine: CategorizationEngine, config=None):
    """
    Create and configure the Flask application.

    Args:
        engine: Categorization engine driven by the API
        config: Configuration dictionary

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    app.config.update({
        'JSON_SORT_KEYS': False,
        'SEND_FILE_MAX_AGE_DEFAULT': 0,
    })

    if config:
        app.config.update(config)

    app.extensions['image_triage'] = engine
    app.register_blueprint(api_bp, url_prefix='/api')

    @app.errorhandler(404)
    def not_found(error):
        if request.path.startswith('/api/'):
            return jsonify({'error': 'API endpoint not found'}), 404
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        app.logger.error(f'Server Error: {error}', exc_info=True)
        return jsonify({
            'error': 'Internal server error',
            'message': 'An unexpected error occurred'
        }), 500

    return app
