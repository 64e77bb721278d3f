"""Flask application factory."""
from flask import Flask, jsonify
from erp.database import init_db
import os


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)

    # Initialize Sentry for error tracking in production
    if os.getenv('SENTRY_DSN') and (app.config.get('ENV') == 'production' or os.getenv('FLASK_ENV') == 'production'):
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=os.getenv('SENTRY_DSN'),
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            profiles_sample_rate=0.1,  # 10% for profiling
            environment=os.getenv('FLASK_ENV', 'production'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Setup Prometheus metrics instrumentation
    from erp.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind Nginx reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,      # Trust X-Forwarded-For with 1 proxy
            x_proto=1,    # Trust X-Forwarded-Proto
            x_host=1,     # Trust X-Forwarded-Host
            x_port=1,     # Trust X-Forwarded-Port
            x_prefix=0    # No prefix (not behind a URL prefix)
        )

    # Initialize database
    init_db(app)

    # Error Handlers
    from erp.exceptions import ERPError, PricingError, InvalidDocument
    from erp.blueprints.metrics import record_invalid_lines

    @app.errorhandler(ERPError)
    def handle_erp_error(error):
        """Handle custom application exceptions."""
        if isinstance(error, InvalidDocument):
            record_invalid_lines(error.line_errors)
        elif isinstance(error, PricingError):
            record_invalid_lines([error.to_line_error(None)])

        if error.status_code >= 500:
            app.logger.error(f"ERPError [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"ERPError [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def not_found_error(error):
        return jsonify({'status': 'error', 'message': 'Not Found'}), 404

    @app.errorhandler(405)
    def method_not_allowed_error(error):
        return jsonify({'status': 'error', 'message': 'Method Not Allowed'}), 405

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        import traceback
        from werkzeug.exceptions import HTTPException
        if isinstance(error, HTTPException):
            return jsonify({'status': 'error', 'message': error.description}), error.code

        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({'status': 'error', 'message': 'Internal Server Error'}), 500

    # Register blueprints
    from erp.blueprints.pricing import pricing_bp
    from erp.blueprints.documents import documents_bp
    from erp.blueprints.extraction import extraction_bp
    from erp.blueprints.metrics import metrics_bp

    app.register_blueprint(pricing_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(extraction_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from erp.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"Pricing aggregation policy: {app.config.get('PRICING_AGGREGATION_POLICY')}")

    return app
