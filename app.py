import os
import logging

from rich.logging import RichHandler
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from asgiref.wsgi import WsgiToAsgi

import config
from feedback_app.errors import FeedbackError
from feedback_app.models import init_db
from routes.auth_routes import auth_bp
from routes.student_routes import student_bp
from routes.faculty_routes import faculty_bp
from routes.admin_routes import admin_bp

logger = logging.getLogger("feedback_system")


def configure_logging(level=logging.INFO):
    """Send all log records through rich."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
    )

    logging.root.handlers = [
        RichHandler(rich_tracebacks=True, show_path=True, tracebacks_show_locals=False,
                    log_time_format="[%b %d, %Y, %I:%M:%S %p]",
                    )
    ]


def register_error_handlers(app):
    @app.errorhandler(FeedbackError)
    def handle_feedback_error(error):
        return jsonify({'success': False, 'message': error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'success': False, 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception(f"Unhandled error: {error}")
        return jsonify({'success': False, 'message': 'Server error'}), 500


def create_app(overrides=None):
    """
    Build the Flask application and bring the database schema up to date.

    `overrides` is merged into app.config after the values from config.py.
    """
    app = Flask(__name__)
    app.config.from_object(config)
    app.config['MAX_CONTENT_LENGTH'] = config.MAX_FILE_SIZE
    if overrides:
        app.config.update(overrides)
    app.secret_key = app.config['SECRET_KEY']

    app.register_blueprint(auth_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(faculty_bp)
    app.register_blueprint(admin_bp)
    register_error_handlers(app)

    with app.app_context():
        init_db()

    return app


def main():
    configure_logging()
    app = create_app()
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)
    asgi_app = WsgiToAsgi(app)

    import uvicorn
    logger.info(f"Starting server on {config.HOST}:{config.PORT}")
    uvicorn.run(asgi_app, host=config.HOST, port=config.PORT, log_config=None)


if __name__ == "__main__":
    main()
