# rx_app_pkg/__init__.py

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import NotFound

# Load environment variables from .env file.
load_dotenv()

from .config import get_config

# Extensions live at module level and are bound inside create_app.
db = SQLAlchemy()
migrate = Migrate()


def create_app(config_name='development'):
    """
    Application factory function.
    """
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    db.init_app(app)
    migrate.init_app(app, db)

    # Blueprints are imported here so models load after db exists.
    from .auth.routes import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    from .prescriptions.routes import prescriptions_bp
    app.register_blueprint(prescriptions_bp, url_prefix='/api')

    from .uuid_registry.commands import backfill_uuids_command
    app.cli.add_command(backfill_uuids_command)

    @app.route('/health')
    def health_check():
        return "Prescription records service is healthy!", 200

    # Centralized error handling
    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        app.logger.error(f"Database Error: {e}")
        db.session.rollback()
        return jsonify({"error": "A database error occurred."}), 500

    @app.errorhandler(NotFound)
    def handle_not_found_error(e):
        app.logger.warning(f"Not Found Error: {e}")
        return jsonify({"error": "The requested resource was not found."}), 404

    @app.errorhandler(Exception)
    def handle_generic_error(e):
        app.logger.error(f"An unexpected error occurred: {e}", exc_info=True)
        return jsonify({"error": "An unexpected server error occurred."}), 500

    return app
