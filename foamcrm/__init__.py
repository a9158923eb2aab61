import os
import logging
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv

from .config import DevConfig, ProdConfig, TestConfig

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()

CONFIGS = {
    'development': DevConfig,
    'production': ProdConfig,
    'testing': TestConfig,
}


def create_app(config_name: str | None = None) -> Flask:
    """Application factory with environment based configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)
    os.makedirs(app.instance_path, exist_ok=True)

    # Pick configuration
    env = config_name or os.getenv('ENV') or os.getenv('FLASK_ENV') or 'production'
    cfg_cls = CONFIGS.get(env, ProdConfig)
    app.config.from_object(cfg_cls)

    # Initialise logging
    logging.basicConfig(level=logging.DEBUG if app.debug else logging.INFO)

    db.init_app(app)
    migrate.init_app(app, db)

    # Ensure models loaded so tables can be created
    from foamcrm import models  # noqa
    with app.app_context():
        db.create_all()

    from foamcrm.errors import CrmError

    @app.errorhandler(CrmError)
    def crm_error(err):
        db.session.rollback()
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(404)
    def not_found(_):
        return jsonify(success=False, error='Not found'), 404

    @app.errorhandler(500)
    def server_error(_):
        return jsonify(success=False, error='Internal server error'), 500

    from foamcrm.jobs.routes import bp as jobs_bp
    from foamcrm.measurements.routes import bp as measurements_bp
    from foamcrm.estimates.routes import bp as estimates_bp
    from foamcrm.pricing.routes import bp as pricing_bp
    from foamcrm.cli import rates_cli, estimates_cli

    app.register_blueprint(jobs_bp)
    app.register_blueprint(measurements_bp)
    app.register_blueprint(estimates_bp, url_prefix='/estimates')
    app.register_blueprint(pricing_bp, url_prefix='/pricing')
    app.cli.add_command(rates_cli)
    app.cli.add_command(estimates_cli)

    return app
