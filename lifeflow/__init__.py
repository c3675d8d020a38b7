import logging
import os
from collections.abc import Mapping
from flask import Flask
from lifeflow.extensions import db, migrate, cors, scheduler
from lifeflow.config import CONFIGS
from lifeflow.cli import register_commands

# Import controllers (blueprints) for each module
from lifeflow.controllers.sheet_controller import sheet_bp
from lifeflow.controllers.dashboard_controller import dashboard_bp
from lifeflow.services.dashboard_state import DashboardState, SnapshotReader
from lifeflow.services.sheets_client import SheetsClient, build_session

POLL_JOB_ID = 'snapshot-poll'


def _load_config(app, config):
    env_config = CONFIGS.get(os.environ.get('LIFEFLOW_CONFIG', 'development'), CONFIGS['development'])
    if config is None:
        app.config.from_object(env_config)
    elif isinstance(config, Mapping):
        app.config.from_object(env_config)
        app.config.update(config)
    else:
        app.config.from_object(config)


def _configure_logging(app):
    if app.testing:
        return
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def _init_dashboard(app):
    """Wire the dashboard's held state to the client layer that writes for it"""
    cfg = app.config
    session = build_session(cfg['REQUEST_RETRIES'], cfg['REQUEST_BACKOFF_FACTOR'])
    state = DashboardState(SnapshotReader(cfg['SNAPSHOT_URL'], session, cfg['REQUEST_TIMEOUT_SECONDS']))
    client = SheetsClient(
        cfg['SHEETS_ENDPOINT_URL'],
        on_data_update=state.refresh,
        settle_delay=cfg['SETTLE_DELAY_SECONDS'],
        scheduler=scheduler if cfg['SCHEDULER_ENABLED'] else None,
        session=session,
        timeout=cfg['REQUEST_TIMEOUT_SECONDS'],
    )
    app.extensions['dashboard_state'] = state
    app.extensions['sheets_client'] = client

    if cfg['SCHEDULER_ENABLED']:
        scheduler.init_app(app)
        if cfg['POLL_INTERVAL_SECONDS'] > 0:
            scheduler.add_job(
                id=POLL_JOB_ID,
                func=state.refresh,
                trigger='interval',
                seconds=cfg['POLL_INTERVAL_SECONDS'],
                replace_existing=True,
            )
        if not scheduler.running:
            scheduler.start()


def create_app(config=None):
    """Flask application factory"""
    app = Flask(__name__)
    _load_config(app, config)
    _configure_logging(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(app)

    # Register Blueprints with appropriate URL prefixes
    app.register_blueprint(sheet_bp, url_prefix='/api/v1/sheet')  # write endpoint + read path
    app.register_blueprint(dashboard_bp, url_prefix='/api/v1/dashboard')  # dashboard back-end

    _init_dashboard(app)

    register_commands(app)

    return app
