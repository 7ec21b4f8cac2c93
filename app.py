import logging
import os

from flask import Flask
from sqlalchemy.engine import make_url

import config
import rendering
from api import api
from auth import ensure_admin_account
from models import db
from seed import populate_command, seed_topics
from views import views

logger = logging.getLogger(__name__)


def create_app(overrides=None):
    """Application factory; ``overrides`` replaces settings from config.py."""
    app = Flask(__name__)
    app.config.from_object(config)
    if overrides:
        app.config.update(overrides)

    # Setup basic console logging
    logging.basicConfig(level=app.config['LOG_LEVEL'],
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    db.init_app(app)
    rendering.init_app(app)
    app.register_blueprint(api)
    app.register_blueprint(views)
    app.cli.add_command(populate_command)

    # Tables, default topics and the admin account must exist before the first request
    with app.app_context():
        db.create_all()
        seed_topics()
        ensure_admin_account()

    database = make_url(app.config['SQLALCHEMY_DATABASE_URI']).render_as_string(hide_password=True)
    logger.info(f'Problem Arena ready (database: {database})')
    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    print(f'Starting Problem Arena on port {port}')

    from waitress import serve
    serve(create_app(), host='0.0.0.0', port=port)
