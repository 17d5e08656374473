from flask import Flask
from .config import Config
from .extensions import cors


def create_app(config_class: type[Config] = Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Extensions
    cors.init_app(app)

    # Blueprints
    from .routes.database import bp as database_api

    app.register_blueprint(database_api, url_prefix="/api")

    return app
