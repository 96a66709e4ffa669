import logging
import os

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config, parse_duration
from .errors import register_error_handlers
from models import storage
from models.user_store import UserStore
from utils.sessions import SessionManager
from utils.tokens import TokenCodec, TokenSettings

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Social Posts API",
        "version": "1.0.0",
        "description": "REST API for users, posts, likes and comments with rotating JWT sessions.",
    },
    "basePath": "/",
    "schemes": ["http"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}

logger = logging.getLogger(__name__)


def create_app(config_name: str | None = None, **overrides) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    ``overrides`` are applied on top of the selected config class.
    """
    app = Flask(__name__)

    app.config.from_object(get_config(config_name))
    app.config.update(overrides)
    for key in ("TOKEN_EXPIRATION", "REFRESH_TOKEN_EXPIRATION"):
        app.config[key] = parse_duration(app.config[key])

    if not app.config.get("TOKEN_SECRET"):
        logger.warning("TOKEN_SECRET is not set: login, refresh and logout will fail")

    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)
    register_error_handlers(app)

    os.makedirs(app.config["STORAGE_DIR"], exist_ok=True)
    storage.connect(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))

    # Token settings are read once here; the codec never looks at the environment
    codec = TokenCodec(TokenSettings.from_config(app.config))
    app.extensions["sessions"] = SessionManager(codec, UserStore(storage))

    from .health import bp as health_bp
    from .auth import bp as auth_bp
    from .users import bp as users_bp
    from .posts import bp as posts_bp
    from .comments import bp as comments_bp
    from .search import bp as search_bp
    from .files import bp as files_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(posts_bp)
    app.register_blueprint(comments_bp)
    app.register_blueprint(search_bp)
    app.register_blueprint(files_bp)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to Social Posts API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
