"""
FLASK APP ENTRY POINT - MINT TOTP BACKEND
=========================================

Builds the Flask app that serves the popup's operations as a JSON API:
account list with live codes, add / import / delete, single-account view with
QR preview, ad-hoc code generation and verification.

Run:
    python -m mint_backend.app
    # or
    flask --app mint_backend.app run
"""
import logging

from flask import Flask, jsonify
from flask_cors import CORS

from mint_backend.config import Config
from mint_backend.routes import accounts_bp


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(config_overrides: dict = None) -> Flask:
    """
    Create the app.

    Arguments:
        config_overrides: values applied on top of Config (tests pass
            DATABASE_FILE pointing at a temporary file)
    """
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(app.config["LOG_LEVEL"])

    # The popup runs on the extension's own origin
    CORS(app, origins=app.config["CORS_ORIGINS"])

    app.register_blueprint(accounts_bp)

    @app.route('/', methods=['GET'])
    def index():
        return jsonify({
            "service": "mint-totp",
            "endpoints": sorted(str(rule) for rule in app.url_map.iter_rules() if str(rule).startswith("/api")),
        })

    return app


app = create_app()


if __name__ == '__main__':
    app.run(debug=True, host='127.0.0.1', port=5000)
