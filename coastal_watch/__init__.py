import os
import logging
from flask import Flask
from flask_session import Session
from dotenv import load_dotenv
from coastal_watch.database import init_db


def create_app(test_config=None):
    load_dotenv()
    app = Flask(__name__, instance_relative_config=True)
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", "dev-secret")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv("DATABASE_URL", "sqlite:///coastal_watch.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    # Session config
    app.config["SESSION_TYPE"] = os.getenv("SESSION_TYPE", "filesystem")
    app.config["SESSION_FILE_DIR"] = os.getenv("SESSION_FILE_DIR", os.path.join(app.instance_path, "flask_session"))

    # Uploads
    app.config["UPLOAD_FOLDER"] = os.getenv("UPLOAD_FOLDER", os.path.join(app.instance_path, "uploads"))
    app.config["MAX_MEDIA_BYTES"] = int(os.getenv("MAX_MEDIA_BYTES", 10 * 1024 * 1024))

    # Third-party APIs
    app.config["OPENWEATHER_API_KEY"] = os.getenv("OPENWEATHER_API_KEY")
    app.config["GEMINI_API_KEY"] = os.getenv("GEMINI_API_KEY")
    app.config["GEMINI_MODEL"] = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
    app.config["MISTRAL_API_KEY"] = os.getenv("MISTRAL_API_KEY")
    app.config["MISTRAL_MODEL"] = os.getenv("MISTRAL_MODEL", "open-mistral-7b")
    app.config["TWITTER_BEARER_TOKEN"] = os.getenv("TWITTER_BEARER_TOKEN")
    app.config["HTTP_TIMEOUT"] = float(os.getenv("HTTP_TIMEOUT", 10))

    app.config["ALERT_ZONE_RADIUS_KM"] = float(os.getenv("ALERT_ZONE_RADIUS_KM", 25))
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO")

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)
    Session(app)

    # init DB (imports models so tables are known)
    init_db(app)

    # register routes blueprint
    from coastal_watch.api import api
    app.register_blueprint(api)

    return app
