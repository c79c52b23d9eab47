# coastal_watch/database.py
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()


def init_db(app):
    db.init_app(app)

    # import models so tables are known
    from coastal_watch import models  # noqa: F401

    with app.app_context():
        db.create_all()
