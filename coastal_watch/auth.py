# coastal_watch/auth.py
from functools import wraps

from flask import session, jsonify, g

from coastal_watch.database import db
from coastal_watch.models import User


def current_user():
    if "user_id" not in session:
        return None
    if "current_user" not in g:
        g.current_user = db.session.get(User, session["user_id"])
    return g.current_user


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if current_user() is None:
            return jsonify({"error": "not_logged_in"}), 401
        return view(*args, **kwargs)
    return wrapped


def roles_required(*roles):
    """Only users whose profile role is one of `roles` get through."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            user = current_user()
            if user is None:
                return jsonify({"error": "not_logged_in"}), 401
            if user.profile is None or user.profile.role not in roles:
                return jsonify({"error": "forbidden"}), 403
            return view(*args, **kwargs)
        return wrapped
    return decorator
