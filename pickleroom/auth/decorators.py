"""Decorators for the auth blueprint."""

from functools import wraps

from flask import jsonify, session


def login_required(f):
    """Reject the request with a 401 unless the session carries a user id."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if "user_id" not in session:
            return (
                jsonify({"success": False, "message": "Authentication required."}),
                401,
            )
        return f(*args, **kwargs)

    return decorated_function
