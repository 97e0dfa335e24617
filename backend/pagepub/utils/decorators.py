from functools import wraps
from flask import current_app, jsonify
from flask_jwt_extended import get_jwt


def roles_required(*allowed_roles):
    """
    Restrict a jwt_required() view to the given roles.

    Accepts role names or the name of a config key holding a tuple of roles.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            allowed = set()
            for role in allowed_roles:
                configured = current_app.config.get(role)
                allowed.update(configured if configured else (role,))

            if get_jwt().get("role") not in allowed:
                return jsonify({"error": "Insufficient permissions"}), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
