from functools import wraps
from flask import abort, g
from flask_jwt_extended import verify_jwt_in_request
from hoteldesk.services.policy import load_current_user, resolve, assert_capabilities


def require_capabilities(*names: str):
    """Authenticate the bearer token, resolve the caller's role and check capabilities.

    The resolved user and capability set are stored on flask.g for the handler.
    With no names the decorator only requires an authenticated, active user.
    """
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            user = load_current_user()
            if user is None:
                abort(401, description='Unknown or inactive user')
            capabilities = resolve(user.role)
            g.current_user = user
            g.capabilities = capabilities
            if names:
                assert_capabilities(capabilities, *names)
            return fn(*args, **kwargs)
        return wrapper
    return outer


login_required = require_capabilities()
