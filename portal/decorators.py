"""
Custom route decorators for access control.

- role_required: ensures user is logged in AND has the given role; a user
  with another role is sent to their own home instead of an error page.
- admin_required: role_required("admin").
- anonymous_only: login/signup pages; logged-in users go home.
"""

from functools import wraps

from flask import redirect, url_for
from flask_login import current_user, login_required


def role_required(role):
    """Require login + a specific role."""

    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            if current_user.role != role:
                return redirect(url_for(current_user.home_endpoint))
            return f(*args, **kwargs)

        return decorated

    return decorator


def admin_required(f):
    """Require login + admin role."""
    return role_required("admin")(f)


def anonymous_only(f):
    """Redirect authenticated users to their role's home."""

    @wraps(f)
    def decorated(*args, **kwargs):
        if current_user.is_authenticated:
            return redirect(url_for(current_user.home_endpoint))
        return f(*args, **kwargs)

    return decorated
