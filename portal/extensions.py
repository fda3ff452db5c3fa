"""
Deferred extension instances.

Created here, bound to the app in create_app() via init_app().
"""

from flask import session
from flask_login import LoginManager
from flask_wtf.csrf import CSRFProtect
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

login_manager = LoginManager()
csrf = CSRFProtect()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # No global limit — we apply per-route
    storage_uri="memory://",
)

# Flask-Login config
login_manager.login_view = "auth.login"
login_manager.login_message = "Please log in to access this page."
login_manager.login_message_category = "info"


@login_manager.user_loader
def load_user(user_id):
    """Rebuild the user from the profile cached in the session at login.

    The backend owns user records; there is nothing local to query.
    Imports lazily to avoid circular deps.
    """
    from portal.models.user import User

    profile = session.get("user")
    if not profile or str(profile.get("id")) != str(user_id):
        return None
    return User.from_api(profile)
