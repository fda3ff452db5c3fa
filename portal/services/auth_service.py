"""Auth service — login, signup and logout against the marketplace backend.

The backend issues a bearer token and the user profile. Both are kept
in the signed session: the token for g.api, the profile for
Flask-Login's user_loader.

Functions return (User, error_message) tuples.
"""

import logging

from flask import session

from portal.models.user import User
from portal.services.api_client import ApiError, SessionExpired, format_api_error

logger = logging.getLogger(__name__)

TOKEN_KEY = "api_token"
USER_KEY = "user"


def _start_session(resp):
    """Store token + profile from a login/register envelope."""
    token = resp.payload.get("token")
    if not token:
        return None, "Login failed"
    user = User.from_api(resp.data if isinstance(resp.data, dict) else {},
                         role=resp.payload.get("role"))
    if not user.id or user.id == "None":
        return None, "Login failed"

    session[TOKEN_KEY] = token
    session[USER_KEY] = user.to_session()
    return user, None


def login(api, email, password):
    """Exchange credentials for a token.

    Returns:
        tuple: (User, None) on success, (None, "reason string") on failure.
    """
    try:
        resp = api.post("/login", json={"email": email, "password": password})
    except ApiError as e:
        logger.info(f"Login failed for {email}: {e}")
        return None, format_api_error(e)
    return _start_session(resp)


def register(api, full_name, email, password, role):
    """Create an account and start a session with it."""
    if role not in User.SIGNUP_ROLES:
        return None, "Please choose whether you are a publisher or an advertiser."
    try:
        resp = api.post("/register", json={
            "name": full_name,
            "email": email,
            "password": password,
            "role": role,
        })
    except ApiError as e:
        return None, format_api_error(e)

    user, error = _start_session(resp)
    if user:
        logger.info(f"Registered {user.email} as {user.role}")
    return user, error


def logout(api):
    """Best-effort backend logout; the local session is always cleared."""
    if session.get(TOKEN_KEY):
        try:
            api.post("/logout")
        except (ApiError, SessionExpired) as e:
            logger.info(f"Backend logout failed (ignored): {e}")
    end_session()


def end_session():
    session.pop(TOKEN_KEY, None)
    session.pop(USER_KEY, None)
