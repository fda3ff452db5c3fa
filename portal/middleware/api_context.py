"""API context middleware — binds a backend client to every request.

Runs before every request. Sets g.api to an ApiClient carrying the
logged-in user's bearer token (or no token for anonymous pages such as
login and signup).

Static files skip the hook; they never talk to the backend.
"""

from flask import current_app, g, request, session

from portal.services.api_client import ApiClient


def bind_api_client():
    """Before-request hook: build the per-request backend client."""
    if request.path.startswith("/static/"):
        return

    g.api = ApiClient(
        current_app.config["API_BASE_URL"],
        token=session.get("api_token"),
        timeout=current_app.config["API_TIMEOUT"],
    )


def init_api_middleware(app):
    """Register the client binder as a before_request hook."""
    app.before_request(bind_api_client)
