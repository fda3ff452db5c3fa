"""Shared test fixtures for the marketplace portal test suite.

Provides:
- app: Flask app configured for testing (fake backend URL, CSRF off)
- client: Flask test client
- backend: scripted fake of the REST backend, patched in at requests level
- login_as: helper that puts a logged-in user of a given role in the session
- website_payload: builder for backend website records
"""

from unittest.mock import MagicMock, patch

import pytest

from portal import create_app

API_PREFIX = "/api/v1"


class FakeBackend:
    """Stands in for requests.Session.request.

    Routes are registered per (METHOD, path); unregistered calls answer 404.
    Every call is recorded so tests can assert on what was (not) sent.
    """

    def __init__(self):
        self.routes = {}
        self.calls = []

    def on(self, method, path, body=None, status=200):
        """Script a response. `body` may be an exception instance to raise."""
        self.routes[(method.upper(), path)] = (status, body)
        return self

    def __call__(self, method, url, json=None, params=None, headers=None, timeout=None, **kwargs):
        path = url.split(API_PREFIX, 1)[-1]
        self.calls.append({
            "method": method.upper(),
            "path": path,
            "json": json,
            "params": params,
            "headers": headers or {},
        })

        status, body = self.routes.get(
            (method.upper(), path),
            (404, {"message": f"No route for {method} {path}"}),
        )
        if isinstance(body, Exception):
            raise body

        resp = MagicMock()
        resp.status_code = status
        if body is None:
            resp.json.side_effect = ValueError("No JSON body")
        else:
            resp.json.return_value = body
        return resp

    def called(self, method, path):
        """Recorded calls matching method + path."""
        return [
            c for c in self.calls
            if c["method"] == method.upper() and c["path"] == path
        ]

    def paths(self):
        return [c["path"] for c in self.calls]


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def backend():
    """Patch every outgoing API call through a FakeBackend."""
    fake = FakeBackend()
    with patch("portal.services.api_client.requests.Session.request", new=fake):
        yield fake


@pytest.fixture
def login_as(client):
    """Write a logged-in user straight into the session cookie.

    Usage:
        login_as("publisher")
        login_as("admin", user_id="admin-1")
    """

    def _login(role="publisher", user_id="user-1", email=None):
        with client.session_transaction() as sess:
            sess["_user_id"] = user_id
            sess["_fresh"] = True
            sess["user"] = {
                "id": user_id,
                "email": email or f"{role}@example.com",
                "name": f"Test {role.capitalize()}",
                "role": role,
            }
            sess["api_token"] = f"token-{role}"

    return _login


def make_website(**overrides):
    """A backend website record with sensible defaults."""
    data = {
        "_id": "web-1",
        "domain": "example.com",
        "status": "draft",
        "verificationStatus": "pending",
        "disableGoogleAnalytics": False,
        "disableGoogleSearchConsole": False,
        "disableHtmlFile": False,
        "siteDescription": "Pending description",
        "category": "General",
        "country": "US",
        "mainLanguage": "English",
        "publishingPrice": 100,
        "copywritingPrice": 50,
    }
    data.update(overrides)
    return data


@pytest.fixture
def website_payload():
    return make_website
