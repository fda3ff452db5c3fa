"""Security tests — headers, config, role isolation.

Tests:
- Security headers are present on responses
- CSP allows the Google OAuth form target
- Config validation and test config
- Rate limiting configuration
- CLI check-api command
- Redirect targets must be same-site paths
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from portal.config import Config, config_by_name
from portal.sanitize import is_local_path


class TestSecurityHeaders:
    """Verify security headers are present on responses."""

    def test_x_content_type_options(self, app, client):
        response = client.get("/auth/login")
        assert response.headers.get("X-Content-Type-Options") == "nosniff"

    def test_x_frame_options(self, app, client):
        response = client.get("/auth/login")
        assert response.headers.get("X-Frame-Options") == "DENY"

    def test_referrer_policy(self, app, client):
        response = client.get("/auth/login")
        assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"

    def test_permissions_policy(self, app, client):
        pp = client.get("/auth/login").headers.get("Permissions-Policy")
        assert "camera=()" in pp
        assert "microphone=()" in pp

    def test_csp_header(self, app, client):
        csp = client.get("/auth/login").headers.get("Content-Security-Policy")
        assert "default-src 'self'" in csp
        assert "form-action 'self' https://accounts.google.com" in csp
        assert "frame-ancestors 'none'" in csp

    def test_no_hsts_in_debug(self, app, client):
        response = client.get("/auth/login")
        assert "Strict-Transport-Security" not in response.headers

    def test_headers_on_error_pages(self, app, client):
        response = client.get("/definitely-not-a-page")
        assert response.status_code == 404
        assert response.headers.get("X-Frame-Options") == "DENY"


class TestConfig:

    def test_validate_requires_secret_key(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        monkeypatch.setenv("API_BASE_URL", "http://api.example.com")
        with pytest.raises(RuntimeError, match="SECRET_KEY"):
            Config.validate()

    def test_testing_config(self, app):
        assert app.config["TESTING"] is True
        assert app.config["API_BASE_URL"] == "http://backend.test/api/v1"
        assert app.config["WTF_CSRF_ENABLED"] is False
        assert config_by_name["testing"].validate() is None

    def test_session_cookie_lax(self, app):
        assert app.config["SESSION_COOKIE_SAMESITE"] == "Lax"


class TestRateLimiting:

    def test_rate_limiter_initialized(self, app):
        assert "limiter" in app.extensions or any(
            "limiter" in str(type(ext)).lower() for ext in app.extensions.values()
        )


class TestCheckApiCommand:

    def test_reachable(self, app):
        ok = MagicMock(status_code=200)
        with patch("portal.requests.get", return_value=ok) as get:
            result = app.test_cli_runner().invoke(args=["check-api"])
        assert result.exit_code == 0
        assert "HTTP 200" in result.output
        get.assert_called_once_with("http://backend.test/api/v1/health", timeout=5)

    def test_unreachable(self, app):
        with patch("portal.requests.get", side_effect=requests.exceptions.ConnectionError("refused")):
            result = app.test_cli_runner().invoke(args=["check-api"])
        assert result.exit_code == 1
        assert "ERROR" in result.output


class TestLocalPath:

    def test_relative_paths_allowed(self):
        assert is_local_path("/advertiser/favorites")
        assert is_local_path("/publisher/websites/add?step=1")

    def test_protocol_relative_and_backslash_rejected(self):
        assert not is_local_path("//evil.example.com/")
        assert not is_local_path("/\\evil.example.com")
        assert not is_local_path("\\\\evil.example.com")

    def test_absolute_and_empty_rejected(self):
        assert not is_local_path("https://evil.example.com")
        assert not is_local_path("javascript:alert(1)")
        assert not is_local_path("")
        assert not is_local_path(None)
