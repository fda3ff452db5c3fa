import os
import logging
import math

import click
import requests
from flask import Flask, flash, redirect, render_template, url_for
from flask_login import current_user, logout_user

from portal.config import config_by_name
from portal.extensions import login_manager, csrf, limiter


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Backend client middleware ---
    from portal.middleware.api_context import init_api_middleware
    init_api_middleware(app)

    # --- Register blueprints ---
    from portal.blueprints.auth import auth_bp
    from portal.blueprints.publisher import publisher_bp
    from portal.blueprints.verification import verification_bp
    from portal.blueprints.advertiser import advertiser_bp
    from portal.blueprints.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(publisher_bp)
    app.register_blueprint(verification_bp)
    app.register_blueprint(advertiser_bp)
    app.register_blueprint(admin_bp)

    # --- Root route ---
    @app.route("/")
    def index():
        """Root URL — each role lands on its own home."""
        if current_user.is_authenticated:
            return redirect(url_for(current_user.home_endpoint))
        return redirect(url_for("auth.login"))

    # --- Error handlers ---
    from portal.services.api_client import SessionExpired
    from portal.services.auth_service import end_session

    @app.errorhandler(SessionExpired)
    def session_expired(e):
        """Backend rejected the token: drop the local session and re-login."""
        app.logger.info(f"Session expired: {e}")
        logout_user()
        end_session()
        flash("Your session has expired. Please log in again.", "info")
        return redirect(url_for("auth.login"))

    @app.errorhandler(403)
    def forbidden(e):
        return render_template("errors/403.html"), 403

    @app.errorhandler(404)
    def not_found(e):
        return render_template("errors/404.html"), 404

    @app.errorhandler(500)
    def server_error(e):
        return render_template("errors/500.html"), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Prevent XSS (legacy but still useful)
        response.headers["X-XSS-Protection"] = "1; mode=block"
        # Permissions Policy (restrict browser features)
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=()"
        )
        # Content Security Policy
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com; "
            "img-src 'self' data:; "
            "font-src 'self' https://fonts.gstatic.com; "
            "connect-src 'self'; "
            "base-uri 'self'; "
            "form-action 'self' https://accounts.google.com; "
            "frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Custom Jinja filters ---
    @app.template_filter("price")
    def price_filter(value):
        """Format a price as whole dollars when it has no cents: 100 -> $100, 12.5 -> $12.50."""
        try:
            value = float(value or 0)
        except (TypeError, ValueError):
            return "$0"
        if not math.isfinite(value):
            return "$0"
        return f"${value:.0f}" if value == int(value) else f"${value:.2f}"

    @app.template_filter("status_label")
    def status_label_filter(value):
        """under_review -> Under review"""
        return (value or "").replace("_", " ").capitalize()

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("check-api")
    @click.option("--path", default="/health", help="Backend path to check")
    def check_api(path):
        """Check that the marketplace backend is reachable.

        Uses API_BASE_URL and API_TIMEOUT from the app config.

        Usage:
            flask check-api
            flask check-api --path /websites
        """
        base_url = app.config["API_BASE_URL"]
        url = f"{base_url}/{path.lstrip('/')}"

        click.echo(f"Backend: {base_url}")
        try:
            resp = requests.get(url, timeout=app.config["API_TIMEOUT"])
        except requests.exceptions.RequestException as e:
            click.echo(f"  ERROR: {e}")
            raise SystemExit(1)

        click.echo(f"  {path}: HTTP {resp.status_code}")
        # 401 still proves the API is up; it just wants a token.
        if resp.status_code >= 500:
            click.echo("  WARNING: backend is up but failing.")
            raise SystemExit(1)
