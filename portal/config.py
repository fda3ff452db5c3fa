import os


class Config:
    """Base configuration. Shared across all environments."""

    # --- Required ---
    SECRET_KEY = os.environ.get("SECRET_KEY")

    # Marketplace REST backend. Every listing, order and user record lives
    # there; this app keeps nothing but the signed session cookie.
    API_BASE_URL = os.environ.get(
        "API_BASE_URL", "http://localhost:3000/api/v1"
    ).rstrip("/")
    API_TIMEOUT = float(os.environ.get("API_TIMEOUT", 10))  # seconds
    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5000")

    # --- Verification workflow ---
    # Lifetime of the signed state token carried through the Google OAuth
    # round-trip.
    VERIFICATION_STATE_MAX_AGE = int(
        os.environ.get("VERIFICATION_STATE_MAX_AGE", 3600)
    )

    # --- Listing pages ---
    ADMIN_PAGE_SIZE = int(os.environ.get("ADMIN_PAGE_SIZE", 15))
    CATALOG_PAGE_SIZE = int(os.environ.get("CATALOG_PAGE_SIZE", 20))
    ORDER_PAGE_SIZE = int(os.environ.get("ORDER_PAGE_SIZE", 10))

    # --- Session / cookies ---
    # Lax (not Strict) so the session survives the top-level redirect back
    # from Google during ownership verification.
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_SAMESITE = "Lax"

    # --- WTF / CSRF ---
    WTF_CSRF_ENABLED = True

    @staticmethod
    def validate():
        """Fail fast if required env vars are missing."""
        required = [
            "SECRET_KEY",
            "API_BASE_URL",
        ]
        missing = [v for v in required if not os.environ.get(v)]
        if missing:
            raise RuntimeError(
                f"Missing required environment variables: {', '.join(missing)}"
            )


class DevConfig(Config):
    """Local development."""

    DEBUG = True
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False


class TestConfig(Config):
    """Testing — fake backend URL, CSRF disabled."""

    TESTING = True
    DEBUG = True
    SECRET_KEY = "test-secret-key-not-for-production"
    API_BASE_URL = "http://backend.test/api/v1"
    API_TIMEOUT = 5
    APP_BASE_URL = "http://localhost:5000"
    WTF_CSRF_ENABLED = False  # disable CSRF for test forms
    RATELIMIT_ENABLED = False  # disable rate limiting in tests
    SESSION_COOKIE_SECURE = False
    REMEMBER_COOKIE_SECURE = False
    SERVER_NAME = "localhost"

    @staticmethod
    def validate():
        """Skip validation in test mode — everything is hardcoded."""
        pass


class ProdConfig(Config):
    """Production."""

    DEBUG = False
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True


config_by_name = {
    "development": DevConfig,
    "production": ProdConfig,
    "testing": TestConfig,
}
