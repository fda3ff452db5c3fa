"""User model.

The marketplace backend owns user accounts. This is the profile it
returns at login, cached in the session and rebuilt per request.
Flask-Login integration via UserMixin.
"""

from flask_login import UserMixin


class User(UserMixin):

    # -- Valid roles --
    ROLES = ["publisher", "advertiser", "admin"]

    # -- Roles a visitor may pick at signup --
    SIGNUP_ROLES = ["publisher", "advertiser"]

    # -- Landing endpoint per role --
    HOME_ENDPOINTS = {
        "publisher": "publisher.dashboard",
        "advertiser": "advertiser.browse",
        "admin": "admin.dashboard",
    }

    def __init__(self, id, email, full_name=None, role="publisher", is_active=True):
        self.id = str(id)
        self.email = email
        self.full_name = full_name
        self.role = role if role in self.ROLES else "publisher"
        self._is_active = is_active

    @classmethod
    def from_api(cls, data, role=None):
        """Build from a backend user payload.

        The login response carries the role both inside the user object
        and at the envelope top level; the explicit `role` argument wins.
        """
        data = data or {}
        return cls(
            id=data.get("_id") or data.get("id"),
            email=data.get("email"),
            full_name=data.get("name") or data.get("fullName") or data.get("full_name"),
            role=role or data.get("role") or "publisher",
            is_active=data.get("status", "active") != "suspended",
        )

    def to_session(self):
        """Minimal profile stored in the signed session cookie."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.full_name,
            "role": self.role,
        }

    @property
    def is_active(self):
        return self._is_active

    @property
    def is_admin(self):
        return self.role == "admin"

    @property
    def home_endpoint(self):
        return self.HOME_ENDPOINTS.get(self.role, "publisher.dashboard")

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"
