"""Auth blueprint — /auth/*

Login, signup and logout. Credentials are checked by the marketplace
backend; on success the token and profile go into the session and the
user lands on their role's home.
"""

from flask import (
    Blueprint,
    flash,
    g,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import login_user, logout_user

from portal.decorators import anonymous_only
from portal.extensions import limiter
from portal.models.user import User
from portal.sanitize import is_local_path
from portal.services import auth_service

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _safe_next(next_url, user):
    """Only allow relative redirects (prevent open redirect)."""
    if is_local_path(next_url):
        return next_url
    return url_for(user.home_endpoint)


# ──────────────────────────────────────────────
# GET/POST /auth/login?next=/publisher/
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["GET", "POST"])
@limiter.limit("15 per minute", methods=["POST"])
@anonymous_only
def login():
    """Email + password login against the backend."""
    if request.method == "POST":
        email = request.form.get("email", "").lower().strip()
        password = request.form.get("password", "")
        next_url = request.form.get("next") or request.args.get("next", "")

        if not email or not password:
            flash("Email and password are required.", "error")
            return render_template("auth/login.html", email=email, next_url=next_url)

        user, error = auth_service.login(g.api, email, password)
        if error:
            flash(error, "error")
            return render_template("auth/login.html", email=email, next_url=next_url)

        if not user.is_active:
            auth_service.end_session()
            flash("Your account has been deactivated.", "error")
            return render_template("auth/login.html", email=email, next_url=next_url)

        login_user(user, remember=bool(request.form.get("remember")))
        flash("Logged in successfully.", "success")
        return redirect(_safe_next(next_url, user))

    # GET — render login form
    return render_template(
        "auth/login.html",
        next_url=request.args.get("next", ""),
    )


# ──────────────────────────────────────────────
# GET/POST /auth/signup
# ──────────────────────────────────────────────

@auth_bp.route("/signup", methods=["GET", "POST"])
@limiter.limit("10 per minute", methods=["POST"])
@anonymous_only
def signup():
    """Create a publisher or advertiser account."""
    if request.method == "POST":
        full_name = request.form.get("full_name", "").strip()
        email = request.form.get("email", "").lower().strip()
        password = request.form.get("password", "")
        role = request.form.get("role", "")

        # --- Validation ---
        errors = []

        if not full_name:
            errors.append("Full name is required.")
        if not email:
            errors.append("Email is required.")
        if not password:
            errors.append("Password is required.")
        elif len(password) < 8:
            errors.append("Password must be at least 8 characters.")
        if role not in User.SIGNUP_ROLES:
            errors.append("Please choose whether you are a publisher or an advertiser.")

        if errors:
            for err in errors:
                flash(err, "error")
            return render_template(
                "auth/signup.html",
                full_name=full_name,
                email=email,
                role=role,
                roles=User.SIGNUP_ROLES,
            )

        user, error = auth_service.register(g.api, full_name, email, password, role)
        if error:
            flash(error, "error")
            return render_template(
                "auth/signup.html",
                full_name=full_name,
                email=email,
                role=role,
                roles=User.SIGNUP_ROLES,
            )

        login_user(user)
        flash("Welcome! Your account has been created.", "success")
        return redirect(url_for(user.home_endpoint))

    return render_template("auth/signup.html", roles=User.SIGNUP_ROLES, role="publisher")


# ──────────────────────────────────────────────
# GET /auth/logout
# ──────────────────────────────────────────────

@auth_bp.route("/logout")
def logout():
    """Log out and redirect to login page."""
    auth_service.logout(g.api)
    logout_user()
    flash("You have been logged out.", "info")
    return redirect(url_for("auth.login"))
