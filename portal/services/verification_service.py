"""Verification service — the website ownership verification workflow.

Drives the second step of the Add Website wizard. The backend performs
every real transition; this module decides which requests are allowed,
issues them, and records where the publisher is in the flow:

    select  — pick one of four methods (disabled ones refuse locally)
    verify  — html_file: download file, upload it, confirm
              google_*: redirect to Google, return leg confirms tokens
              another_method: free-text reason, then confirm
    success | ownershipTransferred — hand off to description & price
    verificationError — backend redirected back with ?error=

Failures never advance the state and are never retried automatically:
the publisher sees one message and tries again by hand.

The current state is kept in the session, one website at a time. The
Google round-trip carries a signed `state` token so the return leg knows
which website it belongs to even if the session fallback is gone.
"""

import json
import logging
from urllib.parse import unquote

from flask import current_app, session
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from portal.models.verification import (
    GOOGLE_METHODS,
    METHOD_IDS,
    METHODS,
    OwnershipTransferred,
    Select,
    Success,
    Verify,
    VerificationFailed,
    VerificationMethod,
    state_from_dict,
    to_dict,
)
from portal.sanitize import sanitize
from portal.services.api_client import ApiError, format_api_error
from portal.services.website_service import current_website_id, remember_current_website

logger = logging.getLogger(__name__)

SESSION_KEY = "verification"
STATE_SALT = "website-verification"

DISABLED_MESSAGE = "This verification method has been disabled for this website."
NO_METHOD_MESSAGE = "Please select a verification method"
NO_REASON_MESSAGE = "Please provide a reason for using an alternative verification method"
MISSING_DATA_MESSAGE = "Missing verification data"
MISSING_PARAMS_MESSAGE = "Missing verification parameters. Please try again."
NOT_VERIFIED_MESSAGE = "Please verify ownership of your website before continuing."


class VerificationWorkflow:
    """Ownership verification state machine for one website.

    Usage:
        workflow = VerificationWorkflow.load(website_id, website=website)
        workflow.start(g.api)
        workflow.save()
    """

    def __init__(self, website_id, website=None, existed=False, state=None):
        self.website_id = str(website_id)
        self.website = website
        self.existed = existed
        self.state = state or Select()
        self.redirect_url = None

    # ──────────────────────────────────────────────
    # Session persistence
    # ──────────────────────────────────────────────

    @classmethod
    def load(cls, website_id, website=None):
        """Restore the workflow for `website_id`, or start a fresh one."""
        stored = session.get(SESSION_KEY) or {}
        if stored.get("website_id") != str(website_id):
            stored = {}
        return cls(
            website_id,
            website=website,
            existed=bool(stored.get("existed")),
            state=state_from_dict(stored.get("state")),
        )

    @classmethod
    def begin(cls, website_id, existed=False):
        """Start a new workflow right after Add Website."""
        workflow = cls(website_id, existed=existed)
        workflow.save()
        return workflow

    def save(self):
        session[SESSION_KEY] = {
            "website_id": self.website_id,
            "existed": self.existed,
            "state": to_dict(self.state),
        }

    def reset(self):
        """Back to method selection (the "choose another method" link)."""
        self.state = Select()
        return self.state

    # ──────────────────────────────────────────────
    # Method availability
    # ──────────────────────────────────────────────

    @property
    def locked(self):
        """An approved website has graduated to the catalog; nothing to verify."""
        return self.website is not None and self.website.is_approved

    def method_disabled(self, method_id):
        if self.website is None:
            return False
        if self.locked:
            return True
        return self.website.method_flag_disabled(method_id)

    def available_methods(self):
        """All four methods, each marked disabled per the website's flags."""
        return [
            VerificationMethod(
                id=m.id,
                title=m.title,
                description=m.description,
                requirements=m.requirements,
                disabled=self.method_disabled(m.id),
            )
            for m in METHODS
        ]

    @property
    def selected(self):
        return getattr(self.state, "selected", None) or getattr(self.state, "method", None)

    # ──────────────────────────────────────────────
    # Transitions
    # ──────────────────────────────────────────────

    def select(self, method_id):
        """Pick a method. Purely local; never calls the backend."""
        if method_id not in METHOD_IDS:
            self.state = Select(error=NO_METHOD_MESSAGE)
        elif self.method_disabled(method_id):
            self.state = Select(selected=None, error=DISABLED_MESSAGE)
        else:
            self.state = Select(selected=method_id)
        return self.state

    def start(self, api, method_id=None):
        """Begin verification with the selected (or given) method.

        Guards run before any request. For Google methods, sets
        self.redirect_url to the backend-issued OAuth URL.
        """
        method_id = method_id or self.selected
        if not method_id or method_id not in METHOD_IDS:
            self.state = Select(error=NO_METHOD_MESSAGE)
            return self.state
        if self.method_disabled(method_id):
            self.state = Select(error=DISABLED_MESSAGE)
            return self.state

        # The reason screen comes first; nothing to initiate yet.
        if method_id == "another_method":
            self.state = Verify(method=method_id)
            return self.state

        try:
            resp = api.post(
                f"/websites/{self.website_id}/verify/initiate",
                json={
                    "verificationMethod": method_id,
                    "state": sign_return_state(self.website_id, method_id),
                },
            )
        except ApiError as e:
            logger.warning(
                f"Verification initiation failed for website {self.website_id} "
                f"({method_id}): {e}"
            )
            self.state = Select(selected=method_id, error=format_api_error(e))
            return self.state

        data = resp.data if isinstance(resp.data, dict) else {}
        self.state = Verify(method=method_id, data=data)
        logger.info(f"Verification initiated for website {self.website_id} ({method_id})")

        if method_id in GOOGLE_METHODS and data.get("authRequired") and data.get("googleAuthUrl"):
            # Fallback carrier in case the return leg loses the id.
            remember_current_website(self.website_id)
            self.redirect_url = data["googleAuthUrl"]
        return self.state

    def confirm_html_file(self, api):
        """Ask the backend to fetch the uploaded verification file."""
        state = self.state
        if self.method_disabled("html_file"):
            return self._refuse("html_file")
        if not isinstance(state, Verify) or state.method != "html_file" \
                or not state.data.get("verificationCode"):
            self.state = _with_error(state, MISSING_DATA_MESSAGE)
            return self.state

        try:
            resp = api.post(
                f"/websites/{self.website_id}/verify",
                json={"googleTokens": None},
            )
        except ApiError as e:
            self.state = Verify(method=state.method, data=state.data, error=format_api_error(e))
            return self.state

        self.state = _finished(resp, state.method)
        logger.info(f"Website {self.website_id} verified by html_file ({self.state.name})")
        return self.state

    def submit_reason(self, api, reason):
        """Verify with the "another method" justification."""
        state = self.state
        if self.locked:
            return self._refuse("another_method")
        if not isinstance(state, Verify) or state.method != "another_method":
            self.state = Select(error=NO_METHOD_MESSAGE)
            return self.state

        reason = sanitize(reason or "")
        if not reason:
            self.state = Verify(method=state.method, error=NO_REASON_MESSAGE)
            return self.state

        try:
            api.post(
                f"/websites/{self.website_id}/verify/initiate",
                json={"verificationMethod": "another_method", "reason": reason},
            )
            api.post(
                f"/websites/{self.website_id}/verify",
                json={"googleTokens": None, "reason": reason},
            )
        except ApiError as e:
            self.state = Verify(method=state.method, error=format_api_error(e))
            return self.state

        # No ownership-transfer branch for this path.
        self.state = Success(method="another_method")
        logger.info(f"Website {self.website_id} submitted via another_method")
        return self.state

    def complete_oauth(self, api, method_id, tokens):
        """Return leg of the Google flow: hand the tokens to the backend.

        Load the workflow with the website first; the method flags are
        re-checked here because an admin may have switched the method off
        while the publisher was on Google's consent screen.
        """
        if self.method_disabled(method_id):
            return self._refuse(method_id)

        try:
            resp = api.post(
                f"/auth/google/verify/{self.website_id}",
                json={"tokens": tokens, "method": method_id},
            )
        except ApiError as e:
            message = format_api_error(e)
            if e.status_code is not None and e.status_code < 400:
                # Backend answered but reported ok=false
                message = with_guidance(message)
            else:
                message = f"Verification error: {message}"
            logger.warning(f"Google verification failed for website {self.website_id}: {message}")
            self.state = VerificationFailed(message=message)
            return self.state

        self.state = _finished(resp, method_id)
        logger.info(f"Website {self.website_id} verified by {method_id} ({self.state.name})")
        return self.state

    def fail(self, message=None):
        self.state = VerificationFailed(message=message) if message else VerificationFailed()
        return self.state

    def _refuse(self, method_id):
        logger.warning(
            f"Refused {method_id} verification for website {self.website_id}: "
            f"method disabled or website approved"
        )
        self.state = VerificationFailed(message=DISABLED_MESSAGE)
        return self.state

    @property
    def can_continue(self):
        """Only a verified (or already approved) website moves on to step 3."""
        return self.finished or self.locked

    def continue_to_listing(self):
        """Hand off to the description & price step.

        Returns:
            The website id, or None while ownership is still unconfirmed.
        """
        if not self.can_continue:
            return None
        remember_current_website(self.website_id)
        return self.website_id

    @property
    def finished(self):
        return isinstance(self.state, (Success, OwnershipTransferred))


def ownership_confirmed(website):
    """True once `website` may be described and submitted for moderation.

    The backend marks the website verified, but the session's finished
    workflow also counts: another_method submissions stay pending until
    an admin reviews them.
    """
    if website.is_verified or website.is_approved:
        return True
    return VerificationWorkflow.load(website.id).finished


def _finished(resp, method_id):
    data = resp.data if isinstance(resp.data, dict) else {}
    if data.get("ownershipTransferred"):
        return OwnershipTransferred(method=method_id)
    return Success(method=method_id)


def _with_error(state, message):
    if isinstance(state, Verify):
        return Verify(method=state.method, data=state.data, error=message)
    return Select(error=message)


def with_guidance(message):
    """Append setup hints for the two Google-specific failures."""
    if "Google Analytics properties" in message:
        message += (
            " Please make sure your website is properly set up in Google "
            "Analytics with the exact domain name you entered."
        )
    elif "Search Console" in message:
        message += " Please make sure your website is verified in Google Search Console."
    return message


# ──────────────────────────────────────────────
# OAuth return leg
# ──────────────────────────────────────────────

def _serializer():
    return URLSafeTimedSerializer(current_app.secret_key, salt=STATE_SALT)


def sign_return_state(website_id, method_id):
    """Signed token the backend echoes back on the OAuth return redirect."""
    return _serializer().dumps({"websiteId": str(website_id), "method": method_id})


def load_return_state(token):
    """Verify a return-state token. Returns its dict, or None if bad/expired."""
    if not token:
        return None
    max_age = current_app.config.get("VERIFICATION_STATE_MAX_AGE", 3600)
    try:
        return _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        logger.warning("Verification return state expired")
    except BadSignature:
        logger.warning("Verification return state has a bad signature")
    return None


def resolve_return_website_id(args):
    """Which website a return-leg request belongs to.

    Precedence: signed state, then the websiteId query parameter, then
    the session fallback saved before the redirect.
    """
    state = load_return_state(args.get("state"))
    if state and state.get("websiteId"):
        return state["websiteId"]
    return args.get("websiteId") or current_website_id()


def decode_tokens(raw):
    """Parse the URL-encoded JSON token payload from the query string.

    Returns the decoded object, or None if it is missing or malformed.
    """
    if not raw:
        return None
    for candidate in (raw, unquote(raw)):
        try:
            return json.loads(candidate)
        except ValueError:
            continue
    return None
