"""Website service — domain cleanup, Add Website, and publisher listing calls.

Wraps the backend's /websites endpoints. All functions take the
per-request ApiClient (g.api) and return (result, error_message) tuples;
error_message is None on success and a user-facing string otherwise.

The in-progress website id also lives in the session under
"current_website_id" so the wizard can recover it if a redirect (e.g.
the Google OAuth round-trip) drops the id from the URL.
"""

import logging
import re

from flask import session

from portal.models.website import Website
from portal.services.api_client import ApiError, format_api_error

logger = logging.getLogger(__name__)

CURRENT_WEBSITE_KEY = "current_website_id"

URL_PATTERN = re.compile(
    r"^(https?://)?(www\.)?([a-z0-9-]+\.)+[a-z]{2,}(:[0-9]+)?(/.*)?$",
    re.IGNORECASE,
)

# Placeholder listing fields sent with the first "Add Website" call. The
# publisher replaces them in the description & price step.
DRAFT_DEFAULTS = {
    "status": "draft",
    "verificationStatus": "pending",
    "siteDescription": "Pending description",
    "category": "General",
    "country": "US",
    "mainLanguage": "English",
    "advertisingRequirements": "Standard requirements",
    "publishingSections": "General content",
    "publishingPrice": 100,
    "copywritingPrice": 50,
}


# ──────────────────────────────────────────────
# Domain cleanup
# ──────────────────────────────────────────────

def is_valid_url(url: str) -> bool:
    """True if the input looks like a website URL or bare domain."""
    return bool(URL_PATTERN.match((url or "").strip()))


def normalize_domain(url: str) -> str:
    """Reduce a pasted URL to the bare host the backend keys listings on.

    "HTTPS://WWW.Example.com/" -> "example.com"
    "example.com/blog/"        -> "example.com"
    """
    domain = (url or "").strip().lower()

    # Strip protocol/path if user pasted a URL
    if "://" in domain:
        domain = domain.split("://", 1)[1]
    domain = domain.split("/")[0].split("?")[0].split("#")[0]
    domain = domain.split(":")[0].rstrip(".")

    # www. and the bare host are the same listing
    if domain.startswith("www."):
        domain = domain[4:]

    return domain


# ──────────────────────────────────────────────
# Session fallback for the in-progress website
# ──────────────────────────────────────────────

def remember_current_website(website_id):
    session[CURRENT_WEBSITE_KEY] = str(website_id)


def current_website_id():
    return session.get(CURRENT_WEBSITE_KEY)


# ──────────────────────────────────────────────
# Backend calls
# ──────────────────────────────────────────────

def add_website(api, url):
    """Create (or re-attach to) the draft listing for a URL.

    The backend answers `existed: true` when the domain is already known,
    e.g. a second verification attempt or an ownership transfer.

    Returns:
        tuple: ({"id", "domain", "existed", "next_step"}, None) on success,
               (None, "reason string") on failure.
    """
    if not url or not url.strip():
        return None, "Please enter a website URL"
    if not is_valid_url(url):
        return None, "Please enter a valid website URL (e.g. example.com)"

    domain = normalize_domain(url)
    try:
        resp = api.post("/websites", json={"domain": domain, **DRAFT_DEFAULTS})
    except ApiError as e:
        logger.warning(f"Add website failed for {domain}: {e}")
        return None, format_api_error(e)

    website_id = resp.record_id
    if not website_id:
        logger.warning(f"Add website for {domain} returned no id: {resp.payload}")
        return None, "Failed to process website. Please try again."

    remember_current_website(website_id)
    logger.info(f"Website {website_id} added for {domain} (existed={resp.existed})")
    return {
        "id": website_id,
        "domain": domain,
        "existed": resp.existed,
        "next_step": resp.next_step,
    }, None


def get_website(api, website_id):
    """Fetch one website. Returns (Website, None) or (None, error)."""
    try:
        resp = api.get(f"/websites/{website_id}")
    except ApiError as e:
        return None, format_api_error(e)
    if not isinstance(resp.data, dict):
        return None, "Website not found."
    return Website.from_api(resp.data), None


def list_websites(api, params=None):
    """The logged-in publisher's websites. Returns (list[Website], error)."""
    try:
        resp = api.get("/websites", params=params)
    except ApiError as e:
        return [], format_api_error(e)
    rows = resp.data if isinstance(resp.data, list) else (resp.data or {}).get("websites", [])
    return [Website.from_api(row) for row in rows], None


def delete_website(api, website_id):
    """Delete one of the publisher's own websites. Returns (bool, error)."""
    try:
        api.delete(f"/websites/{website_id}")
    except ApiError as e:
        return False, format_api_error(e)
    if current_website_id() == str(website_id):
        session.pop(CURRENT_WEBSITE_KEY, None)
    logger.info(f"Website {website_id} deleted by publisher")
    return True, None
