"""Moderation service — admin review of publisher websites.

Queue listing, approve / reject / pause / delete, re-moderation, the
per-website verification-method switches and the SEO metrics admins
enter by hand. Allowed actions per status are
defined in Website.MODERATION_ACTIONS and checked here before any call,
so a stale screen cannot, for example, pause a website that is not live.

Rejection reasons are sanitized with bleach before they leave the app.
"""

import logging
import math

from portal.models.website import Website
from portal.sanitize import sanitize
from portal.services.api_client import ApiError, format_api_error

logger = logging.getLogger(__name__)

BULK_REJECTION_REASON = "Bulk rejection"
REMODERATION_REASON = "Needs re-moderation"

_DONE_MESSAGES = {
    "approve": "{domain} approved.",
    "reject": "{domain} rejected.",
    "pause": "{domain} paused.",
    "remoderate": "{domain} sent back for re-moderation.",
    "delete": "{domain} deleted.",
}


def list_websites(api, pending=False, page=1, limit=15, status=None,
                  category=None, search=None):
    """One page of websites for the admin tables.

    Args:
        pending: True for the moderation queue, False for all websites.

    Returns:
        tuple: ((list[Website], total_pages), error_message)
    """
    path = "/admin/websites/pending" if pending else "/admin/websites"
    params = {
        "page": page,
        "limit": limit,
        "status": status if status in Website.STATUSES else None,
        "category": category if category and category != "all" else None,
        "sortBy": "createdAt",
        "search": search or None,
    }
    try:
        resp = api.get(path, params=params)
    except ApiError as e:
        logger.warning(f"Failed to fetch admin websites: {e}")
        return ([], 1), format_api_error(e)

    rows = resp.data if isinstance(resp.data, list) else []
    return ([Website.from_api(row) for row in rows], resp.pages), None


def get_dashboard(api):
    """Admin dashboard stats. Returns (dict, error_message)."""
    try:
        resp = api.get("/admin/dashboard")
    except ApiError as e:
        return {}, format_api_error(e)
    return (resp.data if isinstance(resp.data, dict) else {}), None


def dashboard_stats(data):
    """Headline cards from the dashboard's keyMetrics block.

    Returns a list of (label, value) pairs; missing metrics count as 0.
    """
    metrics = (data or {}).get("keyMetrics") or {}
    pending = metrics.get("pendingActions") or {}
    return [
        ("Total Users", (metrics.get("totalUsers") or {}).get("value", 0)),
        ("Active Orders", (metrics.get("orders") or {}).get("active", 0)),
        ("Monthly Revenue", (metrics.get("revenue") or {}).get("monthly", 0)),
        ("Approved Websites", (metrics.get("websites") or {}).get("approved", 0)),
        ("Websites Awaiting Review", pending.get("websites", 0)),
    ]


def moderate(api, website, action, reason=None):
    """Apply one moderation action to a website.

    Args:
        website: Website as currently shown to the admin.
        action: One of Website.MODERATION_ACTIONS.
        reason: Required for "reject"; optional note for "remoderate".

    Returns:
        tuple: (message, None) on success, (None, error_message) otherwise.
    """
    if action not in Website.MODERATION_ACTIONS:
        return None, f"Unknown action '{action}'."

    if not website.can(action):
        allowed = Website.MODERATION_ACTIONS[action]
        return None, (
            f"Cannot {action} a website that is '{website.status}'. "
            f"Allowed from: {', '.join(allowed)}"
        )

    reason = sanitize(reason) if reason else None
    if action == "reject" and not reason:
        return None, "Please provide a reason for rejection"

    path = f"/admin/websites/{website.id}"
    try:
        if action == "approve":
            resp = api.put(f"{path}/approve", json={})
        elif action == "reject":
            resp = api.put(f"{path}/reject", json={"reason": reason})
        elif action == "pause":
            resp = api.put(f"{path}/pause")
        elif action == "remoderate":
            resp = api.put(f"{path}/review", json={
                "reason": reason or REMODERATION_REASON,
                "status": "submitted",
                "needsReModeration": True,
            })
        else:
            resp = api.delete(path)
    except ApiError as e:
        logger.warning(f"Moderation '{action}' failed for website {website.id}: {e}")
        return None, format_api_error(e)

    logger.info(f"Website {website.id} ({website.domain}): {action} by admin")
    return resp.message or _DONE_MESSAGES[action].format(domain=website.domain), None


def bulk_moderate(api, websites, action):
    """Approve or reject several websites, one call each.

    Failures do not stop the batch.

    Returns:
        tuple: (succeeded_count, list_of_error_messages)
    """
    if action not in ("approve", "reject"):
        return 0, [f"Bulk '{action}' is not supported."]

    succeeded = 0
    errors = []
    for website in websites:
        reason = BULK_REJECTION_REASON if action == "reject" else None
        _, error = moderate(api, website, action, reason=reason)
        if error:
            errors.append(f"{website.domain or website.id}: {error}")
        else:
            succeeded += 1
    return succeeded, errors


def update_verification_settings(api, website_id, form):
    """Switch individual verification methods on/off for a website.

    The form posts the *enabled* methods as checkboxes (the admin UI
    shows toggles in the "on" sense); the backend stores disable flags.

    Returns:
        tuple: (flags_dict, None) or (None, error_message)
    """
    flags = {
        "disableGoogleAnalytics": not form.get("google_analytics"),
        "disableGoogleSearchConsole": not form.get("google_search_console"),
        "disableHtmlFile": not form.get("html_file"),
    }
    try:
        api.put(f"/admin/websites/{website_id}/verification-settings", json=flags)
    except ApiError as e:
        return None, format_api_error(e)

    logger.info(f"Verification settings updated for website {website_id}: {flags}")
    return flags, None


# (form field, label, short aliases older records use)
METRIC_FIELDS = [
    ("domainAuthority", "Domain Authority (Moz)", ("da",)),
    ("pageAuthority", "Page Authority (Moz)", ("pa",)),
    ("spamScore", "Spam Score", ("ss",)),
    ("domainAge", "Domain age (years)", ()),
    ("ahrefsDomainRating", "Ahrefs Domain Rating", ("dr",)),
    ("urlRating", "Ahrefs URL Rating", ("ur",)),
    ("ahrefsTraffic", "Ahrefs traffic", ()),
    ("ahrefsKeywords", "Ahrefs keywords", ()),
    ("semrushAuthorityScore", "Semrush Authority Score", ()),
    ("semrushTraffic", "Semrush traffic", ()),
    ("semrushKeywords", "Semrush keywords", ()),
    ("semrushReferringDomains", "Semrush referring domains", ()),
    ("majesticTrustFlow", "Majestic Trust Flow", ("tf",)),
    ("majesticCitationFlow", "Majestic Citation Flow", ("cf",)),
    ("majesticTotalIndex", "Majestic total index", ()),
    ("referringDomains", "Referring domains", ()),
    ("monthlyTraffic", "Monthly traffic", ()),
    ("organicTraffic", "Organic traffic", ()),
    ("externalLinks", "External links", ()),
    ("mozRank", "MozRank", ()),
]


def metric_values(website):
    """Current metrics keyed by form field, reading the short aliases too."""
    metrics = website.metrics or {}
    values = {}
    for key, _, aliases in METRIC_FIELDS:
        value = metrics.get(key)
        for alias in aliases:
            if value in (None, ""):
                value = metrics.get(alias)
        values[key] = "" if value is None else value
    return values


def update_metrics(api, website_id, form):
    """Save the SEO metrics an admin entered for a website.

    Blank fields are left out; anything else must be a finite,
    non-negative number.

    Returns:
        tuple: (metrics_dict, None) or (None, error_message)
    """
    metrics = {}
    invalid = []
    for key, label, _ in METRIC_FIELDS:
        raw = (form.get(key) or "").strip()
        if not raw:
            continue
        try:
            value = float(raw)
        except ValueError:
            invalid.append(label)
            continue
        if not math.isfinite(value) or value < 0:
            invalid.append(label)
            continue
        metrics[key] = int(value) if value.is_integer() else value

    if invalid:
        return None, f"Metrics must be non-negative numbers: {', '.join(invalid)}"

    try:
        api.put(f"/admin/websites/{website_id}/metrics", json={"metrics": metrics})
    except ApiError as e:
        logger.warning(f"Metrics update failed for website {website_id}: {e}")
        return None, format_api_error(e)

    logger.info(f"Metrics updated for website {website_id}: {sorted(metrics)}")
    return metrics, None
