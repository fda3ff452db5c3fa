"""Catalog service — the advertiser's view of approved websites.

Browsing with filters and pagination, website details, and favorites.
Only approved websites are visible here; the backend filters, this
module just shapes parameters and results.
"""

import logging

from portal.models.website import Website
from portal.services.api_client import ApiError, format_api_error

logger = logging.getLogger(__name__)

FILTER_KEYS = ["search", "category", "country", "language", "minPrice", "maxPrice"]


def clean_filters(args):
    """Pick the supported filters out of request.args, dropping blanks and bad prices."""
    filters = {}
    for key in FILTER_KEYS:
        value = (args.get(key) or "").strip()
        if not value or value == "all":
            continue
        if key in ("minPrice", "maxPrice"):
            try:
                if float(value) < 0:
                    continue
            except ValueError:
                continue
        filters[key] = value
    return filters


def browse(api, filters, page=1, limit=20):
    """One page of the catalog.

    Returns:
        tuple: ((list[Website], total_pages), error_message)
    """
    try:
        resp = api.get("/advertiser/websites", params={**filters, "page": page, "limit": limit})
    except ApiError as e:
        logger.warning(f"Catalog browse failed: {e}")
        return ([], 1), format_api_error(e)

    rows = resp.data if isinstance(resp.data, list) else (resp.data or {}).get("websites", [])
    return ([Website.from_api(row) for row in rows], resp.pages), None


def get_details(api, website_id):
    """Website details with pricing. Returns (Website, error)."""
    try:
        resp = api.get(f"/advertiser/websites/{website_id}")
    except ApiError as e:
        return None, format_api_error(e)
    data = resp.data if isinstance(resp.data, dict) else {}
    # Some responses nest the record one level deeper.
    if "website" in data and isinstance(data["website"], dict):
        data = data["website"]
    if not data:
        return None, "Website not found."
    return Website.from_api(data), None


def list_favorites(api):
    """Returns (list[Website], error)."""
    try:
        resp = api.get("/advertiser/websites/favorites")
    except ApiError as e:
        return [], format_api_error(e)
    rows = resp.data if isinstance(resp.data, list) else []
    return [Website.from_api(row.get("website", row) if isinstance(row, dict) else {})
            for row in rows], None


def set_favorite(api, website_id, favorite):
    """Add or remove a favorite. Returns (bool, error)."""
    path = f"/advertiser/websites/{website_id}/favorite"
    try:
        if favorite:
            api.post(path)
        else:
            api.delete(path)
    except ApiError as e:
        return False, format_api_error(e)
    return True, None
