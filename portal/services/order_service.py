"""Order service — guest-post orders as seen by each role.

Publishers approve or reject incoming orders and submit the published
article URL; advertisers cancel, accept the content or ask for a
revision; admins get a read-only list across the marketplace.

Allowed actions per status live on the Order model and are checked here
before any call, the same way moderation_service guards websites.
"""

import logging

from portal.models.order import Order
from portal.sanitize import sanitize
from portal.services.api_client import ApiError, format_api_error
from portal.services.website_service import is_valid_url

logger = logging.getLogger(__name__)

PUBLISHER_REJECTION_REASON = "Order rejected by publisher"

_LIST_PATHS = {
    "publisher": "/orders/publisher",
    "advertiser": "/advertiser/orders",
    "admin": "/admin/orders",
}

_PUBLISHER_DONE = {
    "approve": "Order approved.",
    "reject": "Order rejected.",
    "submit": "Article submitted to the advertiser.",
}

_ADVERTISER_DONE = {
    "cancel": "Order cancelled.",
    "approve_content": "Content approved.",
    "revision": "Revision requested.",
}


def list_orders(api, role, page=1, limit=15, status=None, search=None):
    """One page of orders for `role` ("publisher", "advertiser" or "admin").

    Returns:
        tuple: ((list[Order], total_pages), error_message)
    """
    params = {
        "page": page,
        "limit": limit,
        "status": status if status in Order.STATUSES else None,
        "search": search or None,
    }
    try:
        resp = api.get(_LIST_PATHS[role], params=params)
    except ApiError as e:
        logger.warning(f"Failed to fetch {role} orders: {e}")
        return ([], 1), format_api_error(e)

    rows = resp.data
    if isinstance(rows, dict):
        rows = rows.get("orders") or []
    if not isinstance(rows, list):
        rows = []
    return ([Order.from_api(row) for row in rows], resp.pages), None


def get_order(api, order_id, role="publisher"):
    """Fetch one order. Returns (Order, None) or (None, error_message)."""
    path = f"/advertiser/orders/{order_id}" if role == "advertiser" else f"/orders/{order_id}"
    try:
        resp = api.get(path)
    except ApiError as e:
        return None, format_api_error(e)

    data = resp.data
    if isinstance(data, dict) and isinstance(data.get("order"), dict):
        data = data["order"]
    if not isinstance(data, dict):
        return None, "Order not found."
    return Order.from_api(data), None


def publisher_action(api, order, action, reason=None, article_url=None):
    """Approve, reject or deliver an order on the publisher's side.

    Args:
        reason: Optional rejection note; defaults to a standard reason.
        article_url: Required for "submit"; the live article's URL.

    Returns:
        tuple: (message, None) on success, (None, error_message) otherwise.
    """
    if action not in Order.PUBLISHER_ACTIONS:
        return None, f"Unknown action '{action}'."
    if not order.publisher_can(action):
        return None, f"Cannot {action} an order that is '{order.status}'."

    path = f"/orders/{order.id}/{action}"
    if action == "approve":
        body = {}
    elif action == "reject":
        body = {"rejectionReason": sanitize(reason or "") or PUBLISHER_REJECTION_REASON}
    else:
        article_url = (article_url or "").strip()
        if not is_valid_url(article_url):
            return None, "Please enter the URL of the published article"
        body = {"articleUrl": article_url}

    try:
        resp = api.put(path, json=body)
    except ApiError as e:
        logger.warning(f"Publisher '{action}' failed for order {order.id}: {e}")
        return None, format_api_error(e)

    logger.info(f"Order {order.id}: {action} by publisher")
    return resp.message or _PUBLISHER_DONE[action], None


def advertiser_action(api, order, action, reason=None):
    """Cancel an order, accept its content or request a revision.

    Returns:
        tuple: (message, None) on success, (None, error_message) otherwise.
    """
    if action not in Order.ADVERTISER_ACTIONS:
        return None, f"Unknown action '{action}'."
    if not order.advertiser_can(action):
        return None, f"Cannot {action.replace('_', ' ')} an order that is '{order.status}'."

    try:
        if action == "cancel":
            resp = api.put(f"/advertiser/orders/{order.id}/cancel")
        elif action == "approve_content":
            resp = api.put(f"/advertiser/orders/{order.id}/approve")
        else:
            reason = sanitize(reason or "")
            if not reason:
                return None, "Please provide a reason for the revision request."
            resp = api.put(
                f"/advertiser/orders/{order.id}/revision",
                json={"revisionRequest": reason},
            )
    except ApiError as e:
        logger.warning(f"Advertiser '{action}' failed for order {order.id}: {e}")
        return None, format_api_error(e)

    logger.info(f"Order {order.id}: {action} by advertiser")
    return resp.message or _ADVERTISER_DONE[action], None
