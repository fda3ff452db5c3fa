"""Advertiser blueprint — /advertiser/*

Browsing the approved-website catalog, keeping favorites and following
the orders placed on publishers' websites.

Route Map:
  GET  /advertiser/                          — Catalog with filters
  GET  /advertiser/websites/<id>             — Website detail + pricing
  GET  /advertiser/favorites                 — Favorite websites
  POST /advertiser/websites/<id>/favorite    — Add (favorite=1) or remove
  GET  /advertiser/orders                    — My orders
  GET  /advertiser/orders/<id>               — Order detail
  POST /advertiser/orders/<id>/action        — cancel/approve_content/revision
"""

from flask import (
    Blueprint,
    current_app,
    flash,
    g,
    redirect,
    render_template,
    request,
    url_for,
)

from portal.decorators import role_required
from portal.models.order import Order
from portal.sanitize import is_local_path
from portal.services import catalog_service, order_service
from portal.services.listing_service import CATEGORIES, COUNTRIES, LANGUAGES

advertiser_bp = Blueprint("advertiser", __name__, url_prefix="/advertiser")

advertiser_required = role_required("advertiser")


@advertiser_bp.route("/")
@advertiser_required
def browse():
    """Approved websites, filtered and paginated by the backend."""
    try:
        page = max(int(request.args.get("page", 1)), 1)
    except ValueError:
        page = 1
    filters = catalog_service.clean_filters(request.args)

    (websites, pages), error = catalog_service.browse(
        g.api, filters, page=page, limit=current_app.config["CATALOG_PAGE_SIZE"]
    )
    if error:
        flash(error, "error")

    return render_template(
        "advertiser/browse.html",
        websites=websites,
        filters=filters,
        page=page,
        pages=pages,
        categories=CATEGORIES,
        countries=COUNTRIES,
        languages=LANGUAGES,
    )


@advertiser_bp.route("/websites/<website_id>")
@advertiser_required
def website_detail(website_id):
    website, error = catalog_service.get_details(g.api, website_id)
    if error:
        flash(error, "error")
        return redirect(url_for("advertiser.browse"))
    return render_template("advertiser/website_detail.html", website=website)


@advertiser_bp.route("/favorites")
@advertiser_required
def favorites():
    websites, error = catalog_service.list_favorites(g.api)
    if error:
        flash(error, "error")
    return render_template("advertiser/favorites.html", websites=websites)


@advertiser_bp.route("/websites/<website_id>/favorite", methods=["POST"])
@advertiser_required
def toggle_favorite(website_id):
    favorite = request.form.get("favorite") == "1"
    ok, error = catalog_service.set_favorite(g.api, website_id, favorite)
    if ok:
        flash("Added to favorites." if favorite else "Removed from favorites.", "success")
    else:
        flash(error, "error")

    next_url = request.form.get("next", "")
    if not is_local_path(next_url):
        next_url = url_for("advertiser.favorites")
    return redirect(next_url)


@advertiser_bp.route("/orders")
@advertiser_required
def orders():
    try:
        page = max(int(request.args.get("page", 1)), 1)
    except ValueError:
        page = 1
    status = request.args.get("status", "")
    (rows, pages), error = order_service.list_orders(
        g.api, "advertiser", page=page,
        limit=current_app.config["ORDER_PAGE_SIZE"], status=status,
    )
    if error:
        flash(error, "error")
    return render_template(
        "orders/list.html",
        orders=rows,
        page=page,
        pages=pages,
        status_filter=status,
        statuses=Order.STATUSES,
        detail_endpoint="advertiser.order_detail",
    )


@advertiser_bp.route("/orders/<order_id>")
@advertiser_required
def order_detail(order_id):
    order, error = order_service.get_order(g.api, order_id, role="advertiser")
    if error:
        flash(error, "error")
        return redirect(url_for("advertiser.orders"))
    return render_template(
        "orders/detail.html",
        order=order,
        actions=[a for a in Order.ADVERTISER_ACTIONS if order.advertiser_can(a)],
        action_endpoint="advertiser.order_action",
        back_endpoint="advertiser.orders",
    )


@advertiser_bp.route("/orders/<order_id>/action", methods=["POST"])
@advertiser_required
def order_action(order_id):
    """Cancel, accept the content or ask for a revision."""
    order, error = order_service.get_order(g.api, order_id, role="advertiser")
    if error:
        flash(error, "error")
        return redirect(url_for("advertiser.orders"))

    message, error = order_service.advertiser_action(
        g.api, order, request.form.get("action", ""), reason=request.form.get("reason")
    )
    flash(error or message, "error" if error else "success")
    return redirect(url_for("advertiser.order_detail", order_id=order_id))
