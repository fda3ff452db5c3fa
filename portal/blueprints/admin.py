"""Admin blueprint — /admin/*

Website moderation and the order overview. All routes protected by @admin_required decorator.

Route Map:
  GET  /admin/                                        — Dashboard overview
  GET  /admin/websites/pending                        — Moderation queue
  GET  /admin/websites                                — All websites
  GET  /admin/websites/<id>                           — Website detail + controls
  POST /admin/websites/<id>/action                    — approve/reject/pause/remoderate/delete
  POST /admin/websites/<id>/verification-settings     — Enable/disable methods
  POST /admin/websites/<id>/metrics                   — Save SEO metrics
  POST /admin/websites/bulk                           — Bulk approve/reject
  GET  /admin/orders                                  — All orders
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

from portal.decorators import admin_required
from portal.models.order import Order
from portal.models.verification import METHODS
from portal.models.website import Website
from portal.services import moderation_service, order_service, website_service
from portal.services.listing_service import CATEGORIES

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _page_arg():
    try:
        return max(int(request.args.get("page", 1)), 1)
    except ValueError:
        return 1


# ══════════════════════════════════════════════
#  DASHBOARD
# ══════════════════════════════════════════════

@admin_bp.route("/")
@admin_required
def dashboard():
    """Admin dashboard — headline metrics and the head of the moderation queue."""
    data, error = moderation_service.get_dashboard(g.api)
    if error:
        flash(error, "error")

    (pending, _), queue_error = moderation_service.list_websites(
        g.api, pending=True, page=1, limit=5
    )
    if queue_error and not error:
        flash(queue_error, "error")

    return render_template(
        "admin/dashboard.html",
        stats=moderation_service.dashboard_stats(data),
        pending=pending,
    )


# ══════════════════════════════════════════════
#  WEBSITES
# ══════════════════════════════════════════════

def _website_table(pending):
    page = _page_arg()
    status = request.args.get("status", "")
    category = request.args.get("category", "")
    search = request.args.get("search", "").strip()

    (websites, pages), error = moderation_service.list_websites(
        g.api,
        pending=pending,
        page=page,
        limit=current_app.config["ADMIN_PAGE_SIZE"],
        status=None if pending else status,
        category=category,
        search=search,
    )
    if error:
        flash(error, "error")

    return render_template(
        "admin/websites.html",
        websites=websites,
        pending=pending,
        page=page,
        pages=pages,
        status_filter=status,
        category_filter=category,
        search=search,
        statuses=Website.STATUSES,
        categories=CATEGORIES,
    )


@admin_bp.route("/websites/pending")
@admin_required
def pending_websites():
    """Moderation queue — submitted websites, oldest first per backend."""
    return _website_table(pending=True)


@admin_bp.route("/websites")
@admin_required
def all_websites():
    return _website_table(pending=False)


@admin_bp.route("/websites/<website_id>")
@admin_required
def website_detail(website_id):
    website, error = website_service.get_website(g.api, website_id)
    if error:
        flash(error, "error")
        return redirect(url_for("admin.pending_websites"))

    return render_template(
        "admin/website_detail.html",
        website=website,
        actions=[a for a in Website.MODERATION_ACTIONS if website.can(a)],
        methods=METHODS,
        metric_fields=moderation_service.METRIC_FIELDS,
        metrics=moderation_service.metric_values(website),
    )


@admin_bp.route("/websites/<website_id>/action", methods=["POST"])
@admin_required
def website_action(website_id):
    """Apply one moderation action, guarded by the website's current status."""
    action = request.form.get("action", "")
    website, error = website_service.get_website(g.api, website_id)
    if error:
        flash(error, "error")
        return redirect(url_for("admin.pending_websites"))

    message, error = moderation_service.moderate(
        g.api, website, action, reason=request.form.get("reason")
    )
    if error:
        flash(error, "error")
        return redirect(url_for("admin.website_detail", website_id=website_id))

    flash(message, "success")
    if action == "delete":
        return redirect(url_for("admin.all_websites"))
    return redirect(url_for("admin.website_detail", website_id=website_id))


@admin_bp.route("/websites/<website_id>/verification-settings", methods=["POST"])
@admin_required
def verification_settings(website_id):
    _, error = moderation_service.update_verification_settings(
        g.api, website_id, request.form
    )
    if error:
        flash(error, "error")
    else:
        flash("Verification settings updated.", "success")
    return redirect(url_for("admin.website_detail", website_id=website_id))


@admin_bp.route("/websites/bulk", methods=["POST"])
@admin_required
def bulk_action():
    """Approve or reject the checked rows of the moderation queue."""
    action = request.form.get("action", "")
    selected = list(dict.fromkeys(request.form.getlist("website_ids")))
    if not selected:
        flash("Please select at least one website.", "error")
        return redirect(url_for("admin.pending_websites"))

    websites = []
    for website_id in selected:
        website, error = website_service.get_website(g.api, website_id)
        if error:
            flash(f"{website_id}: {error}", "error")
            continue
        websites.append(website)

    succeeded, errors = moderation_service.bulk_moderate(g.api, websites, action)
    for err in errors:
        flash(err, "error")
    if succeeded:
        verb = "approved" if action == "approve" else "rejected"
        flash(f"{succeeded} website(s) {verb}.", "success")
    return redirect(url_for("admin.pending_websites"))


@admin_bp.route("/websites/<website_id>/metrics", methods=["POST"])
@admin_required
def website_metrics(website_id):
    """Save the SEO metrics shown to advertisers."""
    _, error = moderation_service.update_metrics(g.api, website_id, request.form)
    if error:
        flash(error, "error")
    else:
        flash("Website metrics updated.", "success")
    return redirect(url_for("admin.website_detail", website_id=website_id))


# ══════════════════════════════════════════════
#  ORDERS
# ══════════════════════════════════════════════

@admin_bp.route("/orders")
@admin_required
def orders():
    """Read-only list of every order in the marketplace."""
    page = _page_arg()
    status = request.args.get("status", "")
    search = request.args.get("search", "").strip()
    (rows, pages), error = order_service.list_orders(
        g.api, "admin", page=page,
        limit=current_app.config["ADMIN_PAGE_SIZE"], status=status, search=search,
    )
    if error:
        flash(error, "error")
    return render_template(
        "orders/list.html",
        orders=rows,
        page=page,
        pages=pages,
        status_filter=status,
        search=search,
        statuses=Order.STATUSES,
        detail_endpoint=None,
    )
