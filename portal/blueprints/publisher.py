"""Publisher blueprint — /publisher/*

The publisher's own websites and the three-step Add Website wizard:
  1. Add Website          — enter a URL, backend creates a draft
  2. Confirm ownership    — VerificationWorkflow (see verification_service)
  3. Description & price  — listing form, submits for moderation

Route Map:
  GET  /publisher/                                        — My websites
  GET  /publisher/websites/<id>                           — Website detail
  POST /publisher/websites/<id>/delete                    — Delete website
  GET/POST /publisher/websites/add                        — Step 1
  GET  /publisher/websites/<id>/ownership                 — Step 2 (current state)
  POST /publisher/websites/<id>/ownership/select          — Pick a method
  POST /publisher/websites/<id>/ownership/start           — Start verification
  GET  /publisher/websites/<id>/ownership/file            — Download HTML file
  POST /publisher/websites/<id>/ownership/html-verify     — Confirm uploaded file
  POST /publisher/websites/<id>/ownership/another-method  — Submit reason
  POST /publisher/websites/<id>/ownership/back            — Back to method list
  POST /publisher/websites/<id>/ownership/continue        — Go to step 3
  GET/POST /publisher/websites/<id>/listing               — Step 3
  GET  /publisher/listing                                 — Step 3 for the session's website
  GET  /publisher/earn                                    — Submitted confirmation
  GET  /publisher/orders                                  — Orders on my websites
  GET  /publisher/orders/<id>                             — Order detail
  POST /publisher/orders/<id>/action                      — approve/reject/submit
"""

from flask import (
    Blueprint,
    Response,
    current_app,
    flash,
    g,
    redirect,
    render_template,
    request,
    url_for,
)
from werkzeug.utils import secure_filename

from portal.decorators import role_required
from portal.models.order import Order
from portal.models.verification import OwnershipTransferred, Success, Verify
from portal.services import listing_service, order_service, website_service
from portal.services.verification_service import (
    NOT_VERIFIED_MESSAGE,
    VerificationWorkflow,
    ownership_confirmed,
)

publisher_bp = Blueprint("publisher", __name__, url_prefix="/publisher")

publisher_required = role_required("publisher")


def _load_website(website_id):
    """Fetch a website or flash the error. Returns Website or None."""
    website, error = website_service.get_website(g.api, website_id)
    if error:
        flash(error, "error")
    return website


# ══════════════════════════════════════════════
#  MY WEBSITES
# ══════════════════════════════════════════════

@publisher_bp.route("/")
@publisher_required
def dashboard():
    """All of the publisher's websites with status and verification badges."""
    websites, error = website_service.list_websites(g.api)
    if error:
        flash(error, "error")
    return render_template("publisher/dashboard.html", websites=websites)


@publisher_bp.route("/websites/<website_id>")
@publisher_required
def website_detail(website_id):
    website = _load_website(website_id)
    if website is None:
        return redirect(url_for("publisher.dashboard"))
    return render_template("publisher/website_detail.html", website=website)


@publisher_bp.route("/websites/<website_id>/delete", methods=["POST"])
@publisher_required
def delete_website(website_id):
    ok, error = website_service.delete_website(g.api, website_id)
    if ok:
        flash("Website deleted.", "success")
    else:
        flash(error, "error")
    return redirect(url_for("publisher.dashboard"))


# ══════════════════════════════════════════════
#  STEP 1 — ADD WEBSITE
# ══════════════════════════════════════════════

@publisher_bp.route("/websites/add", methods=["GET", "POST"])
@publisher_required
def add_website():
    """Create the draft listing, then move on to ownership verification."""
    if request.method == "POST":
        url = request.form.get("url", "")
        result, error = website_service.add_website(g.api, url)
        if error:
            flash(error, "error")
            return render_template("publisher/add_website.html", url=url)

        VerificationWorkflow.begin(result["id"], existed=result["existed"])
        if result["existed"]:
            flash("This website already exists in our database.", "info")
        return redirect(url_for("publisher.ownership", website_id=result["id"]))

    return render_template("publisher/add_website.html", url="")


# ══════════════════════════════════════════════
#  STEP 2 — CONFIRM OWNERSHIP
# ══════════════════════════════════════════════

def _workflow_or_redirect(website_id):
    """Load the workflow with fresh website flags.

    Returns (workflow, None), or (None, redirect_response) when the
    website cannot be loaded.
    """
    website = _load_website(website_id)
    if website is None:
        return None, redirect(url_for("publisher.dashboard"))
    return VerificationWorkflow.load(website_id, website=website), None


@publisher_bp.route("/websites/<website_id>/ownership")
@publisher_required
def ownership(website_id):
    """Render whichever step the workflow is on."""
    workflow, response = _workflow_or_redirect(website_id)
    if response:
        return response

    state = workflow.state
    if isinstance(state, (Success, OwnershipTransferred)):
        template = "publisher/ownership_done.html"
    elif isinstance(state, Verify) and not workflow.locked:
        template = "publisher/ownership_verify.html"
    else:
        template = "publisher/ownership.html"

    return render_template(
        template,
        website=workflow.website,
        workflow=workflow,
        state=state,
        # VerificationFailed carries `message`, the step states carry `error`
        error=getattr(state, "error", None) or getattr(state, "message", None),
        methods=workflow.available_methods(),
    )


@publisher_bp.route("/websites/<website_id>/ownership/select", methods=["POST"])
@publisher_required
def ownership_select(website_id):
    workflow, response = _workflow_or_redirect(website_id)
    if response:
        return response
    workflow.select(request.form.get("method"))
    workflow.save()
    return redirect(url_for("publisher.ownership", website_id=website_id))


@publisher_bp.route("/websites/<website_id>/ownership/start", methods=["POST"])
@publisher_required
def ownership_start(website_id):
    """Start verification; Google methods leave the app for the OAuth screen."""
    workflow, response = _workflow_or_redirect(website_id)
    if response:
        return response
    workflow.start(g.api, request.form.get("method"))
    workflow.save()
    if workflow.redirect_url:
        return redirect(workflow.redirect_url)
    return redirect(url_for("publisher.ownership", website_id=website_id))


@publisher_bp.route("/websites/<website_id>/ownership/file")
@publisher_required
def ownership_file(website_id):
    """Serve the HTML verification file issued by the backend."""
    workflow = VerificationWorkflow.load(website_id)
    state = workflow.state
    if not isinstance(state, Verify) or not state.data.get("fileContent"):
        flash("No verification file is available. Please start verification again.", "error")
        return redirect(url_for("publisher.ownership", website_id=website_id))

    filename = secure_filename(state.data.get("fileName") or "") or "verification.html"
    return Response(
        state.data["fileContent"],
        mimetype="text/html",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@publisher_bp.route("/websites/<website_id>/ownership/html-verify", methods=["POST"])
@publisher_required
def ownership_html_verify(website_id):
    workflow, response = _workflow_or_redirect(website_id)
    if response:
        return response
    workflow.confirm_html_file(g.api)
    workflow.save()
    return redirect(url_for("publisher.ownership", website_id=website_id))


@publisher_bp.route("/websites/<website_id>/ownership/another-method", methods=["POST"])
@publisher_required
def ownership_another_method(website_id):
    workflow, response = _workflow_or_redirect(website_id)
    if response:
        return response
    workflow.submit_reason(g.api, request.form.get("reason", ""))
    workflow.save()
    return redirect(url_for("publisher.ownership", website_id=website_id))


@publisher_bp.route("/websites/<website_id>/ownership/back", methods=["POST"])
@publisher_required
def ownership_back(website_id):
    workflow = VerificationWorkflow.load(website_id)
    workflow.reset()
    workflow.save()
    return redirect(url_for("publisher.ownership", website_id=website_id))


@publisher_bp.route("/websites/<website_id>/ownership/continue", methods=["POST"])
@publisher_required
def ownership_continue(website_id):
    """Hand off to the description & price step once ownership is confirmed."""
    workflow, response = _workflow_or_redirect(website_id)
    if response:
        return response

    next_id = workflow.continue_to_listing()
    if not next_id:
        flash(NOT_VERIFIED_MESSAGE, "error")
        return redirect(url_for("publisher.ownership", website_id=website_id))
    return redirect(url_for("publisher.listing", website_id=next_id))


# ══════════════════════════════════════════════
#  STEP 3 — DESCRIPTION & PRICE
# ══════════════════════════════════════════════

def _render_listing(website, values, errors=None):
    return render_template(
        "publisher/listing.html",
        website=website,
        values=values,
        errors=errors or {},
        categories=listing_service.CATEGORIES,
        countries=listing_service.COUNTRIES,
        languages=listing_service.LANGUAGES,
        sensitive_topics=list(listing_service.SENSITIVE_TOPICS),
        link_types=listing_service.LINK_TYPE_LABELS,
        limits={
            "categories": website.MAX_CATEGORIES,
            "countries": website.MAX_COUNTRIES,
            "languages": website.MAX_LANGUAGES,
            "keywords": website.MAX_KEYWORDS,
        },
    )


@publisher_bp.route("/websites/<website_id>/listing", methods=["GET", "POST"])
@publisher_required
def listing(website_id):
    """Describe and price the website, then submit it for moderation."""
    website = _load_website(website_id)
    if website is None:
        return redirect(url_for("publisher.dashboard"))
    if not ownership_confirmed(website):
        flash(NOT_VERIFIED_MESSAGE, "error")
        return redirect(url_for("publisher.ownership", website_id=website.id))
    website_service.remember_current_website(website.id)

    if request.method == "POST":
        values, errors = listing_service.validate_listing(request.form)
        if errors:
            return _render_listing(website, values, errors)

        _, error = listing_service.submit_listing(g.api, website, values)
        if error:
            flash(error, "error")
            return _render_listing(website, values)

        if website.is_approved:
            flash("Your changes were saved and sent for re-moderation.", "success")
        else:
            flash("Website submitted for review.", "success")
        return redirect(url_for("publisher.earn"))

    return _render_listing(website, listing_service.form_defaults(website))


@publisher_bp.route("/listing")
@publisher_required
def listing_current():
    """Step 3 without an id in the URL; falls back to the session's website."""
    website_id = request.args.get("websiteId") or website_service.current_website_id()
    if not website_id:
        flash("No website selected. Please add your website first.", "error")
        return redirect(url_for("publisher.add_website"))
    return redirect(url_for("publisher.listing", website_id=website_id))


@publisher_bp.route("/earn")
@publisher_required
def earn():
    return render_template("publisher/earn.html")


# ══════════════════════════════════════════════
#  ORDERS
# ══════════════════════════════════════════════

def _page_arg():
    try:
        return max(int(request.args.get("page", 1)), 1)
    except ValueError:
        return 1


@publisher_bp.route("/orders")
@publisher_required
def orders():
    """Orders placed on the publisher's websites."""
    page = _page_arg()
    status = request.args.get("status", "")
    (rows, pages), error = order_service.list_orders(
        g.api, "publisher", page=page,
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
        detail_endpoint="publisher.order_detail",
    )


@publisher_bp.route("/orders/<order_id>")
@publisher_required
def order_detail(order_id):
    order, error = order_service.get_order(g.api, order_id)
    if error:
        flash(error, "error")
        return redirect(url_for("publisher.orders"))
    return render_template(
        "orders/detail.html",
        order=order,
        actions=[a for a in Order.PUBLISHER_ACTIONS if order.publisher_can(a)],
        action_endpoint="publisher.order_action",
        back_endpoint="publisher.orders",
    )


@publisher_bp.route("/orders/<order_id>/action", methods=["POST"])
@publisher_required
def order_action(order_id):
    """Approve, reject or deliver one order."""
    order, error = order_service.get_order(g.api, order_id)
    if error:
        flash(error, "error")
        return redirect(url_for("publisher.orders"))

    message, error = order_service.publisher_action(
        g.api,
        order,
        request.form.get("action", ""),
        reason=request.form.get("reason"),
        article_url=request.form.get("article_url"),
    )
    flash(error or message, "error" if error else "success")
    return redirect(url_for("publisher.order_detail", order_id=order_id))
