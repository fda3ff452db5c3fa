"""Verification blueprint — return leg of the Google ownership check.

After the publisher consents on Google's screen, the backend redirects
the browser to one of:

  GET /verification-success?state=..&websiteId=..&method=..&tokens=<json>
  GET /verification-error?state=..&websiteId=..&error=<message>

The website id is taken from the signed `state` first, then the
websiteId parameter, then the session fallback.
"""

from flask import (
    Blueprint,
    g,
    redirect,
    render_template,
    request,
    url_for,
)

from portal.decorators import role_required
from portal.models.verification import GOOGLE_METHODS
from portal.services.verification_service import (
    MISSING_PARAMS_MESSAGE,
    VerificationWorkflow,
    decode_tokens,
    load_return_state,
    resolve_return_website_id,
)
from portal.services.website_service import get_website

verification_bp = Blueprint("verification", __name__)


@verification_bp.route("/verification-success")
@role_required("publisher")
def success():
    """Hand the Google tokens to the backend and show the outcome."""
    website_id = resolve_return_website_id(request.args)
    signed = load_return_state(request.args.get("state")) or {}
    method = request.args.get("method") or signed.get("method")
    tokens = decode_tokens(request.args.get("tokens"))

    if not website_id or method not in GOOGLE_METHODS or tokens is None:
        return render_template(
            "verification/error.html",
            message=MISSING_PARAMS_MESSAGE,
            website_id=website_id,
        )

    website, error = get_website(g.api, website_id)
    if error:
        return render_template(
            "verification/error.html",
            message=error,
            website_id=website_id,
        )

    workflow = VerificationWorkflow.load(website_id, website=website)
    workflow.complete_oauth(g.api, method, tokens)
    workflow.save()

    if workflow.finished:
        return redirect(url_for("publisher.ownership", website_id=website_id))
    return render_template(
        "verification/error.html",
        message=workflow.state.message,
        website_id=website_id,
    )


@verification_bp.route("/verification-error")
@role_required("publisher")
def error():
    """Backend reported a failure before any tokens were issued."""
    website_id = resolve_return_website_id(request.args)
    message = request.args.get("error")

    if website_id:
        workflow = VerificationWorkflow.load(website_id)
        state = workflow.fail(message)
        workflow.save()
        message = state.message
    elif not message:
        message = "An unknown error occurred during verification."

    return render_template(
        "verification/error.html",
        message=message,
        website_id=website_id,
    )
