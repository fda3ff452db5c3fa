"""Tests for the ownership verification workflow.

Covers:
- Method availability (admin flags, approved website lock)
- Select guards: no selection / disabled method -> local error, no call
- html_file: initiate, download, confirm -> success | ownershipTransferred
- another_method: empty reason makes no call; initiate + verify -> success
- Google methods: initiate returns OAuth URL, browser is redirected
- Failures keep the current step and show one message
- Session persistence; Continue only after success or on an approved website
- Disabled methods re-checked at confirm time
"""

from portal.models.verification import (
    OwnershipTransferred,
    Select,
    Success,
    Verify,
    VerificationFailed,
    state_from_dict,
    to_dict,
)
from portal.models.website import Website
from portal.services.api_client import ApiClient
from portal.services.verification_service import (
    DISABLED_MESSAGE,
    NO_METHOD_MESSAGE,
    NO_REASON_MESSAGE,
    NOT_VERIFIED_MESSAGE,
    VerificationWorkflow,
    load_return_state,
)

BASE = "http://backend.test/api/v1"
INITIATE = "/websites/web-1/verify/initiate"
VERIFY = "/websites/web-1/verify"

HTML_INITIATE = {
    "ok": True,
    "data": {
        "fileName": "gp-verify-abc.html",
        "fileContent": "<html>gp-verify-abc</html>",
        "verificationCode": "abc",
    },
}


def api():
    return ApiClient(BASE, token="t")


# ══════════════════════════════════════════════
#  State objects
# ══════════════════════════════════════════════

class TestStates:

    def test_round_trip_through_session_dict(self):
        state = Verify(method="html_file", data={"verificationCode": "x"})
        assert state_from_dict(to_dict(state)) == state

    def test_names(self):
        assert Select().name == "select"
        assert Verify().name == "verify"
        assert Success().name == "success"
        assert OwnershipTransferred().name == "ownershipTransferred"
        assert VerificationFailed().name == "verificationError"

    def test_unknown_state_falls_back_to_select(self):
        assert state_from_dict({"name": "bogus"}) == Select()
        assert state_from_dict(None) == Select()
        assert state_from_dict({"name": "verify", "unexpected": 1}) == Select()


# ══════════════════════════════════════════════
#  Workflow unit tests
# ══════════════════════════════════════════════

class TestMethodAvailability:

    def test_admin_flags_disable_methods(self, app):
        website = Website(id="web-1", disable_html_file=True, disable_google_analytics=True)
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=website)
            disabled = {m.id for m in workflow.available_methods() if m.disabled}
        assert disabled == {"html_file", "google_analytics"}

    def test_approved_website_disables_everything(self, app):
        website = Website(id="web-1", status="approved")
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=website)
            methods = workflow.available_methods()
        assert workflow.locked
        assert len(methods) == 4
        assert all(m.disabled for m in methods)

    def test_another_method_never_flag_disabled(self, app):
        website = Website(
            id="web-1",
            disable_html_file=True,
            disable_google_analytics=True,
            disable_google_search_console=True,
        )
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=website)
            assert not workflow.method_disabled("another_method")


class TestSelectAndStart:

    def test_select_is_local(self, app, backend):
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=Website(id="web-1"))
            state = workflow.select("html_file")
        assert state == Select(selected="html_file")
        assert backend.calls == []

    def test_select_disabled_method(self, app, backend):
        website = Website(id="web-1", disable_html_file=True)
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=website)
            state = workflow.select("html_file")
        assert state.error == DISABLED_MESSAGE
        assert state.selected is None
        assert backend.calls == []

    def test_start_without_selection(self, app, backend):
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=Website(id="web-1"))
            state = workflow.start(api())
        assert state == Select(error=NO_METHOD_MESSAGE)
        assert backend.calls == []

    def test_start_disabled_html_file_makes_no_call(self, app, backend):
        website = Website(id="web-1", disable_html_file=True)
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=website)
            state = workflow.start(api(), "html_file")
        assert state.error == DISABLED_MESSAGE
        assert backend.calls == []

    def test_start_html_file(self, app, backend):
        backend.on("POST", INITIATE, HTML_INITIATE)
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=Website(id="web-1"))
            state = workflow.start(api(), "html_file")
            signed = load_return_state(backend.calls[0]["json"]["state"])

        assert isinstance(state, Verify)
        assert state.method == "html_file"
        assert state.data["verificationCode"] == "abc"
        assert backend.calls[0]["json"]["verificationMethod"] == "html_file"
        assert signed == {"websiteId": "web-1", "method": "html_file"}
        assert workflow.redirect_url is None

    def test_start_google_sets_redirect(self, app, backend):
        backend.on("POST", INITIATE, {
            "ok": True,
            "data": {"authRequired": True, "googleAuthUrl": "https://accounts.google.com/o/oauth2/auth?x=1"},
        })
        with app.test_request_context():
            from flask import session
            workflow = VerificationWorkflow("web-1", website=Website(id="web-1"))
            workflow.start(api(), "google_analytics")
            assert session["current_website_id"] == "web-1"
        assert workflow.redirect_url.startswith("https://accounts.google.com/")

    def test_start_another_method_waits_for_reason(self, app, backend):
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=Website(id="web-1"))
            state = workflow.start(api(), "another_method")
        assert state == Verify(method="another_method")
        assert backend.calls == []

    def test_initiate_failure_stays_on_select(self, app, backend):
        backend.on("POST", INITIATE, {"message": "Website not found"}, status=404)
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", website=Website(id="web-1"))
            state = workflow.start(api(), "html_file")
        assert isinstance(state, Select)
        assert state.selected == "html_file"
        assert state.error == "Website not found"
        assert len(backend.calls) == 1


class TestVerify:

    def _at_html_verify(self, app):
        return VerificationWorkflow(
            "web-1",
            website=Website(id="web-1"),
            state=Verify(method="html_file", data=HTML_INITIATE["data"]),
        )

    def test_html_file_success(self, app, backend):
        backend.on("POST", VERIFY, {"ok": True, "data": {"ownershipTransferred": False}})
        with app.test_request_context():
            workflow = self._at_html_verify(app)
            state = workflow.confirm_html_file(api())
        assert state == Success(method="html_file")
        assert backend.calls[0]["json"] == {"googleTokens": None}
        assert workflow.finished

    def test_html_file_ownership_transferred(self, app, backend):
        backend.on("POST", VERIFY, {"ok": True, "data": {"ownershipTransferred": True}})
        with app.test_request_context():
            state = self._at_html_verify(app).confirm_html_file(api())
        assert isinstance(state, OwnershipTransferred)

    def test_html_file_failure_keeps_verify_step(self, app, backend):
        backend.on("POST", VERIFY, {"ok": False, "message": "Verification file not found"})
        with app.test_request_context():
            state = self._at_html_verify(app).confirm_html_file(api())
        assert isinstance(state, Verify)
        assert state.method == "html_file"
        assert state.data["verificationCode"] == "abc"
        assert state.error == "Verification file not found"

    def test_html_file_without_code_makes_no_call(self, app, backend):
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", state=Verify(method="html_file"))
            state = workflow.confirm_html_file(api())
        assert state.error == "Missing verification data"
        assert backend.calls == []

    def test_html_file_disabled_after_initiation_makes_no_call(self, app, backend):
        with app.test_request_context():
            workflow = VerificationWorkflow(
                "web-1",
                website=Website(id="web-1", disable_html_file=True),
                state=Verify(method="html_file", data=HTML_INITIATE["data"]),
            )
            state = workflow.confirm_html_file(api())
        assert state == VerificationFailed(message=DISABLED_MESSAGE)
        assert backend.calls == []

    def test_reason_on_approved_website_makes_no_call(self, app, backend):
        with app.test_request_context():
            workflow = VerificationWorkflow(
                "web-1",
                website=Website(id="web-1", status="approved"),
                state=Verify(method="another_method"),
            )
            state = workflow.submit_reason(api(), "I manage DNS only")
        assert state == VerificationFailed(message=DISABLED_MESSAGE)
        assert backend.calls == []

    def test_empty_reason_makes_no_call(self, app, backend):
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", state=Verify(method="another_method"))
            state = workflow.submit_reason(api(), "   ")
        assert state.error == NO_REASON_MESSAGE
        assert backend.calls == []

    def test_reason_initiates_then_verifies(self, app, backend):
        backend.on("POST", INITIATE, {"ok": True, "data": {}})
        backend.on("POST", VERIFY, {"ok": True, "data": {"ownershipTransferred": True}})
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", state=Verify(method="another_method"))
            state = workflow.submit_reason(api(), "I manage DNS only")

        assert backend.paths() == [INITIATE, VERIFY]
        assert backend.calls[0]["json"] == {
            "verificationMethod": "another_method",
            "reason": "I manage DNS only",
        }
        assert backend.calls[1]["json"]["reason"] == "I manage DNS only"
        # No ownership-transfer branch on this path.
        assert state == Success(method="another_method")

    def test_reason_failure_keeps_step(self, app, backend):
        backend.on("POST", INITIATE, {"message": "Too many attempts"}, status=429)
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", state=Verify(method="another_method"))
            state = workflow.submit_reason(api(), "please")
        assert state == Verify(method="another_method", error="Too many attempts")
        assert backend.called("POST", VERIFY) == []


class TestPersistence:

    def test_save_and_load(self, app):
        with app.test_request_context():
            workflow = VerificationWorkflow("web-1", existed=True, state=Select(selected="html_file"))
            workflow.save()
            loaded = VerificationWorkflow.load("web-1")
        assert loaded.existed is True
        assert loaded.state == Select(selected="html_file")

    def test_other_website_starts_fresh(self, app):
        with app.test_request_context():
            VerificationWorkflow("web-1", state=Success(method="html_file")).save()
            loaded = VerificationWorkflow.load("web-2")
        assert loaded.state == Select()

    def test_continue_remembers_website(self, app):
        with app.test_request_context():
            from flask import session
            workflow = VerificationWorkflow("web-1", state=Success(method="html_file"))
            assert workflow.continue_to_listing() == "web-1"
            assert session["current_website_id"] == "web-1"

    def test_continue_refused_on_select(self, app):
        with app.test_request_context():
            from flask import session
            workflow = VerificationWorkflow("web-1", website=Website(id="web-1"))
            assert not workflow.can_continue
            assert workflow.continue_to_listing() is None
            assert "current_website_id" not in session


# ══════════════════════════════════════════════
#  Routes
# ══════════════════════════════════════════════

OWNERSHIP = "/publisher/websites/web-1/ownership"


class TestOwnershipRoutes:

    def test_requires_login(self, client):
        resp = client.get(OWNERSHIP)
        assert resp.status_code == 302
        assert "/auth/login" in resp.headers["Location"]

    def test_advertiser_redirected_home(self, client, login_as):
        login_as("advertiser")
        resp = client.get(OWNERSHIP)
        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/advertiser/")

    def test_select_page_lists_methods(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {"ok": True, "data": website_payload()})
        resp = client.get(OWNERSHIP)
        assert resp.status_code == 200
        assert b"Google Analytics" in resp.data
        assert b"HTML File Upload" in resp.data
        assert b"Start Verification" in resp.data
        assert b"badge badge-disabled" not in resp.data

    def test_disabled_html_file_shows_message_without_call(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {
            "ok": True, "data": website_payload(disableHtmlFile=True),
        })
        resp = client.post(f"{OWNERSHIP}/start", data={"method": "html_file"}, follow_redirects=True)

        assert resp.status_code == 200
        assert DISABLED_MESSAGE.encode() in resp.data
        assert backend.called("POST", INITIATE) == []

    def test_approved_website_all_disabled_with_continue(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {
            "ok": True,
            "data": website_payload(status="approved", verificationStatus="verified"),
        })
        resp = client.get(OWNERSHIP)

        assert resp.status_code == 200
        assert resp.data.count(b"badge badge-disabled") == 4
        assert b"Start Verification" not in resp.data
        assert b"Continue to Website Details" in resp.data

    def test_html_file_flow_to_ownership_transferred(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {"ok": True, "data": website_payload()})
        backend.on("POST", INITIATE, HTML_INITIATE)
        backend.on("POST", VERIFY, {"ok": True, "data": {"ownershipTransferred": True}})

        resp = client.post(f"{OWNERSHIP}/start", data={"method": "html_file"}, follow_redirects=True)
        assert b"gp-verify-abc.html" in resp.data

        download = client.get(f"{OWNERSHIP}/file")
        assert download.status_code == 200
        assert download.data == b"<html>gp-verify-abc</html>"
        assert "gp-verify-abc.html" in download.headers["Content-Disposition"]

        resp = client.post(f"{OWNERSHIP}/html-verify", follow_redirects=True)
        assert b"Ownership Transferred" in resp.data
        assert b"Verification Successful" not in resp.data

    def test_html_file_flow_to_success(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {"ok": True, "data": website_payload()})
        backend.on("POST", INITIATE, HTML_INITIATE)
        backend.on("POST", VERIFY, {"ok": True, "data": {}})

        client.post(f"{OWNERSHIP}/start", data={"method": "html_file"})
        resp = client.post(f"{OWNERSHIP}/html-verify", follow_redirects=True)
        assert b"Verification Successful" in resp.data

    def test_another_method_empty_reason(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {"ok": True, "data": website_payload()})

        client.post(f"{OWNERSHIP}/start", data={"method": "another_method"})
        resp = client.post(f"{OWNERSHIP}/another-method", data={"reason": ""}, follow_redirects=True)

        assert NO_REASON_MESSAGE.encode() in resp.data
        assert backend.called("POST", INITIATE) == []
        assert backend.called("POST", VERIFY) == []

    def test_google_start_redirects_to_oauth(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {"ok": True, "data": website_payload()})
        backend.on("POST", INITIATE, {
            "ok": True,
            "data": {"authRequired": True, "googleAuthUrl": "https://accounts.google.com/o/oauth2/auth?s=1"},
        })
        resp = client.post(f"{OWNERSHIP}/start", data={"method": "google_search_console"})
        assert resp.status_code == 302
        assert resp.headers["Location"] == "https://accounts.google.com/o/oauth2/auth?s=1"

    def test_back_returns_to_select(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {"ok": True, "data": website_payload()})
        client.post(f"{OWNERSHIP}/start", data={"method": "another_method"})
        resp = client.post(f"{OWNERSHIP}/back", follow_redirects=True)
        assert b"Start Verification" in resp.data

    def test_continue_refused_before_verification(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {"ok": True, "data": website_payload()})

        resp = client.post(f"{OWNERSHIP}/continue")

        assert resp.status_code == 302
        assert resp.headers["Location"].endswith(OWNERSHIP)
        with client.session_transaction() as sess:
            assert "current_website_id" not in sess
        page = client.get(OWNERSHIP)
        assert NOT_VERIFIED_MESSAGE.encode() in page.data

    def test_continue_after_success_goes_to_listing(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {"ok": True, "data": website_payload()})
        with client.session_transaction() as sess:
            sess["verification"] = {
                "website_id": "web-1",
                "existed": False,
                "state": {"name": "success", "method": "html_file"},
            }

        resp = client.post(f"{OWNERSHIP}/continue")

        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/publisher/websites/web-1/listing")

    def test_continue_from_approved_lock(self, client, backend, login_as, website_payload):
        login_as("publisher")
        backend.on("GET", "/websites/web-1", {
            "ok": True, "data": website_payload(status="approved", verificationStatus="verified"),
        })
        resp = client.post(f"{OWNERSHIP}/continue")
        assert resp.headers["Location"].endswith("/publisher/websites/web-1/listing")

    def test_add_website_starts_workflow(self, client, backend, login_as):
        login_as("publisher")
        backend.on("POST", "/websites", {"ok": True, "data": {"_id": "web-1"}, "existed": False})
        resp = client.post("/publisher/websites/add", data={"url": "HTTPS://WWW.Example.com/"})

        assert resp.status_code == 302
        assert resp.headers["Location"].endswith(OWNERSHIP)
        assert backend.called("POST", "/websites")[0]["json"]["domain"] == "example.com"
        with client.session_transaction() as sess:
            assert sess["verification"]["website_id"] == "web-1"
            assert sess["current_website_id"] == "web-1"

    def test_add_website_error_rerenders(self, client, backend, login_as):
        login_as("publisher")
        resp = client.post("/publisher/websites/add", data={"url": ""})
        assert resp.status_code == 200
        assert b"Please enter a website URL" in resp.data
        assert backend.calls == []
