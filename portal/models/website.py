"""Website model.

A publisher's site listed for guest posts, as returned by the backend.
Nothing here is persisted locally: instances are rebuilt from API
payloads on every request. The backend stores the record and enforces
the lifecycle; the constants below mirror its rules so the UI can refuse
impossible actions before making a call.

Lifecycle:
    draft -> submitted -> approved | rejected
    approved -> paused | submitted (re-moderation)
    any -> deleted (soft)
"""

import math
from dataclasses import dataclass, field


@dataclass
class Website:

    # -- Valid statuses --
    STATUSES = [
        "draft",
        "submitted",
        "under_review",
        "approved",
        "rejected",
        "paused",
        "deleted",
    ]

    # -- Verification statuses seen by the client --
    VERIFICATION_STATUSES = ["pending", "verified"]

    # -- Admin moderation actions and the statuses each is allowed from --
    MODERATION_ACTIONS = {
        "approve": ["submitted", "under_review", "paused"],
        "reject": ["submitted", "under_review"],
        "pause": ["approved"],
        "remoderate": ["approved"],
        "delete": ["draft", "submitted", "under_review", "approved", "rejected", "paused"],
    }

    # -- Multi-select caps --
    MAX_CATEGORIES = 3
    MAX_COUNTRIES = 3
    MAX_LANGUAGES = 3
    MAX_KEYWORDS = 5

    id: str
    domain: str = ""
    status: str = "draft"
    verification_status: str = "pending"
    verification_method: str | None = None
    disable_google_analytics: bool = False
    disable_google_search_console: bool = False
    disable_html_file: bool = False
    needs_remoderation: bool = False

    site_description: str = ""
    category: str | None = None
    all_categories: list = field(default_factory=list)
    keywords: list = field(default_factory=list)
    country: str | None = None
    additional_countries: list = field(default_factory=list)
    main_language: str | None = None
    additional_languages: list = field(default_factory=list)
    accepted_sensitive_categories: list = field(default_factory=list)
    link_type: str | None = None
    number_of_links: int | None = None

    publishing_price: float = 0.0
    copywriting_price: float = 0.0
    homepage_announcement_price: float = 0.0
    sensitive_content_extra_charge: float = 0.0
    discount_percentage: float = 0.0

    user_id: str | None = None
    rejection_reason: str | None = None
    metrics: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data):
        """Build from a backend website payload (`_id` or `id`)."""
        data = data or {}
        user = data.get("userId")
        if isinstance(user, dict):
            user = user.get("_id") or user.get("id")
        categories = data.get("allCategories") or (
            [data["category"]] if data.get("category") else []
        )
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            domain=data.get("domain", ""),
            status=data.get("status", "draft"),
            verification_status=data.get("verificationStatus", "pending"),
            verification_method=data.get("verificationMethod"),
            disable_google_analytics=bool(data.get("disableGoogleAnalytics")),
            disable_google_search_console=bool(data.get("disableGoogleSearchConsole")),
            disable_html_file=bool(data.get("disableHtmlFile")),
            needs_remoderation=bool(data.get("needsReModeration")),
            site_description=data.get("siteDescription", ""),
            category=data.get("category"),
            all_categories=list(categories),
            keywords=list(data.get("keywords") or []),
            country=data.get("country"),
            additional_countries=list(data.get("additionalCountries") or []),
            main_language=data.get("mainLanguage"),
            additional_languages=list(data.get("additionalLanguages") or []),
            accepted_sensitive_categories=list(
                data.get("acceptedSensitiveCategories") or []
            ),
            link_type=data.get("linkType"),
            number_of_links=data.get("numberOfLinks"),
            publishing_price=as_price(data.get("publishingPrice")),
            copywriting_price=as_price(data.get("copywritingPrice")),
            homepage_announcement_price=as_price(data.get("homepageAnnouncementPrice")),
            sensitive_content_extra_charge=as_price(
                data.get("sensitiveContentExtraCharge")
            ),
            discount_percentage=as_price(data.get("discountPercentage")),
            user_id=str(user) if user else None,
            rejection_reason=data.get("rejectionReason"),
            metrics=data.get("metrics") or {},
        )

    @property
    def is_approved(self):
        return self.status == "approved"

    @property
    def is_verified(self):
        return self.verification_status == "verified"

    @property
    def awaiting_moderation(self):
        """Verified and submitted, but not yet reviewed by an admin.

        Derived on the client only; the backend has no status of this name.
        """
        return self.is_verified and self.status == "submitted"

    def method_flag_disabled(self, method):
        """True if an admin has switched off this verification method."""
        flags = {
            "google_analytics": self.disable_google_analytics,
            "google_search_console": self.disable_google_search_console,
            "html_file": self.disable_html_file,
        }
        return flags.get(method, False)

    def can(self, action):
        """True if the moderation action is allowed from the current status."""
        return self.status in self.MODERATION_ACTIONS.get(action, [])

    def __repr__(self):
        return f"<Website {self.domain} ({self.status})>"


def as_price(value):
    """Coerce a price-like payload value to a non-negative float."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return max(value, 0.0)
