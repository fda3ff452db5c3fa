"""Order model.

A guest-post order placed by an advertiser on a publisher's website.
Orders are created and priced by the backend (cart and checkout are not
part of this portal); here they are listed and moved along by the two
parties, and listed read-only for admins.

Lifecycle:
    pending -> approved | rejected | cancelled
    approved | in_progress | revision_requested -> content_submitted
    content_submitted -> completed | revision_requested
"""

from dataclasses import dataclass, field

from portal.models.website import as_price


@dataclass
class Order:

    # -- Valid statuses --
    STATUSES = [
        "pending",
        "approved",
        "accepted",
        "in_progress",
        "content_submitted",
        "revision_requested",
        "completed",
        "delivered",
        "rejected",
        "cancelled",
    ]

    # -- Publisher actions and the statuses each is allowed from --
    PUBLISHER_ACTIONS = {
        "approve": ["pending"],
        "reject": ["pending"],
        "submit": ["approved", "accepted", "in_progress", "revision_requested"],
    }

    # -- Advertiser actions and the statuses each is allowed from --
    ADVERTISER_ACTIONS = {
        "cancel": ["pending", "accepted"],
        "approve_content": ["content_submitted"],
        "revision": ["content_submitted"],
    }

    id: str
    order_number: str = ""
    status: str = "pending"
    website_id: str | None = None
    domain: str = ""
    advertiser_name: str = ""
    publisher_name: str = ""
    target_url: str = ""
    anchor_text: str = ""
    article_url: str = ""
    revision_request: str = ""
    rejection_reason: str = ""
    base_price: float = 0.0
    total_price: float = 0.0
    publisher_earnings: float = 0.0
    created_at: str | None = None
    deadline: str | None = None
    additional_charges: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data):
        """Build from a backend order payload.

        websiteId / advertiserId / publisherId arrive either as bare ids
        or populated sub-documents.
        """
        data = data or {}
        website = data.get("websiteId")
        domain = data.get("website") if isinstance(data.get("website"), str) else ""
        if isinstance(website, dict):
            domain = website.get("domain", domain)
            website = website.get("_id") or website.get("id")

        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            order_number=data.get("orderId") or "",
            status=data.get("status", "pending"),
            website_id=str(website) if website else None,
            domain=domain or "",
            advertiser_name=_person(data.get("advertiserId")),
            publisher_name=_person(data.get("publisherId")),
            target_url=data.get("targetUrl") or "",
            anchor_text=data.get("anchorText") or "",
            article_url=data.get("articleUrl") or data.get("publishedUrl") or "",
            revision_request=data.get("revisionRequest") or "",
            rejection_reason=data.get("rejectionReason") or "",
            base_price=as_price(data.get("basePrice")),
            total_price=as_price(data.get("totalPrice")),
            publisher_earnings=as_price(
                data.get("publisherEarnings") or data.get("totalPrice")
            ),
            created_at=data.get("createdAt"),
            deadline=data.get("deadline"),
            additional_charges=data.get("additionalCharges") or {},
        )

    def publisher_can(self, action):
        return self.status in self.PUBLISHER_ACTIONS.get(action, [])

    def advertiser_can(self, action):
        return self.status in self.ADVERTISER_ACTIONS.get(action, [])

    def __repr__(self):
        return f"<Order {self.order_number or self.id} ({self.status})>"


def _person(value):
    """Display name for a populated user reference, or '' for a bare id."""
    if not isinstance(value, dict):
        return ""
    name = f"{value.get('firstName') or ''} {value.get('lastName') or ''}".strip()
    return name or value.get("name") or value.get("email") or ""
