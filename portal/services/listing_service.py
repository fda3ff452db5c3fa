"""Listing service — the "Description and price" step of the Add Website wizard.

Validates the publisher's listing form locally, maps it onto the
backend's website fields and submits it with PUT /websites/<id>.
Submitting always sends the website (back) to moderation: a draft
becomes "submitted", and an already approved website is flagged
needsReModeration so an admin reviews the edit.

Multi-selects are capped silently: extra picks beyond the limit are
dropped, never reported as an error.
"""

import logging
import math

from portal.models.website import Website
from portal.sanitize import sanitize
from portal.services.api_client import ApiError, format_api_error

logger = logging.getLogger(__name__)

CATEGORIES = [
    "General", "Business & Finance", "Technology", "Health & Fitness",
    "Lifestyle", "Education", "Digital Marketing", "News & Media",
    "Home & Real Estate", "Travel & Tourism", "Sports & Entertainment",
    "Environment & Sustainability", "Automotive", "Law & Legal",
    "Science & Research", "Religion & Spirituality", "Personal Development",
    "Relationships & Dating", "Nonprofit & Charity", "Art & Photography",
]

LANGUAGES = [
    "English", "Spanish", "French", "German", "Chinese", "Japanese", "Korean",
    "Italian", "Portuguese", "Russian", "Arabic", "Hindi", "Bengali", "Urdu",
    "Indonesian", "Turkish", "Dutch", "Polish", "Romanian", "Thai", "Vietnamese",
    "Greek", "Czech", "Hungarian", "Swedish", "Norwegian", "Danish", "Finnish",
    "Hebrew", "Persian", "Swahili", "Malay", "Filipino", "Ukrainian", "Catalan",
    "Croatian", "Serbian", "Bulgarian", "Slovak", "Slovenian", "Lithuanian",
    "Latvian", "Estonian", "Icelandic", "Maltese", "Irish", "Welsh",
    "Basque", "Galician", "Albanian", "Macedonian", "Bosnian", "Georgian",
    "Armenian", "Azerbaijani", "Kazakh", "Uzbek", "Mongolian", "Nepali",
    "Sinhala", "Burmese", "Khmer", "Lao", "Amharic", "Yoruba", "Igbo", "Zulu",
    "Xhosa", "Afrikaans", "Somali", "Hausa",
]

COUNTRIES = [
    "United States", "United Kingdom", "Canada", "Australia", "New Zealand",
    "Ireland", "Germany", "France", "Spain", "Italy", "Portugal", "Netherlands",
    "Belgium", "Switzerland", "Austria", "Sweden", "Norway", "Denmark",
    "Finland", "Poland", "Czechia", "Romania", "Greece", "Turkey", "Ukraine",
    "Russia", "Israel", "United Arab Emirates", "Saudi Arabia", "Egypt",
    "South Africa", "Nigeria", "Kenya", "India", "Pakistan", "Bangladesh",
    "China", "Japan", "South Korea", "Singapore", "Malaysia", "Indonesia",
    "Philippines", "Thailand", "Vietnam", "Brazil", "Argentina", "Chile",
    "Colombia", "Mexico", "Peru",
]

# Form label -> backend enum value
SENSITIVE_TOPICS = {
    "Casino Betting": "legal_betting_casino",
    "Forex Crypto": "forex_brokers",
    "CBD": "lending_microloans",
}

# Form label -> backend linkType. Anything else (e.g. "Sponsored") is dofollow.
LINK_TYPES = {
    "follow": "dofollow",
    "no follow": "nofollow",
}
LINK_TYPE_LABELS = ["Follow", "No Follow", "Sponsored"]


def cap_selection(values, limit, allowed=None):
    """Keep at most `limit` distinct, non-empty picks, in the order given.

    Values outside `allowed` (when given) are ignored rather than counted.
    """
    picked = []
    for value in values or []:
        value = (value or "").strip()
        if not value or value in picked:
            continue
        if allowed is not None and value not in allowed:
            continue
        if len(picked) >= limit:
            break
        picked.append(value)
    return picked


def parse_keywords(raw):
    """Comma-separated keywords, trimmed, capped at Website.MAX_KEYWORDS."""
    return cap_selection((raw or "").split(","), Website.MAX_KEYWORDS)


def _price(form, key, errors, message, required=True):
    """Parse a price field. Records `message` in errors when invalid."""
    raw = (form.get(key) or "").strip()
    try:
        value = float(raw)
    except ValueError:
        if required:
            errors[key] = message
        return 0.0
    if not math.isfinite(value):
        errors[key] = message
        return 0.0
    if required and value <= 0:
        errors[key] = message
    elif value < 0:
        errors[key] = message
    return value


def validate_listing(form):
    """Validate the description & price form.

    Args:
        form: request.form (a MultiDict) or any mapping with getlist().

    Returns:
        tuple: (values, errors)
            - values: cleaned dict ready for build_payload()
            - errors: {field_name: message}; empty when valid
    """
    errors = {}

    description = sanitize(form.get("site_description", "")) or ""
    country = (form.get("country") or "").strip()
    language = (form.get("main_language") or "").strip()
    categories = cap_selection(
        form.getlist("categories"), Website.MAX_CATEGORIES, allowed=CATEGORIES
    )

    if not description:
        errors["site_description"] = "Website description is required"
    if not country:
        errors["country"] = "Country is required"
    if not language:
        errors["main_language"] = "Language is required"
    if not categories:
        errors["categories"] = "At least one category is required"

    normal_price = _price(
        form, "normal_price", errors, "Normal price must be greater than 0"
    )

    copywriting_enabled = bool(form.get("copywriting_enabled"))
    copywriting_price = 0.0
    if copywriting_enabled:
        copywriting_price = _price(
            form, "copywriting_price", errors,
            "Copywriting price must be greater than 0 when enabled",
        )

    sensitive_enabled = bool(form.get("sensitive_enabled"))
    sensitive_price = 0.0
    if sensitive_enabled:
        sensitive_price = _price(
            form, "sensitive_price", errors,
            "Sensitive topic price must be greater than 0 when enabled",
        )

    homepage_price = _price(
        form, "homepage_price", errors,
        "Homepage announcement price cannot be negative", required=False,
    )

    discount = _price(
        form, "discount", errors, "Discount must be between 0 and 100",
        required=False,
    )
    if discount > 100:
        errors["discount"] = "Discount must be between 0 and 100"

    try:
        max_links = int(form.get("max_links") or 1)
        if max_links < 1:
            raise ValueError
    except ValueError:
        errors["max_links"] = "Number of links must be a whole number of at least 1"
        max_links = 1

    link_label = (form.get("link_type") or "Follow").strip()

    values = {
        "site_description": description,
        "country": country,
        "main_language": language,
        "categories": categories,
        "keywords": parse_keywords(form.get("keywords")),
        "additional_countries": cap_selection(
            form.getlist("additional_countries"), Website.MAX_COUNTRIES,
            allowed=COUNTRIES,
        ),
        "additional_languages": cap_selection(
            form.getlist("additional_languages"), Website.MAX_LANGUAGES,
            allowed=LANGUAGES,
        ),
        "sensitive_topics": [
            t for t in form.getlist("sensitive_topics") if t in SENSITIVE_TOPICS
        ],
        "link_type": link_label,
        "max_links": max_links,
        "normal_price": normal_price,
        "copywriting_enabled": copywriting_enabled,
        "copywriting_price": copywriting_price,
        "sensitive_enabled": sensitive_enabled,
        "sensitive_price": sensitive_price,
        "homepage_price": homepage_price,
        "discount": discount,
    }
    return values, errors


def build_payload(values, website):
    """Map validated form values onto the backend's flat website fields."""
    payload = {
        "siteDescription": values["site_description"],
        "category": values["categories"][0] if values["categories"] else "General",
        "allCategories": values["categories"],
        "keywords": values["keywords"],
        "country": values["country"],
        "mainLanguage": values["main_language"],
        "additionalCountries": values["additional_countries"],
        "additionalLanguages": values["additional_languages"],
        "publishingPrice": values["normal_price"],
        "copywritingPrice": values["copywriting_price"] if values["copywriting_enabled"] else 0,
        "homepageAnnouncementPrice": values["homepage_price"],
        "linkType": LINK_TYPES.get(values["link_type"].lower(), "dofollow"),
        "numberOfLinks": values["max_links"],
        "discountPercentage": values["discount"],
        "acceptedSensitiveCategories": [
            SENSITIVE_TOPICS[t] for t in values["sensitive_topics"]
        ],
        "sensitiveContentExtraCharge": (
            values["sensitive_price"] if values["sensitive_enabled"] else 0
        ),
        "articleEditingPercentage": 10,
        "publishingFormats": ["article"],
        "hideDomain": False,
        "advertisingRequirements": "Standard requirements",
        "publishingSections": "General content",
        "status": "submitted",
    }
    # Editing a live listing sends it back through moderation.
    if website is not None and website.is_approved:
        payload["needsReModeration"] = True
    return payload


def form_defaults(website):
    """Pre-fill values for editing an existing listing."""
    if website is None:
        return {}
    labels = {v: k for k, v in SENSITIVE_TOPICS.items()}
    link_label = {"dofollow": "Follow", "nofollow": "No Follow"}.get(
        website.link_type or "dofollow", "Follow"
    )
    placeholder = website.site_description == "Pending description"
    return {
        "site_description": "" if placeholder else website.site_description,
        "country": website.country or "",
        "main_language": website.main_language or "",
        "categories": website.all_categories[: Website.MAX_CATEGORIES],
        "keywords": ", ".join(website.keywords[: Website.MAX_KEYWORDS]),
        "additional_countries": website.additional_countries,
        "additional_languages": website.additional_languages,
        "sensitive_topics": [
            labels[v] for v in website.accepted_sensitive_categories if v in labels
        ],
        "link_type": link_label,
        "max_links": website.number_of_links or 1,
        "normal_price": website.publishing_price or "",
        "copywriting_enabled": website.copywriting_price > 0,
        "copywriting_price": website.copywriting_price or "",
        "sensitive_enabled": website.sensitive_content_extra_charge > 0,
        "sensitive_price": website.sensitive_content_extra_charge or "",
        "homepage_price": website.homepage_announcement_price or 0,
        "discount": website.discount_percentage or 0,
    }


def submit_listing(api, website, values):
    """PUT the listing to the backend.

    Returns:
        tuple: (payload, None) on success, (None, error_message) on failure.
    """
    payload = build_payload(values, website)
    try:
        api.put(f"/websites/{website.id}", json=payload)
    except ApiError as e:
        logger.warning(f"Listing update failed for website {website.id}: {e}")
        return None, format_api_error(e)

    logger.info(
        f"Listing submitted for website {website.id} "
        f"(re-moderation={payload.get('needsReModeration', False)})"
    )
    return payload, None
