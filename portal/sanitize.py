"""Sanitizing shared by every form that forwards user input.

sanitize() cleans free text before it goes to the backend;
is_local_path() vets `next` redirect targets.
"""

from urllib.parse import urlsplit

import bleach


def sanitize(text):
    """Strip all HTML tags from user input."""
    if text is None:
        return text
    return bleach.clean(text, tags=[], strip=True).strip()


def is_local_path(url):
    """True for a same-site path such as "/advertiser/favorites".

    Browsers read a backslash as a slash, so "/\\evil.com" is treated
    like "//evil.com" and rejected.
    """
    if not url or not url.startswith("/"):
        return False
    normalized = url.replace("\\", "/")
    if normalized.startswith("//"):
        return False
    parts = urlsplit(normalized)
    return not parts.scheme and not parts.netloc
