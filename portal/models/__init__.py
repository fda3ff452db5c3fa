# Models package — plain objects rebuilt from backend payloads.

from portal.models.order import Order  # noqa: F401
from portal.models.user import User  # noqa: F401
from portal.models.website import Website  # noqa: F401
