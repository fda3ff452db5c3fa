"""Ownership verification states and method catalogue.

The workflow is a small tagged union. Each state is a frozen dataclass
with a `name` tag; VerificationWorkflow (services/verification_service.py)
owns the transitions and stores the current state in the session via
to_dict() / state_from_dict().

    Select ──start──> Verify(method) ──verify──> Success
                                      └────────> OwnershipTransferred
    (backend error redirect) ──────────────────> VerificationFailed
"""

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class VerificationMethod:
    id: str
    title: str
    description: str
    requirements: str
    disabled: bool = False


METHODS = [
    VerificationMethod(
        id="google_analytics",
        title="Google Analytics",
        description="Verify ownership through your Google Analytics account",
        requirements="Requires Google Analytics to be installed on your website",
    ),
    VerificationMethod(
        id="google_search_console",
        title="Google Search Console",
        description="Verify ownership through Google Search Console",
        requirements="Requires your website to be added to Google Search Console",
    ),
    VerificationMethod(
        id="html_file",
        title="HTML File Upload",
        description="Upload a verification file to your website root directory",
        requirements="Requires FTP/SFTP access to upload files to your website",
    ),
    VerificationMethod(
        id="another_method",
        title="Another method",
        description="Alternative verification method",
        requirements="Contact support for more information",
    ),
]

METHOD_IDS = [m.id for m in METHODS]
GOOGLE_METHODS = ["google_analytics", "google_search_console"]


@dataclass(frozen=True)
class Select:
    name = "select"
    selected: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class Verify:
    name = "verify"
    method: str = ""
    data: dict = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class Success:
    name = "success"
    method: str | None = None


@dataclass(frozen=True)
class OwnershipTransferred:
    name = "ownershipTransferred"
    method: str | None = None


@dataclass(frozen=True)
class VerificationFailed:
    name = "verificationError"
    message: str = "An unknown error occurred during verification."


STATES = {
    cls.name: cls
    for cls in (Select, Verify, Success, OwnershipTransferred, VerificationFailed)
}


def to_dict(state):
    """Session-safe representation of a state."""
    return {"name": state.name, **asdict(state)}


def state_from_dict(data):
    """Inverse of to_dict(). Unknown or missing data falls back to Select()."""
    if not data:
        return Select()
    cls = STATES.get(data.get("name"))
    if cls is None:
        return Select()
    fields = {k: v for k, v in data.items() if k != "name"}
    try:
        return cls(**fields)
    except TypeError:
        return Select()
