"""User and staged-signup records."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

SUBSCRIPTION_TIERS = ("free", "pro", "enterprise", "lifetime")


@dataclass(frozen=True)
class PendingSignup:
    """Signup credentials held until the phone code is confirmed."""

    name: str
    email: str
    phone: str
    password_hash: str = ""
    staged_at: datetime | None = None


@dataclass(frozen=True)
class User:
    """Activated account."""

    id: str
    name: str
    email: str
    phone: str
    password_hash: str
    created_at: datetime
    subscription: str = "free"
    verified: bool = True

    def public_dict(self) -> dict[str, Any]:
        """Account fields safe to return to clients (no password hash)."""
        data = asdict(self)
        del data["password_hash"]
        return data
