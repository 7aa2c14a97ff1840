"""
In-memory user repository adapter - Implements UserRepository protocol.

Users live for the lifetime of the process. Email uniqueness is
enforced by keying on the normalized email.
"""

from dataclasses import replace

from ezclip.domain.users import User


class InMemoryUserRepository:
    """Implements UserRepository protocol with two dict indexes."""

    def __init__(self) -> None:
        self._by_email: dict[str, User] = {}
        self._by_id: dict[str, User] = {}

    def get_by_email(self, email: str) -> User | None:
        return self._by_email.get(email)

    def get_by_id(self, user_id: str) -> User | None:
        return self._by_id.get(user_id)

    def add(self, user: User) -> bool:
        if user.email in self._by_email:
            return False
        self._by_email[user.email] = user
        self._by_id[user.id] = user
        return True

    def update_subscription(self, user_id: str, subscription: str) -> User | None:
        """Replace the stored user with one on the new tier; None if unknown."""
        user = self._by_id.get(user_id)
        if user is None:
            return None
        updated = replace(user, subscription=subscription)
        self._by_email[updated.email] = updated
        self._by_id[updated.id] = updated
        return updated

    def count(self) -> int:
        return len(self._by_email)

    def search(self, term: str = "") -> list[User]:
        """Users whose email or name contains term (case-insensitive), newest first."""
        needle = term.strip().lower()
        users = [
            user
            for user in self._by_email.values()
            if not needle or needle in user.email.lower() or needle in user.name.lower()
        ]
        return sorted(users, key=lambda u: u.created_at, reverse=True)
