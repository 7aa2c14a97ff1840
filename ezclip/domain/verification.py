"""
Verification registry - One-time code lifecycle for phone verification.

Challenge Lifecycle
===================

    start_challenge  -> record created (attempt_count = 0), code sent by SMS
    check_code       -> MISMATCH increments attempt_count, record kept
                     -> SUCCESS / EXPIRED / TOO_MANY_ATTEMPTS delete the record
    sweep_expired    -> deletes every record past expires_at, checked or not

At most one live challenge exists per identity key: starting a new one
replaces the old record, so the previous code stops verifying at once.

All mutations of the pending map happen between awaits. The only await
is the SMS dispatch, and by then the record is already in place, so
interleaved requests and the periodic sweep see a consistent map.
Deletions use pop(key, None) and are therefore idempotent.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from .exceptions import DeliveryFailed
from .ports import Clock, SmsSender, VerifyResult

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


@dataclass
class PendingVerification:
    """Outstanding one-time-code challenge for one identity claim."""

    key: str
    code: str
    bound_phone: str
    created_at: datetime
    expires_at: datetime
    attempt_count: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at


@dataclass(frozen=True)
class Challenge:
    """
    Result of start_challenge().

    code is for in-process callers only. dev_code repeats it when the
    registry runs in diagnostic mode and is always None in production;
    only dev_code may ever be shown to an end user.
    """

    code: str = field(repr=False)
    expires_at: datetime
    dev_code: str | None = field(default=None, repr=False)


def generate_code() -> str:
    """
    Generate a 6-digit verification code.

    Drawn uniformly from [100000, 999999] with the secrets module,
    so codes are unpredictable.
    """
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


@dataclass
class VerificationRegistry:
    """
    Issues, stores and validates one-time verification codes.

    Constructed once at startup with its collaborators and passed to
    consumers; owns its pending map privately.
    """

    sms_sender: SmsSender
    clock: Clock
    ttl: timedelta = timedelta(minutes=10)
    max_attempts: int = 5
    expose_codes: bool = False
    _pending: dict[str, PendingVerification] = field(default_factory=dict, init=False, repr=False)

    async def start_challenge(self, identity_key: str, destination: str) -> Challenge:
        """
        Issue a new code for identity_key and send it to destination.

        Replaces any pending challenge for the same key and resets the
        attempt counter.

        Args:
            identity_key: Identity claim (normalized email)
            destination: Phone number the code is sent to

        Returns:
            Challenge with the code and its expiry (dev_code set in diagnostic mode)

        Raises:
            DeliveryFailed: SMS dispatch failed; the new challenge is discarded
        """
        now = self.clock.now()
        code = generate_code()
        record = PendingVerification(
            key=identity_key,
            code=code,
            bound_phone=destination,
            created_at=now,
            expires_at=now + self.ttl,
        )
        self._pending[identity_key] = record

        try:
            await self.sms_sender.send(destination, self._message_text(code))
        except DeliveryFailed:
            # Drop only our own record; a newer challenge may have replaced it.
            if self._pending.get(identity_key) is record:
                del self._pending[identity_key]
            logger.warning("Verification code delivery failed for %s", identity_key)
            raise

        logger.info("Verification challenge issued for %s", identity_key)
        return Challenge(
            code=code,
            expires_at=record.expires_at,
            dev_code=code if self.expose_codes else None,
        )

    def check_code(self, identity_key: str, supplied_code: str) -> VerifyResult:
        """
        Check a supplied code against the pending challenge.

        Expiry is checked before the attempt limit, and the attempt limit
        before the comparison, so an expired challenge reports EXPIRED even
        when its attempts are also exhausted.

        Args:
            identity_key: Identity claim the challenge was started for
            supplied_code: Code entered by the user

        Returns:
            VerifyResult describing the outcome
        """
        record = self._pending.get(identity_key)
        if record is None:
            return VerifyResult.NOT_FOUND

        if record.is_expired(self.clock.now()):
            self._discard(identity_key)
            return VerifyResult.EXPIRED

        if record.attempt_count >= self.max_attempts:
            self._discard(identity_key)
            return VerifyResult.TOO_MANY_ATTEMPTS

        if not secrets.compare_digest(record.code.encode(), supplied_code.encode()):
            record.attempt_count += 1
            return VerifyResult.MISMATCH

        self._discard(identity_key)
        return VerifyResult.SUCCESS

    def sweep_expired(self) -> list[str]:
        """
        Delete every challenge whose TTL has passed.

        Returns:
            Identity keys that were removed by this sweep
        """
        now = self.clock.now()
        expired = [key for key, record in self._pending.items() if record.is_expired(now)]
        removed = [key for key in expired if self._discard(key)]
        if removed:
            logger.info("Swept %d expired verification challenge(s)", len(removed))
        return removed

    def pending_count(self) -> int:
        """Number of live challenges (diagnostics only)."""
        return len(self._pending)

    def _discard(self, identity_key: str) -> bool:
        return self._pending.pop(identity_key, None) is not None

    def _message_text(self, code: str) -> str:
        minutes = int(self.ttl.total_seconds() // 60)
        return (
            f"Your EzClippin verification code is: {code}. "
            f"This code will expire in {minutes} minutes."
        )
