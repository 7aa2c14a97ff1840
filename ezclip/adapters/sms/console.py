"""
Console SMS sender adapter - Implements SmsSender protocol.

This module provides a console-based implementation of the domain's
SMS sender port, logging verification messages for development.
"""

import logging

logger = logging.getLogger(__name__)


class ConsoleSmsSender:
    """
    Implements SmsSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Used when Twilio credentials are not configured; never fails.
    """

    async def send(self, destination: str, text: str) -> None:
        """
        Log the message instead of sending it.

        The message is logged at INFO level so the code is visible in
        local server output.

        Args:
            destination: Phone number the message would go to
            text: Message body (contains the verification code)
        """
        logger.info("[VERIFICATION] Phone: %s Message: %s", destination, text)
