"""Telegram Bot API Client - Imperative Shell.

This module sends messages through the Telegram Bot API ``sendMessage``
method. All I/O is contained here; message formatting is in the core module.

Transient failures (timeouts, connection errors, HTTP 429 and 5xx) are
retried according to a RetryPolicy; everything else fails immediately.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

import requests

from safequake.core.retry import RetryPolicy, decide_retry


logger = logging.getLogger(__name__)


TELEGRAM_API_BASE = "https://api.telegram.org"

# Default timeout for API requests (seconds)
DEFAULT_TIMEOUT = 10


@dataclass
class TelegramResponse:
    """Response from the Telegram Bot API.

    Attributes:
        success: Whether the message was delivered
        status_code: HTTP status code of the last attempt (0 on transport error)
        error: Error message if failed
        attempts: Number of attempts made
        chat_id: Recipient chat id
    """
    success: bool
    status_code: int
    error: str | None = None
    attempts: int = 1
    chat_id: int | str | None = None


def _retry_after(response: requests.Response) -> float | None:
    """Extract ``parameters.retry_after`` from a 429 body, if present."""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    params = body.get("parameters") or {}
    value = params.get("retry_after")
    return float(value) if isinstance(value, (int, float)) else None


def _error_text(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and body.get("description"):
        return str(body["description"])
    return response.text


class TelegramClient:
    """Client for sending messages via the Telegram Bot API.

    This is part of the imperative shell - it handles HTTP I/O.
    """

    def __init__(
        self,
        bot_token: str,
        timeout: int = DEFAULT_TIMEOUT,
        retry_policy: RetryPolicy | None = None,
        base_url: str = TELEGRAM_API_BASE,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize Telegram client.

        Args:
            bot_token: Bot token issued by BotFather
            timeout: Request timeout in seconds
            retry_policy: Retry policy for transient failures
            base_url: Bot API base URL
            sleep: Function used to wait between attempts
        """
        self.bot_token = bot_token
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.base_url = base_url.rstrip("/")
        self._sleep = sleep

    @property
    def send_message_url(self) -> str:
        return f"{self.base_url}/bot{self.bot_token}/sendMessage"

    def _post_once(self, chat_id: int | str, text: str) -> tuple[TelegramResponse, float | None]:
        """Make a single sendMessage call.

        Returns:
            (response, retry_after) where retry_after is only set for 429
        """
        try:
            response = requests.post(
                self.send_message_url,
                json={"chat_id": chat_id, "text": text},
                timeout=self.timeout,
            )
        except requests.Timeout:
            return TelegramResponse(
                success=False,
                status_code=0,
                error="Request timed out",
                chat_id=chat_id,
            ), None
        except requests.RequestException as e:
            return TelegramResponse(
                success=False,
                status_code=0,
                error=str(e),
                chat_id=chat_id,
            ), None

        if response.status_code == 200:
            return TelegramResponse(
                success=True,
                status_code=200,
                chat_id=chat_id,
            ), None

        retry_after = _retry_after(response) if response.status_code == 429 else None
        return TelegramResponse(
            success=False,
            status_code=response.status_code,
            error=_error_text(response),
            chat_id=chat_id,
        ), retry_after

    def send_message(self, chat_id: int | str, text: str) -> TelegramResponse:
        """Send a text message to one chat.

        This method performs HTTP I/O. It never raises for delivery
        failures; the outcome is reported in the returned TelegramResponse.

        Args:
            chat_id: Recipient chat id
            text: Message text

        Returns:
            TelegramResponse indicating success or failure
        """
        if not self.bot_token:
            logger.error("Telegram bot token not configured")
            return TelegramResponse(
                success=False,
                status_code=0,
                error="Bot token not configured",
                attempts=0,
                chat_id=chat_id,
            )

        attempt = 0
        while True:
            attempt += 1
            result, retry_after = self._post_once(chat_id, text)
            result.attempts = attempt

            if result.success:
                logger.info("Telegram message sent to %s", chat_id)
                return result

            status = result.status_code or None
            decision = decide_retry(attempt, self.retry_policy, status, retry_after)
            if not decision.retry:
                logger.error(
                    "Telegram send to %s failed (%s): %s",
                    chat_id,
                    decision.reason,
                    result.error,
                )
                return result

            logger.warning("Telegram send to %s failed: %s", chat_id, decision.reason)
            self._sleep(decision.delay_seconds)

    def send_to_many(
        self,
        chat_ids: list[int | str],
        text: str,
    ) -> list[TelegramResponse]:
        """Send the same message to several chats.

        A failure for one recipient does not stop the others.

        Args:
            chat_ids: Recipient chat ids
            text: Message text

        Returns:
            List of responses, one per recipient
        """
        responses = []
        for chat_id in chat_ids:
            responses.append(self.send_message(chat_id, text))

        failed = sum(1 for r in responses if not r.success)
        if failed:
            logger.warning("Telegram broadcast: %d/%d sends failed", failed, len(responses))
        return responses
