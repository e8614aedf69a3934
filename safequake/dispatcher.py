"""Notification Dispatcher - Fans one alert out over the user's channels.

Channels are independent: each call is wrapped, and a failure is logged
and recorded as a failed ChannelResult without affecting the other
channels or the other users.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from safequake.core.formatter import (
    format_disabled_toast,
    format_event_toast,
    format_permission_toast,
    format_push_notification,
    format_telegram_advice,
    format_telegram_alert,
    format_telegram_broadcast,
    format_telegram_post,
)
from safequake.core.rules import DEFAULT_RADIUS_KM, ProximityDecision
from safequake.core.seismic_event import SeismicEvent
from safequake.shell.inbox_client import InboxClient
from safequake.shell.telegram_client import TelegramClient, TelegramResponse


logger = logging.getLogger(__name__)


CHANNEL_PUSH = "push"
CHANNEL_PERMISSION_TOAST = "permission_toast"
CHANNEL_TOAST = "toast"
CHANNEL_DISABLED_TOAST = "disabled_toast"
CHANNEL_TELEGRAM_ALERT = "telegram_alert"
CHANNEL_TELEGRAM_ADVICE = "telegram_advice"
CHANNEL_TELEGRAM_BROADCAST = "telegram_broadcast"
CHANNEL_TELEGRAM_POST = "telegram_post"


@dataclass
class ChannelResult:
    """Outcome of one channel attempt.

    Attributes:
        channel: Channel name (see CHANNEL_* constants)
        recipient: User id or Telegram chat id
        success: Whether delivery succeeded
        error: Error message if failed
    """
    channel: str
    recipient: str
    success: bool
    error: str | None = None


@dataclass
class DispatchResult:
    """All channel outcomes for one user and one event."""
    user_id: str
    event_id: str
    results: list[ChannelResult] = field(default_factory=list)

    @property
    def sent(self) -> list[ChannelResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[ChannelResult]:
        return [r for r in self.results if not r.success]

    def channels(self) -> list[str]:
        return [r.channel for r in self.results]


def _from_telegram(channel: str, response: TelegramResponse) -> ChannelResult:
    return ChannelResult(
        channel=channel,
        recipient=str(response.chat_id),
        success=response.success,
        error=response.error,
    )


class Dispatcher:
    """Sends one proximity alert over browser push, in-app toast and Telegram."""

    def __init__(
        self,
        telegram_client: TelegramClient,
        inbox_client: InboxClient,
        radius_km: float = DEFAULT_RADIUS_KM,
    ) -> None:
        self.telegram_client = telegram_client
        self.inbox_client = inbox_client
        self.radius_km = radius_km

    def _attempt(
        self,
        channel: str,
        recipient: str,
        send: Callable[[], Any],
    ) -> ChannelResult:
        """Run one channel call, converting any failure into a ChannelResult."""
        try:
            response = send()
        except Exception as e:
            logger.exception("Channel %s to %s raised", channel, recipient)
            return ChannelResult(channel=channel, recipient=recipient, success=False, error=str(e))

        if not response.success:
            logger.error("Channel %s to %s failed: %s", channel, recipient, response.error)

        return ChannelResult(
            channel=channel,
            recipient=recipient,
            success=response.success,
            error=response.error,
        )

    def dispatch(self, decision: ProximityDecision) -> DispatchResult:
        """Send every alert the user's preferences enable.

        Args:
            decision: Proximity decision for one user

        Returns:
            DispatchResult with one ChannelResult per attempt
        """
        user = decision.user
        event = decision.event
        plan = decision.channels
        language = user.language
        result = DispatchResult(user_id=user.id, event_id=event.id)

        # Browser: exactly one attempt, push or permission fallback
        if plan.browser:
            if plan.browser_permitted:
                notification = format_push_notification(event, decision.distance_km, language)
                result.results.append(self._attempt(
                    CHANNEL_PUSH,
                    user.id,
                    lambda: self.inbox_client.send_push(user.id, notification, event.id),
                ))
            else:
                toast = format_permission_toast(language)
                result.results.append(self._attempt(
                    CHANNEL_PERMISSION_TOAST,
                    user.id,
                    lambda: self.inbox_client.send_toast(user.id, toast, event.id),
                ))

        if plan.toast:
            toast = format_event_toast(event, decision.distance_km, language)
            result.results.append(self._attempt(
                CHANNEL_TOAST,
                user.id,
                lambda: self.inbox_client.send_toast(user.id, toast, event.id),
            ))
        elif plan.disabled_notice:
            notice = format_disabled_toast(language)
            result.results.append(self._attempt(
                CHANNEL_DISABLED_TOAST,
                user.id,
                lambda: self.inbox_client.send_toast(user.id, notice, event.id),
            ))

        if plan.telegram:
            chat_id = user.preferences.telegram_id
            alert_text = format_telegram_alert(event, decision.distance_km, self.radius_km)
            result.results.append(self._attempt(
                CHANNEL_TELEGRAM_ALERT,
                str(chat_id),
                lambda: self.telegram_client.send_message(chat_id, alert_text),
            ))

            if decision.advice is not None:
                advice_text = format_telegram_advice(
                    decision.advice.advice,
                    decision.advice.band.label,
                )
                result.results.append(self._attempt(
                    CHANNEL_TELEGRAM_ADVICE,
                    str(chat_id),
                    lambda: self.telegram_client.send_message(chat_id, advice_text),
                ))

        logger.info(
            "Dispatched event %s to user %s: %d sent, %d failed",
            event.id,
            user.id,
            len(result.sent),
            len(result.failed),
        )
        return result

    def _send_to_all(self, channel: str, chat_ids: list[int], text: str) -> list[ChannelResult]:
        try:
            responses = self.telegram_client.send_to_many(chat_ids, text)
        except Exception as e:
            logger.exception("Telegram %s raised", channel)
            return [
                ChannelResult(channel=channel, recipient=str(c), success=False, error=str(e))
                for c in chat_ids
            ]
        return [_from_telegram(channel, r) for r in responses]

    def broadcast(self, event: SeismicEvent, chat_ids: list[int]) -> list[ChannelResult]:
        """Alert every Telegram subscriber about a new event."""
        if not chat_ids:
            return []
        logger.info("Broadcasting event %s to %d subscribers", event.id, len(chat_ids))
        return self._send_to_all(CHANNEL_TELEGRAM_BROADCAST, chat_ids, format_telegram_broadcast(event))

    def relay_post(
        self,
        post: dict[str, Any],
        chat_ids: list[int],
        frontend_url: str,
        published_at: datetime | None = None,
    ) -> list[ChannelResult]:
        """Send a news post to every Telegram subscriber."""
        if not chat_ids:
            return []
        text = format_telegram_post(post, frontend_url, published_at)
        return self._send_to_all(CHANNEL_TELEGRAM_POST, chat_ids, text)
