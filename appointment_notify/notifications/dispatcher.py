"""Channel selection and bounded transport calls for one recipient."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Any, Callable

from appointment_notify.domain.errors import ChannelTimeoutError, TransportError
from appointment_notify.domain.models import Channel, ChannelAttempt, OutcomeStatus, PatientSnapshot
from appointment_notify.domain.ports import DedupStore, EmailSender, MessageSender
from appointment_notify.utils.idempotency import build_dedup_key
from appointment_notify.utils.phone import DEFAULT_COUNTRY_CODE, normalize_phone

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_TIMEOUT_S = 5.0


class NotificationDispatcher:
    def __init__(
        self,
        email_sender: EmailSender,
        message_sender: MessageSender,
        *,
        timeout_s: float | None = DEFAULT_CHANNEL_TIMEOUT_S,
        country_code: str = DEFAULT_COUNTRY_CODE,
        dedup_store: DedupStore | None = None,
    ) -> None:
        self.email_sender = email_sender
        self.message_sender = message_sender
        self.timeout_s = timeout_s
        self.country_code = country_code
        self.dedup_store = dedup_store

    @staticmethod
    def channels_for(patient: PatientSnapshot) -> list[str]:
        channels: list[str] = []
        if patient.email:
            channels.append(Channel.EMAIL)
        if patient.phone:
            channels.append(Channel.MESSAGE)
        return channels

    def normalize(self, phone: str | None) -> str | None:
        return normalize_phone(phone, self.country_code)

    def _call(self, fn: Callable[..., Any], *args: Any) -> Any:
        if self.timeout_s is None:
            return fn(*args)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notify-channel")
        try:
            future = executor.submit(fn, *args)
            try:
                return future.result(timeout=self.timeout_s)
            except FuturesTimeoutError as exc:
                raise ChannelTimeoutError(f"channel call exceeded {self.timeout_s}s") from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def deliver(
        self,
        channel: str,
        to: str,
        fn: Callable[..., Any],
        *args: Any,
        trigger_id: str | None = None,
        recipient_key: str | None = None,
    ) -> ChannelAttempt:
        """Invoke one transport call and report it as a ``ChannelAttempt``.

        Raised exceptions, timeouts and falsy returns all become failed attempts.
        """
        dedup_key = None
        if self.dedup_store is not None and trigger_id and recipient_key:
            dedup_key = build_dedup_key(trigger_id, recipient_key, channel)
            if self.dedup_store.has_been_sent(dedup_key):
                logger.info("Skipping %s to %s: already sent for trigger %s", channel, to, trigger_id)
                return ChannelAttempt(channel=channel, status=OutcomeStatus.SKIPPED, to=to, error="duplicate")

        try:
            if not self._call(fn, *args):
                raise TransportError(f"{channel} transport reported failure")
        except Exception as exc:  # per-channel isolation
            logger.error("%s send to %s failed: %s", channel, to, exc)
            return ChannelAttempt(channel=channel, status=OutcomeStatus.FAILED, to=to, error=str(exc))

        if dedup_key is not None:
            self.dedup_store.mark_sent(dedup_key)
        logger.info("%s sent to %s", channel, to)
        return ChannelAttempt(channel=channel, status=OutcomeStatus.SENT, to=to)

    def send_email(
        self,
        kind: str,
        recipient_email: str,
        template_data: dict[str, Any],
        *,
        trigger_id: str | None = None,
        recipient_key: str | None = None,
    ) -> ChannelAttempt:
        return self.deliver(
            Channel.EMAIL,
            recipient_email,
            self.email_sender.send,
            kind,
            recipient_email,
            template_data,
            trigger_id=trigger_id,
            recipient_key=recipient_key,
        )

    def send_message(
        self,
        phone: str,
        text: str,
        *,
        trigger_id: str | None = None,
        recipient_key: str | None = None,
    ) -> ChannelAttempt:
        normalized = self.normalize(phone) or phone
        return self.deliver(
            Channel.MESSAGE,
            normalized,
            self.message_sender.send,
            normalized,
            text,
            trigger_id=trigger_id,
            recipient_key=recipient_key,
        )
