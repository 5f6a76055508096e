"""Notification and confirmation collaborators used by the feature controllers."""
import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from bookstore.observable import SnapshotChannel

logger = logging.getLogger(__name__)

NOTIFICATION_KINDS = ("success", "error", "warning", "info")


@dataclass(frozen=True)
class Notification:
    id: str
    kind: str
    title: str
    message: str
    duration: float
    timestamp: datetime = field(default_factory=datetime.now)


class NotificationCenter:
    """
    Fire-and-forget toast notifications.

    Active notifications are published as a list on ``channel``. When an
    asyncio loop is running each one is removed again after its duration.
    """

    def __init__(self):
        self.channel: SnapshotChannel[List[Notification]] = SnapshotChannel([])
        self._ids = itertools.count(1)

    @property
    def notifications(self) -> List[Notification]:
        return self.channel.value

    def show(self, kind: str, title: str, message: str, duration: Optional[float] = None) -> Notification:
        if kind not in NOTIFICATION_KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")

        if duration is None:
            duration = 4.0 if kind == "success" else 6.0

        notification = Notification(
            id=f"notification-{next(self._ids)}",
            kind=kind,
            title=title,
            message=message,
            duration=duration
        )
        logger.info(f"[{kind}] {title}: {message}")
        self.channel.publish([*self.notifications, notification])

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            loop.call_later(duration, self.remove, notification.id)

        return notification

    def notify(self, kind: str, title: str, message: str):
        self.show(kind, title, message)

    def success(self, title: str, message: str, duration: Optional[float] = None):
        self.show("success", title, message, duration)

    def error(self, title: str, message: str, duration: Optional[float] = None):
        self.show("error", title, message, duration)

    def warning(self, title: str, message: str, duration: Optional[float] = None):
        self.show("warning", title, message, duration)

    def info(self, title: str, message: str, duration: Optional[float] = None):
        self.show("info", title, message, duration)

    def remove(self, notification_id: str):
        remaining = [n for n in self.notifications if n.id != notification_id]
        if len(remaining) != len(self.notifications):
            self.channel.publish(remaining)

    def clear(self):
        self.channel.publish([])


@dataclass(frozen=True)
class ConfirmationOptions:
    title: str
    message: str
    confirm_text: str = "Confirm"
    cancel_text: str = "Cancel"
    type: str = "warning"


@dataclass(frozen=True)
class ConfirmationResult:
    confirmed: bool
    data: Any = None


@dataclass(frozen=True)
class ConfirmationRequest:
    """The open dialog: what to show and the future its answer resolves."""
    options: ConfirmationOptions
    future: "asyncio.Future[ConfirmationResult]"


class ConfirmationService:
    """
    Asynchronous yes/no dialogs.

    ``confirm`` publishes a request on ``channel`` and waits until some
    view answers it through ``close``, ``confirm_action`` or ``cancel``.
    Opening a new dialog cancels one that is still pending.
    """

    def __init__(self):
        self.channel: SnapshotChannel[Optional[ConfirmationRequest]] = SnapshotChannel(None)

    @property
    def pending(self) -> Optional[ConfirmationRequest]:
        return self.channel.value

    async def confirm(self, options: ConfirmationOptions) -> ConfirmationResult:
        if self.pending is not None:
            self.cancel()

        future = asyncio.get_running_loop().create_future()
        self.channel.publish(ConfirmationRequest(options=options, future=future))
        return await future

    async def confirm_delete(self, item_name: Optional[str] = None) -> ConfirmationResult:
        if item_name:
            message = f'Are you sure you want to delete "{item_name}"? This action cannot be undone.'
        else:
            message = "Are you sure you want to delete this item? This action cannot be undone."
        return await self.confirm(ConfirmationOptions(
            title="Confirm Deletion",
            message=message,
            confirm_text="Delete",
            cancel_text="Cancel",
            type="danger"
        ))

    async def confirm_custom_action(self, title: str, message: str, confirm_text: str = "Confirm") -> ConfirmationResult:
        return await self.confirm(ConfirmationOptions(
            title=title,
            message=message,
            confirm_text=confirm_text,
            cancel_text="Cancel",
            type="warning"
        ))

    async def confirm_yes_no(self, title: str, message: str) -> ConfirmationResult:
        return await self.confirm(ConfirmationOptions(
            title=title,
            message=message,
            confirm_text="Yes",
            cancel_text="No",
            type="info"
        ))

    def close(self, result: ConfirmationResult):
        request = self.pending
        if request is None:
            return
        self.channel.publish(None)
        if not request.future.done():
            request.future.set_result(result)

    def cancel(self):
        self.close(ConfirmationResult(confirmed=False))

    def confirm_action(self):
        self.close(ConfirmationResult(confirmed=True))
