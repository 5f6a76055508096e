"""Tests for notifications and confirmation dialogs."""
import asyncio

import pytest

from bookstore.notifications import (
    ConfirmationOptions,
    ConfirmationResult,
    ConfirmationService,
    NotificationCenter,
)


def test_show_uses_default_durations():
    """Test kinds and default durations."""
    center = NotificationCenter()

    ok = center.show("success", "Saved", "All good")
    bad = center.show("error", "Oops", "Something broke")

    assert ok.duration == 4.0
    assert bad.duration == 6.0
    assert [n.kind for n in center.notifications] == ["success", "error"]
    assert ok.id != bad.id


def test_unknown_kind_rejected():
    """Test that only the four kinds are accepted."""
    with pytest.raises(ValueError):
        NotificationCenter().show("fatal", "x", "y")


def test_remove_and_clear():
    """Test removing one notification and clearing the rest."""
    center = NotificationCenter()
    seen = []
    center.channel.subscribe(seen.append, replay=False)

    first = center.show("info", "One", "1")
    center.warning("Two", "2")
    center.remove(first.id)
    center.remove("notification-missing")

    assert [n.title for n in center.notifications] == ["Two"]
    assert len(seen) == 3

    center.clear()
    assert center.notifications == []


def test_notifications_expire_inside_a_loop():
    """Test auto-dismissal after the duration elapses."""
    center = NotificationCenter()

    async def run():
        center.success("Quick", "gone soon", duration=0.01)
        await asyncio.sleep(0.05)

    asyncio.run(run())

    assert center.notifications == []


def answer_with(service, result):
    def on_request(request):
        if request is not None:
            service.close(result)
    return service.channel.subscribe(on_request)


def test_confirm_delete_resolves():
    """Test a delete confirmation answered by a subscriber."""
    service = ConfirmationService()
    requests = []
    service.channel.subscribe(lambda r: requests.append(r) if r else None, replay=False)
    answer_with(service, ConfirmationResult(confirmed=True, data="extra"))

    result = asyncio.run(service.confirm_delete("Dune"))

    assert result == ConfirmationResult(confirmed=True, data="extra")
    options = requests[0].options
    assert options.confirm_text == "Delete"
    assert options.type == "danger"
    assert '"Dune"' in options.message
    assert service.pending is None


def test_confirm_helpers_options():
    """Test the option presets of the helper dialogs."""
    service = ConfirmationService()
    opened = []

    def on_request(request):
        if request is not None:
            opened.append(request.options)
            service.cancel()

    service.channel.subscribe(on_request)

    async def run():
        yes_no = await service.confirm_yes_no("Sure?", "Really?")
        custom = await service.confirm_custom_action("Buy", "Pay now?", "Purchase")
        generic = await service.confirm_delete()
        return yes_no, custom, generic

    results = asyncio.run(run())

    assert all(r.confirmed is False for r in results)
    assert [(o.confirm_text, o.cancel_text, o.type) for o in opened] == [
        ("Yes", "No", "info"),
        ("Purchase", "Cancel", "warning"),
        ("Delete", "Cancel", "danger"),
    ]
    assert "this item" in opened[2].message


def test_new_dialog_cancels_pending_one():
    """Test that opening a dialog cancels the one still open."""
    service = ConfirmationService()

    async def run():
        first = asyncio.create_task(service.confirm(ConfirmationOptions(title="A", message="a")))
        await asyncio.sleep(0)
        second = asyncio.create_task(service.confirm(ConfirmationOptions(title="B", message="b")))
        await asyncio.sleep(0)
        service.confirm_action()
        return await first, await second

    first, second = asyncio.run(run())

    assert first.confirmed is False
    assert second.confirmed is True


def test_close_without_pending_is_noop():
    """Test answering when no dialog is open."""
    service = ConfirmationService()
    seen = []
    service.channel.subscribe(seen.append, replay=False)

    service.cancel()

    assert seen == []
