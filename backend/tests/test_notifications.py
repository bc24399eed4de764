"""Tests for the notification inbox service."""

import pytest

from app.core.errors import NotFoundError, UnauthorizedError
from app.services.notification_service import notification_service


@pytest.fixture
async def inbox(partners, make_feed, drain):
    """Alice and Bob after the feed has written their partnering notices."""
    await drain(make_feed())
    return partners


def _specific(items):
    return [n for n in items if n.type != "coordination_update"]


async def test_each_side_gets_its_notice(db, inbox):
    alice, bob = inbox

    alice_items, alice_unread = await notification_service.list_notifications(db, alice.email)
    bob_items, bob_unread = await notification_service.list_notifications(db, bob.email)

    assert [n.type for n in _specific(alice_items)] == ["partner_request_accepted"]
    assert _specific(alice_items)[0].message == "Bob accepted your partner request!"
    assert [n.type for n in _specific(bob_items)] == ["partner_request_received"]
    assert _specific(bob_items)[0].title == "New Partner Request"
    assert (alice_unread, bob_unread) == (len(alice_items), len(bob_items))


async def test_mark_read_is_idempotent(db, inbox):
    _, bob = inbox
    items, unread_before = await notification_service.list_notifications(db, bob.email)

    first = await notification_service.mark_read(db, items[0].id, bob.email)
    read_at = first.read_at
    again = await notification_service.mark_read(db, items[0].id, bob.email)

    assert read_at is not None
    assert again.read_at == read_at
    _, unread = await notification_service.list_notifications(db, bob.email)
    assert unread == unread_before - 1


async def test_mark_read_checks_owner(db, inbox):
    alice, bob = inbox
    items, _ = await notification_service.list_notifications(db, bob.email)

    with pytest.raises(UnauthorizedError):
        await notification_service.mark_read(db, items[0].id, alice.email)
    with pytest.raises(NotFoundError):
        await notification_service.mark_read(db, 9999, bob.email)


async def test_mark_all_read_counts_only_unread(db, inbox):
    alice, _ = inbox
    items, _ = await notification_service.list_notifications(db, alice.email)
    await notification_service.mark_read(db, items[0].id, alice.email)

    assert await notification_service.mark_all_read(db, alice.email) == len(items) - 1
    assert await notification_service.mark_all_read(db, alice.email) == 0

    unread_items, unread = await notification_service.list_notifications(db, alice.email, unread_only=True)
    assert unread_items == []
    assert unread == 0
