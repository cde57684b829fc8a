import httpx
import pytest

from app.core.exceptions import NotFoundError
from app.bookings.crud.bookings import cancel_booking, confirm_booking, create_booking
from app.bookings.models.bookings import BookingStatus
from app.bookings.schemas.bookings import BookingCreate
from app.notifications.crud.notifications import (
    get_my_notifications,
    get_unread_count,
    mark_all_as_read,
    mark_notification_as_read,
)
from app.notifications.models.notifications import NotificationType
from app.notifications.services import email_sender
from app.notifications.services.notification_service import notify_session_cancelled
from app.scheduling.crud.sessions import cancel_session


async def book(db, parent, player, session):
    return await create_booking(
        db, parent.profile_id, BookingCreate(session_id=session.id, player_id=player.id)
    )


@pytest.mark.asyncio
async def test_booking_request_notifies_parent_and_coach(
    db, coach, parent, player, make_session, sent_emails
):
    booking = await book(db, parent, player, await make_session())

    parent_inbox = await get_my_notifications(db, parent.user.id)
    coach_inbox = await get_my_notifications(db, coach.user.id)

    assert [n.type for n in parent_inbox] == [NotificationType.booking_pending]
    assert [n.type for n in coach_inbox] == [NotificationType.booking_requested]
    assert coach_inbox[0].metadata_json["booking_id"] == booking.id
    recipients = {call.args[0] for call in sent_emails.call_args_list}
    assert recipients == {"parent@example.com", "coach@example.com"}


@pytest.mark.asyncio
async def test_confirmation_and_coach_cancellation_notify_parent(
    db, coach, parent, player, make_session
):
    booking_id = (await book(db, parent, player, await make_session())).id
    await confirm_booking(db, booking_id, coach.profile_id)
    await cancel_booking(db, booking_id, coach.actor, coach.profile_id)

    types = [n.type for n in await get_my_notifications(db, parent.user.id)]

    assert NotificationType.booking_confirmed in types
    assert NotificationType.booking_cancelled in types


@pytest.mark.asyncio
async def test_parent_cancellation_notifies_coach(db, coach, parent, player, make_session):
    booking_id = (await book(db, parent, player, await make_session())).id
    await cancel_booking(db, booking_id, parent.actor, parent.profile_id)

    coach_types = [n.type for n in await get_my_notifications(db, coach.user.id)]

    assert NotificationType.booking_cancelled in coach_types


@pytest.mark.asyncio
async def test_session_cancellation_notifies_each_booking(db, coach, parent, player, make_session):
    session = await make_session()
    await book(db, parent, player, session)
    _, cancelled_ids = await cancel_session(db, session.id, coach.profile_id)

    await notify_session_cancelled(db, cancelled_ids)

    inbox = await get_my_notifications(db, parent.user.id, unread_only=True)
    assert inbox[0].type == NotificationType.session_cancelled


@pytest.mark.asyncio
async def test_notification_failure_does_not_undo_booking(
    db, parent, player, make_session, monkeypatch
):
    async def broken(*args, **kwargs):
        raise RuntimeError("notification store down")

    monkeypatch.setattr(
        "app.notifications.services.notification_service.create_notifications", broken
    )

    parent_user_id = parent.user.id
    booking = await book(db, parent, player, await make_session())

    assert booking.status == BookingStatus.pending
    assert await get_my_notifications(db, parent_user_id) == []


@pytest.mark.asyncio
async def test_read_tracking(db, coach, parent, player, make_session):
    parent_user_id = parent.user.id
    coach_user_id = coach.user.id
    booking_id = (await book(db, parent, player, await make_session())).id
    await confirm_booking(db, booking_id, coach.profile_id)

    assert await get_unread_count(db, parent_user_id) == 2
    first = (await get_my_notifications(db, parent_user_id))[0]

    read = await mark_notification_as_read(db, first.id, parent_user_id)
    assert read.is_read is True
    assert await get_unread_count(db, parent_user_id) == 1

    with pytest.raises(NotFoundError):
        await mark_notification_as_read(db, first.id, coach_user_id)

    assert await mark_all_as_read(db, parent_user_id) == 1
    assert await get_unread_count(db, parent_user_id) == 0
    assert await get_my_notifications(db, parent_user_id, unread_only=True) == []


@pytest.mark.asyncio
async def test_send_email_without_key_is_skipped():
    assert await email_sender.send_email("a@example.com", "Hi", "<p>x</p>", api_key=None) is False


@pytest.mark.asyncio
async def test_send_email_posts_to_provider(monkeypatch):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = request.read()
        return httpx.Response(200, json={"id": "msg_1"})

    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx, "AsyncClient", lambda **kwargs: real_client(transport=httpx.MockTransport(handler))
    )

    assert await email_sender.send_email("a@example.com", "Hi", "<p>x</p>", api_key="k") is True
    assert seen["auth"] == "Bearer k"
    assert b"a@example.com" in seen["body"]


@pytest.mark.asyncio
async def test_send_email_reports_provider_failure(monkeypatch):
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        httpx,
        "AsyncClient",
        lambda **kwargs: real_client(
            transport=httpx.MockTransport(lambda request: httpx.Response(422, text="bad"))
        ),
    )

    assert await email_sender.send_email("a@example.com", "Hi", "<p>x</p>", api_key="k") is False
