from datetime import date, timedelta

import pytest

from app.core.exceptions import ConflictError, ForbiddenError, InvalidStateError, NotFoundError
from app.bookings.crud.bookings import (
    cancel_booking,
    confirm_booking,
    create_booking,
    get_booking_for_actor,
    get_bookings_for_coach,
    get_bookings_for_parent,
    get_bookings_for_session,
    get_pending_bookings_for_coach,
    mark_no_show,
)
from app.bookings.models.bookings import BookingStatus
from app.bookings.schemas.bookings import BookingCreate, BookingFilters, SessionBookingResponse


async def book(db, account, player_id, session_id):
    return await create_booking(
        db, account.profile_id, BookingCreate(session_id=session_id, player_id=player_id)
    )


@pytest.mark.asyncio
async def test_confirm_sets_timestamp(db, coach, parent, player, make_session):
    booking = await book(db, parent, player.id, (await make_session()).id)

    confirmed = await confirm_booking(db, booking.id, coach.profile_id)

    assert confirmed.status == BookingStatus.confirmed
    assert confirmed.confirmed_at is not None


@pytest.mark.asyncio
async def test_confirm_requires_pending(db, coach, parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id
    await confirm_booking(db, booking_id, coach.profile_id)

    with pytest.raises(InvalidStateError):
        await confirm_booking(db, booking_id, coach.profile_id)


@pytest.mark.asyncio
async def test_confirm_by_other_coach_is_forbidden(db, other_coach, parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id

    with pytest.raises(ForbiddenError):
        await confirm_booking(db, booking_id, other_coach.profile_id)


@pytest.mark.asyncio
async def test_confirm_missing_booking(db, coach):
    with pytest.raises(NotFoundError):
        await confirm_booking(db, 999, coach.profile_id)


@pytest.mark.asyncio
async def test_parent_cancels_own_booking(db, parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id

    cancelled = await cancel_booking(db, booking_id, parent.actor, parent.profile_id)

    assert cancelled.status == BookingStatus.cancelled
    assert cancelled.cancelled_at is not None


@pytest.mark.asyncio
async def test_coach_cancels_confirmed_booking(db, coach, parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id
    await confirm_booking(db, booking_id, coach.profile_id)

    cancelled = await cancel_booking(db, booking_id, coach.actor, coach.profile_id)

    assert cancelled.status == BookingStatus.cancelled
    assert cancelled.confirmed_at is not None


@pytest.mark.asyncio
async def test_cancel_permissions(db, other_coach, parent, other_parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id

    with pytest.raises(ForbiddenError):
        await cancel_booking(db, booking_id, other_parent.actor, other_parent.profile_id)
    with pytest.raises(ForbiddenError):
        await cancel_booking(db, booking_id, other_coach.actor, other_coach.profile_id)


@pytest.mark.asyncio
async def test_cancel_requires_live_booking(db, parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id
    await cancel_booking(db, booking_id, parent.actor, parent.profile_id)

    with pytest.raises(InvalidStateError):
        await cancel_booking(db, booking_id, parent.actor, parent.profile_id)


@pytest.mark.asyncio
async def test_no_show_accepts_any_status(db, coach, parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id
    await cancel_booking(db, booking_id, parent.actor, parent.profile_id)

    marked = await mark_no_show(db, booking_id, coach.profile_id)

    assert marked.status == BookingStatus.no_show


@pytest.mark.asyncio
async def test_no_show_on_replaced_booking_conflicts(db, coach, parent, player, make_session):
    session_id = (await make_session()).id
    player_id = player.id
    old_id = (await book(db, parent, player_id, session_id)).id
    await cancel_booking(db, old_id, parent.actor, parent.profile_id)
    await book(db, parent, player_id, session_id)

    with pytest.raises(ConflictError):
        await mark_no_show(db, old_id, coach.profile_id)


@pytest.mark.asyncio
async def test_no_show_by_other_coach_is_forbidden(db, other_coach, parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id

    with pytest.raises(ForbiddenError):
        await mark_no_show(db, booking_id, other_coach.profile_id)


@pytest.mark.asyncio
async def test_booking_visibility(db, coach, other_coach, parent, other_parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id

    assert (await get_booking_for_actor(db, booking_id, parent.actor, parent.profile_id)).id == booking_id
    assert (await get_booking_for_actor(db, booking_id, coach.actor, coach.profile_id)).id == booking_id
    with pytest.raises(ForbiddenError):
        await get_booking_for_actor(db, booking_id, other_parent.actor, other_parent.profile_id)
    with pytest.raises(ForbiddenError):
        await get_booking_for_actor(db, booking_id, other_coach.actor, other_coach.profile_id)


@pytest.mark.asyncio
async def test_listings(db, coach, parent, other_parent, player, other_player, make_session, next_week):
    past = await make_session(session_date=date.today() - timedelta(days=3), max_participants=2)
    soon = await make_session(max_participants=2)
    later = await make_session(session_date=next_week + timedelta(days=7), max_participants=2)

    old = await book(db, parent, player.id, past.id)
    mine = await book(db, parent, player.id, soon.id)
    await book(db, other_parent, other_player.id, soon.id)
    dropped = await book(db, parent, player.id, later.id)
    await cancel_booking(db, dropped.id, parent.actor, parent.profile_id)
    await confirm_booking(db, mine.id, coach.profile_id)

    everything = await get_bookings_for_parent(db, parent.profile_id)
    assert [b.id for b in everything] == [dropped.id, mine.id, old.id]

    upcoming = await get_bookings_for_parent(db, parent.profile_id, upcoming=True)
    assert [b.id for b in upcoming] == [mine.id]

    confirmed = await get_bookings_for_parent(db, parent.profile_id, status=BookingStatus.confirmed)
    assert [b.id for b in confirmed] == [mine.id]

    coach_view = await get_bookings_for_coach(db, coach.profile_id)
    assert len(coach_view) == 4
    assert coach_view[0].id == old.id

    pending = await get_pending_bookings_for_coach(db, coach.profile_id)
    assert {b.status for b in pending} == {BookingStatus.pending}
    assert len(pending) == 2


@pytest.mark.asyncio
async def test_status_filter_combines_with_upcoming(db, coach, parent, player, make_session):
    booking_id = (await book(db, parent, player.id, (await make_session()).id)).id
    await cancel_booking(db, booking_id, parent.actor, parent.profile_id)

    for_parent = await get_bookings_for_parent(
        db, parent.profile_id, status=BookingStatus.cancelled, upcoming=True
    )
    for_coach = await get_bookings_for_coach(
        db, coach.profile_id, status=BookingStatus.cancelled, upcoming=True
    )

    assert [b.id for b in for_parent] == [booking_id]
    assert [b.id for b in for_coach] == [booking_id]


@pytest.mark.asyncio
async def test_session_roster_carries_parent_contact(db, coach, other_coach, parent, player, make_session):
    session_id = (await make_session()).id
    await book(db, parent, player.id, session_id)

    roster = await get_bookings_for_session(db, session_id, coach.profile_id)
    response = SessionBookingResponse.from_booking(roster[0])

    assert response.parent_contact.email == "parent@example.com"
    assert response.parent_contact.first_name == "Paula"

    with pytest.raises(ForbiddenError):
        await get_bookings_for_session(db, session_id, other_coach.profile_id)
    with pytest.raises(NotFoundError):
        await get_bookings_for_session(db, 999, coach.profile_id)


def test_filters_normalize_status():
    assert BookingFilters(status="NO-SHOW").status == BookingStatus.no_show
    assert BookingFilters().status is None
