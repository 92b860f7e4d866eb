"""Tests for provider availability blocks."""

from datetime import date

import pytest

from appointment_hub.errors import NotFoundError, RescheduleStateError, ValidationError
from appointment_hub.scheduling.booking import BookingService
from appointment_hub.scheduling.models import MAX_BLOCKS_PER_DAY, AppointmentStatus
from appointment_hub.scheduling.reschedule import RescheduleResolver
from appointment_hub.scheduling.slots import SlotGenerator

REF = date(2024, 6, 1)
DAY = date(2024, 6, 5)


def _hhmm(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


# ------------------------------------------------------------- the grid

class TestGridRestriction:
    def test_no_blocks_keeps_full_grid(self):
        view = SlotGenerator().view(REF, "prov-1", [], blocks=[])
        assert view.total_available() == 480

    def test_block_limits_offered_slots(self, make_blk):
        block = make_blk(DAY, "09:00", "12:00")
        view = SlotGenerator().view(REF, "prov-1", [], blocks=[block])

        assert view.times_for_date(DAY) == ["09:00", "09:30", "10:00", "10:30", "11:00", "11:30"]
        assert view.total_available() == 6
        assert view.dates_with_availability() == [DAY]

    def test_partial_slot_at_block_end_excluded(self, make_blk):
        block = make_blk(DAY, "09:00", "10:15")
        view = SlotGenerator().view(REF, "prov-1", [], blocks=[block])
        assert view.times_for_date(DAY) == ["09:00", "09:30"]

    def test_other_providers_blocks_ignored(self, make_blk):
        block = make_blk(DAY, "09:00", "10:00", provider_id="prov-2")
        view = SlotGenerator().view(REF, "prov-1", [], blocks=[block])
        assert view.total_available() == 480

    def test_booked_slot_inside_block(self, make_blk, make_appt):
        block = make_blk(DAY, "09:00", "11:00")
        view = SlotGenerator().view(
            REF, "prov-1", [make_appt(DAY, "10:00")], blocks=[block]
        )
        assert view.times_for_date(DAY) == ["09:00", "09:30", "10:30"]

    def test_within_blocks(self, make_blk):
        generator = SlotGenerator()
        blocks = [make_blk(DAY, "14:00", "15:00")]

        assert generator.within_blocks("prov-1", blocks, DAY, "14:30")
        assert not generator.within_blocks("prov-1", blocks, DAY, "15:00")
        assert not generator.within_blocks("prov-1", blocks, date(2024, 6, 6), "14:00")
        assert generator.within_blocks("prov-2", blocks, DAY, "09:00")


# ------------------------------------------------------------ the service

class TestCreateBlock:
    @pytest.mark.asyncio
    async def test_create_and_list(self, availability, event_logger):
        later = await availability.create("prov-1", DAY, "13:00", "15:00")
        earlier = await availability.create("prov-1", DAY, "09:00", "11:00")

        listed = await availability.list("prov-1")
        assert [b.id for b in listed] == [earlier.id, later.id]
        assert await availability.list("prov-1", date(2024, 6, 6)) == []

        events = event_logger.get_recent_events("availability")
        assert [e["event_type"] for e in events] == ["availability_created"] * 2

    @pytest.mark.asyncio
    async def test_overlap_rejected(self, availability):
        await availability.create("prov-1", DAY, "09:00", "11:00")

        with pytest.raises(ValidationError, match="overlaps"):
            await availability.create("prov-1", DAY, "10:30", "12:00")

    @pytest.mark.asyncio
    async def test_adjacent_blocks_allowed(self, availability):
        await availability.create("prov-1", DAY, "09:00", "11:00")
        await availability.create("prov-1", DAY, "11:00", "12:00")
        await availability.create("prov-2", DAY, "09:00", "11:00")

        assert len(await availability.list("prov-1", DAY)) == 2

    @pytest.mark.asyncio
    async def test_start_must_precede_end(self, availability):
        with pytest.raises(ValidationError):
            await availability.create("prov-1", DAY, "12:00", "12:00")

    @pytest.mark.asyncio
    async def test_day_limit(self, availability):
        for i in range(MAX_BLOCKS_PER_DAY):
            start = 8 * 60 + i * 30
            await availability.create("prov-1", DAY, _hhmm(start), _hhmm(start + 30))

        with pytest.raises(ValidationError, match=f"Maximum {MAX_BLOCKS_PER_DAY}"):
            await availability.create("prov-1", DAY, "20:00", "20:30")
        # Other dates are unaffected
        await availability.create("prov-1", date(2024, 6, 6), "09:00", "10:00")


class TestEditBlock:
    @pytest.mark.asyncio
    async def test_update_times(self, availability):
        block = await availability.create("prov-1", DAY, "09:00", "11:00")

        updated = await availability.update("prov-1", block.id, end_time="12:00")

        assert (updated.start_time, updated.end_time) == ("09:00", "12:00")
        assert (await availability.list("prov-1"))[0].end_time == "12:00"

    @pytest.mark.asyncio
    async def test_update_rechecks_overlap(self, availability):
        first = await availability.create("prov-1", DAY, "09:00", "10:00")
        await availability.create("prov-1", DAY, "11:00", "12:00")

        with pytest.raises(ValidationError):
            await availability.update("prov-1", first.id, end_time="11:30")

    @pytest.mark.asyncio
    async def test_update_other_providers_block(self, availability):
        block = await availability.create("prov-1", DAY, "09:00", "10:00")
        with pytest.raises(NotFoundError):
            await availability.update("prov-2", block.id, end_time="11:00")

    @pytest.mark.asyncio
    async def test_booked_block_is_locked(self, availability, appointment_store, make_appt):
        block = await availability.create("prov-1", DAY, "09:00", "11:00")
        await appointment_store.add(make_appt(DAY, "09:30"))

        with pytest.raises(RescheduleStateError, match="Cannot edit booked slot"):
            await availability.update("prov-1", block.id, end_time="12:00")
        with pytest.raises(RescheduleStateError, match="Cannot delete booked slot"):
            await availability.delete("prov-1", block.id)

    @pytest.mark.asyncio
    async def test_cancelled_booking_unlocks_block(
        self, availability, appointment_store, make_appt
    ):
        block = await availability.create("prov-1", DAY, "09:00", "11:00")
        await appointment_store.add(make_appt(DAY, "09:30", status=AppointmentStatus.CANCELLED))

        await availability.delete("prov-1", block.id)
        assert await availability.list("prov-1") == []

    @pytest.mark.asyncio
    async def test_delete_missing(self, availability):
        with pytest.raises(NotFoundError):
            await availability.delete("prov-1", "nope")


# ------------------------------------------------ bookings and proposals

class TestBlocksInServices:
    @pytest.fixture
    def booking_with_blocks(
        self, appointment_store, notification_store, availability_store, generator, event_logger
    ):
        return BookingService(
            appointment_store,
            notification_store,
            generator=generator,
            events=event_logger,
            clock=lambda: REF,
            blocks=availability_store,
        )

    @pytest.fixture
    def resolver_with_blocks(
        self, appointment_store, notification_store, availability_store, generator, event_logger
    ):
        return RescheduleResolver(
            appointment_store,
            notification_store,
            generator=generator,
            events=event_logger,
            clock=lambda: REF,
            blocks=availability_store,
        )

    @pytest.mark.asyncio
    async def test_booking_outside_blocks_rejected(self, availability, booking_with_blocks):
        await availability.create("prov-1", DAY, "09:00", "10:00")

        with pytest.raises(ValidationError):
            await booking_with_blocks.book("prov-1", "cust-1", DAY, "14:00")
        appt = await booking_with_blocks.book("prov-1", "cust-1", DAY, "09:30")
        assert appt.status == AppointmentStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_availability_view_uses_blocks(self, availability, booking_with_blocks):
        await availability.create("prov-1", DAY, "09:00", "10:00")

        view = await booking_with_blocks.availability("prov-1")
        assert view.total_available() == 2

    @pytest.mark.asyncio
    async def test_proposal_outside_blocks_rejected(
        self, availability, booking_with_blocks, resolver_with_blocks
    ):
        await availability.create("prov-1", DAY, "09:00", "10:00")
        appt = await booking_with_blocks.book("prov-1", "cust-1", DAY, "09:00")

        with pytest.raises(ValidationError):
            await resolver_with_blocks.propose(appt.id, date(2024, 6, 7), "11:00")
        proposal = await resolver_with_blocks.propose(appt.id, DAY, "09:30")
        # Only 09:00 is freed by the move and 09:30 is consumed
        assert proposal.remaining_slots == 1
