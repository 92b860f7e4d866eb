"""Pytest configuration and fixtures."""

import uuid
from datetime import date

import pytest

from appointment_hub.core.stores import (
    InMemoryAppointmentStore,
    InMemoryAvailabilityStore,
    InMemoryNotificationStore,
)
from appointment_hub.notifications.models import RescheduleRequestNotification
from appointment_hub.observability import BookingEventLogger
from appointment_hub.scheduling.availability import AvailabilityService
from appointment_hub.scheduling.booking import BookingService
from appointment_hub.scheduling.models import Appointment, AppointmentStatus, AvailabilityBlock
from appointment_hub.scheduling.reschedule import RescheduleResolver
from appointment_hub.scheduling.slots import SlotGenerator

REFERENCE_DATE = date(2024, 6, 1)
PROVIDER_ID = "prov-1"
CUSTOMER_ID = "cust-1"


def make_appointment(
    day: date,
    time: str,
    provider_id: str = PROVIDER_ID,
    customer_id: str = CUSTOMER_ID,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    appointment_id: str | None = None,
) -> Appointment:
    return Appointment(
        id=appointment_id or uuid.uuid4().hex,
        provider_id=provider_id,
        customer_id=customer_id,
        date=day,
        time=time,
        status=status,
    )


@pytest.fixture
def make_appt():
    """Factory for appointments on the default provider."""
    return make_appointment


@pytest.fixture
def make_request():
    """Factory for customer reschedule requests."""

    def _make(
        new_date: date = date(2024, 6, 7),
        new_time: str = "11:00",
        appointment_id: str | None = None,
        provider_id: str = PROVIDER_ID,
    ) -> RescheduleRequestNotification:
        return RescheduleRequestNotification(
            recipient_id=CUSTOMER_ID,
            provider_id=provider_id,
            appointment_id=appointment_id,
            old_date=date(2024, 6, 5),
            old_time="10:00",
            new_date=new_date,
            new_time=new_time,
            provider_name="Dr. Rivera",
            provider_emoji="🩺",
            title="Appointment Rescheduled",
            message="Please confirm the new time.",
        )

    return _make


@pytest.fixture
def event_logger(tmp_path):
    """Booking event logger writing into a temporary directory."""
    return BookingEventLogger(log_dir=tmp_path / "logs", enabled=True)


@pytest.fixture
def appointment_store():
    return InMemoryAppointmentStore()


@pytest.fixture
def notification_store():
    return InMemoryNotificationStore()


@pytest.fixture
def generator():
    return SlotGenerator()


@pytest.fixture
def resolver(appointment_store, notification_store, generator, event_logger):
    return RescheduleResolver(
        appointment_store,
        notification_store,
        generator=generator,
        events=event_logger,
        clock=lambda: REFERENCE_DATE,
    )


@pytest.fixture
def booking(appointment_store, notification_store, generator, event_logger):
    return BookingService(
        appointment_store,
        notification_store,
        generator=generator,
        events=event_logger,
        clock=lambda: REFERENCE_DATE,
    )


def make_block(
    day: date,
    start_time: str,
    end_time: str,
    provider_id: str = PROVIDER_ID,
    block_id: str | None = None,
) -> AvailabilityBlock:
    return AvailabilityBlock(
        id=block_id or uuid.uuid4().hex,
        provider_id=provider_id,
        date=day,
        start_time=start_time,
        end_time=end_time,
    )


@pytest.fixture
def availability_store():
    return InMemoryAvailabilityStore()


@pytest.fixture
def availability(availability_store, appointment_store, generator, event_logger):
    return AvailabilityService(
        availability_store, appointment_store, generator=generator, events=event_logger
    )


@pytest.fixture
def make_blk():
    """Factory for availability blocks on the default provider."""
    return make_block
