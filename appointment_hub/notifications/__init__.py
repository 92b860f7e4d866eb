"""Customer and provider notification inboxes."""

from appointment_hub.notifications.models import (
    AppointmentCompletedNotification,
    Audience,
    BookingNotification,
    CancellationNotification,
    InfoNotification,
    Notification,
    NotificationType,
    RescheduleConfirmedNotification,
    RescheduleRequestNotification,
    parse_notification,
)

__all__ = [
    "AppointmentCompletedNotification",
    "Audience",
    "BookingNotification",
    "CancellationNotification",
    "InfoNotification",
    "Notification",
    "NotificationType",
    "RescheduleConfirmedNotification",
    "RescheduleRequestNotification",
    "parse_notification",
]
