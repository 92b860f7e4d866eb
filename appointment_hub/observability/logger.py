"""Booking event logger writing JSON Lines."""

import json
import logging
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Optional

from appointment_hub.errors import PersistenceError, RescheduleStateError, ValidationError
from appointment_hub.observability.events import (
    AppointmentEvent,
    AvailabilityEvent,
    BookingEvent,
    EventType,
    RescheduleEvent,
    SlotsEvent,
)

logger = logging.getLogger(__name__)


class BookingEventLogger:
    """Central logger for booking and reschedule events.

    Writes structured events to JSON Lines files for later analysis.
    """

    _instance: Optional["BookingEventLogger"] = None

    def __init__(
        self,
        log_dir: Optional[Path] = None,
        enabled: bool = True,
    ):
        """Initialize booking event logger.

        Args:
            log_dir: Directory for log files (default: data/logs)
            enabled: Whether logging is enabled
        """
        self.enabled = enabled

        if log_dir is None:
            log_dir = Path("data/logs")
        self.log_dir = log_dir
        if self.enabled:
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._log_files: dict[str, Path] = {
            "slots": self.log_dir / "slots.jsonl",
            "appointments": self.log_dir / "appointments.jsonl",
            "reschedules": self.log_dir / "reschedules.jsonl",
            "availability": self.log_dir / "availability.jsonl",
        }

        # Event callbacks for real-time monitoring
        self._callbacks: list[Callable[[BookingEvent], None]] = []

    @classmethod
    def get_instance(cls) -> "BookingEventLogger":
        """Get or create singleton instance from settings."""
        if cls._instance is None:
            from appointment_hub.config import get_settings

            settings = get_settings()
            cls._instance = cls(
                log_dir=settings.event_log_dir,
                enabled=settings.event_log_enabled,
            )
        return cls._instance

    def generate_request_id(self) -> str:
        """Generate a unique request ID."""
        return str(uuid.uuid4())[:8]

    def add_callback(self, callback: Callable[[BookingEvent], None]) -> None:
        """Add callback for real-time event monitoring."""
        self._callbacks.append(callback)

    def _write_event(self, event: BookingEvent, log_type: str) -> None:
        """Write event to the appropriate log file."""
        if not self.enabled:
            return

        try:
            log_file = self._log_files.get(log_type)
            if log_file:
                with open(log_file, "a") as f:
                    f.write(event.model_dump_json() + "\n")

            for callback in self._callbacks:
                try:
                    callback(event)
                except Exception as e:
                    logger.warning(f"Booking event callback failed: {e}")

        except OSError as e:
            logger.warning(f"Failed to write booking event: {e}")

    # Availability

    def log_slots(
        self,
        provider_id: str,
        reference_date,
        days: int,
        total_available: int,
        duration_ms: Optional[float] = None,
    ) -> None:
        event = SlotsEvent(
            provider_id=provider_id,
            reference_date=reference_date,
            days=days,
            total_available=total_available,
            duration_ms=duration_ms,
        )
        self._write_event(event, "slots")

    # Appointments

    def log_appointment(
        self,
        event_type: EventType,
        appointment_id: str,
        provider_id: Optional[str] = None,
        customer_id: Optional[str] = None,
        date=None,
        time: Optional[str] = None,
        **metadata: Any,
    ) -> None:
        event = AppointmentEvent(
            event_type=event_type,
            appointment_id=appointment_id,
            provider_id=provider_id,
            customer_id=customer_id,
            date=date,
            time=time,
            metadata=metadata,
        )
        self._write_event(event, "appointments")

    def log_availability(
        self,
        event_type: EventType,
        block_id: str,
        provider_id: str,
        date=None,
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
    ) -> None:
        event = AvailabilityEvent(
            event_type=event_type,
            block_id=block_id,
            provider_id=provider_id,
            date=date,
            start_time=start_time,
            end_time=end_time,
        )
        self._write_event(event, "availability")

    # Reschedules

    def log_reschedule_proposed(
        self,
        notification_id: str,
        provider_id: str,
        appointment_id: Optional[str],
        new_date,
        new_time: str,
        remaining_slots: int,
    ) -> None:
        event = RescheduleEvent(
            event_type=EventType.RESCHEDULE_PROPOSED,
            notification_id=notification_id,
            provider_id=provider_id,
            appointment_id=appointment_id,
            new_date=new_date,
            new_time=new_time,
            remaining_slots=remaining_slots,
        )
        self._write_event(event, "reschedules")

    @contextmanager
    def confirmation(
        self,
        notification_id: str,
        provider_id: str,
        appointment_id: Optional[str] = None,
        request_id: Optional[str] = None,
    ):
        """Context manager for logging a reschedule confirmation.

        Usage:
            with events.confirmation(notification.id, provider_id) as event:
                decision = ...
                event.action = decision.action.value
        """
        start_time = time.time()
        request_id = request_id or self.generate_request_id()

        event = RescheduleEvent(
            event_type=EventType.RESCHEDULE_CONFIRMED,
            notification_id=notification_id,
            provider_id=provider_id,
            appointment_id=appointment_id,
            request_id=request_id,
        )

        try:
            yield event

        except (ValidationError, RescheduleStateError) as e:
            event.event_type = EventType.RESCHEDULE_REJECTED
            event.error_type = type(e).__name__
            event.error_message = str(e)[:200]
            raise

        except PersistenceError as e:
            event.event_type = EventType.PERSISTENCE_ERROR
            event.error_type = type(e).__name__
            event.error_message = str(e)[:200]
            raise

        except Exception as e:
            event.event_type = EventType.RESCHEDULE_ERROR
            event.error_type = type(e).__name__
            event.error_message = str(e)[:200]
            raise

        finally:
            event.duration_ms = (time.time() - start_time) * 1000
            self._write_event(event, "reschedules")

    # Utility methods

    def get_recent_events(
        self,
        log_type: str,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """Read recent events from a log file."""
        log_file = self._log_files.get(log_type)
        if not log_file or not log_file.exists():
            return []

        events = []
        with open(log_file) as f:
            for line in f:
                try:
                    events.append(json.loads(line))
                except json.JSONDecodeError:
                    continue

        return events[-limit:]

    def get_stats(self, log_type: str) -> dict[str, Any]:
        """Get basic statistics for a log type."""
        events = self.get_recent_events(log_type, limit=1000)
        if not events:
            return {"total": 0}

        total = len(events)
        errors = sum(
            1
            for e in events
            if e.get("event_type") in ("reschedule_error", "persistence_error")
        )
        rejected = sum(1 for e in events if e.get("event_type") == "reschedule_rejected")
        durations = [e["duration_ms"] for e in events if e.get("duration_ms") is not None]

        return {
            "total": total,
            "errors": errors,
            "rejected": rejected,
            "error_rate": errors / total if total > 0 else 0,
            "avg_duration_ms": sum(durations) / len(durations) if durations else 0,
        }


def get_event_logger() -> BookingEventLogger:
    """Get the global booking event logger instance."""
    return BookingEventLogger.get_instance()
