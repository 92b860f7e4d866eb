"""AppointmentHub - slot availability and reschedule service."""

__version__ = "0.1.0"
