"""REST API for AppointmentHub."""
