"""Main entry point for AppointmentHub."""

import logging
import sys

from appointment_hub.config import get_settings


def setup_logging():
    """Configure logging based on settings."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def main():
    """Main entry point - runs CLI."""
    setup_logging()

    from appointment_hub.cli.commands import app

    app()


if __name__ == "__main__":
    main()
