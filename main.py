"""Kiosk entrypoint for the SnapStation photo booth."""

from snapstation.config import load_config
from snapstation.kiosk import Kiosk
from snapstation.logging_setup import configure_logging


def main() -> None:
    """Load configuration, set up logging and run the kiosk window."""
    config = load_config("config.json")
    logger = configure_logging(config.logging)
    Kiosk(config, logger=logger).run()


if __name__ == "__main__":
    main()
