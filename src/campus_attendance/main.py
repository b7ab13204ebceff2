from __future__ import annotations

import logging

from campus_attendance.config.settings import settings

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
        format=LOG_FORMAT,
    )


def main() -> None:
    configure_logging()

    from campus_attendance.ui.app import CampusAttendanceApp

    app = CampusAttendanceApp()
    app.run()


if __name__ == "__main__":
    main()
