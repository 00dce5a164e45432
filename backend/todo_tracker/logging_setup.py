from __future__ import annotations

import logging
import sys
from pathlib import Path

_NOISY_PREFIXES = ("apscheduler", "sqlalchemy", "urllib3")


class _ConsoleNoiseFilter(logging.Filter):
    """
    Keep the console readable:
    - app logs and werkzeug request lines pass through
    - scheduler/ORM internals only at WARNING+
    - captured Python warnings only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        name = record.name

        if name == "py.warnings":
            return record.levelno >= logging.ERROR

        if name.startswith(_NOISY_PREFIXES):
            return record.levelno >= logging.WARNING

        return True


def setup_logging(
    *,
    log_dir: str | Path = "data/logs",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Console handler (filtered) plus a file handler with everything.

    Call this ONCE, before the app is created.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "todo-tracker.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    ch.addFilter(_ConsoleNoiseFilter())
    root.addHandler(ch)

    fh = logging.FileHandler(str(log_file), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    root.addHandler(fh)

    logging.captureWarnings(True)

    logging.getLogger("apscheduler").setLevel(logging.INFO)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
