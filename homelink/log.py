# homelink/log.py
# SPDX-FileCopyrightText: Copyright (c) 2026 Christopher Piggott
# SPDX-License-Identifier: MIT

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class NullLogger:
    """Fake logger class that does not do anything"""

    def nothing(self, msg: str, *args) -> None:
        """no action"""

    def __init__(self) -> None:
        for log_level in LOG_LEVELS:
            setattr(NullLogger, log_level, self.nothing)


def get_logger(log_pkg, log_level: int = 20, logger_name: str = "homelink"):
    """Get a named logger from a logging package and set its level.

    ``log_pkg`` is ``logging`` on CPython or ``adafruit_logging`` on a board.
    """
    logger = log_pkg.getLogger(logger_name)
    logger.setLevel(log_level)
    return logger
