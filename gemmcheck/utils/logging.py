# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

"""Logging utilities for gemmcheck.

Provides a multiline-aligned formatter and logging configuration helper.
"""

import logging

__all__ = ["setup_logging", "MultilineFormatter"]

# Per-allocation and per-tile messages drown out the per-case ones.
_NOISY_LOGGERS = ("gemmcheck.matrix.allocator", "gemmcheck.multiply.kernels")


class MultilineFormatter(logging.Formatter):
    """Formatter that aligns multiline messages with indentation.

    Attributes:
        msg_width: Width for message alignment.
        show_metadata: Whether to append timestamp/level/name metadata.
    """

    def __init__(self, msg_width: int = 100, show_metadata: bool = True) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.msg_width = msg_width
        self.show_metadata = show_metadata

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f"{message}\n{record.exc_text}"
        lines = message.split("\n")

        first_line = lines[0]
        if self.show_metadata:
            metadata = f"{self.formatTime(record)} - {record.levelname} - {record.name}"
            first_line = f"{lines[0]:<{self.msg_width}}{metadata}"

        result = first_line
        if len(lines) > 1:
            continuation = "\n".join(lines[1:])
            result = f"{first_line}\n{continuation}"
        return result


def setup_logging(
    log_file: str | None = None,
    level: int = logging.INFO,
    msg_width: int = 100,
    show_metadata: bool = True,
    quiet_kernels: bool = True,
) -> logging.Handler:
    """Configure root logging with the multiline-aligned formatter.

    Args:
        log_file: Path to the log file. None logs to stderr.
        level: Logging level.
        msg_width: Width for message alignment.
        show_metadata: Whether to append timestamp/level/name metadata to log lines.
        quiet_kernels: Raise the allocator and kernel loggers to WARNING.

    Returns:
        The installed handler, so callers can remove it again.
    """
    handler: logging.Handler
    if log_file is None:
        handler = logging.StreamHandler()
    else:
        handler = logging.FileHandler(log_file, mode="w")
    handler.setFormatter(MultilineFormatter(msg_width=msg_width, show_metadata=show_metadata))
    logging.root.addHandler(handler)
    logging.root.setLevel(level)
    if quiet_kernels:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    return handler
