# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
Logging pipeline configuration.
"""

from __future__ import annotations

import logging
import os
import re
import sys
import warnings
from pathlib import Path
from typing import Literal, TypeAlias

import structlog

from ._console import ConsoleHandler
from .processors import format_timestamp, log_warning, remove_internal

CORE_PROCESSORS = [
    structlog.processors.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.MaybeTimeStamper(),
]
LogFormat: TypeAlias = Literal["json", "logfmt", "text"]
StreamMode: TypeAlias = Literal["full", "simple", "json"]


def basic_logging(level: int = logging.INFO):
    """
    Simple one-function logging configuration for simple command lines.
    """
    cfg = LoggingConfig()
    cfg.level = level
    cfg.apply()


class LoggingConfig:  # pragma: nocover
    """
    Configuration for gridstate logging.

    This class is a convenience for applications to set up a useful logging
    configuration; if unconfigured, gridstate emits its logging messages
    directly to :mod:`structlog` and/or :mod:`logging`, which you can configure
    in any way you wish.

    The ``GS_LOG_LEVEL``, ``GS_LOG_FILE`` and ``GS_LOG_FILE_LEVEL`` environment
    variables provide defaults for the level and log file.
    """

    level: int = logging.INFO
    stream: StreamMode = "full"
    file: Path | None = None
    file_level: int | None = None
    file_format: LogFormat = "json"

    def __init__(self):
        if ev_level := _env_level("GS_LOG_LEVEL"):
            self.level = ev_level

        if ev_file := os.environ.get("GS_LOG_FILE", None):
            self.file = Path(ev_file)

        if ev_level := _env_level("GS_LOG_FILE_LEVEL"):
            self.file_level = ev_level

    @property
    def effective_level(self) -> int:
        if self.file_level is not None and self.file_level < self.level:
            return self.file_level
        else:
            return self.level

    def set_stream_mode(self, mode: StreamMode):
        """
        Configure the standard error stream mode.
        """
        self.stream = mode

    def set_verbose(self, verbose: bool | int = True):
        """
        Enable verbose logging.

        Args:
            verbose:
                The level of verbosity.  Values of ``True`` or ``1`` turn on
                ``DEBUG``-level logs.
        """
        if verbose:
            self.level = logging.DEBUG
        else:
            self.level = logging.INFO

    def set_log_file(
        self, path: os.PathLike[str], level: int | None = None, format: LogFormat = "json"
    ):
        """
        Configure a log file.
        """
        self.file = Path(path)
        self.file_level = level
        self.file_format = format

    def apply(self):
        """
        Apply the configuration.
        """
        root = logging.getLogger()

        if self.stream == "json":
            term = logging.StreamHandler(sys.stderr)
            proc_fmt = structlog.processors.JSONRenderer()
        else:
            term = ConsoleHandler()
            proc_fmt = structlog.dev.ConsoleRenderer(
                colors=self.stream == "full" and term.supports_color,
            )
        term.setLevel(self.level)

        eff_lvl = self.effective_level
        structlog.configure(
            processors=CORE_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            wrapper_class=structlog.make_filtering_bound_logger(eff_lvl),
            logger_factory=structlog.stdlib.LoggerFactory(),
        )
        formatter = structlog.stdlib.ProcessorFormatter(
            processors=[
                remove_internal,
                format_timestamp,
                proc_fmt,
            ],
            foreign_pre_chain=CORE_PROCESSORS,
        )

        term.setFormatter(formatter)
        root.addHandler(term)

        if self.file:
            file_level = self.file_level if self.file_level is not None else self.level
            file = logging.FileHandler(self.file, mode="w")

            if self.file_format == "json":
                proc_fmt = structlog.processors.JSONRenderer()
            elif self.file_format == "logfmt":
                proc_fmt = structlog.processors.LogfmtRenderer(key_order=["event", "timestamp"])
            else:
                proc_fmt = structlog.processors.KeyValueRenderer(key_order=["event", "timestamp"])

            ffmt = structlog.stdlib.ProcessorFormatter(
                processors=[
                    remove_internal,
                    structlog.processors.ExceptionPrettyPrinter(),
                    proc_fmt,
                ],
                foreign_pre_chain=CORE_PROCESSORS,
            )
            file.setFormatter(ffmt)
            file.setLevel(file_level)
            root.addHandler(file)

        root.setLevel(eff_lvl)

        warnings.showwarning = log_warning


def _env_level(name: str) -> int | None:
    ev_level = os.environ.get(name, None)
    if ev_level:
        ev_level = ev_level.strip().upper()
        lmap = logging.getLevelNamesMapping()
        if re.match(r"^\d+$", ev_level):
            return int(ev_level)
        elif ev_level in lmap:
            return lmap[ev_level]
        else:
            warnings.warn(f"invalid log level {ev_level}")
            return None
