# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
Logging configuration and utilities.
"""

from ._console import console
from ._proxy import get_logger
from .config import LoggingConfig, basic_logging
from .formats import friendly_duration
from .stopwatch import Stopwatch

__all__ = [
    "LoggingConfig",
    "basic_logging",
    "get_logger",
    "console",
    "friendly_duration",
    "Stopwatch",
]
