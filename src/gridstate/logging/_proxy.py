# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from typing import Any

import structlog


def get_logger(name: str, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """
    Get a logger.

    Loggers are created lazily, so modules can create them at import time
    before logging is configured; they pick up whatever configuration is
    active when they are first used.

    Args:
        name:
            The logger name (usually ``__name__``).
        initial_values:
            Initial context values to bind to the logger.
    """
    return structlog.stdlib.get_logger(name, **initial_values)
