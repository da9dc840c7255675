# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
Formatting utilities for log and diagnostic output.
"""

from datetime import timedelta

_BYTE_UNITS = ["B", "KiB", "MiB", "GiB", "TiB"]


def friendly_duration(elapsed: float | timedelta):
    """
    Short, human-friendly representation of a duration.
    """
    if isinstance(elapsed, timedelta):
        elapsed = elapsed.total_seconds()

    if elapsed < 1:
        return "{:0.0f}ms".format(elapsed * 1000)
    elif elapsed > 60 * 60:
        h, m = divmod(elapsed, 60 * 60)
        m, s = divmod(m, 60)
        return "{:0.0f}h{:0.0f}m{:0.2f}s".format(h, m, s)
    elif elapsed > 60:
        m, s = divmod(elapsed, 60)
        return "{:0.0f}m{:0.2f}s".format(m, s)
    else:
        return "{:0.2f}s".format(elapsed)


def friendly_size(nbytes: int) -> str:
    """
    Short, human-friendly representation of a size in bytes.
    """
    size = float(nbytes)
    for unit in _BYTE_UNITS[:-1]:
        if size < 1024:
            break
        size /= 1024
    else:
        unit = _BYTE_UNITS[-1]

    if unit == "B":
        return f"{nbytes} B"
    else:
        return f"{size:0.1f} {unit}"
