# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
Timing support
"""

from __future__ import annotations

import time

from .formats import friendly_duration


class Stopwatch:
    """
    Timer for recording elapsed wall time in load and decode operations.
    """

    start_time: float
    stop_time: float | None = None

    def __init__(self):
        self.start_time = time.perf_counter()

    def stop(self):
        self.stop_time = time.perf_counter()

    def elapsed(self) -> float:
        "Get the elapsed time in seconds."
        stop = self.stop_time or time.perf_counter()
        return stop - self.start_time

    def __str__(self):
        return friendly_duration(self.elapsed())

    def __repr__(self):
        if self.stop_time:
            return "<Stopwatch stopped at {:.3f}s>".format(self.elapsed())
        else:
            return "<Stopwatch running at {:.3f}s>".format(self.elapsed())
