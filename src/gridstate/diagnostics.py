# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
Warning and error classes for model state handling.

Each error also derives from the closest builtin exception, so callers that
only care about (for example) :class:`ValueError` can catch that instead.
"""


class GridStateError(Exception):
    """
    Base class for errors raised by gridstate.
    """

    pass


class UnsupportedElementType(GridStateError, TypeError):
    """
    A tensor uses an element type outside the supported set.
    """

    def __init__(self, dtype: object):
        super().__init__(f"unsupported tensor element type {dtype}")
        self.dtype = dtype


class MalformedEncoding(GridStateError, ValueError):
    """
    Encoded bytes do not follow the tensor or state layout.
    """

    pass


class ShapeMismatch(GridStateError, ValueError):
    """
    A tensor's declared shape does not agree with its element count.
    """

    def __init__(self, shape: tuple[int, ...], count: int):
        super().__init__(f"shape {shape} does not match {count} elements")
        self.shape = shape
        self.count = count


class IndexOutOfRange(GridStateError, IndexError):
    """
    A replacement position is outside the bounds of a model state.
    """

    def __init__(self, position: int, length: int):
        super().__init__(f"position {position} out of range for state with {length} tensors")
        self.position = position
        self.length = length


class ConfigWarning(UserWarning):
    """
    Warning raised for detectable problems with configuration.
    """

    pass
