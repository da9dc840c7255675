# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
Model state containers.

A :class:`ModelState` holds one version of a network's weights as an ordered
sequence of :class:`~gridstate.tensor.TensorValue`; a :class:`ModelRecord`
identifies a hosted model and keeps both its originally-loaded and its current
state.
"""

from ._container import STATE_MAGIC, STATE_VERSION, ModelState
from ._record import ModelRecord

__all__ = [
    "ModelState",
    "ModelRecord",
    "STATE_MAGIC",
    "STATE_VERSION",
]
