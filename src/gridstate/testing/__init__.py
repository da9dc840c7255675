# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
gridstate test harnesses and utilities.

This package contains Hypothesis strategies for generating tensors and model
states, for testing gridstate and code built on it.  It relies on PyTest and
Hypothesis.
"""

from ._strategies import element_types, model_states, native_tensors, tensor_values

__all__ = [
    "element_types",
    "tensor_values",
    "native_tensors",
    "model_states",
]
