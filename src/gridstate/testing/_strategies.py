# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

from __future__ import annotations

import torch

import hypothesis.extra.numpy as nph
import hypothesis.strategies as st

from gridstate.state import ModelState
from gridstate.tensor import ElementType, TensorValue


def element_types(floating: bool | None = None) -> st.SearchStrategy[ElementType]:
    """
    Hypothesis strategy for supported element types.

    Args:
        floating:
            If ``True``, only generate floating-point types; if ``False``, only
            non-floating types.
    """
    types = [et for et in ElementType if floating is None or et.is_floating == floating]
    return st.sampled_from(types)


@st.composite
def tensor_values(
    draw,
    dtype: ElementType | st.SearchStrategy[ElementType] | None = None,
    max_dims: int = 3,
    max_side: int = 6,
) -> TensorValue:
    """
    Hypothesis strategy for tensor values.  Floating-point tensors do not
    contain NaN.

    Args:
        dtype:
            The element type, or a strategy for element types.  Defaults to
            any supported type.
        max_dims:
            The maximum number of dimensions (0 gives scalars).
        max_side:
            The maximum size of each dimension (dimensions may be empty).
    """
    if dtype is None:
        dtype = element_types()
    if isinstance(dtype, st.SearchStrategy):
        dtype = draw(dtype)

    np_type = dtype.numpy_dtype
    if dtype.is_floating:
        elements = nph.from_dtype(np_type, allow_nan=False)
    else:
        elements = None

    shape = draw(nph.array_shapes(min_dims=0, max_dims=max_dims, min_side=0, max_side=max_side))
    arr = draw(nph.arrays(np_type, shape, elements=elements))
    return TensorValue.from_array(arr)


@st.composite
def native_tensors(
    draw, dtype: ElementType | st.SearchStrategy[ElementType] | None = None, **kwargs
) -> torch.Tensor:
    """
    Hypothesis strategy for PyTorch tensors of supported types.  Accepts the
    same options as :func:`tensor_values`.
    """
    return draw(tensor_values(dtype, **kwargs)).to_native()


@st.composite
def model_states(draw, min_tensors: int = 0, max_tensors: int = 8, **kwargs) -> ModelState:
    """
    Hypothesis strategy for model states.  Extra options are passed to
    :func:`tensor_values`.
    """
    tensors = draw(st.lists(tensor_values(**kwargs), min_size=min_tensors, max_size=max_tensors))
    return ModelState(tensors)
