# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
Immutable tensor values and their binary encoding.

A :class:`TensorValue` is the unit of model state: a typed, shaped array of
numbers that is copied out of (and back into) the PyTorch tensors produced by
the execution engine.

The binary encoding of a single tensor (all integers little-endian) is:

=========  ============================================
type tag   ``u8``, the :class:`ElementType` value
ndim       ``u8``
dims       ``ndim`` × ``u64``
count      ``u64``, must equal the product of ``dims``
elements   ``count`` little-endian elements
=========  ============================================
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import Enum
from math import prod

import numpy as np
import torch
from numpy.typing import ArrayLike, NDArray

from gridstate.diagnostics import MalformedEncoding, ShapeMismatch, UnsupportedElementType

__all__ = ["ElementType", "TensorValue"]

MAX_DIMS = 255
_TENSOR_HEAD = struct.Struct("<BB")
_COUNT = struct.Struct("<Q")


class ElementType(Enum):
    """
    Element types supported in tensor values.

    The value of each member is its type tag in the binary encoding.
    """

    BOOL = 1
    UINT8 = 2
    INT8 = 3
    INT16 = 4
    INT32 = 5
    INT64 = 6
    FLOAT16 = 7
    FLOAT32 = 8
    FLOAT64 = 9

    @property
    def numpy_dtype(self) -> np.dtype:
        "The native-order NumPy dtype for this element type."
        return _NP_TYPES[self]

    @property
    def wire_dtype(self) -> np.dtype:
        "The little-endian NumPy dtype used in the binary encoding."
        return _NP_TYPES[self].newbyteorder("<")

    @property
    def torch_dtype(self) -> torch.dtype:
        return _TORCH_TYPES[self]

    @property
    def is_floating(self) -> bool:
        return self in (ElementType.FLOAT16, ElementType.FLOAT32, ElementType.FLOAT64)

    @property
    def itemsize(self) -> int:
        return _NP_TYPES[self].itemsize

    @classmethod
    def from_numpy(cls, dtype: np.dtype | type | str) -> ElementType:
        """
        Look up the element type for a NumPy dtype, regardless of byte order.

        Raises:
            UnsupportedElementType:
                if the dtype has no corresponding element type.
        """
        try:
            dtype = np.dtype(dtype)
        except TypeError:
            raise UnsupportedElementType(dtype) from None

        et = _NP_KINDS.get((dtype.kind, dtype.itemsize), None)
        if et is None:
            raise UnsupportedElementType(dtype)
        return et

    @classmethod
    def from_torch(cls, dtype: torch.dtype) -> ElementType:
        """
        Look up the element type for a PyTorch dtype.

        Raises:
            UnsupportedElementType:
                if the dtype has no corresponding element type.
        """
        et = _TORCH_LOOKUP.get(dtype, None)
        if et is None:
            raise UnsupportedElementType(dtype)
        return et


_NP_TYPES: dict[ElementType, np.dtype] = {
    ElementType.BOOL: np.dtype(np.bool_),
    ElementType.UINT8: np.dtype(np.uint8),
    ElementType.INT8: np.dtype(np.int8),
    ElementType.INT16: np.dtype(np.int16),
    ElementType.INT32: np.dtype(np.int32),
    ElementType.INT64: np.dtype(np.int64),
    ElementType.FLOAT16: np.dtype(np.float16),
    ElementType.FLOAT32: np.dtype(np.float32),
    ElementType.FLOAT64: np.dtype(np.float64),
}
_NP_KINDS = {(dt.kind, dt.itemsize): et for et, dt in _NP_TYPES.items()}
_TORCH_TYPES: dict[ElementType, torch.dtype] = {
    ElementType.BOOL: torch.bool,
    ElementType.UINT8: torch.uint8,
    ElementType.INT8: torch.int8,
    ElementType.INT16: torch.int16,
    ElementType.INT32: torch.int32,
    ElementType.INT64: torch.int64,
    ElementType.FLOAT16: torch.float16,
    ElementType.FLOAT32: torch.float32,
    ElementType.FLOAT64: torch.float64,
}
_TORCH_LOOKUP = {dt: et for et, dt in _TORCH_TYPES.items()}
# element kinds that convert to each target kind without loss
_SEQUENCE_KINDS = {"b": "b", "u": "biu", "i": "biu", "f": "biuf"}


@dataclass(frozen=True, eq=False, repr=False)
class TensorValue:
    """
    An immutable tensor: element type, shape, and a flat row-major buffer.

    The buffer is always a private, read-only copy of whatever data the value
    was constructed from, so a tensor value never aliases engine memory or the
    bytes it was decoded from.

    Args:
        dtype:
            The element type.
        shape:
            The tensor shape (non-negative dimension sizes).
        data:
            The elements.  If this is a NumPy array, its dtype must match
            ``dtype`` (in any byte order).  Other sequences are converted,
            but only without loss: floats are not accepted for integer or
            boolean tensors, and integers must fit the element type.

    Stability:
        Caller
    """

    dtype: ElementType
    shape: tuple[int, ...]
    data: NDArray[np.generic]

    def __post_init__(self):
        shape = tuple(int(d) for d in self.shape)
        if len(shape) > MAX_DIMS:
            raise ValueError(f"tensors support at most {MAX_DIMS} dimensions")
        if any(d < 0 for d in shape):
            raise ValueError(f"negative dimension in shape {shape}")

        arr = np.asarray(self.data)
        if isinstance(self.data, np.ndarray):
            et = ElementType.from_numpy(arr.dtype)
            if et != self.dtype:
                raise TypeError(f"{et.name.lower()} data for {self.dtype.name.lower()} tensor")
        elif arr.size:
            _check_sequence_values(arr, self.dtype)

        flat = np.ascontiguousarray(arr, dtype=self.dtype.numpy_dtype).reshape(-1)
        if flat.size != prod(shape):
            raise ShapeMismatch(shape, flat.size)

        if flat.size:
            # backed by an immutable bytes object, so the flag cannot be turned back on
            data = np.frombuffer(flat.tobytes(), dtype=self.dtype.numpy_dtype)
        else:
            data = np.empty(0, dtype=self.dtype.numpy_dtype)
            data.flags.writeable = False

        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "data", data)

    @classmethod
    def from_array(cls, arr: ArrayLike) -> TensorValue:
        """
        Create a tensor value from a NumPy array (or array-like).
        """
        arr = np.asarray(arr)
        return cls(ElementType.from_numpy(arr.dtype), arr.shape, arr)

    @classmethod
    def from_native_tensor(cls, native: torch.Tensor) -> TensorValue:
        """
        Copy a PyTorch tensor into a new tensor value.

        The tensor is detached from any autograd graph and copied to the CPU;
        sparse tensors are densified.

        Raises:
            UnsupportedElementType:
                if the tensor's dtype is not a supported element type.
        """
        if not isinstance(native, torch.Tensor):
            raise TypeError(f"expected a torch.Tensor, got {type(native).__name__}")

        et = ElementType.from_torch(native.dtype)
        if native.layout != torch.strided:
            native = native.to_dense()

        arr = native.detach().cpu().contiguous().numpy()
        return cls(et, tuple(native.shape), arr)

    @classmethod
    def decode(cls, data: bytes | bytearray | memoryview) -> TensorValue:
        """
        Decode a single tensor record.

        Raises:
            MalformedEncoding:
                if the bytes do not follow the tensor record layout.
            ShapeMismatch:
                if the declared shape disagrees with the element count.
        """
        buf = memoryview(data).cast("B")
        value, end = _decode_record(buf, 0)
        if end != len(buf):
            raise MalformedEncoding(f"{len(buf) - end} trailing bytes after tensor record")
        return value

    def encode(self) -> bytes:
        """
        Encode this tensor as a binary tensor record.
        """
        parts = [
            _TENSOR_HEAD.pack(self.dtype.value, self.ndim),
            struct.pack(f"<{self.ndim}Q", *self.shape),
            _COUNT.pack(self.size),
            self.data.astype(self.dtype.wire_dtype, copy=False).tobytes(),
        ]
        return b"".join(parts)

    def to_native(self, device: str | torch.device | None = None) -> torch.Tensor:
        """
        Create a new PyTorch tensor with this value's contents.

        The result does not share memory with the tensor value.
        """
        tensor = torch.from_numpy(self.data.reshape(self.shape).copy())
        if device is not None:
            tensor = tensor.to(device)
        return tensor

    def to_numpy(self) -> NDArray[np.generic]:
        """
        Get a read-only, correctly-shaped view of the tensor's elements.
        """
        return self.data.reshape(self.shape)

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        "The number of elements."
        return self.data.size

    @property
    def nbytes(self) -> int:
        return self.data.nbytes

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TensorValue):
            return NotImplemented

        if self.dtype != other.dtype or self.shape != other.shape:
            return False

        return bool(np.array_equal(self.data, other.data, equal_nan=self.dtype.is_floating))

    def __repr__(self) -> str:
        shape = "×".join(str(d) for d in self.shape) or "scalar"
        return f"<TensorValue {self.dtype.name.lower()} {shape}>"


def _check_sequence_values(arr: np.ndarray, dtype: ElementType):
    target = dtype.numpy_dtype
    if arr.dtype.kind not in _SEQUENCE_KINDS[target.kind]:
        raise TypeError(f"cannot store {arr.dtype} values in {dtype.name.lower()} tensor")

    if target.kind in "iu" and arr.dtype.kind in "iu":
        info = np.iinfo(target)
        if arr.min() < info.min or arr.max() > info.max:
            raise ValueError(f"values out of range for {dtype.name.lower()} tensor")


def _decode_record(buf: memoryview, offset: int) -> tuple[TensorValue, int]:
    end = offset + _TENSOR_HEAD.size
    if end > len(buf):
        raise MalformedEncoding("truncated tensor header")
    tag, ndim = _TENSOR_HEAD.unpack_from(buf, offset)

    try:
        dtype = ElementType(tag)
    except ValueError:
        raise MalformedEncoding(f"invalid element type tag {tag}") from None

    dims = struct.Struct(f"<{ndim}Q")
    if end + dims.size + _COUNT.size > len(buf):
        raise MalformedEncoding("truncated tensor shape")
    shape = dims.unpack_from(buf, end)
    end += dims.size
    (count,) = _COUNT.unpack_from(buf, end)
    end += _COUNT.size

    if count != prod(shape):
        raise ShapeMismatch(shape, count)

    nbytes = count * dtype.itemsize
    if end + nbytes > len(buf):
        raise MalformedEncoding(f"truncated tensor data (expected {nbytes} bytes)")

    if count:
        arr = np.frombuffer(buf, dtype=dtype.wire_dtype, count=count, offset=end)
    else:
        arr = np.empty(0, dtype=dtype.numpy_dtype)

    return TensorValue(dtype, shape, arr), end + nbytes
