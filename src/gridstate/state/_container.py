# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

from __future__ import annotations

import operator
import struct
from collections.abc import Iterable, Iterator

import torch

from gridstate.config import gridstate_config
from gridstate.diagnostics import IndexOutOfRange, MalformedEncoding
from gridstate.logging import get_logger
from gridstate.tensor import TensorValue

_log = get_logger(__name__)

STATE_MAGIC = b"GSMS"
STATE_VERSION = 1
_STATE_HEAD = struct.Struct("<4sHI")
_RECORD_LEN = struct.Struct("<Q")


class ModelState:
    """
    Ordered collection of tensor values making up one version of a model's
    weights.

    Positions are the identity of the parameters: position *i* holds the
    *i*-th parameter in the execution engine's own enumeration order.  The
    number of tensors is fixed when the state is created, and the only way to
    change a state is :meth:`replace_at`.

    Stability:
        Caller
    """

    _tensors: list[TensorValue]

    def __init__(self, tensors: Iterable[TensorValue] = ()):
        tensors = list(tensors)
        for i, t in enumerate(tensors):
            if not isinstance(t, TensorValue):
                raise TypeError(f"state element {i} is {type(t).__name__}, not TensorValue")
        self._tensors = tensors

    @classmethod
    def from_native(cls, tensors: Iterable[torch.Tensor]) -> ModelState:
        """
        Create a model state by copying a sequence of PyTorch tensors.
        """
        return cls(TensorValue.from_native_tensor(t) for t in tensors)

    @classmethod
    def decode(cls, data: bytes | bytearray | memoryview) -> ModelState:
        """
        Decode a binary model state.

        The state is framed by a 4-byte magic (``GSMS``), a ``u16`` format
        version, and a ``u32`` tensor count, followed by that many tensor
        records, each prefixed with its ``u64`` length.  All integers are
        little-endian.

        Raises:
            MalformedEncoding:
                if the framing is invalid, or a tensor record is malformed.
            ShapeMismatch:
                if a tensor record's shape disagrees with its element count.
        """
        buf = memoryview(data).cast("B")
        if len(buf) < _STATE_HEAD.size:
            raise MalformedEncoding("truncated model state header")

        magic, version, count = _STATE_HEAD.unpack_from(buf, 0)
        if magic != STATE_MAGIC:
            raise MalformedEncoding(f"invalid model state magic {magic!r}")
        if version != STATE_VERSION:
            raise MalformedEncoding(f"unsupported model state version {version}")

        pos = _STATE_HEAD.size
        tensors = []
        for i in range(count):
            if pos + _RECORD_LEN.size > len(buf):
                raise MalformedEncoding(f"truncated model state at tensor {i}")
            (rlen,) = _RECORD_LEN.unpack_from(buf, pos)
            pos += _RECORD_LEN.size
            if pos + rlen > len(buf):
                raise MalformedEncoding(f"truncated record for tensor {i}")

            tensors.append(TensorValue.decode(buf[pos : pos + rlen]))
            pos += rlen

        if pos != len(buf):
            raise MalformedEncoding(f"{len(buf) - pos} trailing bytes after model state")

        _log.debug("decoded model state", tensors=count, bytes=len(buf))
        return cls(tensors)

    def encode(self) -> bytes:
        """
        Encode this model state in the binary state format (see
        :meth:`decode`).
        """
        parts = [_STATE_HEAD.pack(STATE_MAGIC, STATE_VERSION, len(self._tensors))]
        for t in self._tensors:
            rec = t.encode()
            parts.append(_RECORD_LEN.pack(len(rec)))
            parts.append(rec)
        return b"".join(parts)

    def replace_at(self, position: int, value: TensorValue) -> None:
        """
        Replace the tensor at a position.

        The new value's element type and shape are **not** checked against
        the value it replaces; making replacements the engine can read back
        is the caller's job.

        Args:
            position:
                The position to replace, with ``0 <= position < len(self)``.
            value:
                The new tensor value.

        Raises:
            IndexOutOfRange:
                if ``position`` is outside the state; the state is unchanged.
        """
        position = operator.index(position)
        if position < 0 or position >= len(self._tensors):
            raise IndexOutOfRange(position, len(self._tensors))
        if not isinstance(value, TensorValue):
            raise TypeError(f"cannot store {type(value).__name__} in model state")

        self._tensors[position] = value

    def to_native(self, device: str | torch.device | None = None) -> list[torch.Tensor]:
        """
        Create fresh PyTorch tensors for every tensor in the state, in order.

        Args:
            device:
                The device for the new tensors.  Defaults to the configured
                device.
        """
        if device is None:
            device = gridstate_config().device
        return [t.to_native(device) for t in self._tensors]

    def copy(self) -> ModelState:
        """
        Create a new state with the same tensors.

        Tensor values are immutable, so they are shared rather than copied;
        replacing a position in the copy does not affect this state.
        """
        return ModelState(self._tensors)

    @property
    def tensors(self) -> tuple[TensorValue, ...]:
        "A snapshot of the state's tensors."
        return tuple(self._tensors)

    @property
    def nbytes(self) -> int:
        return sum(t.nbytes for t in self._tensors)

    def __len__(self) -> int:
        return len(self._tensors)

    def __getitem__(self, position: int) -> TensorValue:
        return self._tensors[position]

    def __iter__(self) -> Iterator[TensorValue]:
        return iter(tuple(self._tensors))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ModelState):
            return NotImplemented
        return len(self) == len(other) and all(a == b for a, b in zip(self, other))

    __hash__ = None  # type: ignore

    def __repr__(self) -> str:
        return f"<ModelState with {len(self._tensors)} tensors>"

