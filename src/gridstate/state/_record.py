# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path

import torch

from gridstate.config import GridStateSettings, ModelSettings, gridstate_config, load_config_data
from gridstate.logging import get_logger
from gridstate.logging.stopwatch import Stopwatch
from gridstate.tensor import TensorValue

from ._container import ModelState

_log = get_logger(__name__)


@dataclass(eq=False)
class ModelRecord:
    """
    A named, versioned model hosted on PyGrid, along with its weights.

    The record keeps two states: :attr:`start_state`, the weights as
    originally loaded, and :attr:`current_state`, the weights as updated after
    each training step.  The start state is kept unchanged so downstream code
    can compare it with the current state (e.g. to report a parameter diff).

    Records are not thread-safe; callers need exclusive access to a record
    while loading or updating it.

    Stability:
        Caller
    """

    model_name: str
    "The name of the model, as specified when hosting the plan on PyGrid."
    version: str | None = None
    "The version of the model."
    pygrid_model_id: str | None = None
    "The identifier PyGrid assigned to the model, used to download its weights."
    current_state: ModelState | None = None
    "The latest model weights."
    start_state: ModelState | None = None
    "The model weights as originally loaded."

    def __post_init__(self):
        if not self.model_name:
            raise ValueError("model name must be non-empty")

    @classmethod
    def from_settings(cls, name: str, settings: GridStateSettings | None = None) -> ModelRecord:
        """
        Create a record for a model described in the configuration.

        If the model's configuration lists a ``state_file``, it is loaded.

        Raises:
            KeyError:
                if the model is not configured.
        """
        if settings is None:
            settings = gridstate_config()

        return cls._from_model_settings(name, settings.models[name])

    @classmethod
    def from_description(cls, path: str | PathLike[str], name: str | None = None) -> ModelRecord:
        """
        Create a record from a standalone model description file.

        The file holds a single model's settings (see :class:`ModelSettings`)
        as JSON, TOML, or YAML.  A relative ``state_file`` is resolved against
        the directory containing the description.

        Args:
            path:
                The description file.
            name:
                The model name.  Defaults to the file name without its suffix.
        """
        path = Path(path)
        ms = load_config_data(path, ModelSettings)
        if ms.state_file is not None and not ms.state_file.is_absolute():
            ms.state_file = path.parent / ms.state_file

        _log.debug("read model description", file=str(path))
        return cls._from_model_settings(name or path.stem, ms)

    @classmethod
    def _from_model_settings(cls, name: str, ms: ModelSettings) -> ModelRecord:
        record = cls(name, ms.version, ms.pygrid_model_id)
        if ms.state_file is not None:
            record.load_model_file(ms.state_file)
        return record

    @property
    def is_loaded(self) -> bool:
        "Whether the record has a current state."
        return self.current_state is not None

    def load_model_state(self, source: bytes | bytearray | memoryview) -> None:
        """
        Load the model's weights from their binary encoding.

        On success, the start and current states both hold the decoded
        weights.  On failure, the record is left as it was.

        Args:
            source:
                The encoded model state (see :meth:`ModelState.decode`).

        Raises:
            MalformedEncoding:
                if the encoded state is invalid.
            ShapeMismatch:
                if a tensor's shape disagrees with its element count.
        """
        log = _log.bind(model=self.model_name, bytes=len(source))
        timer = Stopwatch()
        state = ModelState.decode(source)

        self.start_state = state
        self.current_state = state.copy()
        log.debug("model state loaded in %s", timer, tensors=len(state))

    def load_model_file(self, path: str | PathLike[str]) -> None:
        """
        Load the model's weights from a file containing an encoded state.
        """
        path = Path(path)
        self.load_model_state(path.read_bytes())
        _log.info("model loaded from %s", path, model=self.model_name)

    def update_model(self, new_params: Sequence[torch.Tensor]) -> None:
        """
        Update the current state with new parameter values.

        This should be called after every training step so later plan
        executions see the updated weights.  Parameters are matched to the
        state by position, so they must be in the engine's own parameter
        order.  If there are fewer parameters than tensors in the state, the
        remaining tensors are kept; extra parameters are ignored.

        Does nothing if no state has been loaded.

        Every used parameter is converted before any is stored.  This is
        stricter than converting and replacing one position at a time: when
        a later parameter cannot be converted, the earlier positions are not
        written either, and the current state is left unchanged.  On success
        the result is the same.

        Args:
            new_params:
                The updated parameters as PyTorch tensors.

        Raises:
            UnsupportedElementType:
                if a used parameter has an unsupported dtype.
        """
        state = self.current_state
        log = _log.bind(model=self.model_name)
        if state is None:
            log.debug("model has no state, ignoring update")
            return

        n = min(len(new_params), len(state))
        if n < len(new_params):
            log.debug("ignoring %d extra parameters", len(new_params) - n)

        values = [TensorValue.from_native_tensor(new_params[i]) for i in range(n)]
        for i, value in enumerate(values):
            state.replace_at(i, value)

        log.debug("updated %d of %d tensors", n, len(state))
