# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

from pathlib import Path

import numpy as np
import torch

from hypothesis import given, settings
from pytest import fixture, mark, raises

from gridstate.config import GridStateSettings, ModelSettings
from gridstate.diagnostics import MalformedEncoding, ShapeMismatch, UnsupportedElementType
from gridstate.state import ModelRecord, ModelState
from gridstate.tensor import ElementType, TensorValue
from gridstate.testing import model_states


@fixture
def abc():
    a = TensorValue(ElementType.FLOAT32, (2, 2), [1.0, 2.0, 3.0, 4.0])
    b = TensorValue(ElementType.FLOAT32, (2,), [0.5, -0.5])
    c = TensorValue(ElementType.FLOAT32, (3,), [7.0, 8.0, 9.0])
    return a, b, c


@fixture
def loaded(abc):
    record = ModelRecord("mnist", "1.0", "grid-42")
    record.load_model_state(ModelState(abc).encode())
    return record


def test_construct():
    record = ModelRecord("mnist")
    assert record.model_name == "mnist"
    assert record.version is None
    assert record.pygrid_model_id is None
    assert record.current_state is None
    assert record.start_state is None
    assert not record.is_loaded


def test_construct_full():
    record = ModelRecord("mnist", version="2.1", pygrid_model_id="abc")
    assert record.version == "2.1"
    assert record.pygrid_model_id == "abc"


def test_construct_empty_name():
    with raises(ValueError):
        ModelRecord("")


def test_update_unloaded():
    record = ModelRecord("m")
    record.update_model([torch.ones(2), torch.zeros(3)])
    assert record.current_state is None
    assert record.start_state is None


def test_load(abc):
    record = ModelRecord("m")
    record.load_model_state(ModelState(abc).encode())

    assert record.is_loaded
    assert record.start_state == ModelState(abc)
    assert record.current_state == ModelState(abc)


def test_load_bytearray(abc):
    record = ModelRecord("m")
    record.load_model_state(bytearray(ModelState(abc).encode()))
    assert record.current_state == ModelState(abc)


@settings(deadline=5000)
@given(model_states())
def test_load_any(state):
    record = ModelRecord("m")
    record.load_model_state(state.encode())
    assert record.start_state == state
    assert record.current_state == state


def test_update_positional(loaded, abc):
    a, b, c = abc
    x = torch.full((2, 2), 5.0)
    y = torch.tensor([1.5, 2.5])

    loaded.update_model([x, y])

    cur = loaded.current_state
    assert cur is not None
    assert cur[0] == TensorValue.from_native_tensor(x)
    assert cur[1] == TensorValue.from_native_tensor(y)
    assert cur[2] == c
    assert loaded.start_state == ModelState(abc)


def test_update_extra_params(loaded, abc):
    params = [torch.full((2,), float(i)) for i in range(4)]

    loaded.update_model(params)

    cur = loaded.current_state
    assert cur is not None
    assert len(cur) == 3
    assert cur.tensors == tuple(TensorValue.from_native_tensor(p) for p in params[:3])


def test_update_empty(loaded, abc):
    loaded.update_model([])
    assert loaded.current_state == ModelState(abc)


def test_update_leaves_start(loaded, abc):
    loaded.update_model([torch.zeros(2, 2)])
    loaded.update_model([torch.ones(2, 2), torch.ones(2)])

    assert loaded.start_state == ModelState(abc)
    assert loaded.current_state != loaded.start_state
    assert loaded.current_state is not loaded.start_state


def test_current_tensors_cannot_reach_start(loaded, abc):
    view = loaded.current_state[0].to_numpy()
    with raises(ValueError):
        view.flags.writeable = True
    with raises(ValueError):
        view[0, 0] = 99.0

    assert loaded.start_state == ModelState(abc)
    assert loaded.start_state[0].to_numpy()[0, 0] == 1.0


def test_update_copies_params(loaded):
    x = torch.zeros(2, 2)
    loaded.update_model([x])
    x[0, 0] = 100.0

    cur = loaded.current_state
    assert cur is not None
    assert cur[0].to_numpy()[0, 0] == 0.0


def test_update_unsupported_atomic(loaded, abc):
    params = [torch.zeros(2, 2), torch.zeros(2, dtype=torch.complex64)]
    with raises(UnsupportedElementType):
        loaded.update_model(params)

    assert loaded.current_state == ModelState(abc)


def test_update_uses_parameter_order(loaded):
    module = torch.nn.Linear(2, 2)
    params = [p.detach() for p in module.parameters()]

    loaded.update_model(params)

    cur = loaded.current_state
    assert cur is not None
    assert cur[0].shape == (2, 2)
    assert np.all(cur[0].to_numpy() == module.weight.detach().numpy())
    assert cur[1].shape == (2,)
    assert np.all(cur[1].to_numpy() == module.bias.detach().numpy())


def test_load_malformed_keeps_state(loaded, abc):
    with raises(MalformedEncoding):
        loaded.load_model_state(b"GSMS\x01")

    assert loaded.start_state == ModelState(abc)
    assert loaded.current_state == ModelState(abc)


def test_load_truncated_keeps_state(loaded, abc):
    data = ModelState(abc[:2]).encode()
    loaded.update_model([torch.zeros(2, 2)])
    before = loaded.current_state

    with raises(MalformedEncoding):
        loaded.load_model_state(data[:-3])

    assert loaded.current_state is before
    assert loaded.start_state == ModelState(abc)


def test_load_shape_mismatch_keeps_state(loaded, abc):
    data = bytearray(ModelState(abc[:1]).encode())
    # element count of the first tensor
    data[10 + 8 + 2 + 16] = 3
    with raises(ShapeMismatch):
        loaded.load_model_state(data)

    assert loaded.current_state == ModelState(abc)


def test_load_unloaded_fails_clean():
    record = ModelRecord("m")
    with raises(MalformedEncoding):
        record.load_model_state(b"")
    assert record.current_state is None
    assert record.start_state is None


def test_reload_replaces(loaded, abc):
    new = ModelState(abc[:1])
    loaded.update_model([torch.zeros(2, 2)])
    loaded.load_model_state(new.encode())

    assert loaded.start_state == new
    assert loaded.current_state == new


def test_load_file(tmp_path: Path, abc):
    path = tmp_path / "state.bin"
    path.write_bytes(ModelState(abc).encode())

    record = ModelRecord("m")
    record.load_model_file(path)
    assert record.current_state == ModelState(abc)


def test_from_settings(tmp_path: Path, abc):
    path = tmp_path / "state.bin"
    path.write_bytes(ModelState(abc).encode())
    settings = GridStateSettings(
        models={
            "mnist": ModelSettings(version="3", pygrid_model_id="g1", state_file=path),
            "empty": ModelSettings(),
        }
    )

    record = ModelRecord.from_settings("mnist", settings)
    assert record.model_name == "mnist"
    assert record.version == "3"
    assert record.pygrid_model_id == "g1"
    assert record.start_state == ModelState(abc)

    record = ModelRecord.from_settings("empty", settings)
    assert record.version is None
    assert not record.is_loaded


def test_from_settings_missing():
    with raises(KeyError):
        ModelRecord.from_settings("nope", GridStateSettings())


def test_update_unsupported_writes_nothing(loaded, abc):
    params = [torch.ones(2, 2), torch.ones(2), torch.zeros(3, dtype=torch.bfloat16)]
    with raises(UnsupportedElementType):
        loaded.update_model(params)

    cur = loaded.current_state
    assert cur is not None
    assert cur[0] == abc[0]
    assert cur[1] == abc[1]
    assert cur == loaded.start_state


@mark.parametrize(
    "name,text",
    [
        ("mnist.yaml", "version: '2'\npygrid_model_id: g7\nstate_file: weights.bin\n"),
        ("mnist.toml", 'version = "2"\npygrid_model_id = "g7"\nstate_file = "weights.bin"\n'),
        ("mnist.json", '{"version": "2", "pygrid_model_id": "g7", "state_file": "weights.bin"}'),
    ],
)
def test_from_description(tmp_path: Path, abc, name: str, text: str):
    (tmp_path / "weights.bin").write_bytes(ModelState(abc).encode())
    desc = tmp_path / name
    desc.write_text(text)

    record = ModelRecord.from_description(desc)
    assert record.model_name == "mnist"
    assert record.version == "2"
    assert record.pygrid_model_id == "g7"
    assert record.start_state == ModelState(abc)


def test_from_description_named(tmp_path: Path):
    desc = tmp_path / "model.yml"
    desc.write_text("version: '0.1'\n")

    record = ModelRecord.from_description(desc, "cifar")
    assert record.model_name == "cifar"
    assert record.version == "0.1"
    assert not record.is_loaded


def test_from_description_unsupported(tmp_path: Path):
    desc = tmp_path / "model.ini"
    desc.write_text("[model]\n")

    with raises(ValueError, match="unsupported"):
        ModelRecord.from_description(desc)
