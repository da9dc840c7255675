# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
gridstate configuration.

Settings come from ``gridstate.toml`` and ``gridstate.local.toml`` (when
:func:`configure` is called) and from ``GS_``-prefixed environment variables.
A configuration describes the default PyTorch device for tensors created from
model state, and the models known to the application:

.. code:: toml

    device = "cpu"

    [models.mnist]
    version = "1.0"
    pygrid_model_id = "5f2c"
    state_file = "mnist-state.bin"
"""

from __future__ import annotations

import json
import tomllib
import warnings
from os import PathLike
from pathlib import Path

from pydantic import BaseModel, JsonValue
from pydantic_settings import BaseSettings, SettingsConfigDict, TomlConfigSettingsSource
from typing_extensions import TypeVar, overload

from gridstate.diagnostics import ConfigWarning
from gridstate.logging import get_logger

__all__ = [
    "gridstate_config",
    "configure",
    "locate_configuration_root",
    "load_config_data",
    "GridStateSettings",
    "ModelSettings",
]

M = TypeVar("M", bound=BaseModel)
"Model class for general configuration loading."
_log = get_logger(__name__)
_settings: GridStateSettings | None = None

CONFIG_FILE = "gridstate.toml"
LOCAL_CONFIG_FILE = "gridstate.local.toml"


def gridstate_config() -> GridStateSettings:
    """
    Get the gridstate configuration.

    If no configuration has been specified, returns a default settings object.
    """
    if _settings is None:
        return GridStateSettings()
    else:
        return _settings


class ModelSettings(BaseModel):
    """
    Registry description of a single model.
    """

    version: str | None = None
    "The model version."
    pygrid_model_id: str | None = None
    "The identifier PyGrid assigned to the model."
    state_file: Path | None = None
    "A file holding the model's initial encoded state."


class GridStateSettings(BaseSettings, extra="allow"):
    """
    Definition of gridstate settings.
    """

    model_config = SettingsConfigDict(
        nested_model_default_partial_update=True, env_prefix="GS_", env_nested_delimiter="__"
    )

    device: str = "cpu"
    """
    The PyTorch device for tensors created from model state.
    """

    models: dict[str, ModelSettings] = {}
    """
    The models known to the application, by name.
    """

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


def configure(cfg_dir: Path | None = None, *, _set_global: bool = True) -> GridStateSettings:
    """
    Initialize gridstate configuration.

    gridstate does **not** automatically read configuration files; if this
    function is never called, configuration comes entirely from defaults and
    environment variables.

    Args:
        cfg_dir:
            The directory in which to look for configuration files.  If not
            provided, uses the current directory.

    Returns:
        The configured settings.
    """
    global _settings

    if _settings is not None and _set_global:
        warnings.warn("gridstate already configured, overwriting configuration", ConfigWarning)

    base = Path(cfg_dir) if cfg_dir is not None else Path()

    # subclass so we can specify the configuration location
    class GridStateFileSettings(GridStateSettings):
        @classmethod
        def settings_customise_sources(
            cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
        ):
            return (
                init_settings,
                env_settings,
                dotenv_settings,
                file_secret_settings,
                TomlConfigSettingsSource(settings_cls, base / LOCAL_CONFIG_FILE),
                TomlConfigSettingsSource(settings_cls, base / CONFIG_FILE),
            )

    settings = GridStateFileSettings()
    # resolve relative state files against the configuration directory
    for ms in settings.models.values():
        if ms.state_file is not None and not ms.state_file.is_absolute():
            ms.state_file = base / ms.state_file

    _log.debug("configured", device=settings.device, models=len(settings.models))
    if _set_global:
        _settings = settings

    return settings


def locate_configuration_root(
    *,
    cwd: Path | str | PathLike[str] | None = None,
    abort_at_pyproject: bool = True,
    abort_at_gitroot: bool = True,
) -> Path | None:
    """
    Search for a configuration root containing a ``gridstate.toml`` file.

    This searches for a ``gridstate.toml`` file, beginning in the current
    working directory (or the alternate ``cwd`` if provided), and searching
    upward until one is found.  Search stops if a ``pyproject.toml`` file or
    ``.git`` directory is found without encountering ``gridstate.toml``.
    """

    if cwd is None:
        cwd = Path()
    elif not isinstance(cwd, Path):
        cwd = Path(cwd)
    cwd = cwd.resolve()

    log = _log.bind(cwd=str(cwd))
    log.debug("searching for %s", CONFIG_FILE)
    while True:
        if (cwd / CONFIG_FILE).exists():
            return cwd

        if abort_at_pyproject and (cwd / "pyproject.toml").exists():
            return None

        if abort_at_gitroot and (cwd / ".git").exists():
            return None

        if cwd.parent == cwd:
            return None
        else:
            cwd = cwd.parent


@overload
def load_config_data(path: Path | PathLike[str], model: None = None) -> JsonValue: ...
@overload
def load_config_data(path: Path | PathLike[str], model: type[M]) -> M: ...
def load_config_data(path: Path | PathLike[str], model: type[M] | None = None):
    """
    General-purpose function to automatically load configuration data and
    optionally validate with a model.

    Args:
        path:
            The path to the configuration file.
        model:
            The Pydantic model class to validate.
    """
    path = Path(path)
    text = path.read_text()

    match path.suffix:
        case ".json" if model is not None:
            return model.model_validate_json(text)
        case ".json":
            data = json.loads(text)
        case ".toml":
            data = tomllib.loads(text)
        case ".yaml" | ".yml":
            import yaml

            data = yaml.load(text, yaml.SafeLoader)

        case _:
            raise ValueError(f"unsupported configuration type for {path}")

    if model is None:
        return data
    else:
        return model.model_validate(data)
