# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

from importlib.metadata import PackageNotFoundError, version


def gridstate_version() -> str:
    try:
        return version("gridstate")
    except PackageNotFoundError:  # pragma: nocover
        return "UNKNOWN"
