# This file is part of gridstate.
# Licensed under the MIT license, see LICENSE.md for details.
# SPDX-License-Identifier: MIT

"""
Weight state for models trained and served through PyGrid.
"""

import lazy_loader as lazy

from ._version import gridstate_version

__version__ = gridstate_version()


# IMPORTANT: this must be kept in sync with __init__.pyi
__getattr__, __dir__, __all__ = lazy.attach(
    __name__,
    submodules=[
        "config",
        "diagnostics",
        "logging",
        "state",
        "tensor",
    ],
    submod_attrs={
        "config": ["configure", "gridstate_config"],
        "diagnostics": [
            "GridStateError",
            "IndexOutOfRange",
            "MalformedEncoding",
            "ShapeMismatch",
            "UnsupportedElementType",
        ],
        "state": ["ModelRecord", "ModelState"],
        "tensor": ["ElementType", "TensorValue"],
    },
)
