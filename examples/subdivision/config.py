# SPDX-FileCopyrightText: Copyright (c) 2023 - 2026 NVIDIA CORPORATION & AFFILIATES.
# SPDX-FileCopyrightText: All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from typing import Literal

from pydantic import Field, model_validator
from pydantic.dataclasses import dataclass

PRIMITIVE_PREFIX = "primitive:"
PRIMITIVES = ("unit_square", "cube_surface", "torus")


@dataclass(config={"extra": "forbid"})
class SubdivisionConfig:
    """Command-line configuration: cfg"""

    input: str = "primitive:cube_surface"  # mesh file or "primitive:<name>"
    output: str | None = None  # output mesh file, None to skip writing
    levels: int = Field(default=2, ge=0)  # number of subdivision levels
    device: str = "cpu"  # "cpu", "cuda" or "cuda:<index>"
    implementation: Literal["warp", "torch"] | None = None  # backend, None for auto
    grid_size: int | None = Field(default=None, ge=1)  # Warp threads per launch

    @model_validator(mode="after")
    def _check_input_and_device(self):
        if self.input.startswith(PRIMITIVE_PREFIX):
            name = self.input[len(PRIMITIVE_PREFIX) :]
            if name not in PRIMITIVES:
                raise ValueError(
                    f"Unknown primitive {name!r}; choose one of {PRIMITIVES}"
                )
        if self.device != "cpu" and not self.device.startswith("cuda"):
            raise ValueError(f"device must be 'cpu' or 'cuda[:index]', got {self.device!r}")
        return self
