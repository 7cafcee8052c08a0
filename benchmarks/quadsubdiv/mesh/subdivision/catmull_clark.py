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

"""
ASV benchmarks for Catmull-Clark subdivision.
"""

import torch

from quadsubdiv.mesh.primitives.surfaces import torus
from quadsubdiv.mesh.subdivision import RefineLevel, subdivide_catmull_clark


class CatmullClarkBenchmark:
    """Benchmark suite for subdivide_catmull_clark."""

    bench_params = {
        "n_faces": [1024, 16384],
        "levels": [1, 3],
        "implementation": ["warp", "torch"],
        "device": ["cpu", "cuda"],
    }

    # ASV benchmark attributes.
    # https://asv.readthedocs.io/en/latest/benchmarks.html#benchmark-attributes
    params = list(bench_params.values())
    param_names = list(bench_params.keys())

    # Timeout for each benchmark (seconds).
    timeout = 120

    def setup(self, n_faces: int, levels: int, implementation: str, device: str) -> None:
        """Build a torus with the requested face count and warm up the kernels."""
        if device == "cuda" and not torch.cuda.is_available():
            raise NotImplementedError("CUDA not available")
        if implementation not in RefineLevel.available_implementations():
            raise NotImplementedError(f"{implementation} not available")

        # Torus with a 2:1 aspect ratio of major to minor resolution
        n_minor = int((n_faces // 2) ** 0.5)
        self.mesh = torus.load(n_major=2 * n_minor, n_minor=n_minor, device=device)
        self.levels = levels
        self.implementation = implementation
        self.device = device

        # First launch compiles the Warp module
        subdivide_catmull_clark(self.mesh, levels=1, implementation=implementation)
        if self.device == "cuda":
            torch.cuda.synchronize()

    def time_subdivide(
        self, n_faces: int, levels: int, implementation: str, device: str
    ) -> None:
        """Benchmark the level driver execution time."""
        subdivide_catmull_clark(
            self.mesh, levels=self.levels, implementation=self.implementation
        )
        if self.device == "cuda":
            torch.cuda.synchronize()

    def peakmem_subdivide(
        self, n_faces: int, levels: int, implementation: str, device: str
    ) -> None:
        """Benchmark peak host memory of the level driver."""
        subdivide_catmull_clark(
            self.mesh, levels=self.levels, implementation=self.implementation
        )
