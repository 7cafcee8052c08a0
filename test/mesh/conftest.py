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

"""Pytest configuration and shared fixtures for quadsubdiv.mesh tests.

All functions and fixtures defined here are automatically available to all
test files without explicit imports.
"""

import pytest
import torch

### Pytest Hooks ###


def pytest_configure(config):
    """Register custom pytest markers used in mesh tests."""
    config.addinivalue_line(
        "markers", "cuda: mark test as requiring CUDA (skipped if unavailable)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow-running (for optional exclusion)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip tests marked with 'cuda' if CUDA is not available."""
    if torch.cuda.is_available():
        return  # CUDA available, run all tests

    skip_cuda = pytest.mark.skip(reason="CUDA not available")
    for item in items:
        if "cuda" in item.keywords:
            item.add_marker(skip_cuda)


### Mesh Generators (Standalone Functions) ###


def create_unit_quad(device: torch.device | str = "cpu"):
    """Single counter-clockwise quad on [0, 1]^2."""
    from quadsubdiv.mesh.half_edge import HalfEdgeMesh

    points = torch.tensor(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]],
        device=device,
    )
    quads = torch.tensor([[0, 1, 2, 3]], device=device)
    return HalfEdgeMesh.from_quads(points, quads)


def create_two_quads(device: torch.device | str = "cpu"):
    """Two unit quads sharing the edge from (1, 0) to (1, 1)."""
    from quadsubdiv.mesh.half_edge import HalfEdgeMesh

    points = torch.tensor(
        [
            [0.0, 0.0, 0.0],
            [1.0, 0.0, 0.0],
            [2.0, 0.0, 0.0],
            [0.0, 1.0, 0.0],
            [1.0, 1.0, 0.0],
            [2.0, 1.0, 0.0],
        ],
        device=device,
    )
    quads = torch.tensor([[0, 1, 4, 3], [1, 2, 5, 4]], device=device)
    return HalfEdgeMesh.from_quads(points, quads)


def create_integer_grid(n_x: int, n_y: int, device: torch.device | str = "cpu"):
    """Flat n_x x n_y quad grid with integer vertex coordinates.

    Integer input keeps every sum of one refinement level exact in float32.
    """
    from quadsubdiv.mesh.half_edge import HalfEdgeMesh

    xs = torch.arange(n_x + 1, dtype=torch.float32, device=device)
    ys = torch.arange(n_y + 1, dtype=torch.float32, device=device)
    xx, yy = torch.meshgrid(xs, ys, indexing="ij")
    points = torch.stack([xx.flatten(), yy.flatten()], dim=1)

    ii, jj = torch.meshgrid(
        torch.arange(n_x, device=device), torch.arange(n_y, device=device), indexing="ij"
    )
    idx = (ii * (n_y + 1) + jj).reshape(-1)
    quads = torch.stack([idx, idx + n_y + 1, idx + n_y + 2, idx + 1], dim=1)
    return HalfEdgeMesh.from_quads(points, quads)


def create_cube(device: torch.device | str = "cpu"):
    """Closed cube surface on [-1, 1]^3."""
    from quadsubdiv.mesh.primitives.surfaces import cube_surface

    return cube_surface.load(size=1.0, device=device)


### Fixtures ###


@pytest.fixture(
    params=[
        "cpu",
        pytest.param("cuda", marks=pytest.mark.cuda),
    ]
)
def device(request):
    """Parametrize tests over all available devices (CPU, CUDA).

    CUDA tests are automatically skipped if CUDA is not available via
    the pytest_collection_modifyitems hook.
    """
    return request.param


@pytest.fixture(params=["warp", "torch"])
def backend(request):
    """Parametrize tests over both refinement backends."""
    return request.param


@pytest.fixture
def unit_quad(device):
    return create_unit_quad(device)


@pytest.fixture
def two_quads(device):
    return create_two_quads(device)


@pytest.fixture
def cube(device):
    return create_cube(device)


@pytest.fixture
def integer_grid(device):
    """Factory for flat integer-coordinate grids on the current device."""

    def _make(n_x: int, n_y: int):
        return create_integer_grid(n_x, n_y, device)

    return _make
