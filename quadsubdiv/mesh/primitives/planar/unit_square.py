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

"""Unit square split into a regular grid of quads.

Dimensional: 2D manifold in 3D space (z = 0), with boundary.
"""

import torch

from quadsubdiv.mesh.half_edge import HalfEdgeMesh


def load(n_cells: int = 1, device: torch.device | str = "cpu") -> HalfEdgeMesh:
    """Create the unit square as an n_cells x n_cells grid of quads.

    Parameters
    ----------
    n_cells : int
        Number of quads along each side (1 = a single quad).
    device : str
        Compute device ('cpu' or 'cuda').

    Returns
    -------
    HalfEdgeMesh
        Counter-clockwise (+z facing) quad grid with
        (n_cells + 1) ** 2 vertices and n_cells ** 2 faces.
    """
    if n_cells < 1:
        raise ValueError(f"n_cells must be at least 1, got {n_cells=}")

    n = n_cells + 1
    x = torch.linspace(0.0, 1.0, n, device=device)
    xx, yy = torch.meshgrid(x, x, indexing="ij")
    points = torch.stack([xx.flatten(), yy.flatten()], dim=1)

    i_idx = torch.arange(n_cells, device=device)
    ii, jj = torch.meshgrid(i_idx, i_idx, indexing="ij")
    idx = (ii * n + jj).reshape(-1)

    # x first, then y: counter-clockwise seen from +z
    quads = torch.stack([idx, idx + n, idx + n + 1, idx + 1], dim=1)

    return HalfEdgeMesh.from_quads(points, quads)
