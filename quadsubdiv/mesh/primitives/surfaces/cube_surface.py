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

"""Surface of the cube [-size, size]^3 as six quads.

Dimensional: 2D manifold in 3D space (closed, no boundary). Every vertex
has valence 3.
"""

import torch

from quadsubdiv.mesh.half_edge import HalfEdgeMesh


def load(size: float = 1.0, device: torch.device | str = "cpu") -> HalfEdgeMesh:
    """Create the six outward-facing quads of an axis-aligned cube.

    Parameters
    ----------
    size : float
        Half the edge length of the cube.
    device : str
        Compute device ('cpu' or 'cuda').

    Returns
    -------
    HalfEdgeMesh
        Mesh with 8 vertices, 6 faces and 12 edges.
    """
    if size <= 0:
        raise ValueError(f"size must be positive, got {size=}")

    # Vertex i has coordinate bits (x, y, z) = (i & 1, i & 2, i & 4)
    bits = torch.arange(8, device=device)
    points = torch.stack(
        [(bits & 1) > 0, (bits & 2) > 0, (bits & 4) > 0], dim=1
    ).to(torch.float32)
    points = size * (2.0 * points - 1.0)

    quads = torch.tensor(
        [
            [0, 2, 3, 1],  # z = -size
            [4, 5, 7, 6],  # z = +size
            [0, 1, 5, 4],  # y = -size
            [2, 6, 7, 3],  # y = +size
            [0, 4, 6, 2],  # x = -size
            [1, 3, 7, 5],  # x = +size
        ],
        dtype=torch.int64,
        device=device,
    )
    return HalfEdgeMesh.from_quads(points, quads)
