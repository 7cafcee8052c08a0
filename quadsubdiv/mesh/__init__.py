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

"""Half-edge quad meshes and their Catmull-Clark refinement.

Example:
    >>> import torch
    >>> from quadsubdiv.mesh import HalfEdgeMesh, subdivide_catmull_clark
    >>> points = torch.tensor(
    ...     [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]]
    ... )
    >>> mesh = HalfEdgeMesh.from_quads(points, torch.tensor([[0, 1, 2, 3]]))
    >>> refined = subdivide_catmull_clark(mesh, levels=2, implementation="torch")
    >>> refined.n_faces
    16
"""

from quadsubdiv.mesh.half_edge import (
    HalfEdgeMesh,
    allocate_next_level,
    face_index,
    next_half_edge,
    prev_half_edge,
)
from quadsubdiv.mesh.subdivision import (
    RefineLevel,
    refine_level,
    subdivide_catmull_clark,
    valence,
)
from quadsubdiv.mesh.validation import validate_quad_mesh
