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

"""Catmull-Clark subdivision of half-edge quad meshes.

One subdivision level is computed by four data-parallel passes over the
half-edges of the parent level, each reading only values finalised by the
passes before it:

1. Topology refinement: the 4 child half-edges of every parent half-edge
2. Face points: face centroids, by atomic fan-in
3. Edge points: interior edges by fan-in, boundary edges by direct write
4. Vertex points: repositioned parent vertices (interior and boundary rules)

Two backends compute the same result: Warp kernels (one thread per
half-edge) and vectorised PyTorch passes.

Example:
    >>> from quadsubdiv.mesh.subdivision import subdivide_catmull_clark
    >>> refined = subdivide_catmull_clark(mesh, levels=3)  # doctest: +SKIP
    >>> assert refined.n_faces == mesh.n_faces * 4**3  # doctest: +SKIP
"""

from quadsubdiv.mesh.subdivision.catmull_clark import (
    RefineLevel,
    Valence,
    refine_level,
    subdivide_catmull_clark,
    valence,
)
