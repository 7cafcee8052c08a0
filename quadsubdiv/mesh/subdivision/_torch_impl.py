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

"""Vectorised PyTorch passes for one Catmull-Clark level.

Each pass handles every half-edge at once; ``index_add_`` plays the role of
the atomic fan-in used by the Warp kernels. Passes run in program order on
one stream, which gives the same barrier between passes as separate kernel
launches.
"""

import torch

from quadsubdiv.mesh.half_edge import (
    BOUNDARY,
    HalfEdgeMesh,
    allocate_next_level,
    face_index,
    next_half_edge,
    prev_half_edge,
)


def _walk_vertex_rings(
    twins: torch.Tensor,
) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    """Walk the one-ring of every half-edge's origin vertex.

    Starting from ``h``, the walk visits ``twin(prev(h))``, which leaves the
    same vertex, until it returns to ``h`` or meets a boundary.

    Returns
    -------
    ring_size : torch.Tensor
        Number of half-edges visited, shape (n_half_edges,). Equals the
        valence for interior vertices.
    is_smallest : torch.Tensor
        Whether ``h`` has the smallest index in its ring, shape (n_half_edges,).
    on_boundary : torch.Tensor
        Whether the walk met a boundary, shape (n_half_edges,).
    """
    twins = twins.to(torch.int64)
    n_half_edges = twins.shape[0]
    half_edges = torch.arange(n_half_edges, device=twins.device)

    ring_size = torch.ones_like(half_edges)
    is_smallest = torch.ones(n_half_edges, dtype=torch.bool, device=twins.device)
    on_boundary = torch.zeros_like(is_smallest)

    current = twins[prev_half_edge(half_edges)]
    active = current != half_edges

    # A ring can never be longer than the number of half-edges
    for _ in range(n_half_edges):
        if not bool(active.any()):
            break
        on_boundary |= active & (current < 0)
        active &= current >= 0
        is_smallest &= ~(active & (current < half_edges))
        ring_size += active.to(ring_size.dtype)
        stepped = twins[prev_half_edge(current.clamp(min=0))]
        current = torch.where(active, stepped, current)
        active &= current != half_edges

    return ring_size, is_smallest, on_boundary


def valence(twins: torch.Tensor) -> torch.Tensor:
    """Representative valence of every half-edge's origin vertex.

    For an interior vertex, exactly one outgoing half-edge (the one with the
    smallest index) is its representative and gets the vertex valence ``n``;
    the other outgoing half-edges get ``0``. Every half-edge leaving a
    boundary vertex gets ``-1``.

    Parameters
    ----------
    twins : torch.Tensor
        Twin array of a :class:`HalfEdgeMesh`, shape (n_half_edges,).

    Returns
    -------
    torch.Tensor
        int32 tensor of shape (n_half_edges,).

    Examples
    --------
    >>> import torch
    >>> from quadsubdiv.mesh import HalfEdgeMesh
    >>> points = torch.rand(4, 3)
    >>> mesh = HalfEdgeMesh.from_quads(points, torch.tensor([[0, 1, 2, 3]]))
    >>> valence(mesh.twins).tolist()
    [-1, -1, -1, -1]
    """
    ring_size, is_smallest, on_boundary = _walk_vertex_rings(twins)
    result = torch.where(is_smallest, ring_size, torch.zeros_like(ring_size))
    result = torch.where(on_boundary, torch.full_like(result, BOUNDARY), result)
    return result.to(torch.int32)


def refine_topology(mesh: HalfEdgeMesh, out: HalfEdgeMesh) -> None:
    """Write the verts, edges and twins of the 4 children of every half-edge.

    Child ``4h + k`` of parent half-edge ``h`` belongs to child face ``h``:
    ``4h`` runs from the parent origin to the edge point of ``h``, ``4h + 1``
    to the face point, ``4h + 2`` to the edge point of ``prev(h)`` and
    ``4h + 3`` back to the parent origin.
    """
    n_verts, n_faces, n_edges = mesh.n_verts, mesh.n_faces, mesh.n_edges
    h = torch.arange(mesh.n_half_edges, device=mesh.verts.device)
    hp = prev_half_edge(h)
    ht = mesh.twins.to(torch.int64)
    thp = ht[hp]
    he = mesh.edges.to(torch.int64)
    ehp = he[hp]
    edge_point_offset = n_verts + n_faces

    twins = torch.stack(
        [
            torch.where(ht >= 0, 4 * next_half_edge(ht.clamp(min=0)) + 3, BOUNDARY),
            4 * next_half_edge(h) + 2,
            4 * hp + 1,
            torch.where(thp >= 0, 4 * thp, BOUNDARY),
        ],
        dim=1,
    )
    verts = torch.stack(
        [
            mesh.verts.to(torch.int64),
            edge_point_offset + he,
            n_verts + face_index(h),
            edge_point_offset + ehp,
        ],
        dim=1,
    )
    # Split halves of a parent edge get ids 2e and 2e + 1; twin children agree
    edges = torch.stack(
        [
            2 * he + (h > ht).to(torch.int64),
            2 * n_edges + h,
            2 * n_edges + hp,
            2 * ehp + (hp < thp).to(torch.int64),
        ],
        dim=1,
    )

    out.twins.copy_(twins.reshape(-1))
    out.verts.copy_(verts.reshape(-1))
    out.edges.copy_(edges.reshape(-1))


def face_points(mesh: HalfEdgeMesh, out: HalfEdgeMesh) -> None:
    """Write every face centroid, adding the corners in cycle order."""
    corners = mesh.points[mesh.verts.to(torch.int64)].view(mesh.n_faces, 4, 3)
    corner_sum = corners[:, 0] + corners[:, 1] + corners[:, 2] + corners[:, 3]
    out.points[mesh.n_verts : mesh.n_verts + mesh.n_faces] = corner_sum * 0.25


def edge_points(mesh: HalfEdgeMesh, out: HalfEdgeMesh) -> None:
    """Compute every edge point; requires finalised face points."""
    h = torch.arange(mesh.n_half_edges, device=mesh.verts.device)
    verts = mesh.verts.to(torch.int64)
    edge_ids = mesh.n_verts + mesh.n_faces + mesh.edges.to(torch.int64)
    interior = mesh.twins >= 0

    ### Interior: both sides add (origin + face point) / 4
    face_point = out.points[mesh.n_verts + face_index(h[interior])]
    contribution = (mesh.points[verts[interior]] + face_point) * 0.25
    out.points.index_add_(0, edge_ids[interior], contribution)

    ### Boundary: single owner writes the edge midpoint
    boundary = h[~interior]
    midpoint = (
        mesh.points[verts[boundary]] + mesh.points[verts[next_half_edge(boundary)]]
    ) * 0.5
    out.points[edge_ids[boundary]] = midpoint


def vertex_points(mesh: HalfEdgeMesh, out: HalfEdgeMesh) -> None:
    """Reposition every parent vertex; requires face and edge points.

    Interior vertices of valence ``n`` receive, from each outgoing half-edge,
    ``(4 E - F + (n - 3) V) / n^2``, which sums to the Catmull-Clark rule
    ``(F_avg + 2 R_avg + (n - 3) V) / n``. Boundary half-edges add
    ``(E + V) / 4`` to both of their endpoints, which sums to
    ``3/4 V + 1/8 (w_0 + w_1)`` over the two boundary edges of a vertex.
    """
    h = torch.arange(mesh.n_half_edges, device=mesh.verts.device)
    verts = mesh.verts.to(torch.int64)
    edge_ids = mesh.n_verts + mesh.n_faces + mesh.edges.to(torch.int64)
    dtype = mesh.points.dtype

    ### Interior vertices
    ring_size, _, on_boundary = _walk_vertex_rings(mesh.twins)
    interior = ~on_boundary
    n = ring_size[interior].to(dtype).unsqueeze(-1)
    contribution = (
        4.0 * out.points[edge_ids[interior]]
        - out.points[mesh.n_verts + face_index(h[interior])]
        + (n - 3.0) * mesh.points[verts[interior]]
    ) / (n * n)
    out.points.index_add_(0, verts[interior], contribution)

    ### Boundary vertices
    boundary = h[mesh.twins < 0]
    edge_point = out.points[edge_ids[boundary]]
    for endpoint in (verts[boundary], verts[next_half_edge(boundary)]):
        out.points.index_add_(
            0, endpoint, (edge_point + mesh.points[endpoint]) * 0.25
        )


def refine_level_torch(mesh: HalfEdgeMesh) -> HalfEdgeMesh:
    """Compute the next subdivision level of ``mesh`` with PyTorch ops."""
    out = allocate_next_level(mesh)
    refine_topology(mesh, out)
    face_points(mesh, out)
    edge_points(mesh, out)
    vertex_points(mesh, out)
    return out
