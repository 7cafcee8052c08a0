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

"""Warp kernels for one Catmull-Clark level.

Every kernel runs one logical thread per parent half-edge. Launches use a
grid-stride loop, so any positive grid size covers the whole mesh; the
default grid has one thread per half-edge.

Kernel Inventory
----------------
refine_topology_kernel
    Writes the verts, edges and twins of the four children of h.
face_points_kernel
    The first half-edge of each face writes the average of its corners.
edge_points_kernel
    Adds (V + F) / 4 from both sides of interior edges; boundary edges
    get their midpoint from their only half-edge.
vertex_points_kernel
    Moves every parent vertex. The smallest outgoing half-edge of an
    interior vertex sums the whole one-ring and writes once; boundary
    half-edges add (E + V) / 4 to both of their endpoints.

The four kernels are launched in order on one stream. Each pass reads
only values finalised by the passes launched before it.

The point kernels are built once per coordinate precision (float32 and
float64). Face points have a single writer; interior edge points and
boundary vertices receive exactly two atomic adds onto zero, which commute,
so the result does not depend on the grid size.
"""

import torch
import warp as wp

from quadsubdiv.core.function_spec import FunctionSpec
from quadsubdiv.mesh.half_edge import HalfEdgeMesh, allocate_next_level


@wp.func
def _face(h: int) -> int:
    return h // 4


@wp.func
def _next(h: int) -> int:
    return h - h % 4 + (h + 1) % 4


@wp.func
def _prev(h: int) -> int:
    return h - h % 4 + (h + 3) % 4


@wp.func
def _valence(twins: wp.array(dtype=wp.int32), h: int) -> int:
    """Walk the one-ring of the origin of h.

    Returns -1 if the vertex is on the boundary, 0 if h is not
    its smallest outgoing half-edge and the valence otherwise.
    """
    n = int(1)
    smallest = int(1)
    boundary = int(0)
    cur = int(twins[_prev(h)])
    while boundary == 0 and cur != h:
        if cur < 0:
            boundary = 1
        else:
            if cur < h:
                smallest = 0
            n = n + 1
            cur = int(twins[_prev(cur)])

    result = int(0)
    if boundary == 1:
        result = -1
    elif smallest == 1:
        result = n
    return result


@wp.kernel
def valence_kernel(
    twins: wp.array(dtype=wp.int32),
    out: wp.array(dtype=wp.int32),
    n_half_edges: int,
    n_threads: int,
):
    """Store the representative valence of every half-edge."""
    h = int(wp.tid())
    while h < n_half_edges:
        out[h] = _valence(twins, h)
        h = h + n_threads


@wp.kernel
def refine_topology_kernel(
    verts: wp.array(dtype=wp.int32),
    edges: wp.array(dtype=wp.int32),
    twins: wp.array(dtype=wp.int32),
    out_verts: wp.array(dtype=wp.int32),
    out_edges: wp.array(dtype=wp.int32),
    out_twins: wp.array(dtype=wp.int32),
    n_verts: int,
    n_faces: int,
    n_edges: int,
    n_half_edges: int,
    n_threads: int,
):
    """Write the four children 4h .. 4h+3 of every parent half-edge.

    Every output slot has exactly one writer, so the kernel needs no atomics.
    """
    h = int(wp.tid())
    while h < n_half_edges:
        hp = _prev(h)
        ht = int(twins[h])
        thp = int(twins[hp])
        he = int(edges[h])
        ehp = int(edges[hp])
        base = 4 * h

        if ht >= 0:
            out_twins[base] = 4 * _next(ht) + 3
        else:
            out_twins[base] = -1
        out_twins[base + 1] = 4 * _next(h) + 2
        out_twins[base + 2] = 4 * hp + 1
        if thp >= 0:
            out_twins[base + 3] = 4 * thp
        else:
            out_twins[base + 3] = -1

        out_verts[base] = verts[h]
        out_verts[base + 1] = n_verts + n_faces + he
        out_verts[base + 2] = n_verts + _face(h)
        out_verts[base + 3] = n_verts + n_faces + ehp

        # The two halves of a split edge get 2e and 2e + 1; twins agree
        first_half = 2 * he
        if h > ht:
            first_half = first_half + 1
        last_half = 2 * ehp
        if hp < thp:
            last_half = last_half + 1
        out_edges[base] = first_half
        out_edges[base + 1] = 2 * n_edges + h
        out_edges[base + 2] = 2 * n_edges + hp
        out_edges[base + 3] = last_half

        h = h + n_threads


def _make_point_kernels(vec_type, scalar):
    """Build the face, edge and vertex point kernels for one precision.

    ``vec_type`` and ``scalar`` are captured by the kernels, so each
    precision gets its own specialised module code.
    """

    @wp.kernel
    def face_points_kernel(
        points: wp.array(dtype=vec_type),
        verts: wp.array(dtype=wp.int32),
        out_points: wp.array(dtype=vec_type),
        n_verts: int,
        n_half_edges: int,
        n_threads: int,
    ):
        """Average the corners of every face.

        The first half-edge of a face is its only writer and adds the
        corners in cycle order.
        """
        h = int(wp.tid())
        while h < n_half_edges:
            if h % 4 == 0:
                corner_sum = points[verts[h]] + points[verts[h + 1]]
                corner_sum = corner_sum + points[verts[h + 2]]
                corner_sum = corner_sum + points[verts[h + 3]]
                out_points[n_verts + _face(h)] = corner_sum * scalar(0.25)
            h = h + n_threads

    @wp.kernel
    def edge_points_kernel(
        points: wp.array(dtype=vec_type),
        verts: wp.array(dtype=wp.int32),
        edges: wp.array(dtype=wp.int32),
        twins: wp.array(dtype=wp.int32),
        out_points: wp.array(dtype=vec_type),
        n_verts: int,
        n_faces: int,
        n_half_edges: int,
        n_threads: int,
    ):
        """Compute every edge point. Requires finalised face points."""
        h = int(wp.tid())
        while h < n_half_edges:
            e = n_verts + n_faces + int(edges[h])
            v = points[verts[h]]
            if twins[h] >= 0:
                f = out_points[n_verts + _face(h)]
                wp.atomic_add(out_points, e, (v + f) * scalar(0.25))
            else:
                w = points[verts[_next(h)]]
                out_points[e] = (v + w) * scalar(0.5)
            h = h + n_threads

    @wp.kernel
    def vertex_points_kernel(
        points: wp.array(dtype=vec_type),
        verts: wp.array(dtype=wp.int32),
        edges: wp.array(dtype=wp.int32),
        twins: wp.array(dtype=wp.int32),
        out_points: wp.array(dtype=vec_type),
        n_verts: int,
        n_faces: int,
        n_half_edges: int,
        n_threads: int,
    ):
        """Reposition every parent vertex. Requires face and edge points.

        An interior vertex of valence n gets
        sum((4 E_i - F_i + (n - 3) V) / n^2) over its outgoing half-edges,
        which equals (F_avg + 2 R_avg + (n - 3) V) / n.
        """
        h = int(wp.tid())
        while h < n_half_edges:
            v_idx = int(verts[h])
            edge_offset = n_verts + n_faces

            if twins[h] < 0:
                ep = out_points[edge_offset + int(edges[h])]
                w_idx = int(verts[_next(h)])
                wp.atomic_add(out_points, v_idx, (ep + points[v_idx]) * scalar(0.25))
                wp.atomic_add(out_points, w_idx, (ep + points[w_idx]) * scalar(0.25))

            n = _valence(twins, h)
            if n > 0:
                fn = scalar(n)
                scale = scalar(1.0) / (fn * fn)
                v_term = (fn - scalar(3.0)) * points[v_idx]
                acc = vec_type()
                cur = int(h)
                k = int(0)
                while k < n:
                    e = out_points[edge_offset + int(edges[cur])]
                    f = out_points[n_verts + _face(cur)]
                    acc = acc + (scalar(4.0) * e - f + v_term) * scale
                    cur = int(twins[_prev(cur)])
                    k = k + 1
                wp.atomic_add(out_points, v_idx, acc)

            h = h + n_threads

    return face_points_kernel, edge_points_kernel, vertex_points_kernel


# Other floating-point dtypes are computed in float32
_POINT_KERNELS = {
    torch.float32: (wp.vec3f, _make_point_kernels(wp.vec3f, wp.float32)),
    torch.float64: (wp.vec3d, _make_point_kernels(wp.vec3d, wp.float64)),
}


def _grid(n_half_edges: int, grid_size: int | None) -> int:
    if grid_size is None:
        return n_half_edges
    if grid_size < 1:
        raise ValueError(f"grid_size must be a positive integer, got {grid_size=}")
    return int(grid_size)


def valence_warp(twins: torch.Tensor, grid_size: int | None = None) -> torch.Tensor:
    """Representative valence of every half-edge, computed on the device."""
    twins = twins.to(torch.int32).contiguous()
    n_half_edges = twins.shape[0]
    out = torch.empty_like(twins)
    if n_half_edges == 0:
        return out

    n_threads = _grid(n_half_edges, grid_size)

    wp_device, wp_stream = FunctionSpec.warp_launch_context(twins)
    with wp.ScopedStream(wp_stream):
        wp.launch(
            valence_kernel,
            dim=n_threads,
            inputs=[
                wp.from_torch(twins, dtype=wp.int32),
                wp.from_torch(out, dtype=wp.int32),
                n_half_edges,
                n_threads,
            ],
            device=wp_device,
        )
    return out




def refine_level_warp(
    mesh: HalfEdgeMesh, grid_size: int | None = None
) -> HalfEdgeMesh:
    """Compute the next subdivision level of mesh with Warp kernels.

    float32 and float64 coordinates are processed in their own precision.
    Other floating-point dtypes are processed in float32 and cast back.
    """
    out = allocate_next_level(mesh)
    n_half_edges = mesh.n_half_edges
    if n_half_edges == 0:
        return out
    n_threads = _grid(n_half_edges, grid_size)
    n_verts, n_faces, n_edges = mesh.n_verts, mesh.n_faces, mesh.n_edges

    compute_dtype = mesh.points.dtype
    if compute_dtype not in _POINT_KERNELS:
        compute_dtype = torch.float32
    vec_type, (face_kernel, edge_kernel, vertex_kernel) = _POINT_KERNELS[compute_dtype]

    points = mesh.points.detach().to(compute_dtype).contiguous()
    cast_back = out.points.dtype != compute_dtype
    if not cast_back:
        out_points = out.points
    else:
        out_points = torch.zeros(out.points.shape, dtype=compute_dtype, device=points.device)
    verts = mesh.verts.to(torch.int32).contiguous()
    edges = mesh.edges.to(torch.int32).contiguous()
    twins = mesh.twins.to(torch.int32).contiguous()

    wp_points = wp.from_torch(points, dtype=vec_type)
    wp_out_points = wp.from_torch(out_points, dtype=vec_type)
    wp_verts = wp.from_torch(verts, dtype=wp.int32)
    wp_edges = wp.from_torch(edges, dtype=wp.int32)
    wp_twins = wp.from_torch(twins, dtype=wp.int32)

    wp_device, wp_stream = FunctionSpec.warp_launch_context(points)

    # Same stream for all four launches; each pass sees the previous one
    with wp.ScopedStream(wp_stream):
        wp.launch(
            refine_topology_kernel,
            dim=n_threads,
            inputs=[
                wp_verts,
                wp_edges,
                wp_twins,
                wp.from_torch(out.verts, dtype=wp.int32),
                wp.from_torch(out.edges, dtype=wp.int32),
                wp.from_torch(out.twins, dtype=wp.int32),
                n_verts,
                n_faces,
                n_edges,
                n_half_edges,
                n_threads,
            ],
            device=wp_device,
        )
        wp.launch(
            face_kernel,
            dim=n_threads,
            inputs=[wp_points, wp_verts, wp_out_points, n_verts, n_half_edges, n_threads],
            device=wp_device,
        )
        for kernel in (edge_kernel, vertex_kernel):
            wp.launch(
                kernel,
                dim=n_threads,
                inputs=[
                    wp_points,
                    wp_verts,
                    wp_edges,
                    wp_twins,
                    wp_out_points,
                    n_verts,
                    n_faces,
                    n_half_edges,
                    n_threads,
                ],
                device=wp_device,
            )

    if cast_back:
        out.points.copy_(out_points)
    return out
