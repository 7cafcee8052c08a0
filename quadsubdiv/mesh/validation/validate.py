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

"""Validation of face-vertex quad meshes before half-edge construction.

The refinement kernels perform no bounds checks: an out-of-range index or a
non-manifold edge is undefined behaviour on the device. Meshes are therefore
checked once here, when they enter the half-edge representation.
"""

from collections.abc import Mapping

import torch


def _edge_pairs(quads: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
    """Origin and destination vertex of every half-edge, in half-edge order."""
    origin = quads.reshape(-1)
    dest = quads.roll(shifts=-1, dims=1).reshape(-1)
    return origin, dest


def validate_quad_mesh(
    points: torch.Tensor,
    quads: torch.Tensor,
    check_degenerate_faces: bool = True,
    check_manifoldness: bool = True,
    check_orientation: bool = True,
    check_unreferenced_vertices: bool = True,
    raise_on_error: bool = False,
) -> Mapping[str, bool | int | torch.Tensor]:
    """Check that a quad mesh is a valid input for subdivision.

    Parameters
    ----------
    points : torch.Tensor
        Vertex coordinates, shape (n_verts, n_spatial_dims).
    quads : torch.Tensor
        Vertex indices of each face, shape (n_faces, 4).
    check_degenerate_faces : bool
        Check for faces that repeat a vertex.
    check_manifoldness : bool
        Check that every undirected edge is shared by at most two faces.
    check_orientation : bool
        Check that no directed edge occurs twice, i.e. that neighbouring faces
        are consistently oriented.
    check_unreferenced_vertices : bool
        Check that every vertex belongs to at least one face. Unreferenced
        vertices receive no contribution from the vertex pass.
    raise_on_error : bool
        If True, raise ValueError on the first failed check. If False, return
        the full report.

    Returns
    -------
    Mapping[str, bool | int | torch.Tensor]
        Dictionary with validation results:
            - "valid": bool, True if all enabled checks passed
            - "n_out_of_bounds_faces": int
            - "out_of_bounds_face_indices": Tensor (if any found)
            - "n_degenerate_faces": int (if check enabled)
            - "degenerate_face_indices": Tensor (if any found)
            - "n_non_manifold_edges": int (if check enabled)
            - "non_manifold_edges": Tensor of (v0, v1) pairs (if any found)
            - "n_inconsistent_edges": int (if check enabled)
            - "inconsistent_edges": Tensor of (v0, v1) pairs (if any found)
            - "n_unreferenced_vertices": int (if check enabled)
            - "unreferenced_vertex_indices": Tensor (if any found)

    Raises
    ------
    ValueError
        If ``quads`` is not (n_faces, 4), or if raise_on_error=True and a
        check fails.

    Examples
    --------
    >>> import torch
    >>> points = torch.rand(6, 3)
    >>> quads = torch.tensor([[0, 1, 4, 3], [1, 2, 5, 4]])
    >>> validate_quad_mesh(points, quads)["valid"]
    True
    """
    if quads.ndim != 2 or quads.shape[1] != 4:
        raise ValueError(
            f"Only quadrilateral faces are supported; `quads` must have shape "
            f"(n_faces, 4), but got {quads.shape=}."
        )

    n_verts = points.shape[0]
    quads = quads.to(device=points.device, dtype=torch.int64)
    results: dict[str, bool | int | torch.Tensor] = {"valid": True}

    def fail(message: str) -> None:
        results["valid"] = False
        if raise_on_error:
            raise ValueError(message)

    ### Out-of-bounds indices first; nothing else is meaningful without them
    out_of_bounds = ((quads < 0) | (quads >= n_verts)).any(dim=1)
    n_out_of_bounds = int(out_of_bounds.sum())
    results["n_out_of_bounds_faces"] = n_out_of_bounds
    if n_out_of_bounds > 0:
        results["out_of_bounds_face_indices"] = torch.where(out_of_bounds)[0]
        fail(
            f"Found {n_out_of_bounds} faces with out-of-bounds indices.\n"
            f"Vertex indices must be in range [0, {n_verts}).\n"
            f"Problem faces: {results['out_of_bounds_face_indices'].tolist()[:10]}"
        )
        return results

    if check_degenerate_faces:
        sorted_quads, _ = torch.sort(quads, dim=1)
        degenerate = (sorted_quads[:, 1:] == sorted_quads[:, :-1]).any(dim=1)
        n_degenerate = int(degenerate.sum())
        results["n_degenerate_faces"] = n_degenerate
        if n_degenerate > 0:
            results["degenerate_face_indices"] = torch.where(degenerate)[0]
            fail(
                f"Found {n_degenerate} faces that repeat a vertex.\n"
                f"Problem faces: {results['degenerate_face_indices'].tolist()[:10]}"
            )

    origin, dest = _edge_pairs(quads)

    if check_manifoldness:
        lo = torch.minimum(origin, dest)
        hi = torch.maximum(origin, dest)
        unique_hash, counts = torch.unique(lo * n_verts + hi, return_counts=True)
        bad_hash = unique_hash[counts > 2]
        results["n_non_manifold_edges"] = len(bad_hash)
        if len(bad_hash) > 0:
            results["non_manifold_edges"] = torch.stack(
                [bad_hash // n_verts, bad_hash % n_verts], dim=1
            )
            fail(
                f"Found {len(bad_hash)} edges shared by more than two faces.\n"
                f"Problem edges: {results['non_manifold_edges'].tolist()[:10]}"
            )

    if check_orientation:
        unique_hash, counts = torch.unique(origin * n_verts + dest, return_counts=True)
        bad_hash = unique_hash[counts > 1]
        results["n_inconsistent_edges"] = len(bad_hash)
        if len(bad_hash) > 0:
            results["inconsistent_edges"] = torch.stack(
                [bad_hash // n_verts, bad_hash % n_verts], dim=1
            )
            fail(
                f"Found {len(bad_hash)} directed edges used by two faces; "
                f"adjacent faces must have opposite winding along shared edges.\n"
                f"Problem edges: {results['inconsistent_edges'].tolist()[:10]}"
            )

    if check_unreferenced_vertices:
        usage = torch.bincount(origin, minlength=n_verts)
        unreferenced = usage == 0
        n_unreferenced = int(unreferenced.sum())
        results["n_unreferenced_vertices"] = n_unreferenced
        if n_unreferenced > 0:
            results["unreferenced_vertex_indices"] = torch.where(unreferenced)[0]
            fail(
                f"Found {n_unreferenced} vertices not used by any face.\n"
                f"Problem vertices: {results['unreferenced_vertex_indices'].tolist()[:10]}"
            )

    return results
