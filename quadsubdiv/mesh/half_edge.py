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

"""Index-based half-edge representation of a quadrilateral surface mesh."""

from typing import TYPE_CHECKING, Any, Self

import torch
import torch.nn.functional as F
from tensordict import tensorclass

from quadsubdiv.mesh.validation import validate_quad_mesh

BOUNDARY = -1
"""Twin sentinel of a half-edge that lies on the mesh boundary."""


### Quad index algebra
# The four half-edges of face f occupy indices 4f .. 4f+3, in cycle order.


def face_index(h: torch.Tensor) -> torch.Tensor:
    """Face owning each half-edge."""
    return torch.div(h, 4, rounding_mode="floor")


def next_half_edge(h: torch.Tensor) -> torch.Tensor:
    """Successor of each half-edge within its face cycle."""
    return h - h % 4 + (h + 1) % 4


def prev_half_edge(h: torch.Tensor) -> torch.Tensor:
    """Predecessor of each half-edge within its face cycle."""
    return h - h % 4 + (h + 3) % 4


@tensorclass(tensor_only=True)
class HalfEdgeMesh:
    r"""One subdivision level of a quad mesh in flat half-edge form.

    The topology is stored as dense integer arrays indexed by half-edge
    ``h``, never as object references, so one level can be read by any number
    of GPU threads at once. Faces are implicit: face ``f`` owns half-edges
    ``4f, 4f+1, 4f+2, 4f+3`` in counter-clockwise order.

    Parameters
    ----------
    points : torch.Tensor
        Vertex coordinates, shape :math:`(N_v, 3)`, floating point.
    verts : torch.Tensor
        Origin vertex of each half-edge, shape :math:`(N_h,)`, int32.
    edges : torch.Tensor
        Undirected edge id of each half-edge, shape :math:`(N_h,)`, int32.
    twins : torch.Tensor
        Opposite half-edge, or ``-1`` on the boundary, shape :math:`(N_h,)`,
        int32.
    edge_count : torch.Tensor or int
        Number of undirected edges :math:`N_e`.

    Raises
    ------
    ValueError
        If the arrays disagree in length, the half-edge count is not a
        multiple of four, or ``points`` is not :math:`(N_v, 3)`.
    TypeError
        If any topology array has a floating-point dtype.

    Examples
    --------
    >>> import torch
    >>> points = torch.tensor(
    ...     [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 1.0, 0.0]]
    ... )
    >>> mesh = HalfEdgeMesh.from_quads(points, torch.tensor([[0, 1, 2, 3]]))
    >>> mesh.n_verts, mesh.n_faces, mesh.n_edges, mesh.n_half_edges
    (4, 1, 4, 4)
    """

    points: torch.Tensor  # shape: (n_verts, 3)
    verts: torch.Tensor  # shape: (n_half_edges,)
    edges: torch.Tensor  # shape: (n_half_edges,)
    twins: torch.Tensor  # shape: (n_half_edges,)
    edge_count: torch.Tensor  # shape: ()

    def __post_init__(self) -> None:
        if not isinstance(self.edge_count, torch.Tensor):
            self.edge_count = torch.tensor(self.edge_count, dtype=torch.int64)

        if not torch.compiler.is_compiling():
            if self.points.ndim != 2 or self.points.shape[1] != 3:
                raise ValueError(
                    f"`points` must have shape (n_verts, 3), but got {self.points.shape=}."
                )
            for name in ("verts", "edges", "twins"):
                array = getattr(self, name)
                if torch.is_floating_point(array):
                    raise TypeError(
                        f"`{name}` must have an int-like dtype, but got {array.dtype=}."
                    )
                if array.shape != self.verts.shape or array.ndim != 1:
                    raise ValueError(
                        f"`{name}` must have shape (n_half_edges,), but got "
                        f"{array.shape=} and {self.verts.shape=}."
                    )
            if self.verts.shape[0] % 4 != 0:
                raise ValueError(
                    f"Every face must own exactly 4 half-edges, but got "
                    f"{self.verts.shape[0]} half-edges."
                )

    if TYPE_CHECKING:

        def to(self, *args: Any, **kwargs: Any) -> Self:
            """Move all buffers of this level to another device or dtype."""
            ...

    @property
    def n_verts(self) -> int:
        return self.points.shape[0]

    @property
    def n_spatial_dims(self) -> int:
        return self.points.shape[-1]

    @property
    def n_half_edges(self) -> int:
        return self.verts.shape[0]

    @property
    def n_faces(self) -> int:
        return self.n_half_edges // 4

    @property
    def n_edges(self) -> int:
        return int(self.edge_count.item())

    @property
    def boundary_mask(self) -> torch.Tensor:
        """Boolean mask of half-edges without a twin."""
        return self.twins < 0

    @classmethod
    def from_quads(
        cls,
        points: torch.Tensor,
        quads: torch.Tensor,
        validate: bool = True,
    ) -> "HalfEdgeMesh":
        """Build the half-edge form of a face-vertex quad mesh.

        Half-edge ``4f + k`` runs from ``quads[f, k]`` to ``quads[f, k + 1]``.
        Edge ids are assigned in ascending order of the canonical
        ``(min_vertex, max_vertex)`` pair, so the result is independent of the
        device it is computed on.

        Parameters
        ----------
        points : torch.Tensor
            Vertex coordinates, shape (n_verts, 2) or (n_verts, 3). 2D points
            are embedded in the ``z = 0`` plane.
        quads : torch.Tensor
            Counter-clockwise vertex indices of each face, shape (n_faces, 4).
        validate : bool, optional
            Reject out-of-bounds, degenerate, non-manifold and inconsistently
            oriented input, by default True.

        Returns
        -------
        HalfEdgeMesh
            The level-0 mesh, on the device of ``points``.

        Raises
        ------
        ValueError
            If the faces are not quads, or if validation fails.
        """
        if quads.ndim != 2 or quads.shape[1] != 4:
            raise ValueError(
                f"Only quadrilateral faces are supported; `quads` must have shape "
                f"(n_faces, 4), but got {quads.shape=}."
            )
        if points.ndim != 2 or points.shape[1] not in (2, 3):
            raise ValueError(
                f"`points` must have shape (n_verts, 2) or (n_verts, 3), but got {points.shape=}."
            )
        if validate:
            validate_quad_mesh(points, quads, raise_on_error=True)

        device = points.device
        if points.shape[1] == 2:
            points = F.pad(points, (0, 1))

        n_verts = points.shape[0]
        verts = quads.to(device=device, dtype=torch.int64).reshape(-1)
        n_half_edges = verts.shape[0]

        if n_half_edges == 0:
            empty = torch.empty(0, dtype=torch.int32, device=device)
            return cls(
                points=points,
                verts=empty,
                edges=empty.clone(),
                twins=empty.clone(),
                edge_count=0,
            )

        half_edges = torch.arange(n_half_edges, device=device)
        dest = verts[next_half_edge(half_edges)]

        ### Undirected edge ids from the canonical (min, max) hash
        lo = torch.minimum(verts, dest)
        hi = torch.maximum(verts, dest)
        unique_hash, edges = torch.unique(lo * n_verts + hi, return_inverse=True)

        ### Twins: the half-edge running dest -> origin, if any
        directed_hash = verts * n_verts + dest
        reverse_hash = dest * n_verts + verts
        sorted_hash, order = torch.sort(directed_hash)
        positions = torch.searchsorted(sorted_hash, reverse_hash)
        positions = positions.clamp(max=n_half_edges - 1)
        found = sorted_hash[positions] == reverse_hash
        twins = torch.where(found, order[positions], BOUNDARY)

        return cls(
            points=points,
            verts=verts.to(torch.int32),
            edges=edges.to(torch.int32),
            twins=twins.to(torch.int32),
            edge_count=len(unique_hash),
        )

    def to_quads(self) -> tuple[torch.Tensor, torch.Tensor]:
        """Return the face-vertex form ``(points, quads)`` of this level."""
        return self.points, self.verts.view(-1, 4).to(torch.int64)


### Override the tensorclass __repr__ with a summary of the counts
# Must be done after class definition because @tensorclass overrides __repr__
def _half_edge_mesh_repr(self) -> str:
    return (
        f"HalfEdgeMesh(n_verts={self.n_verts}, n_faces={self.n_faces}, "
        f"n_edges={self.n_edges}, n_half_edges={self.n_half_edges}, "
        f"n_boundary_half_edges={int(self.boundary_mask.sum())}, "
        f"device={self.points.device})"
    )


HalfEdgeMesh.__repr__ = _half_edge_mesh_repr  # type: ignore


def allocate_next_level(mesh: HalfEdgeMesh) -> HalfEdgeMesh:
    """Allocate the buffers of the level below ``mesh``.

    Counts follow from the parent level alone:
    ``n_verts' = vd + fd + ed``, ``n_half_edges' = 4 hd`` and
    ``n_edges' = 2 ed + hd``. Coordinates are zero-filled because the point
    passes accumulate into them; the topology arrays are fully overwritten by
    the refinement pass and are left uninitialised.
    """
    device = mesh.points.device
    n_edges = mesh.n_edges
    n_points = mesh.n_verts + mesh.n_faces + n_edges
    n_half_edges = 4 * mesh.n_half_edges
    return HalfEdgeMesh(
        points=torch.zeros(
            (n_points, 3), dtype=mesh.points.dtype, device=device
        ),
        verts=torch.empty(n_half_edges, dtype=torch.int32, device=device),
        edges=torch.empty(n_half_edges, dtype=torch.int32, device=device),
        twins=torch.empty(n_half_edges, dtype=torch.int32, device=device),
        edge_count=2 * n_edges + mesh.n_half_edges,
    )
