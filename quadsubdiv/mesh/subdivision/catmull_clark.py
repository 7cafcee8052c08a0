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

"""Level pipeline and level driver for Catmull-Clark subdivision."""

import logging
from typing import Iterator, Literal

import torch

from quadsubdiv.core.function_spec import FunctionSpec
from quadsubdiv.mesh.half_edge import HalfEdgeMesh
from quadsubdiv.mesh.subdivision._torch_impl import refine_level_torch
from quadsubdiv.mesh.subdivision._torch_impl import valence as valence_torch
from quadsubdiv.mesh.subdivision._warp_impl import refine_level_warp, valence_warp

logger = logging.getLogger(__name__)


def _benchmark_meshes(device: torch.device | str) -> Iterator[HalfEdgeMesh]:
    from quadsubdiv.mesh.primitives.planar import unit_square
    from quadsubdiv.mesh.primitives.surfaces import cube_surface, torus

    yield unit_square.load(n_cells=8, device=device)
    yield cube_surface.load(device=device)
    yield torus.load(n_major=24, n_minor=12, device=device)


class Valence(FunctionSpec):
    """
    Representative valence of the origin vertex of every half-edge.

    The one-ring of verts[h] is walked through twin(prev(h)). Every
    half-edge leaving a boundary vertex gets -1. For an interior vertex
    the outgoing half-edge with the smallest index gets the valence n
    and the others get 0, so each interior vertex has exactly one
    representative.

    Parameters
    ----------
    twins : torch.Tensor
        Twin array of a :class:`HalfEdgeMesh`, shape (n_half_edges,).
    implementation : {"warp", "torch"} or None
        Backend to use. When None, Warp is preferred.

    Returns
    -------
    torch.Tensor
        int32 tensor of shape (n_half_edges,).
    """

    @FunctionSpec.register(name="warp", required_imports=("warp-lang>=1.5.0",), rank=0)
    def warp_forward(twins: torch.Tensor, grid_size: int | None = None) -> torch.Tensor:
        return valence_warp(twins, grid_size=grid_size)

    @FunctionSpec.register(name="torch", rank=1, baseline=True)
    def torch_forward(twins: torch.Tensor, grid_size: int | None = None) -> torch.Tensor:
        return valence_torch(twins)

    @classmethod
    def make_inputs(cls, device: torch.device | str = "cpu"):
        for mesh in _benchmark_meshes(device):
            yield (mesh.twins,)

    @classmethod
    def compare(cls, output: torch.Tensor, reference: torch.Tensor) -> None:
        torch.testing.assert_close(output, reference, rtol=0, atol=0)


class RefineLevel(FunctionSpec):
    """
    Compute one Catmull-Clark subdivision level of a half-edge quad mesh.

    Every parent face is split into four child quads. The new level holds
    the parent vertices (repositioned), one face point per parent face and
    one edge point per parent edge, in that order. Four passes run in
    sequence: topology refinement, face points, edge points, vertex points.

    Parameters
    ----------
    mesh : HalfEdgeMesh
        The parent level. Must be a manifold, consistently oriented quad
        mesh; the passes perform no checks.
    grid_size : int or None
        Number of threads launched by the Warp backend. Kernels loop over
        half-edges with a grid stride, so any positive value gives the same
        result. None launches one thread per half-edge. Ignored by the
        torch backend.
    implementation : {"warp", "torch"} or None
        Backend to use. When None, Warp is preferred and torch is used
        when Warp is unavailable.

    Returns
    -------
    HalfEdgeMesh
        The child level with 4 * n_faces faces.
    """

    @FunctionSpec.register(name="warp", required_imports=("warp-lang>=1.5.0",), rank=0)
    def warp_forward(mesh: HalfEdgeMesh, grid_size: int | None = None) -> HalfEdgeMesh:
        return refine_level_warp(mesh, grid_size=grid_size)

    @FunctionSpec.register(name="torch", rank=1, baseline=True)
    def torch_forward(mesh: HalfEdgeMesh, grid_size: int | None = None) -> HalfEdgeMesh:
        return refine_level_torch(mesh)

    @classmethod
    def make_inputs(cls, device: torch.device | str = "cpu"):
        for mesh in _benchmark_meshes(device):
            yield (mesh,)

    @classmethod
    def compare(cls, output: HalfEdgeMesh, reference: HalfEdgeMesh) -> None:
        for name in ("verts", "edges", "twins"):
            torch.testing.assert_close(
                getattr(output, name).to(torch.int64),
                getattr(reference, name).to(torch.int64),
                rtol=0,
                atol=0,
            )
        torch.testing.assert_close(
            output.edge_count.to(torch.int64),
            reference.edge_count.to(torch.int64),
            rtol=0,
            atol=0,
        )
        torch.testing.assert_close(output.points, reference.points, rtol=1e-5, atol=1e-5)


valence = Valence.make_function("valence")
refine_level = RefineLevel.make_function("refine_level")


def subdivide_catmull_clark(
    mesh: HalfEdgeMesh,
    levels: int = 1,
    implementation: Literal["warp", "torch"] | None = None,
    grid_size: int | None = None,
) -> HalfEdgeMesh:
    """Apply levels rounds of Catmull-Clark subdivision.

    Each round allocates the next level, runs the four refinement passes on
    it and drops the parent. Face counts grow by a factor of four per level.

    Parameters
    ----------
    mesh : HalfEdgeMesh
        Level-0 quad mesh.
    levels : int, optional
        Number of subdivision levels, by default 1. 0 returns mesh.
    implementation : {"warp", "torch"} or None, optional
        Backend forwarded to :func:`refine_level`.
    grid_size : int or None, optional
        Thread count forwarded to the Warp backend.

    Returns
    -------
    HalfEdgeMesh
        The finest level.

    Raises
    ------
    ValueError
        If levels is negative.

    Examples
    --------
    >>> from quadsubdiv.mesh.primitives.surfaces import cube_surface
    >>> cube = cube_surface.load()
    >>> refined = subdivide_catmull_clark(cube, levels=2, implementation="torch")
    >>> refined.n_faces, refined.n_verts
    (96, 98)
    """
    if levels < 0:
        raise ValueError(f"levels must be non-negative, got {levels=}")

    current = mesh
    for level in range(1, levels + 1):
        if current.n_half_edges == 0:
            logger.debug("Mesh has no faces; stopping before level %d", level)
            break
        current = refine_level(
            current, implementation=implementation, grid_size=grid_size
        )
        logger.debug(
            "Level %d: %d verts, %d faces, %d edges",
            level,
            current.n_verts,
            current.n_faces,
            current.n_edges,
        )
    return current


__all__ = [
    "RefineLevel",
    "Valence",
    "refine_level",
    "subdivide_catmull_clark",
    "valence",
]
