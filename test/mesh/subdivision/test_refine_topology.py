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

"""Topology of refined levels: child rules, twin closure and counts."""

import pytest
import torch

from quadsubdiv.mesh.half_edge import next_half_edge
from quadsubdiv.mesh.primitives.surfaces import torus
from quadsubdiv.mesh.subdivision import refine_level, subdivide_catmull_clark
from quadsubdiv.mesh.validation import validate_quad_mesh


def assert_consistent_topology(mesh):
    """Twin symmetry, matching endpoints and one or two users per edge id."""
    h = torch.arange(mesh.n_half_edges, device=mesh.twins.device)
    twins = mesh.twins.long()
    interior = twins >= 0

    assert torch.equal(twins[twins[interior]], h[interior])
    assert torch.equal(
        mesh.verts[twins[interior]], mesh.verts[next_half_edge(h[interior])]
    )
    assert torch.equal(mesh.edges[twins[interior]], mesh.edges[interior])

    counts = torch.bincount(mesh.edges.long(), minlength=mesh.n_edges)
    assert counts.shape[0] == mesh.n_edges
    assert counts.min() >= 1
    assert counts.max() <= 2
    assert int((counts == 1).sum()) == int((~interior).sum())

    points, quads = mesh.to_quads()
    assert validate_quad_mesh(points, quads)["valid"]


class TestUnitQuadChildren:
    def test_child_arrays(self, unit_quad, backend):
        out = refine_level(unit_quad, implementation=backend)

        # Edge ids of the unit quad are [0, 2, 3, 1]; face point 4, edge points 5..8
        assert out.verts[:4].tolist() == [0, 5, 4, 6]
        assert out.verts[4:8].tolist() == [1, 7, 4, 5]
        assert out.twins[:4].tolist() == [-1, 6, 13, -1]
        assert out.edges[:4].tolist() == [1, 8, 11, 2]

    def test_spokes_are_interior(self, unit_quad, backend):
        out = refine_level(unit_quad, implementation=backend)
        twins = out.twins.view(-1, 4)

        assert (twins[:, 1:3] >= 0).all()
        assert (twins[:, 0] < 0).all()
        assert (twins[:, 3] < 0).all()


class TestCounts:
    @pytest.mark.parametrize("levels", [1, 2, 3])
    def test_cube_counts(self, cube, backend, levels):
        out = subdivide_catmull_clark(cube, levels=levels, implementation=backend)

        assert out.n_faces == 6 * 4**levels
        assert out.n_half_edges == 4 * out.n_faces
        # Closed genus-0 surface
        assert out.n_verts - out.n_edges + out.n_faces == 2

    def test_counts_from_parent(self, two_quads, backend):
        out = refine_level(two_quads, implementation=backend)

        assert out.n_verts == two_quads.n_verts + two_quads.n_faces + two_quads.n_edges
        assert out.n_faces == 4 * two_quads.n_faces
        assert out.n_edges == 2 * two_quads.n_edges + two_quads.n_half_edges
        assert out.n_half_edges == 4 * two_quads.n_half_edges

    def test_torus_euler_characteristic(self, device, backend):
        mesh = torus.load(n_major=6, n_minor=4, device=device)
        out = subdivide_catmull_clark(mesh, levels=2, implementation=backend)

        assert out.n_verts - out.n_edges + out.n_faces == 0


class TestTwinClosure:
    @pytest.mark.parametrize("levels", [1, 2])
    def test_open_grid(self, integer_grid, backend, levels):
        mesh = integer_grid(3, 2)
        assert_consistent_topology(mesh)
        assert_consistent_topology(
            subdivide_catmull_clark(mesh, levels=levels, implementation=backend)
        )

    @pytest.mark.parametrize("levels", [1, 2])
    def test_closed_cube(self, cube, backend, levels):
        out = subdivide_catmull_clark(cube, levels=levels, implementation=backend)

        assert_consistent_topology(out)
        assert not out.boundary_mask.any()

    def test_boundary_half_edges_quadruple_into_two(self, integer_grid, backend):
        mesh = integer_grid(2, 2)
        out = refine_level(mesh, implementation=backend)

        assert int(out.boundary_mask.sum()) == 2 * int(mesh.boundary_mask.sum())
