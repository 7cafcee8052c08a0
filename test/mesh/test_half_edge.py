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

"""Tests for the half-edge buffer, its index algebra and face-vertex conversion."""

import pytest
import torch

from quadsubdiv.mesh.half_edge import (
    BOUNDARY,
    HalfEdgeMesh,
    allocate_next_level,
    face_index,
    next_half_edge,
    prev_half_edge,
)


class TestIndexAlgebra:
    def test_face_next_prev(self):
        h = torch.arange(8)
        assert face_index(h).tolist() == [0, 0, 0, 0, 1, 1, 1, 1]
        assert next_half_edge(h).tolist() == [1, 2, 3, 0, 5, 6, 7, 4]
        assert prev_half_edge(h).tolist() == [3, 0, 1, 2, 7, 4, 5, 6]

    def test_next_and_prev_are_inverse(self):
        h = torch.arange(400)
        assert torch.equal(next_half_edge(prev_half_edge(h)), h)
        assert torch.equal(prev_half_edge(next_half_edge(h)), h)
        assert torch.equal(face_index(next_half_edge(h)), face_index(h))


class TestFromQuads:
    def test_unit_quad(self, unit_quad):
        assert unit_quad.n_verts == 4
        assert unit_quad.n_faces == 1
        assert unit_quad.n_edges == 4
        assert unit_quad.n_half_edges == 4
        assert unit_quad.n_spatial_dims == 3
        assert unit_quad.verts.tolist() == [0, 1, 2, 3]
        # Edge ids follow the sorted (min, max) vertex pairs
        assert unit_quad.edges.tolist() == [0, 2, 3, 1]
        assert unit_quad.twins.tolist() == [BOUNDARY] * 4
        assert unit_quad.boundary_mask.all()

    def test_two_quads_share_one_edge(self, two_quads):
        assert two_quads.n_edges == 7
        assert two_quads.n_half_edges == 8
        # Half-edge 1 runs 1 -> 4, half-edge 7 runs 4 -> 1
        assert two_quads.twins[1].item() == 7
        assert two_quads.twins[7].item() == 1
        assert two_quads.edges[1] == two_quads.edges[7]
        assert int(two_quads.boundary_mask.sum()) == 6

    def test_dtypes(self, two_quads):
        for name in ("verts", "edges", "twins"):
            assert getattr(two_quads, name).dtype == torch.int32
        assert two_quads.points.dtype == torch.float32

    def test_closed_surface_twins(self, cube):
        h = torch.arange(cube.n_half_edges, device=cube.twins.device)
        twins = cube.twins.long()

        assert not cube.boundary_mask.any()
        assert torch.equal(twins[twins], h)
        # A twin starts where its partner ends
        assert torch.equal(cube.verts[twins], cube.verts[next_half_edge(h)])
        assert torch.equal(cube.edges[twins], cube.edges)
        assert cube.n_edges == 12

    def test_every_edge_has_one_or_two_half_edges(self, integer_grid):
        mesh = integer_grid(3, 2)
        counts = torch.bincount(mesh.edges.long(), minlength=mesh.n_edges)

        assert mesh.n_edges == 3 * 3 + 4 * 2
        assert counts.min() >= 1
        assert counts.max() <= 2
        assert int((counts == 1).sum()) == int(mesh.boundary_mask.sum())

    def test_2d_points_are_padded(self, device):
        points = torch.tensor([[0.0, 0.0], [1.0, 0.0], [1.0, 1.0], [0.0, 1.0]], device=device)
        mesh = HalfEdgeMesh.from_quads(points, torch.tensor([[0, 1, 2, 3]], device=device))

        assert mesh.points.shape == (4, 3)
        assert torch.equal(mesh.points[:, 2], torch.zeros(4, device=device))

    def test_to_quads_round_trip(self, two_quads):
        points, quads = two_quads.to_quads()

        assert quads.dtype == torch.int64
        assert quads.tolist() == [[0, 1, 4, 3], [1, 2, 5, 4]]
        assert torch.equal(points, two_quads.points)

    def test_empty(self, device):
        mesh = HalfEdgeMesh.from_quads(
            torch.empty((0, 3), device=device),
            torch.empty((0, 4), dtype=torch.long, device=device),
        )

        assert mesh.n_faces == 0
        assert mesh.n_edges == 0
        assert mesh.n_half_edges == 0

    def test_invalid_input_is_rejected(self, device):
        points = torch.rand(4, 3, device=device)
        quads = torch.tensor([[0, 1, 2, 7]], device=device)

        with pytest.raises(ValueError, match="out-of-bounds"):
            HalfEdgeMesh.from_quads(points, quads)

    def test_triangles_are_rejected(self, device):
        points = torch.rand(3, 3, device=device)
        with pytest.raises(ValueError, match="quadrilateral"):
            HalfEdgeMesh.from_quads(points, torch.tensor([[0, 1, 2]], device=device))

    def test_bad_points_shape(self, device):
        points = torch.rand(4, 4, device=device)
        with pytest.raises(ValueError, match="points"):
            HalfEdgeMesh.from_quads(points, torch.tensor([[0, 1, 2, 3]], device=device))

    def test_skip_validation(self, device):
        points = torch.rand(5, 3, device=device)
        quads = torch.tensor([[0, 1, 2, 3]], device=device)

        with pytest.raises(ValueError, match="not used by any face"):
            HalfEdgeMesh.from_quads(points, quads)

        mesh = HalfEdgeMesh.from_quads(points, quads, validate=False)
        assert mesh.n_verts == 5


class TestConstructor:
    def _arrays(self, n_half_edges=4):
        topology = torch.zeros(n_half_edges, dtype=torch.int32)
        return dict(
            points=torch.zeros(4, 3),
            verts=topology,
            edges=topology.clone(),
            twins=topology.clone(),
            edge_count=4,
        )

    def test_int_edge_count_becomes_tensor(self):
        mesh = HalfEdgeMesh(**self._arrays())
        assert isinstance(mesh.edge_count, torch.Tensor)
        assert mesh.n_edges == 4

    def test_points_must_be_3d(self):
        arrays = self._arrays()
        arrays["points"] = torch.zeros(4, 2)
        with pytest.raises(ValueError, match="n_verts, 3"):
            HalfEdgeMesh(**arrays)

    def test_float_topology_raises(self):
        arrays = self._arrays()
        arrays["twins"] = torch.zeros(4)
        with pytest.raises(TypeError, match="twins"):
            HalfEdgeMesh(**arrays)

    def test_mismatched_lengths_raise(self):
        arrays = self._arrays()
        arrays["edges"] = torch.zeros(8, dtype=torch.int32)
        with pytest.raises(ValueError, match="edges"):
            HalfEdgeMesh(**arrays)

    def test_half_edges_multiple_of_four(self):
        with pytest.raises(ValueError, match="4 half-edges"):
            HalfEdgeMesh(**self._arrays(n_half_edges=6))

    def test_repr(self, two_quads):
        text = repr(two_quads)
        assert text.startswith("HalfEdgeMesh(")
        assert "n_faces=2" in text
        assert "n_edges=7" in text
        assert "n_boundary_half_edges=6" in text


class TestAllocateNextLevel:
    def test_counts(self, two_quads):
        out = allocate_next_level(two_quads)

        assert out.n_verts == 6 + 2 + 7
        assert out.n_faces == 8
        assert out.n_half_edges == 32
        assert out.n_edges == 2 * 7 + 8
        assert out.points.device == two_quads.points.device
        assert torch.equal(out.points, torch.zeros_like(out.points))
