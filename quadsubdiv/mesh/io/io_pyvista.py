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

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import torch

from quadsubdiv.core.version_check import require_version_spec
from quadsubdiv.mesh.half_edge import HalfEdgeMesh

if TYPE_CHECKING:
    import pyvista


def _quads_from_padded_faces(faces: np.ndarray) -> np.ndarray:
    """Unpack a PyVista padded face array [4, a, b, c, d, 4, ...].

    Raises
    ------
    ValueError
        If any face is not a quadrilateral.
    """
    faces = np.asarray(faces, dtype=np.int64)
    if len(faces) == 0:
        return np.empty((0, 4), dtype=np.int64)

    # Fast path: every face has 4 corners, so the array has stride 5
    if len(faces) % 5 == 0:
        reshaped = faces.reshape(-1, 5)
        if bool((reshaped[:, 0] == 4).all()):
            return reshaped[:, 1:].copy()

    ### Find the offending face for the error message
    sizes = []
    i = 0
    while i < len(faces):
        n_pts = int(faces[i])
        sizes.append(n_pts)
        i += n_pts + 1
    bad = [face_id for face_id, size in enumerate(sizes) if size != 4]
    raise ValueError(
        f"Only quadrilateral faces are supported, but found {len(bad)} "
        f"non-quad faces (first few: {bad[:10]}, with sizes "
        f"{[sizes[j] for j in bad[:10]]})."
    )


@require_version_spec("pyvista")
def from_pyvista(
    pyvista_mesh: "pyvista.PolyData | pyvista.UnstructuredGrid",
    validate: bool = True,
    device: torch.device | str = "cpu",
) -> HalfEdgeMesh:
    """Convert a PyVista quad surface to a :class:`HalfEdgeMesh`.

    Parameters
    ----------
    pyvista_mesh : pv.PolyData or pv.UnstructuredGrid
        Surface made only of quadrilaterals. An UnstructuredGrid must contain
        only QUAD cells.
    validate : bool
        Forwarded to :meth:`HalfEdgeMesh.from_quads`.
    device : str
        Device of the returned mesh.

    Returns
    -------
    HalfEdgeMesh
        Level-0 mesh with float32 coordinates.

    Raises
    ------
    ValueError
        If the surface has non-quad faces, lines or volume cells.
    ImportError
        If pyvista is not installed.
    """
    import importlib

    pv = importlib.import_module("pyvista")

    if isinstance(pyvista_mesh, pv.PolyData):
        n_lines = pyvista_mesh.n_lines
        if n_lines > 0:
            raise ValueError(
                f"Expected a quad surface, but the PolyData has {n_lines=} line cells."
            )
        quads_np = _quads_from_padded_faces(pyvista_mesh.faces)
    elif isinstance(pyvista_mesh, pv.UnstructuredGrid):
        cells_dict = pyvista_mesh.cells_dict
        other_types = [t for t in cells_dict if t != pv.CellType.QUAD]
        if other_types:
            cell_type_names = ", ".join(str(pv.CellType(t)) for t in other_types)
            raise ValueError(
                f"Expected only QUAD cells in the UnstructuredGrid, but got: {cell_type_names}"
            )
        quads_np = np.asarray(
            cells_dict.get(pv.CellType.QUAD, np.empty((0, 4))), dtype=np.int64
        )
    else:
        raise TypeError(
            f"Expected pv.PolyData or pv.UnstructuredGrid, got {type(pyvista_mesh)=}."
        )

    points = torch.from_numpy(np.asarray(pyvista_mesh.points)).float().to(device)
    quads = torch.from_numpy(quads_np).to(device)
    return HalfEdgeMesh.from_quads(points, quads, validate=validate)


@require_version_spec("pyvista")
def to_pyvista(mesh: HalfEdgeMesh) -> "pyvista.PolyData":
    """Convert a :class:`HalfEdgeMesh` to a PyVista quad surface.

    Parameters
    ----------
    mesh : HalfEdgeMesh
        Any subdivision level.

    Returns
    -------
    pv.PolyData
        Surface with one quad cell per face, in face order.
    """
    import importlib

    pv = importlib.import_module("pyvista")

    points, quads = mesh.to_quads()
    points_np = points.detach().cpu().numpy()
    if mesh.n_faces == 0:
        return pv.PolyData(points_np)

    # PyVista padded format: [4, v0, v1, v2, v3, 4, ...]
    quads_np = quads.cpu().numpy()
    faces_array = np.column_stack(
        [np.full(len(quads_np), 4, dtype=np.int64), quads_np]
    ).ravel()
    return pv.PolyData(points_np, faces=faces_array)


@require_version_spec("pyvista")
def read_mesh(
    path: str | Path,
    validate: bool = True,
    device: torch.device | str = "cpu",
) -> HalfEdgeMesh:
    """Read a quad surface from any file format PyVista can read."""
    import importlib

    pv = importlib.import_module("pyvista")

    return from_pyvista(pv.read(str(path)), validate=validate, device=device)


@require_version_spec("pyvista")
def write_mesh(mesh: HalfEdgeMesh, path: str | Path) -> None:
    """Write mesh to path; the format follows the file extension."""
    to_pyvista(mesh).save(str(path))
