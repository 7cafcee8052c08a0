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

"""Refine a quad mesh with Catmull-Clark subdivision and write the result."""

import importlib
import logging

import hydra
import torch
from omegaconf import DictConfig, OmegaConf

from quadsubdiv.mesh import HalfEdgeMesh, subdivide_catmull_clark

from config import PRIMITIVE_PREFIX, SubdivisionConfig

logger = logging.getLogger(__name__)


def load_input(cfg: SubdivisionConfig) -> HalfEdgeMesh:
    """Build a primitive or read a mesh file, on the configured device."""
    if cfg.input.startswith(PRIMITIVE_PREFIX):
        name = cfg.input[len(PRIMITIVE_PREFIX) :]
        package = "planar" if name == "unit_square" else "surfaces"
        module = importlib.import_module(f"quadsubdiv.mesh.primitives.{package}.{name}")
        return module.load(device=cfg.device)

    from quadsubdiv.mesh.io import read_mesh

    return read_mesh(cfg.input, device=cfg.device)


def run(cfg: DictConfig) -> HalfEdgeMesh:
    """Validate cfg, refine the input mesh and optionally write it."""
    cfg_dict = OmegaConf.to_container(cfg, resolve=True)
    config = SubdivisionConfig(**cfg_dict)  # validates config, including types

    if config.device.startswith("cuda") and not torch.cuda.is_available():
        raise RuntimeError(f"device={config.device!r} requested but CUDA is not available")

    mesh = load_input(config)
    logger.info("Loaded %s", mesh)

    refined = subdivide_catmull_clark(
        mesh,
        levels=config.levels,
        implementation=config.implementation,
        grid_size=config.grid_size,
    )
    logger.info("Refined %d levels: %s", config.levels, refined)

    if config.output is not None:
        from quadsubdiv.mesh.io import write_mesh

        write_mesh(refined, config.output)
        logger.info("Wrote %s", config.output)
    return refined


@hydra.main(version_base=None, config_path="conf", config_name="config")
def main(cfg: DictConfig) -> None:
    """Catmull-Clark subdivision of a quad mesh"""
    run(cfg)


if __name__ == "__main__":
    main()
