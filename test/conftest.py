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

import random
from collections import defaultdict

import numpy as np
import pytest
import torch

# Total time per file
file_timings = defaultdict(float)


def pytest_runtest_logreport(report):
    if report.when == "call":
        # report.nodeid format: path::TestClass::test_name
        filename = report.nodeid.split("::")[0]
        file_timings[filename] += report.duration


def pytest_sessionfinish(session, exitstatus):
    print("\n=== Test durations by file ===")
    for filename, duration in sorted(
        file_timings.items(), key=lambda x: x[1], reverse=True
    ):
        print(f"{filename}: {duration:.2f} seconds")


@pytest.fixture(autouse=True, scope="function")
def seed_random_state():
    """Reset all random number generators to a fixed seed before each test."""
    SEED = 95051

    random.seed(SEED)
    np.random.seed(SEED)
    torch.manual_seed(SEED)

    # CUDA seeding (no-op if CUDA unavailable)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(SEED)

    yield
