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

"""Version and availability checks for optional dependencies.

The refinement kernels need only ``torch`` and ``warp``; mesh file I/O and the
command-line driver pull in further packages. This module lets those code
paths fail with an actionable ``ImportError`` instead of an opaque
``ModuleNotFoundError`` deep inside a call stack.
"""

import functools
import re
from importlib import metadata
from typing import Callable

from packaging.version import Version

# Distributions published under a suffixed name (e.g. ``cupy-cuda12x``).
# Prefix matching is restricted to these so that ``numpy`` never resolves to
# ``numpy-stl``.
_VARIANT_BASE_PACKAGES = frozenset({"cupy", "warp"})

_PACKAGE_HINTS: dict[str, str] = {}


def _normalize(name: str) -> str:
    """PEP 503 normalization of a distribution name."""
    return re.sub(r"[-_.]+", "-", name).lower()


@functools.lru_cache(maxsize=None)
def get_installed_version(package: str) -> str | None:
    """Return the installed version of ``package``, or ``None``.

    Tries the name as given, then its PEP 503 normalized spellings, then (for
    packages in ``_VARIANT_BASE_PACKAGES``) distributions named
    ``<package>-<suffix>``.
    """
    candidates = [package, _normalize(package), _normalize(package).replace("-", "_")]
    for candidate in dict.fromkeys(candidates):
        try:
            return metadata.version(candidate)
        except metadata.PackageNotFoundError:
            continue

    base = _normalize(package)
    if base not in _VARIANT_BASE_PACKAGES:
        return None
    for dist in metadata.distributions():
        dist_name = dist.metadata["Name"]
        if dist_name and _normalize(dist_name).startswith(base + "-"):
            return dist.version
    return None


@functools.lru_cache(maxsize=None)
def is_package_available(package: str) -> bool:
    """Whether any version of ``package`` is installed."""
    return get_installed_version(package) is not None


def _format_install_hint(
    package: str,
    group: str | None = None,
    direct_install: str | None = None,
    direct_hint: str | None = None,
    docs_url: str | None = None,
) -> str:
    """Build the human-readable installation hint for ``package``."""
    if group is not None:
        hint = (
            f"'{package}' is an optional dependency. Install it with "
            f"`pip install quadsubdiv[{group}]`."
        )
    elif direct_install is not None:
        hint = f"'{package}' is required. Install it with `pip install {direct_install}`."
    elif direct_hint is not None:
        hint = f"'{package}' is required. {direct_hint}"
    else:
        hint = f"'{package}' is required. Install it with `pip install {package}`."
    if docs_url is not None:
        hint += f" See {docs_url} for details."
    return hint


def register_package_hint(package: str, hint: str) -> None:
    """Register a custom installation hint for ``package``."""
    _PACKAGE_HINTS[package] = hint


def get_package_hint(package: str) -> str:
    """Return the registered installation hint for ``package``, or a generic one."""
    if package in _PACKAGE_HINTS:
        return _PACKAGE_HINTS[package]
    return _format_install_hint(package)


register_package_hint("pyvista", _format_install_hint("pyvista", group="io"))
register_package_hint(
    "warp",
    _format_install_hint(
        "warp",
        direct_install="warp-lang",
        docs_url="https://nvidia.github.io/warp/",
    ),
)


def check_version_spec(
    package: str,
    spec: str = "0.0.0",
    error_msg: str | None = None,
    hard_fail: bool = True,
) -> bool:
    """Check that ``package`` is installed with version ``>= spec``.

    Parameters
    ----------
    package : str
        Distribution name.
    spec : str, optional
        Minimum required version, by default "0.0.0" (any version).
    error_msg : str | None, optional
        Message used instead of the generated one when the check fails.
    hard_fail : bool, optional
        Raise ``ImportError`` on failure when True, return False otherwise.

    Returns
    -------
    bool
        True when the requirement is satisfied.

    Raises
    ------
    ImportError
        If the requirement is not met and ``hard_fail`` is True.
    """
    installed = get_installed_version(package)
    if installed is None:
        if hard_fail:
            raise ImportError(
                error_msg
                or f"Package '{package}' is required but not installed.\n"
                f"{get_package_hint(package)}"
            )
        return False

    if Version(installed) < Version(spec):
        if hard_fail:
            raise ImportError(
                error_msg
                or f"{package} {spec} is required, but found {installed}.\n"
                f"{get_package_hint(package)}"
            )
        return False
    return True


def require_version_spec(package: str, spec: str = "0.0.0") -> Callable:
    """Decorator that checks ``package >= spec`` each time the function is called.

    The check is deferred to call time so that importing a module never fails
    because one of its optional entry points lacks a dependency.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            check_version_spec(package, spec, hard_fail=True)
            return func(*args, **kwargs)

        return wrapper

    return decorator
