"""
Buildpack Info
==============
Pydantic model for the ``[buildpack]`` table of ``buildpack.toml``.
"""
import os

import toml
from pydantic import BaseModel

# Repository root: phpweb/models/ → phpweb/ → root
BUILDPACK_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class BuildpackInfo(BaseModel):
    id: str
    name: str
    version: str = "0.0.0"

    def pretty_identity(self) -> str:
        return f"{self.name} {self.version}"


def load_buildpack_info(root: str = BUILDPACK_ROOT) -> BuildpackInfo:
    """Read ``<root>/buildpack.toml``. Missing file or table raises."""
    with open(os.path.join(root, "buildpack.toml"), "r", encoding="utf-8") as f:
        data = toml.load(f)
    return BuildpackInfo.model_validate(data["buildpack"])


def load_include_files(root: str) -> list[str]:
    """Return ``[metadata] include_files`` from ``<root>/buildpack.toml``, or []."""
    path = os.path.join(root, "buildpack.toml")
    if not os.path.isfile(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        data = toml.load(f)
    return list(data.get("metadata", {}).get("include_files", []))
