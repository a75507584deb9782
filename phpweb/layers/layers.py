"""
Layers
======
Model of the Cloud Native Buildpacks layers directory handed to ``bin/build``.

    <layers>/
        launch.toml            ← process types (Layers.write_application_metadata)
        <name>.toml            ← layer flags + metadata (Layer.contribute)
        <name>/
            env/<VAR>.override ← environment for build and launch
            etc/...            ← files written by the contributor

A layer is owned by exactly one contributor for the duration of a build.
The platform removes and recreates layer directories between builds, so
Layer.contribute always starts from an empty directory.
"""
import logging
import os
import shutil
from typing import Any, Callable, Optional

import toml

from phpweb.models.launch import LaunchMetadata
from phpweb.utils.file_utils import read_file, write_file

logger = logging.getLogger(__name__)

_LAUNCH_TOML = "launch.toml"
_ENV_DIR = "env"
_OVERRIDE_SUFFIX = ".override"


class Layer:
    """
    A single named layer.

    Attributes
    ----------
    name : str
        Layer name (e.g. "php-web").
    root : str
        Absolute path of the layer directory.
    metadata_path : str
        Path of the sibling ``<name>.toml`` file.
    """

    def __init__(self, layers_root: str, name: str) -> None:
        self.name = name
        self.root = os.path.join(layers_root, name)
        self.metadata_path = os.path.join(layers_root, f"{name}.toml")

    def __repr__(self) -> str:
        return f"Layer(name={self.name!r}, root={self.root!r})"

    def contribute(
        self,
        metadata: dict[str, Any],
        contributor: Callable[["Layer"], None],
        launch: bool = False,
        build: bool = False,
        cache: bool = False,
    ) -> None:
        """
        Recreate the layer, run ``contributor`` against it and record its flags.

        The ``<name>.toml`` file is written only after ``contributor`` returns,
        so a failed contribution leaves no layer metadata behind. Files the
        contributor already wrote are left on disk.
        """
        logger.debug("Contributing layer %s", self.name)
        if os.path.exists(self.root):
            shutil.rmtree(self.root)
        os.makedirs(self.root)

        contributor(self)

        content = {
            "launch": launch,
            "build": build,
            "cache": cache,
            "metadata": metadata,
        }
        write_file(self.metadata_path, toml.dumps(content))

    def read_metadata(self) -> Optional[dict[str, Any]]:
        """Return the parsed ``<name>.toml`` or None if never contributed."""
        if not os.path.isfile(self.metadata_path):
            return None
        return toml.loads(read_file(self.metadata_path))

    def override_shared_environment(self, name: str, value: str) -> None:
        """Set ``name`` to ``value`` for both build and launch processes."""
        path = os.path.join(self.root, _ENV_DIR, f"{name}{_OVERRIDE_SUFFIX}")
        write_file(path, value)
        logger.debug("Layer %s: %s=%s", self.name, name, value)

    def shared_environment(self) -> dict[str, str]:
        """Read back every override written with override_shared_environment."""
        env_dir = os.path.join(self.root, _ENV_DIR)
        if not os.path.isdir(env_dir):
            return {}

        env = {}
        for fname in sorted(os.listdir(env_dir)):
            if fname.endswith(_OVERRIDE_SUFFIX):
                env[fname[: -len(_OVERRIDE_SUFFIX)]] = read_file(os.path.join(env_dir, fname))
        return env


class Layers:
    """The layers directory for one buildpack during one build."""

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def layer(self, name: str) -> Layer:
        return Layer(self.root, name)

    @property
    def launch_toml(self) -> str:
        return os.path.join(self.root, _LAUNCH_TOML)

    def write_application_metadata(self, metadata: LaunchMetadata) -> None:
        """Write the process types the platform starts at launch."""
        write_file(self.launch_toml, toml.dumps(metadata.model_dump()))
        if metadata.processes:
            logger.info("    Process types:")
        for process in metadata.processes:
            logger.info("      %s: %s", process.type, process.command)

    def read_application_metadata(self) -> Optional[LaunchMetadata]:
        if not os.path.isfile(self.launch_toml):
            return None
        return LaunchMetadata.model_validate(toml.loads(read_file(self.launch_toml)))
