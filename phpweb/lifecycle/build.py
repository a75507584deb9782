"""
Build Phase
===========
Reads the buildpack plan handed over by the lifecycle and runs the
webserver contributor when the plan asks for php-web or php-script.

Plan format (``<plan>``)::

    [[entries]]
    name = "php-web"
"""
import logging
import os

import toml

from phpweb.contributor.contributor import new_contributor
from phpweb.layers.layers import Layers
from phpweb.models.buildpack_info import load_buildpack_info

logger = logging.getLogger(__name__)


def read_plan_entries(plan_path: str) -> list[str]:
    """Return the entry names of the buildpack plan; a missing plan has none."""
    if not plan_path or not os.path.isfile(plan_path):
        return []
    with open(plan_path, "r", encoding="utf-8") as f:
        data = toml.load(f)
    return [entry["name"] for entry in data.get("entries", []) if "name" in entry]


def build(app_root: str, layers_dir: str, plan_path: str) -> None:
    """
    Contribute the php-web or php-script layer for ``app_root``.

    Raises whatever the contributor raises; the caller maps it to an exit code.
    """
    info = load_buildpack_info()
    logger.info("%s", info.pretty_identity())

    entries = read_plan_entries(plan_path)
    contributor, will_contribute = new_contributor(
        app_root=app_root,
        layers=Layers(layers_dir),
        plan_entries=entries,
        logger=logging.getLogger("phpweb.build"),
    )
    if not will_contribute:
        logger.info("Plan does not request php-web or php-script, nothing to contribute")
        return

    contributor.contribute()
