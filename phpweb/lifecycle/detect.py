"""
Detect Phase
============
Decides whether this buildpack applies and writes the build plan.

    web app  → provides php-web,    requires php-binary (+ httpd | nginx)
    script   → provides php-script, requires php-binary
    neither  → exit 100

Every requirement is needed at launch. A ``php.version`` in buildpack.yml is
passed on as the php-binary version constraint.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import toml

from phpweb.core.constants import (
    DETECT_FAIL,
    DETECT_PASS,
    HTTPD_DEPENDENCY,
    NGINX_DEPENDENCY,
    PHP_DEPENDENCY,
    SCRIPT_DEPENDENCY,
    WEB_DEPENDENCY,
)
from phpweb.detector.app_detector import search_for_script, search_for_web_app
from phpweb.models.app_descriptor import WebServer
from phpweb.models.buildpack_yaml import BuildpackYAML, load_buildpack_yaml
from phpweb.utils.file_utils import write_file

logger = logging.getLogger(__name__)


@dataclass
class BuildPlan:
    """The provides/requires pair written by detect."""
    provides: list[str] = field(default_factory=list)
    requires: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provides": [{"name": name} for name in self.provides],
            "requires": self.requires,
        }


def _require(name: str, version: Optional[str] = None) -> dict[str, Any]:
    metadata: dict[str, Any] = {"launch": True}
    if version:
        metadata["version"] = version
    return {"name": name, "metadata": metadata}


def resolve_plan(app_root: str, buildpack_yaml: BuildpackYAML) -> Optional[BuildPlan]:
    """
    Build the plan for ``app_root``, or None if the app is not PHP.

    Raises
    ------
    UnsupportedWebServerError
        buildpack.yml names an unknown webserver.
    """
    php = buildpack_yaml.php

    if search_for_web_app(app_root, php.webdirectory):
        server = WebServer.parse(php.webserver)
        plan = BuildPlan(provides=[WEB_DEPENDENCY], requires=[_require(PHP_DEPENDENCY, php.version)])
        if server is WebServer.HTTPD:
            plan.requires.append(_require(HTTPD_DEPENDENCY))
        elif server is WebServer.NGINX:
            plan.requires.append(_require(NGINX_DEPENDENCY))
        plan.requires.append({"name": WEB_DEPENDENCY})
        logger.info("Detected PHP web app in %s/ (%s)", php.webdirectory, server.value)
        return plan

    script = search_for_script(app_root, php.script)
    if script:
        logger.info("Detected PHP script %s", script)
        return BuildPlan(
            provides=[SCRIPT_DEPENDENCY],
            requires=[_require(PHP_DEPENDENCY, php.version), {"name": SCRIPT_DEPENDENCY}],
        )

    return None


def detect(app_root: str, plan_path: str) -> int:
    """
    Run detection and write the plan to ``plan_path``.

    Returns
    -------
    int
        DETECT_PASS (0) or DETECT_FAIL (100).
    """
    buildpack_yaml = load_buildpack_yaml(app_root)
    plan = resolve_plan(app_root, buildpack_yaml)
    if plan is None:
        logger.info("No PHP web app or start script found in %s", app_root)
        return DETECT_FAIL

    write_file(plan_path, toml.dumps(plan.to_dict()))
    return DETECT_PASS
