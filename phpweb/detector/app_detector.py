"""
App Detector
============
Decides whether an application is a PHP web app or a PHP script.

Detection is deterministic: same directory contents + same buildpack.yml
always yield the same answer. Only the application root and the configured
web directory are inspected; nothing is searched recursively.

Signals (checked in this order):
    1. Any ``*.php`` file directly inside ``<appRoot>/<webdir>`` → web app
    2. The configured script, or the first of SCRIPT_CANDIDATES → script
"""
import glob
import logging
import os
from typing import Optional

from phpweb.core.constants import DEFAULT_SCRIPT, SCRIPT_CANDIDATES
from phpweb.models.app_descriptor import AppDescriptor, Script, WebApp, WebServer
from phpweb.models.buildpack_yaml import BuildpackYAML

logger = logging.getLogger(__name__)


def search_for_web_app(app_root: str, webdir: str) -> bool:
    """Return True when ``<app_root>/<webdir>`` holds at least one PHP file."""
    pattern = os.path.join(glob.escape(os.path.join(app_root, webdir)), "*.php")
    return any(os.path.isfile(p) for p in glob.glob(pattern))


def search_for_script(app_root: str, script: Optional[str] = None) -> Optional[str]:
    """
    Find the start script.

    Returns
    -------
    str | None
        The configured ``script`` if it exists, otherwise the first existing
        entry of SCRIPT_CANDIDATES, otherwise None. Paths are relative to
        ``app_root``.
    """
    candidates = [script] if script else SCRIPT_CANDIDATES
    for candidate in candidates:
        if os.path.isfile(os.path.join(app_root, candidate)):
            return candidate
    return None


def pick_start_script(app_root: str, script: Optional[str] = None) -> str:
    """
    Pick the script to run, existing on disk or not.

    A configured script always wins, even when it is missing: the contributor
    warns about it rather than silently running something else.
    """
    if script:
        return script
    return search_for_script(app_root) or DEFAULT_SCRIPT


def resolve_app_descriptor(app_root: str, buildpack_yaml: BuildpackYAML, is_web_app: bool) -> AppDescriptor:
    """
    Build the descriptor for this build.

    Parameters
    ----------
    app_root : str
        Absolute path of the application.
    buildpack_yaml : BuildpackYAML
        Parsed buildpack.yml (defaults when absent).
    is_web_app : bool
        True when the build plan asked for php-web, False for php-script.
    """
    php = buildpack_yaml.php
    if is_web_app:
        return WebApp(server=WebServer.parse(php.webserver), webdir=php.webdirectory)
    return Script(path=pick_start_script(app_root, php.script))
