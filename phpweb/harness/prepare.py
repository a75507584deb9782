"""
Integration Preparation
=======================
Suite-level helpers used by the integration tests.

Lifecycle:
    1. prepare_php_bps()   — once per suite: package every buildpack
    2. push_simple_app()   — per test: build + start one app
    3. app.destroy()       — per test
    4. clean_up_bps()      — once per suite: delete packaged artifacts

The URIs from step 1 are cached in this module and only read afterwards.
"""
import logging
import os
from dataclasses import dataclass, fields
from typing import Optional

from phpweb.core.config import PORT
from phpweb.core.errors import AppStartError, HarnessError
from phpweb.harness.app_runner import PackBuild, PhpApp, random_image
from phpweb.harness.buildpack_packager import (
    delete_buildpack,
    get_latest_buildpack,
    get_latest_unpackaged_buildpack,
    package_buildpack,
    package_cached_buildpack,
)
from phpweb.models.buildpack_info import BUILDPACK_ROOT, BuildpackInfo, load_buildpack_info

logger = logging.getLogger(__name__)

TESTDATA_DIR = os.path.join(BUILDPACK_ROOT, "tests", "integration", "testdata")

PHP_DIST_BUILDPACK = "php-dist-cnb"
HTTPD_BUILDPACK = "httpd-cnb"
NGINX_BUILDPACK = "nginx-cnb"


@dataclass(frozen=True)
class BuildpackURIs:
    """Locations of every packaged buildpack, online and offline."""
    php_dist: str
    php_dist_offline: str
    httpd: str
    httpd_offline: str
    nginx: str
    nginx_offline: str
    php_web: str
    php_web_offline: str

    def all(self) -> list[str]:
        return [getattr(self, f.name) for f in fields(self)]


_uris: Optional[BuildpackURIs] = None
buildpack_info: Optional[BuildpackInfo] = None


def _package_sibling(name: str) -> tuple[str, str]:
    online = get_latest_buildpack(name)
    offline, _ = package_cached_buildpack(get_latest_unpackaged_buildpack(name))
    return online, offline


def prepare_php_bps(bp_root: str = BUILDPACK_ROOT) -> BuildpackURIs:
    """
    Package the php-dist, httpd and nginx buildpacks and this buildpack.

    Returns the URIs and caches them for ``uris()`` and ``clean_up_bps()``.
    """
    global _uris, buildpack_info

    buildpack_info = load_buildpack_info(bp_root)
    logger.info("Preparing buildpacks for %s", buildpack_info.pretty_identity())

    php_dist, php_dist_offline = _package_sibling(PHP_DIST_BUILDPACK)
    httpd, httpd_offline = _package_sibling(HTTPD_BUILDPACK)
    nginx, nginx_offline = _package_sibling(NGINX_BUILDPACK)
    php_web = package_buildpack(bp_root)
    php_web_offline, _ = package_cached_buildpack(bp_root)

    _uris = BuildpackURIs(
        php_dist=php_dist,
        php_dist_offline=php_dist_offline,
        httpd=httpd,
        httpd_offline=httpd_offline,
        nginx=nginx,
        nginx_offline=nginx_offline,
        php_web=php_web,
        php_web_offline=php_web_offline,
    )
    return _uris


def uris() -> BuildpackURIs:
    if _uris is None:
        raise HarnessError("buildpacks not prepared, call prepare_php_bps() first")
    return _uris


def clean_up_bps() -> None:
    """Delete every artifact created by prepare_php_bps()."""
    global _uris
    if _uris is None:
        return
    for uri in _uris.all():
        delete_buildpack(uri)
    _uris = None


def prepare_php_app(
    app_name: str,
    buildpacks: list[str],
    env: Optional[dict[str, str]] = None,
    testdata_dir: str = TESTDATA_DIR,
) -> PhpApp:
    """Build ``<testdata>/<app_name>`` with ``buildpacks``; the app is not started."""
    app = PackBuild(
        os.path.join(testdata_dir, app_name),
        random_image(),
        env=env,
        buildpacks=buildpacks,
        verbose=True,
    ).build()

    app.set_health_check("", "3s", "1s")
    run_env = dict(env or {})
    run_env["PORT"] = str(PORT)
    app.env = run_env
    return app


def push_simple_app(
    name: str,
    buildpacks: list[str],
    script: bool = False,
    testdata_dir: str = TESTDATA_DIR,
) -> PhpApp:
    """
    Build and start a test app.

    Scripts get a health check that always passes: they serve nothing.

    Raises
    ------
    AppStartError
        The container did not become healthy. Container id, image name,
        leftover cache volumes and container logs are logged first and
        attached to the exception; the container and image are removed.
    """
    app = prepare_php_app(name, buildpacks, testdata_dir=testdata_dir)
    if script:
        app.set_health_check("true", "3s", "1s")

    try:
        app.start()
    except HarnessError as e:
        logger.error("App failed to start: %s", e)
        container_id, image_name, volumes = app.info()
        logger.error(
            "ContainerID: %s\nImage Name: %s\nAll leftover cached volumes: %s",
            container_id, image_name, volumes,
        )
        container_logs = app.logs()
        logger.error("Container Logs:\n %s", container_logs)
        app.destroy()
        raise AppStartError(
            f"{name} failed to start: {e}",
            container_id=container_id,
            image_name=image_name,
            volumes=volumes,
            logs=container_logs,
        ) from e

    return app
