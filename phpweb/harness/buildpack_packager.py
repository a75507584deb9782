"""
Buildpack Packager
==================
Fetches sibling buildpacks from GitHub releases and packages buildpack
source trees into installable artifacts for ``pack build``.

Artifacts:
    online   — a directory holding the buildpack as the platform sees it
    offline  — a ``.tgz`` of that directory, with its SHA-256

All artifacts live under BUILDPACK_CACHE_DIR and are removed with
``delete_buildpack``. Used by the integration tests only.
"""
import hashlib
import logging
import os
import shutil
import subprocess
import sys
import tarfile
import tempfile
from typing import Any, Optional

import httpx
import toml

from phpweb.core.config import (
    BUILDPACK_CACHE_DIR,
    BUILDPACK_ORG,
    GITHUB_API_URL,
    GITHUB_TOKEN,
    HTTP_TIMEOUT,
    VENDOR_PLATFORM,
    VENDOR_PYTHON,
)
from phpweb.core.constants import VENDOR_DIR
from phpweb.core.errors import HarnessError
from phpweb.models.buildpack_info import load_include_files

logger = logging.getLogger(__name__)

_PACKAGE_SCRIPT = os.path.join("scripts", "package.sh")


# ---------------------------------------------------------------------------
# GitHub releases
# ---------------------------------------------------------------------------
def _github_headers() -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github.v3+json",
        "User-Agent": "php-web-buildpack-tests",
    }
    if GITHUB_TOKEN:
        headers["Authorization"] = f"token {GITHUB_TOKEN}"
    return headers


def get_latest_release(name: str, client: Optional[httpx.Client] = None) -> dict[str, Any]:
    """Return the GitHub ``releases/latest`` payload for ``<BUILDPACK_ORG>/<name>``."""
    url = f"{GITHUB_API_URL}/repos/{BUILDPACK_ORG}/{name}/releases/latest"
    owns_client = client is None
    client = client or httpx.Client(headers=_github_headers(), timeout=HTTP_TIMEOUT, follow_redirects=True)
    try:
        resp = client.get(url)
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPError as e:
        raise HarnessError(f"unable to fetch latest release of {name}: {e}") from e
    finally:
        if owns_client:
            client.close()


def _pick_asset(release: dict[str, Any]) -> dict[str, Any]:
    """Pick the online (uncached) ``.tgz`` asset of a release."""
    for asset in release.get("assets", []):
        asset_name = asset.get("name", "")
        if asset_name.endswith(".tgz") and "cached" not in asset_name:
            return asset
    raise HarnessError(f"release {release.get('tag_name', '?')} has no buildpack .tgz asset")


def _download(client: httpx.Client, url: str, dest: str) -> None:
    try:
        with client.stream("GET", url) as resp:
            resp.raise_for_status()
            with open(dest, "wb") as f:
                for chunk in resp.iter_bytes():
                    f.write(chunk)
    except httpx.HTTPError as e:
        raise HarnessError(f"download of {url} failed: {e}") from e


def _extract(archive: str, dest: str) -> None:
    os.makedirs(dest, exist_ok=True)
    with tarfile.open(archive, "r:gz") as tar:
        tar.extractall(dest, filter="data")


def _new_artifact_dir(prefix: str) -> str:
    os.makedirs(BUILDPACK_CACHE_DIR, exist_ok=True)
    return tempfile.mkdtemp(prefix=f"{prefix}-", dir=BUILDPACK_CACHE_DIR)


def get_latest_buildpack(name: str) -> str:
    """
    Download and unpack the latest released (online) buildpack ``name``.

    Returns
    -------
    str
        Directory holding the unpacked buildpack.
    """
    with httpx.Client(headers=_github_headers(), timeout=HTTP_TIMEOUT, follow_redirects=True) as client:
        release = get_latest_release(name, client)
        asset = _pick_asset(release)

        dest = _new_artifact_dir(name)
        archive = os.path.join(dest, asset["name"])
        logger.info("Downloading %s %s", name, release.get("tag_name", ""))
        try:
            _download(client, asset["browser_download_url"], archive)
            _extract(archive, dest)
        except (HarnessError, tarfile.TarError, OSError):
            shutil.rmtree(dest, ignore_errors=True)
            raise

    os.remove(archive)
    return dest


def get_latest_unpackaged_buildpack(name: str) -> str:
    """
    Download the source tree of the latest release of ``name``.

    Returns
    -------
    str
        Root directory of the extracted source (GitHub nests it one level).
    """
    with httpx.Client(headers=_github_headers(), timeout=HTTP_TIMEOUT, follow_redirects=True) as client:
        release = get_latest_release(name, client)
        tarball_url = release.get("tarball_url")
        if not tarball_url:
            raise HarnessError(f"release of {name} has no source tarball")

        dest = _new_artifact_dir(f"{name}-src")
        archive = os.path.join(dest, "source.tgz")
        try:
            _download(client, tarball_url, archive)
            _extract(archive, dest)
        except (HarnessError, tarfile.TarError, OSError):
            shutil.rmtree(dest, ignore_errors=True)
            raise

    os.remove(archive)

    entries = [e for e in os.listdir(dest) if os.path.isdir(os.path.join(dest, e))]
    if len(entries) == 1:
        return os.path.join(dest, entries[0])
    return dest


# ---------------------------------------------------------------------------
# Packaging
# ---------------------------------------------------------------------------
def _runtime_requirements(root: str) -> list[str]:
    """Return ``[project] dependencies`` from ``<root>/pyproject.toml``, or []."""
    path = os.path.join(root, "pyproject.toml")
    if not os.path.isfile(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        data = toml.load(f)
    return list(data.get("project", {}).get("dependencies", []))


def _vendor(root: str, dest: str) -> None:
    """
    Install the runtime dependencies of ``root`` into ``<dest>/vendor``.

    Wheels are picked for the stack (VENDOR_PLATFORM, VENDOR_PYTHON), not for
    the machine doing the packaging.
    """
    requirements = _runtime_requirements(root)
    if not requirements:
        return

    target = os.path.join(dest, VENDOR_DIR)
    cmd = [
        sys.executable, "-m", "pip", "install",
        "--quiet",
        "--no-compile",
        "--target", target,
        "--platform", VENDOR_PLATFORM,
        "--python-version", VENDOR_PYTHON,
        "--only-binary=:all:",
        *requirements,
    ]
    logger.info("Vendoring %d runtime dependencies into %s", len(requirements), target)
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        raise HarnessError(f"vendoring dependencies of {root} failed: {e.stderr}") from e


def _stage(root: str, dest: str, cached: bool) -> None:
    """
    Fill ``dest`` with the packaged form of the buildpack at ``root``.

    A buildpack.toml listing ``[metadata] include_files`` is copied file by
    file, then its ``pyproject.toml`` runtime dependencies are vendored into
    ``<dest>/vendor``, which the ``bin/`` shims put on PYTHONPATH. Otherwise
    the repository's own ``scripts/package.sh`` does the work.
    """
    include_files = load_include_files(root)
    if include_files:
        for rel in include_files:
            src = os.path.join(root, rel)
            target = os.path.join(dest, rel)
            if os.path.isdir(src):
                shutil.copytree(src, target, ignore=shutil.ignore_patterns("__pycache__", "*.pyc"))
            else:
                os.makedirs(os.path.dirname(target), exist_ok=True)
                shutil.copy2(src, target)
        _vendor(root, dest)
        return

    script = os.path.join(root, _PACKAGE_SCRIPT)
    if not os.path.isfile(script):
        raise HarnessError(f"{root} has neither include_files in buildpack.toml nor {_PACKAGE_SCRIPT}")

    cmd = ["bash", script, "-o", dest]
    if cached:
        cmd.append("--cached")
    logger.info("Packaging %s with %s", root, _PACKAGE_SCRIPT)
    try:
        subprocess.run(cmd, cwd=root, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        raise HarnessError(f"packaging {root} failed: {e.stderr}") from e


def package_buildpack(root: str) -> str:
    """Package the buildpack at ``root`` for online use; returns its directory."""
    root = os.path.abspath(root)
    dest = _new_artifact_dir(os.path.basename(root))
    try:
        _stage(root, dest, cached=False)
    except (HarnessError, OSError):
        shutil.rmtree(dest, ignore_errors=True)
        raise
    logger.info("Packaged %s → %s", root, dest)
    return dest


def package_cached_buildpack(root: str) -> tuple[str, str]:
    """
    Package the buildpack at ``root`` for offline use.

    Returns
    -------
    tuple[str, str]
        Path of the ``.tgz`` artifact and its SHA-256 hex digest.
    """
    root = os.path.abspath(root)
    staging = _new_artifact_dir(f"{os.path.basename(root)}-cached")
    try:
        _stage(root, staging, cached=True)
        archive = f"{staging}.tgz"
        with tarfile.open(archive, "w:gz") as tar:
            for entry in sorted(os.listdir(staging)):
                tar.add(os.path.join(staging, entry), arcname=entry)
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    sha = hashlib.sha256()
    with open(archive, "rb") as f:
        for chunk in iter(lambda: f.read(1 << 16), b""):
            sha.update(chunk)

    logger.info("Packaged offline %s → %s", root, archive)
    return archive, sha.hexdigest()


def delete_buildpack(uri: str) -> None:
    """Remove a packaged buildpack. Already-removed artifacts are ignored."""
    if not uri:
        return
    if os.path.isdir(uri):
        shutil.rmtree(uri)
    elif os.path.exists(uri):
        os.remove(uri)
