"""
App Runner
==========
Builds a test application into an image with ``pack build`` and runs it in
a Docker container until it reports healthy.

DOCKER STRATEGY:
    - One image + one container per test app (ephemeral).
    - Container health decided by a Docker HEALTHCHECK, polled until
      healthy, unhealthy, exited or timed out.
    - ``destroy()`` removes the container and the image. pack cache volumes
      are only reported by ``info()``: other apps may still be using them.

Nothing here is shared between apps, so tests may run them in parallel.
"""
import logging
import re
import subprocess
import time
import uuid
from dataclasses import dataclass
from typing import Optional

import docker
import httpx
from docker.errors import APIError, ImageNotFound, NotFound

from phpweb.core.config import (
    APP_START_TIMEOUT,
    BUILDER_IMAGE,
    HTTP_TIMEOUT,
    PACK_BIN,
    PORT,
)
from phpweb.core.errors import HarnessError

logger = logging.getLogger(__name__)

_CACHE_VOLUME_PREFIX = "pack-cache-"
_POLL_INTERVAL = 1.0
_DURATION = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m)$")
_NANOS = {"ms": 1_000_000, "s": 1_000_000_000, "m": 60_000_000_000}


def random_image() -> str:
    """A unique, lowercase image name for one test app."""
    return f"php-web-test-{uuid.uuid4().hex[:12]}"


def duration_to_ns(value: str) -> int:
    """Convert a duration string (``500ms``, ``3s``, ``1m``) to nanoseconds."""
    match = _DURATION.match(value.strip())
    if not match:
        raise ValueError(f"invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(float(amount) * _NANOS[unit])


@dataclass
class HealthCheck:
    """
    Docker HEALTHCHECK settings.

    An empty ``command`` probes the web process over HTTP.
    """
    command: str = ""
    interval: str = "3s"
    timeout: str = "1s"
    retries: int = 3

    def to_docker(self, port: int) -> dict:
        test = self.command or f"curl --fail http://localhost:{port} || exit 1"
        return {
            "test": ["CMD-SHELL", test],
            "interval": duration_to_ns(self.interval),
            "timeout": duration_to_ns(self.timeout),
            "retries": self.retries,
        }


# ---------------------------------------------------------------------------
# Running application
# ---------------------------------------------------------------------------
class PhpApp:
    """
    Handle for an image built from a test app.

    Attributes
    ----------
    image_name : str
        Image produced by ``pack build``.
    env : dict[str, str]
        Environment passed to the container.
    health_check : HealthCheck
        Health probe used by ``start``.
    build_logs : str
        Output of ``pack build``.
    container : docker Container | None
        Set once ``start`` created the container.
    """

    def __init__(self, image_name: str, build_logs: str = "", client=None) -> None:
        self.image_name = image_name
        self.build_logs = build_logs
        self.env: dict[str, str] = {}
        self.health_check = HealthCheck()
        self.container = None
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = docker.from_env()
        return self._client

    def set_health_check(self, command: str, interval: str, timeout: str) -> None:
        self.health_check = HealthCheck(command=command, interval=interval, timeout=timeout)

    def start(self, timeout_seconds: int = APP_START_TIMEOUT) -> None:
        """
        Run the image and wait until Docker reports it healthy.

        Raises
        ------
        HarnessError
            The container exited, turned unhealthy or did not become healthy
            within ``timeout_seconds``.
        """
        port = int(self.env.get("PORT", PORT))
        logger.info("Starting container | image=%s | port=%d", self.image_name, port)
        try:
            self.container = self.client.containers.run(
                image=self.image_name,
                environment=self.env,
                ports={f"{port}/tcp": None},
                healthcheck=self.health_check.to_docker(port),
                labels={"project": "php-web-buildpack", "role": "integration"},
                detach=True,
            )
        except (ImageNotFound, APIError) as e:
            raise HarnessError(f"unable to start {self.image_name}: {e}") from e

        deadline = time.monotonic() + timeout_seconds
        while time.monotonic() < deadline:
            self.container.reload()
            state = self.container.attrs.get("State", {})
            health = state.get("Health", {}).get("Status", "")

            if health == "healthy":
                logger.info("Container %s healthy", self.container.short_id)
                return
            if health == "unhealthy":
                raise HarnessError(f"container {self.container.short_id} is unhealthy")
            if state.get("Status") in ("exited", "dead"):
                raise HarnessError(
                    f"container {self.container.short_id} exited with code {state.get('ExitCode')}"
                )
            time.sleep(_POLL_INTERVAL)

        raise HarnessError(f"container {self.container.short_id} not healthy after {timeout_seconds}s")

    def info(self) -> tuple[str, str, list[str]]:
        """Return (container id, image name, leftover pack cache volume names)."""
        container_id = self.container.id if self.container is not None else ""
        volumes = [
            v.name
            for v in self.client.volumes.list(filters={"name": _CACHE_VOLUME_PREFIX})
            if v.name.startswith(_CACHE_VOLUME_PREFIX)
        ]
        return container_id, self.image_name, volumes

    def logs(self) -> str:
        if self.container is None:
            return ""
        return self.container.logs(stdout=True, stderr=True).decode("utf-8", errors="replace")

    def host_port(self) -> int:
        port = int(self.env.get("PORT", PORT))
        self.container.reload()
        bindings = self.container.attrs["NetworkSettings"]["Ports"].get(f"{port}/tcp") or []
        if not bindings:
            raise HarnessError(f"port {port} of {self.container.short_id} is not published")
        return int(bindings[0]["HostPort"])

    def http_get(self, path: str = "/") -> httpx.Response:
        """GET ``path`` from the running container through its published port."""
        url = f"http://localhost:{self.host_port()}/{path.lstrip('/')}"
        return httpx.get(url, timeout=HTTP_TIMEOUT)

    def destroy(self) -> None:
        """Remove the container and the image. Best effort."""
        if self.container is not None:
            try:
                self.container.remove(force=True)
                logger.info("Container %s destroyed", self.container.short_id)
            except (NotFound, APIError):
                logger.warning("Failed to remove container", exc_info=True)
            self.container = None
        try:
            self.client.images.remove(self.image_name, force=True)
        except (NotFound, APIError):
            logger.warning("Failed to remove image %s", self.image_name, exc_info=True)


# ---------------------------------------------------------------------------
# pack build
# ---------------------------------------------------------------------------
class PackBuild:
    """
    One ``pack build`` invocation.

    Parameters
    ----------
    app_dir : str
        Application source directory.
    image : str
        Name of the image to produce.
    env : dict[str, str] | None
        Build-time environment (``--env K=V``).
    buildpacks : list[str] | None
        Buildpack directories or archives, in order.
    verbose : bool
        Pass ``--verbose`` to pack.
    """

    def __init__(
        self,
        app_dir: str,
        image: str,
        env: Optional[dict[str, str]] = None,
        buildpacks: Optional[list[str]] = None,
        verbose: bool = False,
        builder: str = BUILDER_IMAGE,
        pack_bin: str = PACK_BIN,
    ) -> None:
        self.app_dir = app_dir
        self.image = image
        self.env = env or {}
        self.buildpacks = buildpacks or []
        self.verbose = verbose
        self.builder = builder
        self.pack_bin = pack_bin

    def command(self) -> list[str]:
        cmd = [self.pack_bin, "build", self.image, "--builder", self.builder, "--path", self.app_dir]
        for bp in self.buildpacks:
            cmd += ["--buildpack", bp]
        for key, value in sorted(self.env.items()):
            cmd += ["--env", f"{key}={value}"]
        if self.verbose:
            cmd.append("--verbose")
        return cmd

    def build(self) -> PhpApp:
        """
        Run pack and return a handle on the built image.

        Raises
        ------
        HarnessError
            pack exited non-zero; the message carries its output.
        """
        cmd = self.command()
        logger.info("Building %s from %s", self.image, self.app_dir)
        result = subprocess.run(cmd, capture_output=True, text=True)
        output = (result.stdout or "") + (result.stderr or "")
        if result.returncode != 0:
            raise HarnessError(f"pack build {self.image} failed (exit {result.returncode}):\n{output}")
        return PhpApp(self.image, build_logs=output)
