"""
Errors
======
Exception taxonomy for the buildpack and the integration harness.

Filesystem errors (OSError) are never wrapped: they reach the caller
exactly as the standard library raised them.
"""


class BuildpackError(Exception):
    """Base class for every error raised by the buildpack."""


class BuildpackYAMLError(BuildpackError):
    """buildpack.yml could not be parsed or holds invalid values."""


class UnsupportedWebServerError(BuildpackError):
    """The requested webserver is not one of php-server, httpd or nginx."""

    def __init__(self, name: str) -> None:
        super().__init__(f"unsupported webserver: {name!r}")
        self.name = name


class HarnessError(BuildpackError):
    """Packaging or container failure in the integration harness."""


class AppStartError(HarnessError):
    """
    A test container did not become healthy.

    Carries the diagnostics printed before the failure is raised.
    """

    def __init__(
        self,
        message: str,
        container_id: str = "",
        image_name: str = "",
        volumes: list[str] | None = None,
        logs: str = "",
    ) -> None:
        super().__init__(message)
        self.container_id = container_id
        self.image_name = image_name
        self.volumes = volumes or []
        self.logs = logs
