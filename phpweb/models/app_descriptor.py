"""
Application Descriptor
======================
What kind of PHP application is being built, resolved once per build.

An application is EITHER a web app served by one webserver OR a script
run directly by the PHP CLI, never both. The two shapes are separate
frozen dataclasses:

    AppDescriptor = WebApp | Script

WebServer is a closed enum. Code that branches on it handles every member
and raises on anything else.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from phpweb.core.constants import (
    APACHE_HTTPD,
    DEFAULT_SCRIPT,
    DEFAULT_WEB_DIRECTORY,
    NGINX,
    PHP_WEB_SERVER,
)
from phpweb.core.errors import UnsupportedWebServerError


class WebServer(str, Enum):
    PHP_SERVER = PHP_WEB_SERVER
    HTTPD = APACHE_HTTPD
    NGINX = NGINX

    @classmethod
    def parse(cls, name: Optional[str]) -> "WebServer":
        """
        Map a buildpack.yml webserver string to a WebServer.

        None or an empty string selects Apache HTTPD, the default for web apps.
        """
        if not name:
            return cls.HTTPD
        try:
            return cls(name.strip().lower())
        except ValueError:
            raise UnsupportedWebServerError(name) from None

    @property
    def uses_fpm(self) -> bool:
        return self is not WebServer.PHP_SERVER


@dataclass(frozen=True)
class WebApp:
    """A web application served from ``<appRoot>/<webdir>``."""
    server: WebServer = WebServer.HTTPD
    webdir: str = DEFAULT_WEB_DIRECTORY


@dataclass(frozen=True)
class Script:
    """A script run with ``php <appRoot>/<path>``."""
    path: str = DEFAULT_SCRIPT


AppDescriptor = Union[WebApp, Script]
