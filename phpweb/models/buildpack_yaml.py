"""
buildpack.yml
=============
Pydantic model for the optional ``buildpack.yml`` in the application root.

Example::

    php:
      version: 7.2.*
      webserver: nginx
      webdirectory: public
      libdirectory: lib
      script: bin/worker.php
      serveradmin: ops@example.com
      enable_https_redirect: true

Every key is optional. A missing file is the same as an empty one.
"""
import logging
import os
from typing import Optional

import yaml
from pydantic import BaseModel, ValidationError, field_validator

from phpweb.core.constants import (
    BUILDPACK_YAML,
    DEFAULT_LIB_DIRECTORY,
    DEFAULT_SERVER_ADMIN,
    DEFAULT_WEB_DIRECTORY,
    WEB_SERVERS,
)
from phpweb.core.errors import BuildpackYAMLError, UnsupportedWebServerError

logger = logging.getLogger(__name__)


class PhpConfig(BaseModel):
    version: Optional[str] = None
    webserver: Optional[str] = None
    webdirectory: str = DEFAULT_WEB_DIRECTORY
    libdirectory: str = DEFAULT_LIB_DIRECTORY
    script: Optional[str] = None
    serveradmin: str = DEFAULT_SERVER_ADMIN
    enable_https_redirect: bool = True

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_string(cls, v):
        # YAML reads `version: 7.2` as a float
        if v is None or v == "":
            return None
        return str(v)

    @field_validator("webserver")
    @classmethod
    def _known_webserver(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        name = v.strip().lower()
        if name not in WEB_SERVERS:
            raise UnsupportedWebServerError(v)
        return name

    @field_validator("webdirectory", "libdirectory")
    @classmethod
    def _strip_slashes(cls, v: str) -> str:
        return v.strip().strip("/") or "."

    @field_validator("script")
    @classmethod
    def _relative_script(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip().lstrip("/")


class BuildpackYAML(BaseModel):
    php: PhpConfig = PhpConfig()

    @field_validator("php", mode="before")
    @classmethod
    def _empty_php_section(cls, v):
        return {} if v is None else v


def load_buildpack_yaml(app_root: str) -> BuildpackYAML:
    """
    Read ``<app_root>/buildpack.yml``.

    Returns
    -------
    BuildpackYAML
        Parsed configuration, or all defaults when the file does not exist.

    Raises
    ------
    BuildpackYAMLError
        Malformed YAML or values of the wrong type.
    UnsupportedWebServerError
        ``php.webserver`` names something other than php-server, httpd or nginx.
    """
    path = os.path.join(app_root, BUILDPACK_YAML)
    if not os.path.isfile(path):
        return BuildpackYAML()

    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise BuildpackYAMLError(f"unable to parse {path}: {e}") from e

    if data is None:
        return BuildpackYAML()
    if not isinstance(data, dict):
        raise BuildpackYAMLError(f"{path} must contain a mapping, got {type(data).__name__}")

    try:
        config = BuildpackYAML.model_validate(data)
    except ValidationError as e:
        # field validators raise UnsupportedWebServerError; pydantic does not wrap
        # non-ValueError exceptions, so only genuine validation failures land here
        raise BuildpackYAMLError(f"invalid {path}: {e}") from e

    logger.debug("Loaded %s: %s", path, config.php.model_dump(exclude_none=True))
    return config
