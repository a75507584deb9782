"""
Webserver Contributor
=====================
Writes the PHP/webserver configuration into the managed layer and registers
the launch processes.

BOUNDARY RULES:
    - Contributor ONLY writes files and launch metadata.
    - Contributor NEVER decides web app vs script: the descriptor it is
      handed already says which.
    - Contributor NEVER starts processes.

Files written per mode:

    mode          | <layer>/etc/php.ini | <layer>/etc/php-fpm.conf | <appRoot>/httpd.conf | <appRoot>/nginx.conf
    --------------+---------------------+--------------------------+----------------------+---------------------
    php-server    | yes                 |                          |                      |
    httpd         | yes                 | yes                      | yes                  |
    nginx         | yes                 | yes                      |                      | yes
    script        | yes                 |                          |                      |

Every mode also sets PHPRC=<layer>/etc and
PHP_INI_SCAN_DIR=<appRoot>/.php.ini.d on the layer.

Errors:
    Filesystem failures propagate unmodified. Nothing is rolled back.
    A missing start script is only a warning.
"""
import logging
import os
from dataclasses import dataclass, field
from typing import Optional

from phpweb.contributor.command_resolver import resolve_processes
from phpweb.contributor.templates import (
    render_httpd_conf,
    render_nginx_conf,
    render_php_fpm_conf,
    render_php_ini,
)
from phpweb.core import config
from phpweb.core.constants import (
    DEFAULT_LIB_DIRECTORY,
    DEFAULT_SERVER_ADMIN,
    PHP_FPM_USER_DIR,
    PHP_INI_SCAN_DIR,
    SCRIPT_DEPENDENCY,
    WEB_DEPENDENCY,
)
from phpweb.detector.app_detector import resolve_app_descriptor
from phpweb.layers.layers import Layer, Layers
from phpweb.models.app_descriptor import AppDescriptor, Script, WebApp, WebServer
from phpweb.models.buildpack_yaml import BuildpackYAML, load_buildpack_yaml
from phpweb.models.launch import LaunchMetadata
from phpweb.utils.file_utils import write_file

logger = logging.getLogger(__name__)

_MISSING_SCRIPT_WARNING = (
    "WARNING: `%s` start script not found. "
    "App will not start unless you specify a custom start command."
)


@dataclass(frozen=True)
class ContributorOptions:
    """Settings that shape the generated files but not the start command."""
    lib_directory: str = DEFAULT_LIB_DIRECTORY
    server_admin: str = DEFAULT_SERVER_ADMIN
    enable_https_redirect: bool = True
    php_home: str = field(default_factory=lambda: config.PHP_HOME)
    php_api: str = field(default_factory=lambda: config.PHP_API)
    port: int = field(default_factory=lambda: config.PORT)

    @classmethod
    def from_buildpack_yaml(cls, buildpack_yaml: BuildpackYAML) -> "ContributorOptions":
        php = buildpack_yaml.php
        return cls(
            lib_directory=php.libdirectory,
            server_admin=php.serveradmin,
            enable_https_redirect=php.enable_https_redirect,
        )


class Contributor:
    """
    Contributes the php-web or php-script layer for one build.

    Parameters
    ----------
    app_root : str
        Absolute path of the application directory.
    layers : Layers
        The buildpack's layers directory.
    app : WebApp | Script
        Resolved application descriptor. Fixed for the contributor's lifetime.
    options : ContributorOptions | None
        File-generation settings; defaults when None.
    logger : logging.Logger | None
        Where build output goes. Defaults to this module's logger.
    """

    def __init__(
        self,
        app_root: str,
        layers: Layers,
        app: AppDescriptor,
        options: Optional[ContributorOptions] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.app_root = os.path.abspath(app_root)
        self.layers = layers
        self.app = app
        self.options = options or ContributorOptions()
        self.logger = logger or logging.getLogger(__name__)

    @property
    def layer_name(self) -> str:
        return WEB_DEPENDENCY if isinstance(self.app, WebApp) else SCRIPT_DEPENDENCY

    def contribute(self) -> None:
        """
        Write every file for the active mode and register launch processes.

        Exactly one launch.toml is written, after the layer contribution
        succeeded.
        """
        layer = self.layers.layer(self.layer_name)
        processes = resolve_processes(self.app, self.app_root, layer.root)

        layer.contribute(
            metadata={"mode": self._mode()},
            contributor=self._contribute_layer,
            launch=True,
        )

        self.layers.write_application_metadata(LaunchMetadata(processes=processes))

    def _mode(self) -> str:
        if isinstance(self.app, WebApp):
            return self.app.server.value
        return "script"

    def _contribute_layer(self, layer: Layer) -> None:
        self.logger.info("-----> Contributing %s (%s)", layer.name, self._mode())

        self.write_php_ini(layer)

        if isinstance(self.app, WebApp):
            if self.app.server.uses_fpm:
                self.write_php_fpm_conf(layer)
            if self.app.server is WebServer.HTTPD:
                self.write_httpd_conf()
            elif self.app.server is WebServer.NGINX:
                self.write_nginx_conf()
        elif isinstance(self.app, Script):
            self._check_script(self.app)

    def _check_script(self, script: Script) -> None:
        if not os.path.isfile(os.path.join(self.app_root, script.path)):
            self.logger.warning(_MISSING_SCRIPT_WARNING, script.path)

    def write_php_ini(self, layer: Layer) -> None:
        """Write ``<layer>/etc/php.ini`` and point PHP at it."""
        etc = os.path.join(layer.root, "etc")
        content = render_php_ini(
            php_home=self.options.php_home,
            php_api=self.options.php_api,
            app_root=self.app_root,
            lib_directory=self.options.lib_directory,
        )
        write_file(os.path.join(etc, "php.ini"), content)

        layer.override_shared_environment("PHPRC", etc)
        layer.override_shared_environment("PHP_INI_SCAN_DIR", os.path.join(self.app_root, PHP_INI_SCAN_DIR))

    def write_php_fpm_conf(self, layer: Layer) -> None:
        """
        Write ``<layer>/etc/php-fpm.conf``.

        When ``<appRoot>/.php.fpm.d`` exists, its ``*.conf`` files are pulled
        in with an ``include=`` directive.
        """
        user_dir = os.path.join(self.app_root, PHP_FPM_USER_DIR)
        include = os.path.join(user_dir, "*.conf") if os.path.isdir(user_dir) else None
        if include:
            self.logger.info("    Including user PHP-FPM configuration from %s", user_dir)

        write_file(os.path.join(layer.root, "etc", "php-fpm.conf"), render_php_fpm_conf(layer.root, include))

    def write_httpd_conf(self) -> None:
        """Write ``<appRoot>/httpd.conf`` for the HTTPD buildpack to start with."""
        write_file(
            os.path.join(self.app_root, "httpd.conf"),
            render_httpd_conf(
                app_root=self.app_root,
                webdir=self.app.webdir,
                server_admin=self.options.server_admin,
                https_redirect=self.options.enable_https_redirect,
            ),
        )

    def write_nginx_conf(self) -> None:
        """Write ``<appRoot>/nginx.conf`` for the Nginx buildpack to start with."""
        write_file(
            os.path.join(self.app_root, "nginx.conf"),
            render_nginx_conf(
                app_root=self.app_root,
                webdir=self.app.webdir,
                https_redirect=self.options.enable_https_redirect,
                port=self.options.port,
            ),
        )


# ---------------------------------------------------------------------------
# Construction from the build plan
# ---------------------------------------------------------------------------
def new_contributor(
    app_root: str,
    layers: Layers,
    plan_entries: list[str],
    buildpack_yaml: Optional[BuildpackYAML] = None,
    logger: Optional[logging.Logger] = None,
) -> tuple[Optional[Contributor], bool]:
    """
    Build a Contributor from the build plan and buildpack.yml.

    Returns
    -------
    tuple[Contributor | None, bool]
        The contributor and whether it will contribute. The plan must ask
        for php-web or php-script; otherwise ``(None, False)``.
    """
    if WEB_DEPENDENCY in plan_entries:
        is_web_app = True
    elif SCRIPT_DEPENDENCY in plan_entries:
        is_web_app = False
    else:
        return None, False

    if buildpack_yaml is None:
        buildpack_yaml = load_buildpack_yaml(app_root)

    app = resolve_app_descriptor(app_root, buildpack_yaml, is_web_app)
    contributor = Contributor(
        app_root=app_root,
        layers=layers,
        app=app,
        options=ContributorOptions.from_buildpack_yaml(buildpack_yaml),
        logger=logger,
    )
    return contributor, True
