"""
Command Resolver
================
Maps an application descriptor to the process types registered at launch.

Resolver never executes commands and never touches the filesystem; it only
returns strings. Deterministic: same descriptor + same paths → same processes.

    WebApp(PHP_SERVER) → web, task : php -S 0.0.0.0:8080 -t <root>/<webdir>
    WebApp(HTTPD)      → web       : php-fpm -p "<layer>" -y "<layer>/etc/php-fpm.conf" -c "<layer>/etc"
    WebApp(NGINX)      → web       : same php-fpm command as HTTPD
    Script             → web, task : php <root>/<script>

The webserver process itself (httpd or nginx) is started by the buildpack
that provides it, reading the config file the contributor writes into the
application root.
"""
import os
from dataclasses import dataclass

from phpweb.core.constants import DEFAULT_PORT, TASK_PROCESS, WEB_PROCESS
from phpweb.core.errors import UnsupportedWebServerError
from phpweb.models.app_descriptor import AppDescriptor, Script, WebApp, WebServer
from phpweb.models.launch import Process


@dataclass(frozen=True)
class ResolvedCommand:
    """
    Immutable result of command resolution.

    Fields
    ------
    command : str
        Fully materialised shell command.
    process_types : tuple[str, ...]
        Process types the command is registered under, in order.
    """
    command: str
    process_types: tuple[str, ...]

    def processes(self) -> list[Process]:
        return [Process(type=t, command=self.command) for t in self.process_types]


def built_in_server_command(app_root: str, webdir: str) -> str:
    return f"php -S 0.0.0.0:{DEFAULT_PORT} -t {app_root}/{webdir}"


def php_fpm_command(layer_root: str) -> str:
    etc = os.path.join(layer_root, "etc")
    return f'php-fpm -p "{layer_root}" -y "{os.path.join(etc, "php-fpm.conf")}" -c "{etc}"'


def script_command(app_root: str, script: str) -> str:
    return f"php {app_root}/{script}"


def resolve_command(app: AppDescriptor, app_root: str, layer_root: str) -> ResolvedCommand:
    """
    Resolve the start command for ``app``.

    Parameters
    ----------
    app : WebApp | Script
        The resolved application descriptor.
    app_root : str
        Absolute path of the application directory.
    layer_root : str
        Absolute path of the layer the contributor writes into.

    Raises
    ------
    UnsupportedWebServerError
        A WebApp carries a server this function does not know.
    TypeError
        ``app`` is neither a WebApp nor a Script.
    """
    if isinstance(app, WebApp):
        if app.server is WebServer.PHP_SERVER:
            return ResolvedCommand(
                command=built_in_server_command(app_root, app.webdir),
                process_types=(WEB_PROCESS, TASK_PROCESS),
            )
        if app.server is WebServer.HTTPD or app.server is WebServer.NGINX:
            return ResolvedCommand(
                command=php_fpm_command(layer_root),
                process_types=(WEB_PROCESS,),
            )
        raise UnsupportedWebServerError(str(app.server))

    if isinstance(app, Script):
        return ResolvedCommand(
            command=script_command(app_root, app.path),
            process_types=(WEB_PROCESS, TASK_PROCESS),
        )

    raise TypeError(f"unknown application descriptor: {app!r}")


def resolve_processes(app: AppDescriptor, app_root: str, layer_root: str) -> list[Process]:
    """Return the ordered process list for launch.toml."""
    return resolve_command(app, app_root, layer_root).processes()
