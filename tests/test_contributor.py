"""
Unit Tests — Webserver Contributor
==================================
Launch commands, configuration files and environment overrides written by
the Contributor, for every webserver and for scripts.

Everything runs against tmp_path; no PHP, HTTPD or Nginx binaries needed.
"""
import io
import logging
import os

import pytest

from phpweb.contributor.command_resolver import resolve_processes
from phpweb.contributor.contributor import Contributor, ContributorOptions, new_contributor
from phpweb.layers.layers import Layers
from phpweb.models.app_descriptor import Script, WebApp, WebServer
from phpweb.models.buildpack_yaml import BuildpackYAML
from phpweb.models.launch import LaunchMetadata, Process


@pytest.fixture
def app_root(tmp_path):
    root = tmp_path / "app"
    root.mkdir()
    return str(root)


@pytest.fixture
def layers(tmp_path):
    return Layers(str(tmp_path / "layers"))


def make_contributor(app_root, layers, app, logger=None):
    return Contributor(app_root, layers, app, ContributorOptions(php_home="/php", php_api="20180731"), logger)


def fpm_command(layer_root):
    return (
        f'php-fpm -p "{layer_root}" '
        f'-y "{os.path.join(layer_root, "etc", "php-fpm.conf")}" '
        f'-c "{os.path.join(layer_root, "etc")}"'
    )


def launch(*processes):
    return LaunchMetadata(processes=[Process(type=t, command=c) for t, c in processes])


# ---------------------------------------------------------------------------
# 1. PHP built-in server
# ---------------------------------------------------------------------------
class TestBuiltInServer:

    def test_starts_web_app_with_php_s(self, app_root, layers):
        c = make_contributor(app_root, layers, WebApp(server=WebServer.PHP_SERVER))
        c.contribute()

        command = f"php -S 0.0.0.0:8080 -t {app_root}/htdocs"
        assert layers.read_application_metadata() == launch(("web", command), ("task", command))

    def test_custom_webdir(self, app_root, layers):
        c = make_contributor(app_root, layers, WebApp(server=WebServer.PHP_SERVER, webdir="public"))
        c.contribute()

        command = f"php -S 0.0.0.0:8080 -t {app_root}/public"
        assert layers.read_application_metadata() == launch(("web", command), ("task", command))

    def test_writes_no_fpm_or_httpd_config(self, app_root, layers):
        make_contributor(app_root, layers, WebApp(server=WebServer.PHP_SERVER)).contribute()

        layer = layers.layer("php-web")
        assert not os.path.exists(os.path.join(layer.root, "etc", "php-fpm.conf"))
        assert not os.path.exists(os.path.join(app_root, "httpd.conf"))
        assert not os.path.exists(os.path.join(app_root, "nginx.conf"))


# ---------------------------------------------------------------------------
# 2. php.ini + environment (every mode)
# ---------------------------------------------------------------------------
class TestPhpIni:

    @pytest.mark.parametrize("app, layer_name", [
        (WebApp(server=WebServer.PHP_SERVER), "php-web"),
        (WebApp(server=WebServer.HTTPD), "php-web"),
        (WebApp(server=WebServer.NGINX), "php-web"),
        (Script(), "php-script"),
    ])
    def test_php_ini_and_environment(self, app_root, layers, app, layer_name):
        make_contributor(app_root, layers, app).contribute()

        layer = layers.layer(layer_name)
        assert os.path.isfile(os.path.join(layer.root, "etc", "php.ini"))
        env = layer.shared_environment()
        assert env["PHPRC"] == os.path.join(layer.root, "etc")
        assert env["PHP_INI_SCAN_DIR"] == os.path.join(app_root, ".php.ini.d")

    def test_php_ini_uses_options(self, app_root, layers):
        c = Contributor(
            app_root, layers, Script(),
            ContributorOptions(lib_directory="vendor/lib", php_home="/opt/php", php_api="20190902"),
        )
        c.contribute()

        with open(os.path.join(layers.layer("php-script").root, "etc", "php.ini")) as f:
            ini = f.read()
        assert f'include_path = ".:/opt/php/lib/php:{app_root}/vendor/lib"' in ini
        assert "no-debug-non-zts-20190902" in ini

    def test_layer_is_a_launch_layer(self, app_root, layers):
        make_contributor(app_root, layers, WebApp()).contribute()

        metadata = layers.layer("php-web").read_metadata()
        assert metadata["launch"] is True
        assert metadata["build"] is False
        assert metadata["metadata"] == {"mode": "httpd"}


# ---------------------------------------------------------------------------
# 3. Apache HTTPD
# ---------------------------------------------------------------------------
class TestApacheHttpd:

    def test_starts_web_app_with_httpd(self, app_root, layers):
        make_contributor(app_root, layers, WebApp(server=WebServer.HTTPD)).contribute()

        layer = layers.layer("php-web")
        assert layers.read_application_metadata() == launch(("web", fpm_command(layer.root)))

    def test_defaults_to_apache(self, app_root, layers):
        make_contributor(app_root, layers, WebApp()).contribute()

        layer = layers.layer("php-web")
        assert layers.read_application_metadata() == launch(("web", fpm_command(layer.root)))

    def test_writes_httpd_conf_and_php_fpm_conf(self, app_root, layers):
        make_contributor(app_root, layers, WebApp(server=WebServer.HTTPD)).contribute()

        layer = layers.layer("php-web")
        assert os.path.isfile(os.path.join(app_root, "httpd.conf"))
        assert os.path.isfile(os.path.join(layer.root, "etc", "php-fpm.conf"))

    def test_httpd_conf_points_at_webdir(self, app_root, layers):
        make_contributor(app_root, layers, WebApp(server=WebServer.HTTPD, webdir="public")).contribute()

        with open(os.path.join(app_root, "httpd.conf")) as f:
            conf = f.read()
        assert f'DocumentRoot "{app_root}/public"' in conf

    def test_server_admin_and_https_redirect_options(self, app_root, layers):
        c = Contributor(
            app_root, layers, WebApp(),
            ContributorOptions(server_admin="ops@example.com", enable_https_redirect=False),
        )
        c.contribute()

        with open(os.path.join(app_root, "httpd.conf")) as f:
            conf = f.read()
        assert 'ServerAdmin "ops@example.com"' in conf
        assert "RewriteEngine On" not in conf


# ---------------------------------------------------------------------------
# 4. php-fpm.conf user includes
# ---------------------------------------------------------------------------
class TestPhpFpmConf:

    def test_includes_user_config(self, app_root, layers):
        user_dir = os.path.join(app_root, ".php.fpm.d")
        os.makedirs(user_dir)
        with open(os.path.join(user_dir, "user.conf"), "w") as f:
            f.write("")

        c = make_contributor(app_root, layers, WebApp())
        layer = layers.layer("php-web")
        c.write_php_fpm_conf(layer)

        path = os.path.join(layer.root, "etc", "php-fpm.conf")
        assert os.path.isfile(path)
        with open(path) as f:
            assert f"include={os.path.join(app_root, '.php.fpm.d', '*.conf')}" in f.read()

    def test_no_include_without_user_dir(self, app_root, layers):
        c = make_contributor(app_root, layers, WebApp())
        layer = layers.layer("php-web")
        c.write_php_fpm_conf(layer)

        with open(os.path.join(layer.root, "etc", "php-fpm.conf")) as f:
            assert "include=" not in f.read()

    def test_user_config_file_instead_of_dir_is_ignored(self, app_root, layers):
        with open(os.path.join(app_root, ".php.fpm.d"), "w") as f:
            f.write("not a directory")

        c = make_contributor(app_root, layers, WebApp())
        layer = layers.layer("php-web")
        c.write_php_fpm_conf(layer)

        with open(os.path.join(layer.root, "etc", "php-fpm.conf")) as f:
            assert "include=" not in f.read()


# ---------------------------------------------------------------------------
# 5. Nginx
# ---------------------------------------------------------------------------
class TestNginx:

    def test_starts_web_app_with_nginx(self, app_root, layers):
        make_contributor(app_root, layers, WebApp(server=WebServer.NGINX)).contribute()

        layer = layers.layer("php-web")
        assert layers.read_application_metadata() == launch(("web", fpm_command(layer.root)))

    def test_writes_nginx_conf_and_php_fpm_conf(self, app_root, layers):
        make_contributor(app_root, layers, WebApp(server=WebServer.NGINX, webdir="web")).contribute()

        layer = layers.layer("php-web")
        assert os.path.isfile(os.path.join(layer.root, "etc", "php-fpm.conf"))
        assert not os.path.exists(os.path.join(app_root, "httpd.conf"))
        with open(os.path.join(app_root, "nginx.conf")) as f:
            conf = f.read()
        assert f"root {app_root}/web;" in conf
        assert "server 127.0.0.1:9000;" in conf

    def test_nginx_conf_is_loadable_as_written(self, app_root, layers):
        options = ContributorOptions(php_home="/php", php_api="20180731", port=8081)
        Contributor(app_root, layers, WebApp(server=WebServer.NGINX), options).contribute()

        with open(os.path.join(app_root, "nginx.conf")) as f:
            conf = f.read()
        assert "${" not in conf
        assert "listen 8081 default_server;" in conf
        includes = [line.split()[1] for line in conf.splitlines() if line.strip().startswith("include ")]
        assert includes == [f"{app_root}/.nginx.conf.d/*-server.conf;"]


# ---------------------------------------------------------------------------
# 6. Scripts
# ---------------------------------------------------------------------------
class TestScript:

    def test_default_app_php(self, app_root, layers):
        make_contributor(app_root, layers, Script()).contribute()

        command = f"php {app_root}/app.php"
        assert layers.read_application_metadata() == launch(("web", command), ("task", command))

    def test_custom_script_path(self, app_root, layers):
        make_contributor(app_root, layers, Script(path="relative/path/to/my/script.php")).contribute()

        command = f"php {app_root}/relative/path/to/my/script.php"
        assert layers.read_application_metadata() == launch(("web", command), ("task", command))

    def test_warns_when_start_script_missing(self, app_root, layers):
        buf = io.StringIO()
        logger = logging.getLogger("test.contributor.missing")
        logger.handlers = [logging.StreamHandler(buf)]
        logger.setLevel(logging.INFO)
        logger.propagate = False

        make_contributor(app_root, layers, Script(path="does/not/exist.php"), logger).contribute()

        assert (
            "WARNING: `does/not/exist.php` start script not found. "
            "App will not start unless you specify a custom start command."
        ) in buf.getvalue()
        assert layers.read_application_metadata() is not None

    def test_no_warning_when_script_exists(self, app_root, layers, caplog):
        with open(os.path.join(app_root, "app.php"), "w") as f:
            f.write("<?php echo 'hi';")

        with caplog.at_level(logging.WARNING):
            make_contributor(app_root, layers, Script()).contribute()

        assert "start script not found" not in caplog.text


# ---------------------------------------------------------------------------
# 7. Launch processes, errors and repeat runs
# ---------------------------------------------------------------------------
class TestErrorsAndIdempotency:

    @pytest.mark.parametrize("app", [
        WebApp(server=WebServer.PHP_SERVER),
        WebApp(server=WebServer.HTTPD),
        WebApp(server=WebServer.NGINX),
        Script(path="worker.php"),
    ])
    def test_launch_matches_resolved_processes(self, app_root, layers, app):
        c = make_contributor(app_root, layers, app)
        c.contribute()

        expected = resolve_processes(app, app_root, layers.layer(c.layer_name).root)
        assert layers.read_application_metadata().processes == expected

    @pytest.mark.parametrize("server", list(WebServer))
    def test_php_fpm_conf_only_for_fpm_servers(self, app_root, layers, server):
        make_contributor(app_root, layers, WebApp(server=server)).contribute()

        path = os.path.join(layers.layer("php-web").root, "etc", "php-fpm.conf")
        assert os.path.isfile(path) == server.uses_fpm

    def test_filesystem_error_propagates(self, app_root, layers):
        # a directory where httpd.conf should go makes open() fail
        os.makedirs(os.path.join(app_root, "httpd.conf"))

        with pytest.raises(IsADirectoryError):
            make_contributor(app_root, layers, WebApp()).contribute()

        assert layers.read_application_metadata() is None
        assert layers.layer("php-web").read_metadata() is None

    def test_contribute_twice_gives_same_result(self, app_root, layers):
        c = make_contributor(app_root, layers, WebApp())
        c.contribute()
        first = layers.read_application_metadata()
        stale = os.path.join(layers.layer("php-web").root, "stale.txt")
        with open(stale, "w") as f:
            f.write("left over")

        c.contribute()

        assert layers.read_application_metadata() == first
        assert not os.path.exists(stale)


# ---------------------------------------------------------------------------
# 8. new_contributor
# ---------------------------------------------------------------------------
class TestNewContributor:

    def test_web_plan_gives_web_app(self, app_root, layers):
        c, will_contribute = new_contributor(app_root, layers, ["php-web"])
        assert will_contribute
        assert c.app == WebApp(server=WebServer.HTTPD, webdir="htdocs")
        assert c.layer_name == "php-web"

    def test_script_plan_gives_script(self, app_root, layers):
        with open(os.path.join(app_root, "main.php"), "w") as f:
            f.write("<?php")

        c, will_contribute = new_contributor(app_root, layers, ["php-script"])
        assert will_contribute
        assert c.app == Script(path="main.php")
        assert c.layer_name == "php-script"

    def test_unrelated_plan_does_not_contribute(self, app_root, layers):
        c, will_contribute = new_contributor(app_root, layers, ["php-binary"])
        assert c is None
        assert not will_contribute

    def test_buildpack_yaml_settings_flow_through(self, app_root, layers):
        yml = BuildpackYAML.model_validate({
            "php": {"webserver": "nginx", "webdirectory": "public", "serveradmin": "a@b.c"},
        })
        c, _ = new_contributor(app_root, layers, ["php-web"], buildpack_yaml=yml)

        assert c.app == WebApp(server=WebServer.NGINX, webdir="public")
        assert c.options.server_admin == "a@b.c"

    def test_reads_buildpack_yml_from_app_root(self, app_root, layers):
        with open(os.path.join(app_root, "buildpack.yml"), "w") as f:
            f.write("php:\n  webserver: php-server\n  webdirectory: web\n")

        c, _ = new_contributor(app_root, layers, ["php-web"])
        assert c.app == WebApp(server=WebServer.PHP_SERVER, webdir="web")
