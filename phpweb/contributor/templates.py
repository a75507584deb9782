"""
Configuration Templates
=======================
Text of every configuration file the contributor writes.

Templates are plain strings filled with ``str.format``; literal braces in
the nginx template are doubled. Each ``render_*`` function takes only the
values that vary per build, so the same inputs always produce the same file.

Files:
    php.ini       — <layer>/etc/php.ini, every mode
    php-fpm.conf  — <layer>/etc/php-fpm.conf, httpd and nginx modes
    httpd.conf    — <appRoot>/httpd.conf, httpd mode
    nginx.conf    — <appRoot>/nginx.conf, nginx mode
"""
from typing import Optional

from phpweb.core.constants import DEFAULT_PORT, FPM_LISTEN_ADDRESS, HTTPD_USER_DIR, NGINX_USER_DIR


# ---------------------------------------------------------------------------
# php.ini
# ---------------------------------------------------------------------------
PHP_INI_TEMPLATE = """\
[PHP]
engine = On
short_open_tag = Off
precision = 14
output_buffering = 4096
zlib.output_compression = Off
implicit_flush = Off
serialize_precision = -1
zend.enable_gc = On
expose_php = Off

max_execution_time = 30
max_input_time = 60
memory_limit = 128M

error_reporting = E_ALL & ~E_DEPRECATED & ~E_STRICT
display_errors = Off
display_startup_errors = Off
log_errors = On
log_errors_max_len = 1024
html_errors = On

variables_order = "GPCS"
request_order = "GP"
register_argc_argv = Off
auto_globals_jit = On
post_max_size = 8M
default_mimetype = "text/html"
default_charset = "UTF-8"

include_path = ".:{php_home}/lib/php:{app_root}/{lib_directory}"
extension_dir = "{php_home}/lib/php/extensions/no-debug-non-zts-{php_api}"
enable_dl = Off

file_uploads = On
upload_max_filesize = 2M
max_file_uploads = 20
allow_url_fopen = On
allow_url_include = Off
default_socket_timeout = 60

[Date]
date.timezone = UTC

[Session]
session.save_handler = files
session.save_path = "/tmp"
session.use_strict_mode = 0
session.use_cookies = 1
session.use_only_cookies = 1
session.name = PHPSESSID
session.cookie_httponly = 1
session.gc_probability = 1
session.gc_divisor = 1000
session.gc_maxlifetime = 1440

[opcache]
opcache.enable = 1
opcache.enable_cli = 0
"""


def render_php_ini(php_home: str, php_api: str, app_root: str, lib_directory: str) -> str:
    return PHP_INI_TEMPLATE.format(
        php_home=php_home,
        php_api=php_api,
        app_root=app_root,
        lib_directory=lib_directory,
    )


# ---------------------------------------------------------------------------
# php-fpm.conf
# ---------------------------------------------------------------------------
PHP_FPM_CONF_TEMPLATE = """\
[global]
pid = {layer_root}/php-fpm.pid
error_log = /proc/self/fd/2
daemonize = no

[www]
listen = {listen}
pm = dynamic
pm.max_children = 5
pm.start_servers = 2
pm.min_spare_servers = 1
pm.max_spare_servers = 3
catch_workers_output = yes
clear_env = no

env[PATH] = /usr/local/bin:/usr/bin:/bin
env[TMPDIR] = /tmp
"""


def render_php_fpm_conf(layer_root: str, include: Optional[str] = None) -> str:
    """
    Render php-fpm.conf.

    ``include`` is a glob of user pool fragments; when given it becomes an
    ``include=`` directive at the end so user settings override ours.
    """
    conf = PHP_FPM_CONF_TEMPLATE.format(layer_root=layer_root, listen=FPM_LISTEN_ADDRESS)
    if include:
        conf += f"\ninclude={include}\n"
    return conf


# ---------------------------------------------------------------------------
# httpd.conf
# ---------------------------------------------------------------------------
HTTPD_CONF_TEMPLATE = """\
ServerRoot "${{SERVER_ROOT}}"
Listen "${{PORT}}"
ServerAdmin "{server_admin}"
ServerName "0.0.0.0"
DocumentRoot "{document_root}"

LoadModule authz_core_module modules/mod_authz_core.so
LoadModule authz_host_module modules/mod_authz_host.so
LoadModule log_config_module modules/mod_log_config.so
LoadModule env_module modules/mod_env.so
LoadModule setenvif_module modules/mod_setenvif.so
LoadModule dir_module modules/mod_dir.so
LoadModule mime_module modules/mod_mime.so
LoadModule reqtimeout_module modules/mod_reqtimeout.so
LoadModule unixd_module modules/mod_unixd.so
LoadModule mpm_event_module modules/mod_mpm_event.so
LoadModule proxy_module modules/mod_proxy.so
LoadModule proxy_fcgi_module modules/mod_proxy_fcgi.so
LoadModule remoteip_module modules/mod_remoteip.so
LoadModule rewrite_module modules/mod_rewrite.so
LoadModule headers_module modules/mod_headers.so

<Directory />
    AllowOverride none
    Require all denied
</Directory>

<Directory "{document_root}">
    Options SymLinksIfOwnerMatch
    AllowOverride All
    Require all granted
</Directory>

DirectoryIndex index.php index.html index.htm

<Files ".ht*">
    Require all denied
</Files>

ErrorLog "/proc/self/fd/2"
LogLevel info
LogFormat "%a %l %u %t \\"%r\\" %>s %b \\"%{{Referer}}i\\" \\"%{{User-agent}}i\\"" combined
CustomLog "/proc/self/fd/1" combined

TypesConfig conf/mime.types

RemoteIPHeader x-forwarded-for
RemoteIPInternalProxy 10.0.0.0/8 172.16.0.0/12 192.168.0.0/16
SetEnvIf x-forwarded-proto https HTTPS=on
RequestHeader unset Proxy early

<Proxy "fcgi://{fpm_listen}">
    ProxySet disablereuse=On retry=0
</Proxy>

<Directory "{document_root}">
    <Files *.php>
        <If "-f %{{REQUEST_FILENAME}}">
            SetHandler proxy:fcgi://{fpm_listen}
        </If>
    </Files>
</Directory>
{https_redirect}
IncludeOptional "{app_root}/{user_dir}/*.conf"
"""

HTTPD_HTTPS_REDIRECT = """
RewriteEngine On
RewriteCond %{HTTP:X-Forwarded-Proto} =http
RewriteRule ^ https://%{HTTP_HOST}%{REQUEST_URI} [L,R=301,NE]
"""


def render_httpd_conf(app_root: str, webdir: str, server_admin: str, https_redirect: bool) -> str:
    return HTTPD_CONF_TEMPLATE.format(
        server_admin=server_admin,
        document_root=f"{app_root}/{webdir}",
        fpm_listen=FPM_LISTEN_ADDRESS,
        https_redirect=HTTPD_HTTPS_REDIRECT if https_redirect else "",
        app_root=app_root,
        user_dir=HTTPD_USER_DIR,
    )


# ---------------------------------------------------------------------------
# nginx.conf
# ---------------------------------------------------------------------------
NGINX_CONF_TEMPLATE = """\
daemon off;
error_log stderr notice;
pid /tmp/nginx.pid;

events {{
    worker_connections 1024;
}}

http {{
    charset utf-8;
    types {{
        text/html html htm;
        text/css css;
        text/plain txt;
        application/javascript js;
        application/json json;
        application/xml xml;
        image/gif gif;
        image/jpeg jpeg jpg;
        image/png png;
        image/svg+xml svg;
        image/x-icon ico;
        image/webp webp;
        font/woff woff;
        font/woff2 woff2;
        application/pdf pdf;
    }}
    default_type application/octet-stream;
    access_log /dev/stdout;
    sendfile on;
    keepalive_timeout 65;
    server_tokens off;

    client_body_temp_path /tmp/client_body_temp;
    proxy_temp_path /tmp/proxy_temp;
    fastcgi_temp_path /tmp/fastcgi_temp;

    map $http_x_forwarded_proto $redirect_to_https {{
        default "no";
        "http" "yes";
    }}

    upstream php_fpm {{
        server {fpm_listen};
    }}

    server {{
        listen {port} default_server;
        server_name localhost;
        root {document_root};
        index index.php index.html index.htm;
{https_redirect}
        location / {{
            try_files $uri $uri/ /index.php$is_args$args;
        }}

        location ~ \\.php$ {{
            try_files $uri =404;
            fastcgi_split_path_info ^(.+\\.php)(/.+)$;
{fastcgi_params}            fastcgi_param SCRIPT_FILENAME $document_root$fastcgi_script_name;
            fastcgi_param HTTPS $https if_not_empty;
            fastcgi_pass php_fpm;
        }}

        location ~ /\\. {{
            deny all;
        }}

        include {app_root}/{user_dir}/*-server.conf;
    }}
}}
"""

# Stock fastcgi_params, inlined: nginx.conf lives in the app root, where no
# relative include resolves.
NGINX_FASTCGI_PARAMS = """\
            fastcgi_param QUERY_STRING $query_string;
            fastcgi_param REQUEST_METHOD $request_method;
            fastcgi_param CONTENT_TYPE $content_type;
            fastcgi_param CONTENT_LENGTH $content_length;
            fastcgi_param SCRIPT_NAME $fastcgi_script_name;
            fastcgi_param REQUEST_URI $request_uri;
            fastcgi_param DOCUMENT_URI $document_uri;
            fastcgi_param DOCUMENT_ROOT $document_root;
            fastcgi_param SERVER_PROTOCOL $server_protocol;
            fastcgi_param REQUEST_SCHEME $scheme;
            fastcgi_param GATEWAY_INTERFACE CGI/1.1;
            fastcgi_param SERVER_SOFTWARE nginx/$nginx_version;
            fastcgi_param REMOTE_ADDR $remote_addr;
            fastcgi_param REMOTE_PORT $remote_port;
            fastcgi_param SERVER_ADDR $server_addr;
            fastcgi_param SERVER_PORT $server_port;
            fastcgi_param SERVER_NAME $server_name;
            fastcgi_param REDIRECT_STATUS 200;
"""

NGINX_HTTPS_REDIRECT = """
        if ($redirect_to_https = "yes") {
            return 301 https://$http_host$request_uri;
        }
"""


def render_nginx_conf(app_root: str, webdir: str, https_redirect: bool, port: int = DEFAULT_PORT) -> str:
    return NGINX_CONF_TEMPLATE.format(
        port=port,
        fastcgi_params=NGINX_FASTCGI_PARAMS,
        fpm_listen=FPM_LISTEN_ADDRESS,
        document_root=f"{app_root}/{webdir}",
        https_redirect=NGINX_HTTPS_REDIRECT if https_redirect else "",
        app_root=app_root,
        user_dir=NGINX_USER_DIR,
    )
