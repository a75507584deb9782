"""
Constants
Centralised storage for dependency names, webserver names and default paths.
"""
# Build plan / layer names
WEB_DEPENDENCY = "php-web"
SCRIPT_DEPENDENCY = "php-script"
PHP_DEPENDENCY = "php-binary"
HTTPD_DEPENDENCY = "httpd"
NGINX_DEPENDENCY = "nginx"

# Webserver identifiers accepted in buildpack.yml
PHP_WEB_SERVER = "php-server"
APACHE_HTTPD = "httpd"
NGINX = "nginx"
WEB_SERVERS = [PHP_WEB_SERVER, APACHE_HTTPD, NGINX]

DEFAULT_WEB_DIRECTORY = "htdocs"
DEFAULT_SCRIPT = "app.php"
DEFAULT_LIB_DIRECTORY = "lib"
DEFAULT_SERVER_ADMIN = "admin@localhost"
DEFAULT_PORT = 8080
FPM_LISTEN_ADDRESS = "127.0.0.1:9000"

# Order matters: first existing file wins.
SCRIPT_CANDIDATES = ["app.php", "main.php", "run.php", "start.php"]

# Application-relative paths
BUILDPACK_YAML = "buildpack.yml"
PHP_INI_SCAN_DIR = ".php.ini.d"
PHP_FPM_USER_DIR = ".php.fpm.d"
HTTPD_USER_DIR = ".httpd.conf.d"
NGINX_USER_DIR = ".nginx.conf.d"

# Process types registered in launch.toml
WEB_PROCESS = "web"
TASK_PROCESS = "task"

# Lifecycle exit codes
DETECT_PASS = 0
DETECT_FAIL = 100
BUILD_FAIL = 1

# Packaged buildpack: third-party runtime packages, put on PYTHONPATH by bin/*
VENDOR_DIR = "vendor"
