"""
Configuration
=============
Loads environment variables from .env file using python-dotenv.

Environment Variables:
    LOG_LEVEL            — Root log level (default: INFO)
    LOG_DIR              — Directory for a persistent log file (default: none)
    PORT                 — Port the web process listens on (default: 8080)
    PHP_HOME             — PHP installation root, set by the PHP distribution buildpack
    PHP_API              — PHP extension API date, set by the PHP distribution buildpack

Integration Harness:
    PACK_BIN             — `pack` CLI used to build test images (default: pack)
    BUILDER_IMAGE        — CNB builder image (default: cloudfoundry/cnb:cflinuxfs3)
    GITHUB_TOKEN         — Optional token for GitHub release downloads
    GITHUB_API_URL       — GitHub API base URL
    BUILDPACK_ORG        — GitHub org hosting the sibling buildpacks
    BUILDPACK_CACHE_DIR  — Where packaged buildpacks are staged (default: system temp)
    APP_START_TIMEOUT    — Seconds to wait for a container to become healthy
    HTTP_TIMEOUT         — Seconds per GitHub / application HTTP request
    VENDOR_PLATFORM      — Wheel platform vendored into packaged buildpacks (default: manylinux2014_x86_64)
    VENDOR_PYTHON        — Python version of the stack that runs bin/detect and bin/build
                           (default: the running interpreter)

The harness settings are only read by tests; the buildpack phases never
touch Docker or the network.
"""
import os
import sys
import tempfile

from dotenv import load_dotenv

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("LOG_DIR", "")

PORT = int(os.getenv("PORT", 8080))

PHP_HOME = os.getenv("PHP_HOME", "/layers/org.cloudfoundry.php-dist/php-binary")
PHP_API = os.getenv("PHP_API", "20170718")

# Harness
PACK_BIN = os.getenv("PACK_BIN", "pack")
BUILDER_IMAGE = os.getenv("BUILDER_IMAGE", "cloudfoundry/cnb:cflinuxfs3")
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
BUILDPACK_ORG = os.getenv("BUILDPACK_ORG", "cloudfoundry")
BUILDPACK_CACHE_DIR = os.getenv(
    "BUILDPACK_CACHE_DIR",
    os.path.join(tempfile.gettempdir(), "php-web-buildpacks"),
)
APP_START_TIMEOUT = int(os.getenv("APP_START_TIMEOUT", 120))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", 30.0))
VENDOR_PLATFORM = os.getenv("VENDOR_PLATFORM", "manylinux2014_x86_64")
VENDOR_PYTHON = os.getenv("VENDOR_PYTHON", f"{sys.version_info.major}.{sys.version_info.minor}")
