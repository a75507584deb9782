import logging
import os
import sys

import click

from phpweb.core.config import LOG_DIR, LOG_LEVEL
from phpweb.core.constants import BUILD_FAIL, DETECT_FAIL
from phpweb.core.errors import BuildpackError
from phpweb.lifecycle.build import build as run_build
from phpweb.lifecycle.detect import detect as run_detect
from phpweb.utils.logging_config import setup_logging

logger = logging.getLogger("main")


@click.group()
@click.option("--app-root", default=None, type=click.Path(file_okay=False),
              help="Application directory (default: current directory).")
@click.pass_context
def cli(ctx: click.Context, app_root):
    """PHP web buildpack lifecycle entry points."""
    setup_logging(level=getattr(logging, LOG_LEVEL.upper(), logging.INFO), log_dir=LOG_DIR)
    ctx.ensure_object(dict)
    ctx.obj["app_root"] = os.path.abspath(app_root or os.getcwd())


@cli.command()
@click.argument("platform", type=click.Path())
@click.argument("plan", type=click.Path(dir_okay=False))
@click.pass_context
def detect(ctx: click.Context, platform, plan):
    """Write the build plan if the app is a PHP web app or script."""
    try:
        code = run_detect(ctx.obj["app_root"], plan)
    except BuildpackError as e:
        logger.error("Detection failed: %s", e)
        code = DETECT_FAIL
    sys.exit(code)


@cli.command()
@click.argument("layers", type=click.Path(file_okay=False))
@click.argument("platform", type=click.Path())
@click.argument("plan", type=click.Path(dir_okay=False))
@click.pass_context
def build(ctx: click.Context, layers, platform, plan):
    """Contribute the php-web / php-script layer and launch processes."""
    try:
        run_build(ctx.obj["app_root"], layers, plan)
    except BuildpackError as e:
        logger.error("Build failed: %s", e)
        sys.exit(BUILD_FAIL)


if __name__ == "__main__":
    cli()
