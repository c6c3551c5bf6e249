"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
import click
from functools import wraps

from .config import configure_logging
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)

logger = logging.getLogger(__name__)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Logging on stderr, debug level with --verbose
    - Consistent error handling: a JSON error object on stdout
      and an exit code matching the exception
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        configure_logging("debug" if kwargs.get('verbose') else "info")

        try:
            func(*args, **kwargs)
            sys.exit(SUCCESS)
        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            raise
        except CommandError as e:
            logger.error(str(e))
            error_obj = {
                "error": str(e),
                "type": type(e).__name__,
                "exit_code": e.exit_code
            }
            if hasattr(e, 'problems'):
                error_obj['problems'] = e.problems
            print(json.dumps(error_obj, ensure_ascii=False), flush=True)
            sys.exit(e.exit_code)
        except Exception as e:
            logger.exception(f"Command failed: {e}")
            print(json.dumps({"error": str(e), "type": type(e).__name__}, ensure_ascii=False), flush=True)
            sys.exit(get_exit_code_for_exception(e))

    return wrapper


# Standard options that many commands share
common_options = {
    'config': click.option('-c', '--config', 'config_path', type=click.Path(dir_okay=False),
                           help='Config file (default: $MIRRORFORGE_CONFIG or ./config.yml)'),
    'verbose': click.option('-v', '--verbose', is_flag=True,
                            help='Log debug messages'),
    'max_processes': click.option('-j', '--max-processes', type=click.IntRange(min=1),
                                  help='Concurrent external processes (default: 2 x CPUs)'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('config', 'verbose')
        def my_command(config_path, verbose):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
