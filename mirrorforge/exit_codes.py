"""
Standard exit codes for mirrorforge commands.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import List, Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
API_ERROR = 65           # External API call failed (GitHub)
CONFIG_ERROR = 66        # Configuration file error
PERMISSION_ERROR = 67    # Insufficient permissions
BUILD_FAILED = 72        # A build cycle produced no script
DEPLOY_FAILED = 73       # The script couldn't be deployed
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'PermissionError': PERMISSION_ERROR,
    'ConfigError': CONFIG_ERROR,
    'APIError': API_ERROR,
    'BuildFailedError': BUILD_FAILED,
    'DeployFailedError': DEPLOY_FAILED,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    return EXCEPTION_EXIT_CODES.get(exc.__class__.__name__, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class APIError(CommandError):
    """Raised when an external API call fails."""
    def __init__(self, message: str):
        super().__init__(message, API_ERROR)


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str, problems: Optional[List[str]] = None):
        super().__init__(message, CONFIG_ERROR)
        self.problems = problems or [message]


class BuildFailedError(CommandError):
    """Raised when a build cycle fails."""
    def __init__(self, message: str = "Build failed, no script produced"):
        super().__init__(message, BUILD_FAILED)


class DeployFailedError(CommandError):
    """Raised when the script couldn't be deployed."""
    def __init__(self, message: str = "Deploy failed"):
        super().__init__(message, DEPLOY_FAILED)
