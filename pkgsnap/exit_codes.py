"""
Standard exit codes and command errors for pkgsnap.

Following Unix/POSIX conventions for command-line tools.
"""
from typing import Optional

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NOT_FOUND = 64           # Named snapshot or package does not exist
CONFIG_ERROR = 66        # Configuration file error
PERMISSION_ERROR = 67    # Insufficient permissions
DATA_ERROR = 70          # Data format or validation error
NO_ARCHITECTURES = 72    # Target architectures could not be determined
DUPLICATE_NAME = 73      # Snapshot name already taken
INTERRUPTED = 130        # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': NOT_FOUND,
    'PermissionError': PERMISSION_ERROR,
    'ValueError': DATA_ERROR,
    'KeyError': DATA_ERROR,
    'JSONDecodeError': DATA_ERROR,
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
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.exit_code = exit_code


class MalformedDependency(CommandError):
    """Raised when a dependency expression does not match the grammar."""
    def __init__(self, text: str, reason: str = "unable to parse"):
        super().__init__(f"{reason}: {text!r}", DATA_ERROR)
        self.text = text
        self.reason = reason


class InvalidRelation(CommandError):
    """
    Raised when a package carries a relation field that cannot be parsed.

    Non-fatal during pulls: the verifier collects these per package.
    """
    def __init__(self, package: str, relation: str, reason: str = "unable to parse relation"):
        super().__init__(f"{package}: {reason}: {relation!r}", DATA_ERROR)
        self.package = package
        self.relation = relation
        self.reason = reason


class NotFound(CommandError):
    """Raised when a named snapshot does not exist."""
    def __init__(self, message: str):
        super().__init__(message, NOT_FOUND)


class DuplicateName(CommandError):
    """Raised when a snapshot with the same name is already registered."""
    def __init__(self, name: str):
        super().__init__(f"snapshot with name {name} already exists", DUPLICATE_NAME)
        self.name = name


class NoArchitectures(CommandError):
    """Raised when no target architecture can be determined for a pull."""
    def __init__(self, message: str = "unable to determine list of architectures, please specify explicitly"):
        super().__init__(message, NO_ARCHITECTURES)


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)


class IndexReadError(CommandError):
    """Raised when a Packages index cannot be read or decompressed."""
    def __init__(self, path: str, reason: str):
        super().__init__(f"unable to read packages file {path}: {reason}", DATA_ERROR)
        self.path = path
        self.reason = reason
