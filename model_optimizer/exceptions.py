"""
Exception types raised by the model optimizer
"""

from typing import Optional


class ModelOptimizerError(Exception):
    """Base exception for all model optimizer errors"""
    pass


class ProbeUnavailable(ModelOptimizerError):
    """Raised when no hardware probing tool is usable on this host"""
    pass


class CatalogValidationError(ModelOptimizerError):
    """Raised when a catalog override file is malformed"""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class InstallerUnavailable(ModelOptimizerError):
    """Raised when the ollama binary cannot be found"""
    pass


class PullFailed(ModelOptimizerError):
    """Raised when `ollama pull` exits with a non-zero status"""

    def __init__(self, model: str, returncode: int):
        self.model = model
        self.returncode = returncode
        super().__init__(f"Failed to pull {model} (exit code {returncode})")


class LaunchFailed(ModelOptimizerError):
    """Raised when the coding assistant cannot be started or exits with an error"""
    pass


class ConfigError(ModelOptimizerError):
    """Raised when the user configuration file is invalid"""
    pass
