"""
Custom exceptions for snipbox.

Provides specific exception types for better error handling and user feedback.
"""


class SnipboxError(Exception):
    """Base exception for snipbox errors."""


class ConfigurationError(SnipboxError):
    """Error in configuration."""


# Dialect Errors


class DialectError(SnipboxError):
    """Base exception for dialect and transpilation errors."""


class TranspilerUnavailableError(DialectError):
    """The transpiler for a foreign dialect could not be imported."""

    def __init__(self, dialect: str, package: str, detail: str | None = None):
        label = dialect.capitalize()
        super().__init__(
            f"{label} requested but '{package}' is not installed. Run: pip install {package}"
        )
        self.dialect = dialect
        self.package = package
        self.detail = detail
        self.user_message = f"The {label} transpiler is not available."
        self.recovery_hint = f"Install it with: pip install {package}"


class TranspileError(DialectError):
    """Foreign-dialect source text could not be compiled to Python."""

    def __init__(self, dialect: str, message: str, lineno: int | None = None):
        location = f" (line {lineno})" if lineno else ""
        super().__init__(f"{dialect} transpile failed{location}: {message}")
        self.dialect = dialect
        self.lineno = lineno
        self.user_message = f"The {dialect} source has syntax errors."
        self.recovery_hint = "Fix the reported line and run again."


# Execution Errors


class ExecutionError(SnipboxError):
    """Base exception for execution errors."""


class ExecutionTimeoutError(ExecutionError):
    """Snippet execution exceeded its deadline."""

    def __init__(self, timeout: float):
        millis = int(round(timeout * 1000))
        super().__init__(f"Script execution timed out after {millis}ms")
        self.timeout = timeout
        self.user_message = f"Code execution took longer than {timeout:g} seconds."
        self.recovery_hint = "Look for an infinite loop or a timer that is never cancelled."


class SnippetDeadlineExceeded(BaseException):
    """
    Raised inside the evaluation worker when its deadline passes.

    Derives from ``BaseException`` so a snippet's ``except Exception`` does
    not swallow it.
    """


def format_error_message(error: Exception) -> str:
    """
    Format an error message for display to user.

    Args:
        error: Exception to format

    Returns:
        Formatted error message with recovery hints
    """
    if isinstance(error, SnipboxError) and hasattr(error, "user_message"):
        message = error.user_message
        if hasattr(error, "recovery_hint"):
            message += f"\n\nHint: {error.recovery_hint}"
        return message
    else:
        return str(error)
