"""
Custom exceptions for metaprep with user-friendly error messages
"""

import builtins
from typing import Optional, List, Dict, Any


class MetaPrepError(Exception):
    """Base exception class for metaprep with user-friendly messaging."""

    def __init__(self, message: str, details: Optional[str] = None, suggestions: Optional[List[str]] = None):
        """
        Initialize metaprep exception.

        Args:
            message: Main error message (user-friendly)
            details: Technical details for debugging
            suggestions: List of suggested solutions
        """
        self.message = message
        self.details = details
        self.suggestions = suggestions or []
        super().__init__(self.get_full_message())

    def get_full_message(self) -> str:
        """Get the complete error message with suggestions."""
        msg = self.message
        if self.details:
            msg += f"\n\nTechnical details: {self.details}"
        if self.suggestions:
            msg += f"\n\nSuggestions:\n" + "\n".join(f"  • {s}" for s in self.suggestions)
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "suggestions": self.suggestions
        }


class DecodeError(MetaPrepError):
    """Raised when a container cannot be parsed (bad signature, overrun, empty audio span)."""

    def __init__(self, format_name: str, reason: str, offset: Optional[int] = None):
        message = f"Invalid {format_name} structure: {reason}"
        details = f"at byte offset {offset}" if offset is not None else None
        suggestions = [
            "Verify that the file is not corrupted or truncated",
            "Ensure the file extension matches the actual file format",
            "Try opening the file with its native application"
        ]
        super().__init__(message, details, suggestions)
        self.format_name = format_name
        self.reason = reason
        self.offset = offset


class EncodeError(MetaPrepError):
    """Raised when re-encoding through an external codec or process fails."""

    def __init__(self, format_name: str, stage: str, original_error: Optional[Any] = None):
        message = f"Failed to {stage} {format_name} data"
        details = str(original_error) if original_error else None
        suggestions = [
            "Retry with --no-lossy to skip re-encoding",
            "Check that the required codec libraries are installed",
            "Use --verbose for more technical details"
        ]
        super().__init__(message, details, suggestions)
        self.format_name = format_name
        self.stage = stage


class FileNotFoundError(MetaPrepError):
    """Raised when a file cannot be found or accessed."""

    def __init__(self, file_path: str, original_error: Optional[Exception] = None):
        message = f"Could not find or access file: {file_path}"
        details = str(original_error) if original_error else None
        suggestions = [
            "Check that the file path is correct",
            "Verify that the file exists and is readable",
            "Try using an absolute path instead of a relative path"
        ]
        super().__init__(message, details, suggestions)
        self.file_path = file_path


class UnsupportedFileTypeError(MetaPrepError):
    """Raised when trying to process an unsupported file type."""

    def __init__(self, file_path: str, file_type: str, supported_types: Optional[List[str]] = None):
        message = f"Unsupported file type '{file_type}' for file: {file_path}"
        suggestions = ["Use a supported file format"]
        if supported_types:
            suggestions.append(f"Supported types: {', '.join(supported_types)}")
        suggestions.append("Check if the file extension is correct")
        super().__init__(message, None, suggestions)
        self.file_path = file_path
        self.file_type = file_type


class PermissionError(MetaPrepError):
    """Raised when there are insufficient permissions to access a file."""

    def __init__(self, file_path: str, operation: str = "access", original_error: Optional[Exception] = None):
        message = f"Permission denied: cannot {operation} file {file_path}"
        details = str(original_error) if original_error else None
        suggestions = [
            "Check file permissions and ownership",
            "Ensure the file is not locked by another application",
            "Try writing to a location you have write access to"
        ]
        super().__init__(message, details, suggestions)
        self.file_path = file_path
        self.operation = operation


class DependencyError(MetaPrepError):
    """Raised when a required external tool or library is missing."""

    def __init__(self, dependency_name: str, feature: str, install_command: Optional[str] = None):
        message = f"Missing dependency '{dependency_name}' required for {feature}"
        suggestions = [
            f"Install the required dependency: {install_command}" if install_command else f"Install {dependency_name}",
            "Make sure the tool is available on your PATH"
        ]
        super().__init__(message, None, suggestions)
        self.dependency_name = dependency_name
        self.feature = feature


class ConfigurationError(MetaPrepError):
    """Raised when there's a configuration issue."""

    def __init__(self, setting: str, value: Any, expected: str):
        message = f"Invalid configuration for '{setting}': got '{value}', expected {expected}"
        suggestions = [
            f"Check the value for '{setting}'",
            "Refer to --help for valid configuration options"
        ]
        super().__init__(message, None, suggestions)
        self.setting = setting
        self.value = value


class OutputError(MetaPrepError):
    """Raised when writing a processed file fails."""

    def __init__(self, output_path: str, original_error: Optional[Exception] = None):
        message = f"Failed to write output file {output_path}"
        details = str(original_error) if original_error else None
        suggestions = [
            "Check that you have write permissions to the output directory",
            "Ensure there's enough disk space available",
            "Verify that the output path is valid"
        ]
        super().__init__(message, details, suggestions)
        self.output_path = output_path


class ValidationError(MetaPrepError):
    """Raised when input validation fails."""

    def __init__(self, parameter: str, value: Any, constraint: str):
        message = f"Invalid value for '{parameter}': {value} does not meet constraint: {constraint}"
        suggestions = [
            f"Check the value provided for '{parameter}'",
            "Use the --help option to see parameter requirements"
        ]
        super().__init__(message, None, suggestions)
        self.parameter = parameter
        self.value = value


def handle_exception_gracefully(func):
    """
    Decorator to convert unexpected exceptions into MetaPrepError subclasses.
    """
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except MetaPrepError:
            raise
        except builtins.FileNotFoundError as e:
            file_path = str(args[0]) if args else "unknown"
            raise FileNotFoundError(file_path, e)
        except builtins.PermissionError as e:
            file_path = str(args[0]) if args else "unknown"
            raise PermissionError(file_path, "access", e)
        except Exception as e:
            raise MetaPrepError(
                f"An unexpected error occurred in {func.__name__}",
                str(e),
                [
                    "Try running the operation again",
                    "Check the input parameters",
                    "Report this issue if it persists"
                ]
            )
    wrapper.__name__ = func.__name__
    wrapper.__doc__ = func.__doc__
    return wrapper


def format_error_for_cli(error: Exception, verbose: bool = False) -> str:
    """
    Format an error for command-line display.

    Args:
        error: The exception to format
        verbose: Whether to include technical details

    Returns:
        Formatted error message
    """
    if isinstance(error, MetaPrepError):
        msg = f"❌ {error.message}"

        if verbose and error.details:
            msg += f"\n\n🔍 Technical details:\n{error.details}"

        if error.suggestions:
            msg += f"\n\n💡 Suggestions:"
            for suggestion in error.suggestions:
                msg += f"\n  • {suggestion}"

        return msg
    else:
        msg = f"❌ An unexpected error occurred: {str(error)}"
        if verbose:
            import traceback
            msg += f"\n\n🔍 Technical details:\n{traceback.format_exc()}"
        msg += f"\n\n💡 Suggestions:\n  • Try running the command again\n  • Check your input parameters\n  • Use --verbose for more details"
        return msg


def format_error_for_json(error: Exception) -> Dict[str, Any]:
    """
    Format an error for JSON output.

    Args:
        error: The exception to format

    Returns:
        Dictionary representation of the error
    """
    if isinstance(error, MetaPrepError):
        return error.to_dict()
    else:
        return {
            "error_type": "UnexpectedError",
            "message": str(error),
            "details": type(error).__name__,
            "suggestions": [
                "Try running the operation again",
                "Check the input parameters",
                "Report this issue if it persists"
            ]
        }
