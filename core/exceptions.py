"""
Exception Definitions - Custom exceptions for Answering Machine
==============================================================

This module defines all custom exceptions used throughout the application,
providing clear error handling and meaningful error messages.
"""


class AnsweringMachineError(Exception):
    """
    Base exception for all Answering Machine errors.

    All custom exceptions in this application inherit from this base class,
    allowing for easy catching of all application-specific errors.

    Attributes:
        message (str): Human-readable error description
        details (dict): Additional error details for debugging
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            details: Optional dictionary with additional error context
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return formatted error message with details if present."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigError(AnsweringMachineError):
    """
    Settings-related errors.

    Raised when there are issues with:
    - Unreadable settings files
    - Invalid setting values
    - Settings parsing errors
    """
    pass


class RuleFileNotFoundError(AnsweringMachineError):
    """Raised when the rules file does not exist."""
    pass


class RuleParseError(AnsweringMachineError):
    """Raised when a rules document cannot be parsed."""
    pass


class RuleValidationError(AnsweringMachineError):
    """
    Rule schema errors.

    Raised when a parsed rules document does not satisfy the rule
    schema (missing fields, wrong types, negative timings).
    """
    pass


class PersistenceError(AnsweringMachineError):
    """
    Durable storage errors.

    Raised when rules or settings cannot be written to disk. The
    in-memory state stays authoritative until the next successful save.
    """
    pass


class PatternError(AnsweringMachineError):
    """
    Trigger compilation errors.

    Raised when a rule's trigger cannot be compiled into a regular
    expression, either because the pattern is malformed or because
    its flag string contains an unknown letter.

    Attributes:
        pattern (str): The pattern that failed to compile
    """

    def __init__(self, message: str, pattern: str = "", details: dict = None):
        self.pattern = pattern
        super().__init__(message, details)


class RemoteImportError(AnsweringMachineError):
    """
    Remote rule import errors.

    Base class for every failure of a remote import. None of them
    mutate the rules file.
    """
    pass


class FetchDisabledError(RemoteImportError):
    """Raised when remote fetching is turned off in the settings."""
    pass


class HostNotAllowedError(RemoteImportError):
    """
    Raised when a URL's host is not in the fetch whitelist.

    Attributes:
        hostname (str): The rejected hostname
    """

    def __init__(self, message: str, hostname: str = "", details: dict = None):
        self.hostname = hostname
        super().__init__(message, details)


class FetchError(RemoteImportError):
    """
    Raised on network failures and non-success HTTP responses.

    Attributes:
        status_code (int): HTTP status, 0 if no response was received
    """

    def __init__(self, message: str, status_code: int = 0, details: dict = None):
        self.status_code = status_code
        super().__init__(message, details)

    def __str__(self) -> str:
        """Return formatted error message with the HTTP status."""
        base = super().__str__()
        if self.status_code:
            return f"{base} | HTTP status: {self.status_code}"
        return base
