"""
Custom Exception Hierarchy for the VNet Topology Validator

Schema problems in a declaration abort before anything is deployed, provider
problems abort only the subtree being validated. Content mismatches are never
raised; they are recorded as findings in the validation report.
"""

from typing import Any, Dict, Optional, Sequence


class TopologyValidatorError(Exception):
    """
    Base exception class for all topology validator errors.

    Provides structured error information including context, error codes,
    and optional recovery suggestions.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
        recovery_suggestion: Optional[str] = None,
    ) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error message
            error_code: Optional error code for programmatic handling
            context: Optional dictionary with error context
            cause: Optional underlying exception that caused this error
            recovery_suggestion: Optional suggestion for error recovery
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        self.cause = cause
        self.recovery_suggestion = recovery_suggestion

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        result = self.message
        if self.error_code:
            result = f"[{self.error_code}] {result}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (context: {context_str})"
        if self.cause:
            result += f" (caused by: {self.cause})"
        if self.recovery_suggestion:
            result += f" (suggestion: {self.recovery_suggestion})"
        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "context": self.context,
            "cause": str(self.cause) if self.cause else None,
            "recovery_suggestion": self.recovery_suggestion,
        }


class SchemaError(TopologyValidatorError):
    """Raised when a topology declaration is malformed."""

    def __init__(
        self,
        message: str,
        path: Optional[Sequence[str]] = None,
        field: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        context = kwargs.get("context", {})
        if path:
            context["path"] = "/".join(path)
        if field:
            context["field"] = field
        kwargs["context"] = context
        kwargs.setdefault("error_code", "SCHEMA_INVALID")
        super().__init__(message, **kwargs)
        self.path = tuple(path or ())
        self.field = field


class ProviderError(TopologyValidatorError):
    """Raised when the provisioner or its observed state cannot be reached."""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs: Any) -> None:
        context = kwargs.get("context", {})
        if key:
            context["key"] = key
        kwargs["context"] = context
        kwargs.setdefault("error_code", "PROVIDER_ERROR")
        super().__init__(message, **kwargs)
        self.key = key


class ProviderTimeoutError(ProviderError):
    """Raised when an observed state query exceeds its timeout."""

    def __init__(
        self, message: str, timeout: Optional[float] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if timeout is not None:
            context["timeout"] = f"{timeout}s"
        kwargs["context"] = context
        kwargs.setdefault("error_code", "PROVIDER_TIMEOUT")
        kwargs.setdefault(
            "recovery_suggestion",
            "Raise VNET_VALIDATOR_TIMEOUT_OUTPUT_QUERY or check provider connectivity",
        )
        super().__init__(message, **kwargs)
        self.timeout = timeout


class ConfigError(TopologyValidatorError):
    """Configuration loading or validation error."""

    def __init__(
        self, message: str, config_path: Optional[str] = None, **kwargs: Any
    ) -> None:
        context = kwargs.get("context", {})
        if config_path:
            context["config_path"] = config_path
        kwargs["context"] = context
        kwargs.setdefault("error_code", "CONFIG_INVALID")
        super().__init__(message, **kwargs)
