"""
Custom exceptions for the FluxInkVerse application.
Type-safe error handling with clear semantics; each error knows its HTTP status.
"""
import uuid
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels for monitoring and alerting."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categorization for better handling and monitoring."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    DATABASE = "database"
    EXTERNAL_SERVICE = "external_service"
    STORAGE = "storage"
    SYSTEM = "system"
    BUSINESS_LOGIC = "business_logic"


class FluxInkError(Exception):
    """Base exception for all FluxInkVerse-specific errors with enhanced context."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        user_message: Optional[str] = None,
        correlation_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.timestamp = datetime.now(timezone.utc)
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self._generate_error_code()
        self.severity = severity
        self.category = category
        self.user_message = user_message or message
        self.correlation_id = correlation_id or str(uuid.uuid4())
        self.context = context or {}

    def _generate_error_code(self) -> str:
        """Generate a unique error code for tracking."""
        class_name = self.__class__.__name__
        return f"{class_name.upper()}_{int(self.timestamp.timestamp() * 1000)}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging and API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "category": self.category.value,
            "details": self.details,
            "correlation_id": self.correlation_id,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__
        }


# ============================================================================
# AUTHENTICATION
# ============================================================================

class AuthenticationError(FluxInkError):
    """Base class for authentication-related errors."""

    http_status = 401

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.AUTHENTICATION)
        kwargs.setdefault('severity', ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)


# ============================================================================
# RESOURCE / INPUT
# ============================================================================

class NotFoundError(FluxInkError):
    """Raised when a requested resource is not found."""

    http_status = 404

    def __init__(
        self,
        message: str,
        resource_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)

        self.resource_id = resource_id
        self.resource_type = resource_type

        self.context.update({
            'resource_id': resource_id,
            'resource_type': resource_type
        })


class ValidationError(FluxInkError):
    """Raised when input validation fails."""

    http_status = 400

    def __init__(
        self,
        message: str,
        field_errors: Optional[Dict[str, List[str]]] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.VALIDATION)
        kwargs.setdefault('severity', ErrorSeverity.LOW)
        super().__init__(message, **kwargs)

        self.field_errors = field_errors or {}
        self.context.update({'field_errors': self.field_errors})


class DatabaseError(FluxInkError):
    """Raised when database operations fail."""

    http_status = 500

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.DATABASE)
        kwargs.setdefault('severity', ErrorSeverity.HIGH)
        super().__init__(message, **kwargs)

        self.operation = operation
        self.table = table

        self.context.update({
            'operation': operation,
            'table': table
        })


class StorageError(FluxInkError):
    """Raised when Supabase Storage uploads or lookups fail."""

    http_status = 502

    def __init__(self, message: str, bucket: Optional[str] = None, **kwargs):
        kwargs.setdefault('category', ErrorCategory.STORAGE)
        super().__init__(message, **kwargs)
        self.bucket = bucket
        self.context.update({'bucket': bucket})


# ============================================================================
# EXTERNAL SERVICES
# ============================================================================

class ExternalServiceError(FluxInkError):
    """Raised when external service calls fail."""

    http_status = 502

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.EXTERNAL_SERVICE)
        super().__init__(message, **kwargs)

        self.service_name = service_name
        self.status_code = status_code

        self.context.update({
            'service_name': service_name,
            'status_code': status_code
        })


class PaymentGatewayError(ExternalServiceError):
    """Raised when the QRIS gateway rejects or fails a request."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        kwargs.setdefault('severity', ErrorSeverity.HIGH)
        super().__init__(message, service_name="xendit", status_code=status_code, **kwargs)
        self.payload = payload or {}


class ConfigurationError(FluxInkError):
    """Raised when configuration is invalid."""

    http_status = 500

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        kwargs.setdefault('category', ErrorCategory.SYSTEM)
        kwargs.setdefault('severity', ErrorSeverity.CRITICAL)
        super().__init__(message, **kwargs)
        self.config_key = config_key
        self.context.update({'config_key': config_key})
