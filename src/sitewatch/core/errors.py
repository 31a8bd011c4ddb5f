"""
Error Registry for Sitewatch

Structured error definitions shared by the store, the generator, the scheduler
and the command interface. Every raised error carries a stable code, a domain
and a user-facing message so the command interface can hand back a structured
failure instead of a bare traceback.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Dict, Optional, Any, List
from datetime import datetime


class ErrorDomain(Enum):
    """High-level error domains for organizing errors by system component"""
    STORAGE = "storage"              # Event store, schema migrations
    VALIDATION = "validation"        # Command input validation
    CONFIGURATION = "configuration"  # Catalogs, config files
    ALERTING = "alerting"            # Alert sink delivery
    COMMAND = "command"              # Command routing


class ErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode(Enum):
    """Error codes for the Sitewatch project"""

    # Storage Errors (1000-1999)
    STORAGE_UNAVAILABLE = "SW1001"
    SCHEMA_MIGRATION_FAILED = "SW1002"

    # Validation Errors (2000-2999)
    INVALID_ARGUMENT = "SW2001"

    # Configuration Errors (3000-3999)
    EMPTY_CATALOG = "SW3001"
    INVALID_CONFIGURATION = "SW3002"

    # Alerting Errors (4000-4999)
    ALERT_DELIVERY_FAILED = "SW4001"

    # Command Errors (5000-5999)
    COMMAND_NOT_IMPLEMENTED = "SW5001"


@dataclass
class ErrorDefinition:
    """Complete error definition with all metadata"""
    code: ErrorCode
    domain: ErrorDomain
    message: str
    severity: ErrorSeverity
    fatal: bool = False
    wire_code: Optional[str] = None
    user_message: Optional[str] = None
    resolution_hint: Optional[str] = None
    tags: Optional[List[str]] = None


ERROR_CATALOG: Dict[ErrorCode, ErrorDefinition] = {

    ErrorCode.STORAGE_UNAVAILABLE: ErrorDefinition(
        code=ErrorCode.STORAGE_UNAVAILABLE,
        domain=ErrorDomain.STORAGE,
        message="Event store could not be opened or written",
        severity=ErrorSeverity.HIGH,
        wire_code="STORAGE_UNAVAILABLE",
        user_message="Stored errors are temporarily unavailable",
        resolution_hint="Check that the database path exists and is writable",
        tags=["sqlite", "storage", "io"]
    ),

    ErrorCode.SCHEMA_MIGRATION_FAILED: ErrorDefinition(
        code=ErrorCode.SCHEMA_MIGRATION_FAILED,
        domain=ErrorDomain.STORAGE,
        message="Event store schema could not be migrated",
        severity=ErrorSeverity.CRITICAL,
        wire_code="STORAGE_UNAVAILABLE",
        user_message="Stored errors are unavailable until the database is repaired",
        resolution_hint="Back up the database file and inspect its schema version",
        tags=["sqlite", "schema", "migration"]
    ),

    ErrorCode.INVALID_ARGUMENT: ErrorDefinition(
        code=ErrorCode.INVALID_ARGUMENT,
        domain=ErrorDomain.VALIDATION,
        message="Invalid command argument",
        severity=ErrorSeverity.LOW,
        wire_code="INVALID_ARGUMENT",
        user_message="The request is missing a required argument",
        resolution_hint="Pass the arguments documented for the command",
        tags=["command", "input"]
    ),

    ErrorCode.EMPTY_CATALOG: ErrorDefinition(
        code=ErrorCode.EMPTY_CATALOG,
        domain=ErrorDomain.CONFIGURATION,
        message="Generation catalog is empty",
        severity=ErrorSeverity.CRITICAL,
        fatal=True,
        wire_code="EMPTY_CATALOG",
        user_message="Monitoring cannot start with an empty message or site list",
        resolution_hint="Provide at least one entry for every catalog in the configuration",
        tags=["catalog", "startup"]
    ),

    ErrorCode.INVALID_CONFIGURATION: ErrorDefinition(
        code=ErrorCode.INVALID_CONFIGURATION,
        domain=ErrorDomain.CONFIGURATION,
        message="Invalid configuration",
        severity=ErrorSeverity.CRITICAL,
        fatal=True,
        wire_code="INVALID_CONFIGURATION",
        user_message="Monitoring cannot start with the current configuration",
        resolution_hint="Run 'sitewatch config' to inspect the effective settings",
        tags=["config", "startup"]
    ),

    ErrorCode.ALERT_DELIVERY_FAILED: ErrorDefinition(
        code=ErrorCode.ALERT_DELIVERY_FAILED,
        domain=ErrorDomain.ALERTING,
        message="Alert could not be delivered",
        severity=ErrorSeverity.LOW,
        wire_code="ALERT_DELIVERY_FAILED",
        user_message="A new error was recorded but no alert was shown",
        resolution_hint="Check alert permissions or the webhook endpoint",
        tags=["alert", "notification", "webhook"]
    ),

    ErrorCode.COMMAND_NOT_IMPLEMENTED: ErrorDefinition(
        code=ErrorCode.COMMAND_NOT_IMPLEMENTED,
        domain=ErrorDomain.COMMAND,
        message="Command is not implemented",
        severity=ErrorSeverity.LOW,
        wire_code="NOT_IMPLEMENTED",
        user_message="The requested command is not supported",
        tags=["command"]
    ),
}


class SitewatchError(Exception):
    """Base exception for Sitewatch with structured error information"""

    code: ErrorCode = ErrorCode.STORAGE_UNAVAILABLE

    def __init__(self,
                 message: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None,
                 code: Optional[ErrorCode] = None):
        """
        Initialize Sitewatch error

        Args:
            message: Optional custom message to override the catalog default
            context: Additional context information (record id, db path, etc.)
            cause: The underlying exception that caused this error
            code: Override the class-level error code
        """
        if code is not None:
            self.code = code
        self.definition = ERROR_CATALOG[self.code]
        self.context = context or {}
        self.cause = cause
        self.custom_message = message
        self.timestamp = datetime.utcnow()

        super().__init__(message or self.definition.message)

    @property
    def wire_code(self) -> str:
        """Code handed back to command interface callers"""
        return self.definition.wire_code or self.code.value

    @property
    def user_friendly_message(self) -> str:
        """Get user-friendly error message"""
        return self.definition.user_message or self.definition.message

    @property
    def is_fatal(self) -> bool:
        return self.definition.fatal

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization"""
        return {
            "error_code": self.code.value,
            "wire_code": self.wire_code,
            "domain": self.definition.domain.value,
            "message": self.custom_message or self.definition.message,
            "user_message": self.user_friendly_message,
            "severity": self.definition.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
            "resolution_hint": self.definition.resolution_hint,
            "cause": str(self.cause) if self.cause else None
        }

    def __str__(self) -> str:
        base_msg = f"[{self.code.value}] {self.custom_message or self.definition.message}"
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" (context: {context_str})"
        return base_msg


class StorageUnavailable(SitewatchError):
    """Backing store cannot be opened or written"""
    code = ErrorCode.STORAGE_UNAVAILABLE


class SchemaMigrationFailed(StorageUnavailable):
    """On-disk schema could not be brought to the current version"""
    code = ErrorCode.SCHEMA_MIGRATION_FAILED


class InvalidArgument(SitewatchError):
    """Malformed command input"""
    code = ErrorCode.INVALID_ARGUMENT


class EmptyCatalog(SitewatchError):
    """A generation catalog has no entries"""
    code = ErrorCode.EMPTY_CATALOG


class ConfigurationError(SitewatchError):
    """Configuration values are missing or inconsistent"""
    code = ErrorCode.INVALID_CONFIGURATION


class AlertDeliveryFailed(SitewatchError):
    """Alert sink could not deliver an alert"""
    code = ErrorCode.ALERT_DELIVERY_FAILED


class CommandNotImplemented(SitewatchError):
    """Command name is not known to the router"""
    code = ErrorCode.COMMAND_NOT_IMPLEMENTED


def get_error_definition(error_code: ErrorCode) -> Optional[ErrorDefinition]:
    """Get error definition by code"""
    return ERROR_CATALOG.get(error_code)


def get_errors_by_domain(domain: ErrorDomain) -> List[ErrorDefinition]:
    """Get all errors for a specific domain"""
    return [defn for defn in ERROR_CATALOG.values() if defn.domain == domain]
