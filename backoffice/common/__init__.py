"""Common module: shared utilities for the back office service."""

from backoffice.common.audit import AuditTrail, create_audit_entry
from backoffice.common.constants import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    WEEKDAY_NAMES,
    LeaveStatus,
    UserRole,
    Weekday,
)
from backoffice.common.exceptions import (
    AlreadyClockedIn,
    AppException,
    ConflictError,
    ForbiddenException,
    InsufficientLeaveBalance,
    InvalidDateRange,
    InvalidLeaveType,
    InvalidStatusTransition,
    NoActiveSession,
    NotFoundException,
    ValidationException,
    register_exception_handlers,
)
from backoffice.common.pagination import PaginationMeta, PaginationParams, paginate

__all__ = [
    # Audit
    "AuditTrail",
    "create_audit_entry",
    # Constants / Enums
    "LeaveStatus",
    "UserRole",
    "Weekday",
    "WEEKDAY_NAMES",
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    # Exceptions
    "AlreadyClockedIn",
    "AppException",
    "ConflictError",
    "ForbiddenException",
    "InsufficientLeaveBalance",
    "InvalidDateRange",
    "InvalidLeaveType",
    "InvalidStatusTransition",
    "NoActiveSession",
    "NotFoundException",
    "ValidationException",
    "register_exception_handlers",
    # Pagination
    "PaginationMeta",
    "PaginationParams",
    "paginate",
]
