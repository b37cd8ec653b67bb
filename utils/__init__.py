"""Shared utilities for the academic portal."""

# HTTP utilities
from utils.http import (
    ApiClient,
    ApiError,
    Download,
    RetryStrategy,
    SessionManager,
    describe_api_error,
)

# Caching
from utils.cache import TTLCache

# Validation utilities
from utils.validation import (
    ValidationIssue,
    ValidationResult,
    validate_book_form,
    validate_document_review,
    validate_document_upload,
    validate_enrollment_form,
    validate_event_form,
    validate_name_form,
    validate_program_form,
    validate_quarter_form,
    validate_register_form,
    validate_student_form,
    validate_subject_form,
)

# Statistics aggregation
from utils.statistics import (
    Bar,
    DashboardStats,
    StudentStateStats,
    books_by_publisher,
    build_bars,
    dashboard_stats,
    events_by_category,
    student_state_stats,
)

# Output formatting
from utils.formatting import (
    estado_label,
    format_count,
    format_datetime,
    format_percent,
    initials,
)

# Configuration
from utils.config import (
    AppConfig,
    KnownValues,
)

__all__ = [
    # HTTP
    "ApiClient",
    "ApiError",
    "Download",
    "RetryStrategy",
    "SessionManager",
    "describe_api_error",
    # Cache
    "TTLCache",
    # Validation
    "ValidationIssue",
    "ValidationResult",
    "validate_book_form",
    "validate_document_review",
    "validate_document_upload",
    "validate_enrollment_form",
    "validate_event_form",
    "validate_name_form",
    "validate_program_form",
    "validate_quarter_form",
    "validate_register_form",
    "validate_student_form",
    "validate_subject_form",
    # Statistics
    "Bar",
    "DashboardStats",
    "StudentStateStats",
    "books_by_publisher",
    "build_bars",
    "dashboard_stats",
    "events_by_category",
    "student_state_stats",
    # Formatting
    "estado_label",
    "format_count",
    "format_datetime",
    "format_percent",
    "initials",
    # Config
    "AppConfig",
    "KnownValues",
]
