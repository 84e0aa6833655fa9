"""Security configuration constants for the demo services.

This module centralizes:
- Sensitive keys that should be sanitized from logs and span attributes
- Error response fields allowed per environment
"""

# Keys matched case-insensitively as substrings of a field or header name
SENSITIVE_KEYS: set[str] = {
    # Authentication & Authorization
    "password",
    "secret",
    "token",
    "authorization",
    "api_key",
    "api-key",
    "jwt",
    "session_id",
    "csrf",
    "bearer",
    # Personal Identifiable Information
    "email",
    "phone",
    "credit_card",
    "card_number",
    # Headers
    "set-cookie",
    "cookie",
    "x-auth-token",
    "x-session-id",
    "proxy-authorization",
    # Sentry DSNs embed the project public key
    "dsn",
}

# In production, error responses should only contain these fields to
# prevent information leakage
PRODUCTION_ERROR_FIELDS: set[str] = {
    "correlation_id",
    "type",
}

# Development error response fields (additional fields allowed in development)
DEVELOPMENT_ERROR_FIELDS: set[str] = PRODUCTION_ERROR_FIELDS | {
    "details",
    "traceback",
    "exception_type",
}


def get_allowed_error_fields(environment: str) -> set[str]:
    """Get allowed error response fields based on environment.

    Args:
        environment: The application environment (production, development, etc.)

    Returns:
        Set of allowed field names for error responses
    """
    if environment == "production":
        return PRODUCTION_ERROR_FIELDS.copy()
    return DEVELOPMENT_ERROR_FIELDS.copy()


def is_sensitive_key(key: str) -> bool:
    """Check if a key should be considered sensitive and redacted."""
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in SENSITIVE_KEYS)
