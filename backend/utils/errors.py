def _sanitize_error_message(error: Exception) -> str:
    """Sanitize error messages to avoid leaking sensitive information.

    Args:
        error: Exception object

    Returns:
        Sanitized error message safe for client display
    """
    error_str = str(error).lower()

    # Never echo signing material or token internals
    if "secret" in error_str or "signature" in error_str or "jwt" in error_str:
        return "Authentication service is misconfigured. Please contact support."

    # Remove database connection strings
    if "password" in error_str or "connection" in error_str or "database" in error_str:
        return "Database operation failed. Please try again."

    # Remove potential file paths
    if "/" in str(error) or "\\" in str(error):
        return "File operation failed. Please check file permissions."

    # Generic fallback for unknown errors
    return "An unexpected error occurred. Please try again later."
