"""
Validation utilities for the GitLab AI Code Reviewer configuration.
"""

from urllib.parse import urlparse


GITLAB_TOKEN_PREFIXES = ('glpat-', 'gloas-', 'gldt-', 'glrt-', 'glcbt-', 'glptt-', 'glft-')


def validate_required_string(value: str, field_name: str) -> None:
    """Validate that a required string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Raises:
        ValueError: If the value is empty
    """
    if not value:
        raise ValueError(f"{field_name} is required")


def validate_positive_int(value: int, field_name: str) -> None:
    """Validate that an integer value is positive.

    Raises:
        ValueError: If the value is not positive
    """
    if value <= 0:
        raise ValueError(f"{field_name} must be positive")


def validate_gitlab_token_format(token: str) -> bool:
    """Validate GitLab access token format.

    Accepts prefixed tokens (personal, OAuth, deploy, runner, CI job...) and
    legacy unprefixed tokens of at least 20 characters.

    Args:
        token: The GitLab token to validate

    Returns:
        True if the token format is valid, False otherwise
    """
    if not token or not isinstance(token, str):
        return False
    if token.startswith(GITLAB_TOKEN_PREFIXES):
        return len(token) > max(len(p) for p in GITLAB_TOKEN_PREFIXES)
    return len(token) >= 20


def validate_url_format(url: str) -> bool:
    """Check that a URL is an absolute http(s) URL with a host."""
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url)
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


def ensure_positive_or_default(value: int, default: int) -> int:
    """Return ``value`` if positive, otherwise ``default``."""
    return value if value > 0 else default
