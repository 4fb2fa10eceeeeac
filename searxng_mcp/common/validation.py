"""ABOUTME: Shared validation and parsing helpers.

Provides reusable validation logic for URLs, strings and comma-separated
lists. Field validator variants raise ValueError so they can be used from
pydantic @field_validator methods; standalone variants return
(is_valid, error_message) tuples.
"""

from typing import Iterable, List, Optional, Tuple, Union


# =============================================================================
# Validation Constants
# =============================================================================

MAX_URL_LENGTH: int = 8192
MAX_QUERY_LENGTH: int = 2048


# =============================================================================
# Parsing Helpers
# =============================================================================

def split_csv(value: str, lowercase: bool = False) -> List[str]:
    """Split a comma-separated setting into trimmed, non-empty items.

    Examples:
        >>> split_csv(" a , ,b ")
        ['a', 'b']
        >>> split_csv("   ")
        []
    """
    items = [part.strip() for part in value.split(",")]
    if lowercase:
        items = [item.lower() for item in items]
    return [item for item in items if item]


def coerce_str_list(value: Union[str, Iterable[str]], lowercase: bool = False) -> List[str]:
    """Accept either a comma string or a sequence of strings."""
    if isinstance(value, str):
        return split_csv(value, lowercase=lowercase)
    out: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"expected a string, got {type(item).__name__}")
        out.extend(split_csv(item, lowercase=lowercase))
    return out


# =============================================================================
# Pydantic Field Validator Functions
# =============================================================================

def validate_url_field(v: str) -> str:
    """Pydantic field validator for URL arguments.

    Scheme and host policy is not checked here; that belongs to the SSRF
    guard so that it applies to redirect targets as well.

    Usage:
        @field_validator("url")
        @classmethod
        def validate_url(cls, v: str) -> str:
            return validate_url_field(v)
    """
    is_valid, error = validate_url(v)
    if not is_valid:
        raise ValueError(error)
    return v.strip()


def validate_non_empty_string_field(v: str, field_name: str = "field") -> str:
    """Pydantic field validator for non-empty strings.

    Usage:
        @field_validator("query")
        @classmethod
        def validate_query(cls, v: str) -> str:
            return validate_non_empty_string_field(v, field_name="query")
    """
    is_valid, error = validate_non_empty_string(v, field_name)
    if not is_valid:
        raise ValueError(error)
    return v.strip()


# =============================================================================
# Standalone Validator Functions
# =============================================================================

def validate_url(url: str) -> Tuple[bool, Optional[str]]:
    """Validate URL shape and return (is_valid, error_message).

    Example:
        is_valid, error = validate_url("https://example.com")
        if not is_valid:
            print(f"Invalid URL: {error}")
    """
    url = url.strip()

    if not url:
        return False, "URL cannot be empty"

    if len(url) > MAX_URL_LENGTH:
        return False, f"URL too long (max {MAX_URL_LENGTH} characters, got {len(url)})"

    if any(char in url for char in (" ", "\t", "\n", "\r")):
        return False, "URL contains whitespace"

    return True, None


def validate_non_empty_string(
    value: str,
    field_name: str = "field"
) -> Tuple[bool, Optional[str]]:
    """Validate that string is not empty and return (is_valid, error_message)."""
    if not isinstance(value, str):
        return False, f"{field_name} must be a string, got {type(value).__name__}"

    if not value.strip():
        return False, f"{field_name} cannot be empty or whitespace-only"

    return True, None
