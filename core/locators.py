# ============================================================================
# OBJECT LOCATORS
# ============================================================================
# EPOCH: 1 - RECURSIVE EXTRACTION
# STATUS: Core - Object store addressing
# PURPOSE: Parse and build object://container/key locators
# CREATED: 19 OCT 2026
# ============================================================================
"""
Object Locators

Every object in the store is addressed as:

    object://<container>/<key>

A locator that fails to parse raises LocatorParseError, which the retry
policy classifies as non-retryable.
"""

from dataclasses import dataclass
from urllib.parse import urlparse

from core.errors import LocatorParseError

LOCATOR_SCHEME = "object"

# Accepted for interoperability with locators minted by other tooling
ACCEPTED_SCHEMES = frozenset({LOCATOR_SCHEME, "s3", "blob"})


@dataclass(frozen=True)
class ObjectLocator:
    """Parsed object locator."""
    container: str
    key: str

    @property
    def name(self) -> str:
        """Last path segment of the key."""
        return self.key.rsplit("/", 1)[-1]

    def __str__(self) -> str:
        return f"{LOCATOR_SCHEME}://{self.container}/{self.key}"


def parse_locator(locator: str) -> ObjectLocator:
    """
    Parse an object locator.

    Args:
        locator: Locator string (e.g. "object://bucket/input.zip")

    Returns:
        ObjectLocator

    Raises:
        LocatorParseError: If scheme, container or key is missing
    """
    if not isinstance(locator, str) or not locator:
        raise LocatorParseError(str(locator))

    try:
        parsed = urlparse(locator)
    except ValueError:
        raise LocatorParseError(locator)

    key = parsed.path.lstrip("/")
    if parsed.scheme not in ACCEPTED_SCHEMES or not parsed.netloc or not key:
        raise LocatorParseError(locator)

    return ObjectLocator(container=parsed.netloc, key=key)


def build_locator(container: str, key: str) -> str:
    """Build a locator string from its parts."""
    return str(ObjectLocator(container=container, key=key.lstrip("/")))


__all__ = ["ObjectLocator", "parse_locator", "build_locator", "LOCATOR_SCHEME"]
