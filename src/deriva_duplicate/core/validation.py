"""Shared Pydantic configuration for deriva_duplicate models.

The module provides:
    - VALIDATION_CONFIG: ConfigDict for models and @validate_call decorators
    - STRICT_VALIDATION_CONFIG: Same, but rejecting unknown fields
    - FROZEN_CONFIG: Configuration for immutable, hashable value objects

Example:
    >>> from deriva_duplicate.core.validation import VALIDATION_CONFIG
    >>> from pydantic import validate_call
    >>>
    >>> @validate_call(config=VALIDATION_CONFIG)
    ... def clone_rows(rows: list[dict]) -> None:
    ...     pass
"""

from pydantic import ConfigDict

# Allows arbitrary types (like deriva datapath objects) in validated signatures.
VALIDATION_CONFIG = ConfigDict(
    arbitrary_types_allowed=True,
    validate_default=True,
    use_enum_values=False,
)

# Plans loaded from files should fail loudly on misspelled keys.
STRICT_VALIDATION_CONFIG = ConfigDict(
    arbitrary_types_allowed=True,
    validate_default=True,
    extra="forbid",
)

FROZEN_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
)

__all__ = [
    "VALIDATION_CONFIG",
    "STRICT_VALIDATION_CONFIG",
    "FROZEN_CONFIG",
]
