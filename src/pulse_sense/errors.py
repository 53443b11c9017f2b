"""
Errors
======

The core has no runtime failure modes: stale or malformed data degrades to
documented defaults. Only construction-time misconfiguration raises.
"""

from typing import Iterable


class ConfigurationError(ValueError):
    """Raised when an engine or helper is constructed with invalid parameters."""
    pass


def raise_if_errors(component: str, errors: Iterable[str]) -> None:
    """Raise ConfigurationError listing every collected problem, if any."""
    errors = list(errors)
    if errors:
        raise ConfigurationError(
            f"{component} parameter validation failed:\n" + "\n".join(errors)
        )
