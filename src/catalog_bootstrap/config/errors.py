"""Errors raised while assembling run options, endpoints and catalog credentials."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """A run option or endpoint setting cannot be used against a catalog instance."""


class MissingConfigurationError(ConfigurationError):
    """Access token halves or other required environment settings are unset."""

    def __init__(self, names: Iterable[str]) -> None:
        self.names = tuple(sorted(names))
        super().__init__(f"Missing configuration for: {', '.join(self.names)}")
