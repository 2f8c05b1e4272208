"""Run-terminating bootstrap errors."""

from __future__ import annotations


class BootstrapError(RuntimeError):
    """Structural failure that aborts the whole run."""


class InstanceNotFoundError(BootstrapError):
    """Raised when the target instance cannot be resolved with the given credentials."""

    def __init__(self, instance_identifier: str) -> None:
        super().__init__(f'You do not have access to instance "{instance_identifier}"')
        self.instance_identifier = instance_identifier


class LanguageResolutionError(BootstrapError):
    """Raised when the languages phase yields no usable default language."""


class TransportNotReadyError(BootstrapError):
    """Raised when an endpoint is used before credentials or the instance are known."""


class MalformedResponseError(ValueError):
    """Raised when a remote payload does not have the expected shape.

    This is an area-level failure: the run reports it and moves on.
    """
