"""Exceptions raised by the analysis pipeline."""

from typing import Union


class NotFoundError(Exception):
    """A candidate, job posting or application does not exist."""

    def __init__(self, resource: str, identifier: Union[str, int]):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource} {identifier} not found")


class TransientGenerationError(Exception):
    """The AI call failed or returned output that could not be used."""


class QueueInfrastructureError(Exception):
    """The queue backend cannot be used."""


class QueueNotReadyError(QueueInfrastructureError):
    """The queue backend did not answer the startup readiness check."""


class JobTimeoutError(Exception):
    """A job handler exceeded its time budget."""
