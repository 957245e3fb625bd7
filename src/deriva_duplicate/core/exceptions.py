"""
Custom exceptions used throughout the deriva_duplicate package.

A failed duplication is never rolled back. Every exception raised by the
orchestrator carries the :class:`DuplicationReport` of the run in ``report`` so
that callers can see which records already exist in the store.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from deriva_duplicate.duplicate.report import DuplicationReport, DuplicationStep


class DerivaDuplicateException(Exception):
    """Exception class specific to the deriva_duplicate module.

    Args:
        msg (str): Optional message for the exception.
    """

    def __init__(self, msg=""):
        super().__init__(msg)
        self._msg = msg
        self.report: DuplicationReport | None = None


class PlanConfigurationError(DerivaDuplicateException):
    """A duplication plan or preset could not be resolved."""


class ServiceFault(DerivaDuplicateException):
    """Fault raised by a data service call.

    Args:
        code: Provider specific numeric fault code.
        message: Provider message.
        detail: Optional provider payload, kept for logging only.
    """

    def __init__(self, code: int, message: str, detail: Any = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.message} (code {self.code})"


class StepFault(ServiceFault):
    """A service fault attributed to the duplication step that raised it."""

    def __init__(self, step: DuplicationStep, fault: ServiceFault):
        super().__init__(fault.code, f"Duplication failed during {step.value}: {fault.message}")
        self.step = step


class RecordNotFoundError(DerivaDuplicateException):
    """The record to duplicate no longer exists in the store."""

    def __init__(self, msg: str = "Source record not found; it may have been deleted. Refresh and try again."):
        super().__init__(msg)


class WorkflowStateMissingError(DerivaDuplicateException):
    """The clone has no workflow-state record to receive the original's position."""


__all__ = [
    "DerivaDuplicateException",
    "PlanConfigurationError",
    "RecordNotFoundError",
    "ServiceFault",
    "StepFault",
    "WorkflowStateMissingError",
]
