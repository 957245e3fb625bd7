"""Entry point invoked by a host that runs duplication as a bound action.

The host passes the record to duplicate as the ``Target`` input parameter and reads
the clone identifier from the ``output`` output parameter. Targets that are missing
or of another record type are ignored.

Example:
    >>> plugin = DuplicateRecordPlugin(service, opportunity_plan())
    >>> context = InvocationContext(input_parameters={"Target": EntityReference(type="opportunity", id=rid)})
    >>> plugin.execute(context)
    >>> context.output_parameters["output"]
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from deriva_duplicate.core.constants import OUTPUT_PARAMETER, RECORD_NOT_FOUND_CODE, TARGET_PARAMETER
from deriva_duplicate.core.logging_config import LoggerMixin
from deriva_duplicate.duplicate.orchestrator import Duplicator
from deriva_duplicate.duplicate.report import DuplicationReport
from deriva_duplicate.policy.specs import DuplicationPlan
from deriva_duplicate.service.port import DataService


class InvocationContext(BaseModel):
    """Parameters exchanged with the host for one invocation."""

    input_parameters: dict[str, Any] = Field(default_factory=dict)
    output_parameters: dict[str, Any] = Field(default_factory=dict)


class DuplicateRecordPlugin(LoggerMixin):
    def __init__(self, service: DataService, plan: DuplicationPlan, not_found_code: int = RECORD_NOT_FOUND_CODE):
        self.duplicator = Duplicator(service, plan, not_found_code=not_found_code)

    @property
    def last_report(self) -> DuplicationReport | None:
        return self.duplicator.last_report

    def execute(self, context: InvocationContext) -> None:
        """Duplicate the target record and publish the clone identifier.

        Errors from the duplication propagate to the host unchanged.
        """
        self._logger.info("plugin> Verify plugin is running: %s", self.__class__.__name__)
        target = context.input_parameters.get(TARGET_PARAMETER)
        clone = self.duplicator.duplicate(target)
        if clone is None:
            return
        context.output_parameters[OUTPUT_PARAMETER] = str(clone.id)
        self._logger.info("plugin> %s = %s", OUTPUT_PARAMETER, clone.id)
