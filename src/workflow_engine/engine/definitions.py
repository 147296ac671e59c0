"""Process definitions deployed to the in-process engine.

Definitions are linear: activities run in order, and an activity with a
``when`` condition is skipped unless the named variable holds the expected
value. That is enough to express the exclusive gateways of the two flows.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from workflow_engine.engine.delegates import CREDIT_CHECK_ACTIVITY, LOAN_CHECK_ACTIVITY
from workflow_engine.engine.history.records import ActivityType
from workflow_engine.engine.variables import VariableContext, VariableValue

CREDIT_CHECK_PROCESS_KEY = "checkCreditProcess"
LOAN_APPROVAL_PROCESS_KEY = "loanApprovalApp"


@dataclass(frozen=True, slots=True)
class ActivityDefinition:
    activity_id: str
    name: str
    activity_type: ActivityType
    when: tuple[str, VariableValue] | None = None
    assignee: str | None = None

    def applies(self, context: VariableContext) -> bool:
        if self.when is None:
            return True
        name, expected = self.when
        return context.get(name) == expected


@dataclass(frozen=True, slots=True)
class ProcessDefinition:
    key: str
    name: str
    version: int = 1
    activities: tuple[ActivityDefinition, ...] = field(default_factory=tuple)

    @property
    def definition_id(self) -> str:
        return f"{self.key}:{self.version}"

    def index_of(self, activity_id: str) -> int:
        for idx, activity in enumerate(self.activities):
            if activity.activity_id == activity_id:
                return idx
        raise KeyError(activity_id)


CREDIT_CHECK_PROCESS = ProcessDefinition(
    key=CREDIT_CHECK_PROCESS_KEY,
    name="Check credit",
    activities=(
        ActivityDefinition("startEvent", "Credit check requested", ActivityType.START_EVENT),
        ActivityDefinition(CREDIT_CHECK_ACTIVITY, "Check credit score", ActivityType.SERVICE_TASK),
        ActivityDefinition(
            "creditApproved", "Credit approved", ActivityType.END_EVENT, when=("approved", True)
        ),
        ActivityDefinition(
            "creditRejected", "Credit rejected", ActivityType.END_EVENT, when=("approved", False)
        ),
    ),
)

LOAN_APPROVAL_PROCESS = ProcessDefinition(
    key=LOAN_APPROVAL_PROCESS_KEY,
    name="Loan approval",
    activities=(
        ActivityDefinition("startEvent", "Loan application received", ActivityType.START_EVENT),
        ActivityDefinition(
            LOAN_CHECK_ACTIVITY, "Check loan eligibility", ActivityType.SERVICE_TASK
        ),
        ActivityDefinition(
            "reviewLoanApplication",
            "Review loan application",
            ActivityType.USER_TASK,
            when=("eligible", True),
            assignee="loan-officer",
        ),
        ActivityDefinition(
            "loanApproved", "Loan approved", ActivityType.END_EVENT, when=("eligible", True)
        ),
        ActivityDefinition(
            "loanRejected", "Loan rejected", ActivityType.END_EVENT, when=("eligible", False)
        ),
    ),
)


def default_definitions() -> Mapping[str, ProcessDefinition]:
    return {d.key: d for d in (CREDIT_CHECK_PROCESS, LOAN_APPROVAL_PROCESS)}
