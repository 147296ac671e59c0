"""Decision delegates invoked by the host engine at service tasks.

A delegate is a plain function ``(VariableContext) -> VariableContext``. It
reads its inputs from the context, writes its verdict back, and keeps no state
of its own. Errors are not caught here; the host engine aborts the step.

Delegates are bound to activities through an explicit table
(:func:`default_registry`). There is no auto-discovery.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from workflow_engine.engine.variables import VariableContext

logger = logging.getLogger(__name__)

Delegate = Callable[[VariableContext], VariableContext]

DEFAULT_CREDIT_SCORE = 600
CREDIT_APPROVAL_THRESHOLD = 700
LOAN_ELIGIBILITY_LIMIT = 50000.0

CREDIT_CHECK_ACTIVITY = "creditCheckTask"
LOAN_CHECK_ACTIVITY = "loanCheckTask"


def evaluate_credit(context: VariableContext) -> VariableContext:
    """Approve when ``creditScore`` reaches the threshold.

    An absent score falls back to :data:`DEFAULT_CREDIT_SCORE` instead of
    failing. Note that :func:`evaluate_loan_eligibility` treats a missing input
    as fatal; the two rules are intentionally left inconsistent.
    """

    credit_score = context.get_integer("creditScore")
    if credit_score is None:
        credit_score = DEFAULT_CREDIT_SCORE

    approved = credit_score >= CREDIT_APPROVAL_THRESHOLD
    context.set("approved", approved)

    logger.info(
        "Credit score = %s | approved = %s",
        credit_score,
        approved,
        extra={"credit_score": credit_score, "approved": approved},
    )
    return context


def evaluate_loan_eligibility(context: VariableContext) -> VariableContext:
    """Mark the application eligible when ``amount`` is within the limit.

    Raises:
        MissingVariableError: If ``amount`` is absent or not numeric. Nothing is
            written to the context in that case.
    """

    amount = context.require_number("amount")
    eligible = amount <= LOAN_ELIGIBILITY_LIMIT
    context.set("eligible", eligible)

    logger.info(
        "Loan amount = %s | eligible = %s",
        amount,
        eligible,
        extra={"amount": amount, "eligible": eligible},
    )
    return context


class UnknownDelegateError(KeyError):
    def __init__(self, activity_id: str) -> None:
        super().__init__(activity_id)
        self.activity_id = activity_id

    def __str__(self) -> str:
        return f"No delegate registered for activity {self.activity_id!r}"


class DelegateRegistry:
    """Explicit activity id -> delegate table."""

    def __init__(self, delegates: Mapping[str, Delegate] | None = None) -> None:
        self._delegates: dict[str, Delegate] = dict(delegates or {})

    def register(self, activity_id: str, delegate: Delegate) -> None:
        if activity_id in self._delegates:
            raise ValueError(f"Delegate already registered for activity {activity_id!r}")
        self._delegates[activity_id] = delegate

    def resolve(self, activity_id: str) -> Delegate:
        try:
            return self._delegates[activity_id]
        except KeyError:
            raise UnknownDelegateError(activity_id) from None

    def invoke(self, activity_id: str, context: VariableContext) -> VariableContext:
        delegate = self.resolve(activity_id)
        logger.debug("Invoking delegate", extra={"activity_id": activity_id})
        return delegate(context)

    def activity_ids(self) -> list[str]:
        return sorted(self._delegates)

    def __contains__(self, activity_id: object) -> bool:
        return activity_id in self._delegates


def default_registry() -> DelegateRegistry:
    return DelegateRegistry(
        {
            CREDIT_CHECK_ACTIVITY: evaluate_credit,
            LOAN_CHECK_ACTIVITY: evaluate_loan_eligibility,
        }
    )
