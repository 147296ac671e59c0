"""Process launch service.

Both launches are fire-and-forget: they hand the initial variables to the host
engine and return as soon as the start request is accepted. Host failures are
not caught here.
"""

from __future__ import annotations

import logging

from workflow_engine.engine.definitions import (
    CREDIT_CHECK_PROCESS_KEY,
    LOAN_APPROVAL_PROCESS_KEY,
)
from workflow_engine.engine.host import ProcessStarter

logger = logging.getLogger(__name__)


class ProcessLaunchService:
    def __init__(
        self,
        engine: ProcessStarter,
        *,
        credit_process_key: str = CREDIT_CHECK_PROCESS_KEY,
        loan_process_key: str = LOAN_APPROVAL_PROCESS_KEY,
    ) -> None:
        self._engine = engine
        self._credit_process_key = credit_process_key
        self._loan_process_key = loan_process_key

    def start_credit_check(self, credit_score: int) -> str:
        """Start the credit-check flow; returns the host-assigned instance id."""

        return self._start(self._credit_process_key, {"creditScore": credit_score})

    def apply_loan(self, applicant: str, amount: float) -> str:
        """Start the loan-application flow; returns the host-assigned instance id."""

        return self._start(self._loan_process_key, {"applicant": applicant, "amount": amount})

    def _start(self, definition_key: str, variables: dict[str, object]) -> str:
        instance_id = self._engine.start_process_instance_by_key(definition_key, variables)
        logger.info(
            "Start request accepted",
            extra={
                "process_definition_key": definition_key,
                "process_instance_id": instance_id,
                "variables": sorted(variables),
            },
        )
        return instance_id
