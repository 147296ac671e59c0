"""Decision delegates, launch and history services, and the in-process host."""

from workflow_engine.engine.delegates import (
    DelegateRegistry,
    UnknownDelegateError,
    default_registry,
    evaluate_credit,
    evaluate_loan_eligibility,
)
from workflow_engine.engine.history import HistoryLog, HistoryQueryService
from workflow_engine.engine.host import ProcessDefinitionNotFoundError, TaskNotFoundError
from workflow_engine.engine.launch import ProcessLaunchService
from workflow_engine.engine.runtime import InMemoryProcessEngine
from workflow_engine.engine.variables import (
    MissingVariableError,
    TypedValue,
    VariableContext,
    VariableType,
    VariableTypeError,
)

__all__ = [
    "DelegateRegistry",
    "HistoryLog",
    "HistoryQueryService",
    "InMemoryProcessEngine",
    "MissingVariableError",
    "ProcessDefinitionNotFoundError",
    "ProcessLaunchService",
    "TaskNotFoundError",
    "TypedValue",
    "UnknownDelegateError",
    "VariableContext",
    "VariableType",
    "VariableTypeError",
    "default_registry",
    "evaluate_credit",
    "evaluate_loan_eligibility",
]
