"""CLI entrypoint for the workflow engine.

Runs against the in-process engine; history is persisted to
``WORKFLOW_HISTORY_PATH`` so launches, task completions and history queries
can be issued from separate invocations.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Sequence

from pydantic import BaseModel, ValidationError

from workflow_engine import __version__
from workflow_engine.engine.config import WorkflowSettings
from workflow_engine.engine.history.service import HistoryQueryService
from workflow_engine.engine.history.store import HistoryLog
from workflow_engine.engine.host import ProcessDefinitionNotFoundError, TaskNotFoundError
from workflow_engine.engine.launch import ProcessLaunchService
from workflow_engine.engine.logging import configure_logging
from workflow_engine.engine.runtime import InMemoryProcessEngine
from workflow_engine.engine.variables import MissingVariableError, VariableTypeError

logger = logging.getLogger(__name__)


def _parse_assignments(values: Sequence[str] | None) -> dict[str, object]:
    """Parse ``name=value`` pairs; values are read as JSON when possible."""

    out: dict[str, object] = {}
    for item in values or []:
        name, sep, raw = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Expected name=value, got {item!r}")
        try:
            out[name.strip()] = json.loads(raw)
        except json.JSONDecodeError:
            out[name.strip()] = raw
    return out


def _print_json(payload: BaseModel | Sequence[BaseModel] | None) -> None:
    if payload is None:
        data: object = None
    elif isinstance(payload, BaseModel):
        data = payload.model_dump(mode="json", by_alias=True)
    else:
        data = [item.model_dump(mode="json", by_alias=True) for item in payload]
    print(json.dumps(data, indent=2, ensure_ascii=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-engine",
        description="Credit and loan decision workflows",
    )
    parser.add_argument("--version", action="version", version=f"workflow-engine {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    credit = subparsers.add_parser("start-credit-check", help="Start the credit-check process")
    credit.add_argument("--credit-score", type=int, required=True, help="Applicant credit score")

    loan = subparsers.add_parser("apply-loan", help="Start the loan-application process")
    loan.add_argument("--applicant", required=True, help="Applicant name")
    loan.add_argument("--amount", type=float, required=True, help="Requested loan amount")

    complete = subparsers.add_parser("complete-task", help="Complete an open user task")
    complete.add_argument("--task-id", required=True, help="Task id")
    complete.add_argument(
        "--var",
        dest="variables",
        action="append",
        default=None,
        help="Process variable to set, as name=value (repeatable)",
    )

    subparsers.add_parser("tasks", help="List open user tasks")

    history = subparsers.add_parser("history", help="Query workflow history")
    history_sub = history.add_subparsers(dest="history_command", required=True)
    for name, help_text in (
        ("process-instance", "Show one process instance"),
        ("activities", "Activity history, most recent first"),
        ("tasks", "Task history, ordered by end time descending"),
        ("variables", "Variable history in insertion order"),
    ):
        cmd = history_sub.add_parser(name, help=help_text)
        cmd.add_argument("process_instance_id", help="Process instance id")
    for name, help_text in (
        ("finished", "Finished process instances, ordered by end time descending"),
        ("running", "Running process instances, ordered by start time descending"),
    ):
        cmd = history_sub.add_parser(name, help=help_text)
        cmd.add_argument(
            "--definition-key",
            default=None,
            help="Only instances of this process definition key",
        )

    serve = subparsers.add_parser("serve", help="Run the REST server")
    serve.add_argument("--host", default=None, help="Bind address (default from settings)")
    serve.add_argument("--port", type=int, default=None, help="Port (default from settings)")

    return parser


def _run_history(args: argparse.Namespace, service: HistoryQueryService) -> int:
    cmd = args.history_command
    if cmd == "process-instance":
        record = service.get_process_instance(args.process_instance_id)
        _print_json(record)
        return 0 if record is not None else 4
    if cmd == "activities":
        _print_json(service.get_activity_history(args.process_instance_id))
        return 0
    if cmd == "tasks":
        _print_json(service.get_task_history(args.process_instance_id))
        return 0
    if cmd == "variables":
        _print_json(service.get_variable_history(args.process_instance_id))
        return 0
    if cmd == "finished":
        _print_json(service.get_finished_processes(args.definition_key))
        return 0
    if cmd == "running":
        _print_json(service.get_running_processes(args.definition_key))
        return 0
    logger.error("Unknown history command", extra={"command": cmd})
    return 2


def _serve(args: argparse.Namespace, settings: WorkflowSettings) -> int:
    import uvicorn

    from workflow_engine.server.app import create_app
    from workflow_engine.server.config import ServerSettings

    server_settings = ServerSettings()
    uvicorn.run(
        create_app(settings),
        host=args.host or server_settings.host,
        port=args.port or server_settings.port,
        log_config=None,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = WorkflowSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    engine = InMemoryProcessEngine(HistoryLog(settings.history_path))
    launcher = ProcessLaunchService(
        engine,
        credit_process_key=settings.credit_process_key,
        loan_process_key=settings.loan_process_key,
    )

    try:
        if args.command == "start-credit-check":
            instance_id = launcher.start_credit_check(args.credit_score)
            print(f"Process started with creditScore={args.credit_score}: {instance_id}")
            return 0

        if args.command == "apply-loan":
            instance_id = launcher.apply_loan(args.applicant, args.amount)
            print(f"Loan application submitted: {instance_id}")
            return 0

        if args.command == "complete-task":
            task = engine.complete_task(args.task_id, _parse_assignments(args.variables))
            print(f"Completed task {task.id} ({task.name})")
            return 0

        if args.command == "tasks":
            _print_json(engine.list_open_tasks())
            return 0

        if args.command == "history":
            return _run_history(args, HistoryQueryService(engine.history))

        if args.command == "serve":
            return _serve(args, settings)

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except (MissingVariableError, VariableTypeError) as e:
        logger.warning(str(e), extra={"command": args.command})
        print(str(e), file=sys.stderr)
        return 3

    except (TaskNotFoundError, ProcessDefinitionNotFoundError) as e:
        logger.warning(str(e), extra={"command": args.command})
        print(str(e), file=sys.stderr)
        return 4

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
