#!/usr/bin/env python3
"""Programmatic credit-check example.

This demonstrates using the engine components directly:

* load settings from `.env`
* start a credit-check process against the in-process engine
* read the instance's activity and variable history back

History is kept in memory only; nothing is written to disk.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from workflow_engine.engine.config import WorkflowSettings
from workflow_engine.engine.history.service import HistoryQueryService
from workflow_engine.engine.launch import ProcessLaunchService
from workflow_engine.engine.logging import configure_logging
from workflow_engine.engine.runtime import InMemoryProcessEngine


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a credit check (programmatic example).")
    parser.add_argument("--credit-score", type=int, default=750, help="Applicant credit score")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = WorkflowSettings()
    configure_logging(settings.log_level)

    engine = InMemoryProcessEngine()
    launcher = ProcessLaunchService(engine, credit_process_key=settings.credit_process_key)
    history = HistoryQueryService(engine.history)

    instance_id = launcher.start_credit_check(args.credit_score)
    instance = history.get_process_instance(instance_id)
    assert instance is not None

    print(f"Process instance {instance_id}: {instance.status.value}")
    for activity in history.get_activity_history(instance_id):
        print(f"  {activity.start_time.isoformat()}  {activity.activity_name}")
    for variable in history.get_variable_history(instance_id):
        print(f"  {variable.name} = {variable.value!r}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
