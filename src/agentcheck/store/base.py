"""Run store protocol"""

from typing import Protocol

from agentcheck.schema.result import CaseResult, Run


class RunStore(Protocol):
    """Receives runs and results as the suite executor produces them. Append/update only."""

    def add_run(self, run: Run) -> None: ...

    def add_result(self, run: Run, result: CaseResult) -> None: ...

    def update_run(self, run: Run) -> None: ...
