"""Run store writing one JSON snapshot per run"""

from pathlib import Path

from agentcheck.core.logging import get_logger
from agentcheck.report.json_report import dump_run
from agentcheck.schema.result import CaseResult, Run

logger = get_logger(__name__)


class JsonRunStore:
    """Rewrites ``<directory>/<run id>.json`` whenever the run changes"""

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def path_for(self, run: Run) -> Path:
        return self.directory / f"{run.id}.json"

    def add_run(self, run: Run) -> None:
        dump_run(run, self.path_for(run))
        logger.debug(f"stored run {run.id}")

    def add_result(self, run: Run, result: CaseResult) -> None:
        dump_run(run, self.path_for(run))

    def update_run(self, run: Run) -> None:
        dump_run(run, self.path_for(run))
