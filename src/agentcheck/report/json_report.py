"""JSON report output"""

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from agentcheck.core.logging import get_logger
from agentcheck.schema.result import Run

logger = get_logger(__name__)


def _json_default(value):
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"not JSON serializable: {type(value).__name__}")


def run_to_dict(run: Run) -> dict:
    data = asdict(run)
    data["pass_rate"] = round(run.pass_rate, 4)
    return data


def dump_run(run: Run, path: Path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(run_to_dict(run), f, ensure_ascii=False, indent=2, default=_json_default)


def generate_json_report(run: Run, output_dir: str = "./results") -> Path:
    """Write ``run`` as results-<suite>-<target>-<id>.json"""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    safe_suite = run.suite_name.replace(" ", "_")[:50]
    safe_target = (run.target_name or "default").replace(" ", "_")[:50]
    file_path = output_path / f"results-{safe_suite}-{safe_target}-{run.id}.json"

    report = {
        "version": "1.0",
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "summary": {
            "suite": run.suite_name,
            "target": run.target_name,
            "total": run.total,
            "passed": run.passed,
            "failed": run.failed,
            "skipped": run.skipped,
            "pass_rate": round(run.pass_rate, 4),
            "average_latency_ms": round(run.average_latency_ms, 1),
        },
        "run": run_to_dict(run),
    }

    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(report, f, ensure_ascii=False, indent=2, default=_json_default)

    logger.info(f"JSON report written: {file_path}")
    return file_path
