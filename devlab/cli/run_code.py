"""CLI entry point: run one source file through the code sandbox."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List

from apps.orchestrator.models import ExecutionRequest, ExecutionResult, TestCase
from devlab.orchestration.bootstrap import bootstrap_orchestration

REPO_ROOT = Path(__file__).resolve().parents[2]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Execute a program in the code sandbox and grade it.")
    parser.add_argument("source", help="Path to the program to execute.")
    parser.add_argument("--language", required=True, help="Programming language (python, java, javascript, cpp, go, rust).")
    parser.add_argument(
        "--tests",
        default=None,
        help='JSON file holding a list of {"input", "expected_output", "is_hidden"} objects.',
    )
    parser.add_argument("--question-id", default=None, help="Opaque question identifier for logs.")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the orchestration YAML (default: <repo-root>/config/orchestration.yaml when present)",
    )
    parser.add_argument(
        "--repo-root",
        default=str(REPO_ROOT),
        help=f"Repository root holding .env and config/ (default: {REPO_ROOT})",
    )
    parser.add_argument("--quiet", action="store_true", help="Print only the result JSON.")
    return parser


def _resolve_path(value: str | Path, *, base: Path | None = None) -> Path:
    candidate = Path(value).expanduser()
    if candidate.is_absolute():
        return candidate.resolve()
    anchor = Path(base).expanduser().resolve() if base is not None else Path.cwd()
    return (anchor / candidate).resolve()


def load_test_cases(path: Path | None) -> List[TestCase]:
    if path is None:
        return []
    if not path.exists():
        raise FileNotFoundError(f"Test case file {path} is missing")
    try:
        payload: Any = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}") from exc
    if not isinstance(payload, list):
        raise ValueError(f"{path} must contain a list of test cases")
    return [TestCase.model_validate(item) for item in payload]


def _print_summary(result: ExecutionResult) -> None:
    total = len(result.test_case_results)
    print(
        f"[run_code] status={result.status} passed={result.passed_count}/{total} correct={result.is_correct}",
        file=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        repo_root = _resolve_path(args.repo_root)
        source_path = _resolve_path(args.source)
        if not source_path.exists():
            raise FileNotFoundError(f"Source file {source_path} is missing")
        tests_path = _resolve_path(args.tests) if args.tests else None
        config_path = _resolve_path(args.config, base=repo_root) if args.config else None
        request = ExecutionRequest(
            source_code=source_path.read_text(encoding="utf-8"),
            language=args.language,
            test_cases=tuple(load_test_cases(tests_path)),
            question_id=args.question_id,
        )

        services = bootstrap_orchestration(config_path, repo_root=repo_root)
        try:
            result = services.execution.execute(request)
        finally:
            services.close()
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))
    except Exception as exc:  # noqa: BLE001 - surface sandbox failures as exit code 1
        print(f"[run_code] error: {exc}", file=sys.stderr)
        return 1

    print(result.model_dump_json(indent=2))
    if not args.quiet:
        _print_summary(result)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
