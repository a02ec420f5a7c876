from __future__ import annotations

import io
from collections.abc import Callable
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

import pytest

from retrywise import cli
from retrywise.errors import ExitCode, RetrywiseError

pytestmark = pytest.mark.usefixtures("clean_env")


def _scripted(*steps: object) -> Callable[[int | None], Callable[[], object]]:
    def factory(seed: int | None) -> Callable[[], object]:
        remaining = list(steps)

        def operation() -> object:
            step = remaining.pop(0)
            if isinstance(step, BaseException):
                raise step
            return step

        return operation

    return factory


def _run(argv: list[str], **kwargs: object) -> tuple[int, str, str]:
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = cli.main(argv, **kwargs)
    return code, out.getvalue(), err.getvalue()


def test_cli_help_includes_public_flags() -> None:
    code, help_text, _ = _run(["demo", "--help"])

    assert code == 0
    assert "--config" in help_text
    assert "--max-retries" in help_text
    assert "--base-delay" in help_text
    assert "--multiplier" in help_text
    assert "--transient-kind" in help_text
    assert "--replace-defaults" in help_text
    assert "--seed" in help_text
    assert "--log-level" in cli.build_parser().format_help()


def test_missing_command_returns_invalid_args() -> None:
    code, _, _ = _run([])

    assert code == int(ExitCode.INVALID_ARGS)


@pytest.mark.parametrize(
    "argv",
    [
        ["demo", "--max-retries", "-1"],
        ["demo", "--base-delay", "abc"],
        ["demo", "--multiplier", "0"],
        ["demo", "--multiplier", "nan"],
        ["demo", "--multiplier", "inf"],
        ["demo", "--base-delay", "inf"],
        ["demo", "--base-delay", "nan"],
        ["--log-level", "loud", "demo"],
    ],
)
def test_invalid_values_return_invalid_args(argv: list[str]) -> None:
    code, _, _ = _run(argv)

    assert code == int(ExitCode.INVALID_ARGS)


def test_demo_prints_success_value(tmp_path: Path) -> None:
    waits: list[float] = []

    code, out, _ = _run(
        ["demo", "--config", str(tmp_path / "missing.toml"), "--base-delay", "1", "--multiplier", "2"],
        operation_factory=_scripted(ConnectionError("drop"), InterruptedError("io"), "Connection Success"),
        sleep=waits.append,
    )

    assert code == int(ExitCode.SUCCESS)
    assert out.strip() == "Connection Success"
    assert waits == [1.0, 2.0]


def test_demo_reports_exhausted_failure(tmp_path: Path) -> None:
    code, out, err = _run(
        ["demo", "--config", str(tmp_path / "missing.toml"), "--max-retries", "1", "--base-delay", "0"],
        operation_factory=_scripted(ConnectionError("drop 1"), ConnectionError("drop 2")),
        sleep=lambda _: None,
    )

    assert code == int(ExitCode.OPERATION_FAILED)
    assert out == ""
    assert "Operation failed after 2 attempt(s): ConnectionError: drop 2" in err


def test_demo_transient_kind_flag_extends_defaults(tmp_path: Path) -> None:
    code, out, _ = _run(
        [
            "demo",
            "--config",
            str(tmp_path / "missing.toml"),
            "--base-delay",
            "0",
            "--transient-kind",
            "TimeoutError",
        ],
        operation_factory=_scripted(TimeoutError("slow"), ConnectionError("drop"), "ok"),
        sleep=lambda _: None,
    )

    assert code == int(ExitCode.SUCCESS)
    assert out.strip() == "ok"


def test_demo_replace_defaults_flag_drops_builtin_kinds(tmp_path: Path) -> None:
    code, _, err = _run(
        [
            "demo",
            "--config",
            str(tmp_path / "missing.toml"),
            "--base-delay",
            "0",
            "--transient-kind",
            "TimeoutError",
            "--replace-defaults",
        ],
        operation_factory=_scripted(ConnectionError("drop"), "ok"),
        sleep=lambda _: None,
    )

    assert code == int(ExitCode.OPERATION_FAILED)
    assert "after 1 attempt(s)" in err


def test_demo_reads_policy_from_config_file(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("max_retries = 0\nbase_delay_seconds = 0.0\n", encoding="utf-8")

    code, _, err = _run(
        ["demo", "--config", str(path)],
        operation_factory=_scripted(ConnectionError("drop"), "ok"),
        sleep=lambda _: None,
    )

    assert code == int(ExitCode.OPERATION_FAILED)
    assert "after 1 attempt(s)" in err


def test_demo_seed_is_passed_to_factory(tmp_path: Path) -> None:
    seen: list[int | None] = []

    def factory(seed: int | None) -> Callable[[], object]:
        seen.append(seed)
        return lambda: "ok"

    code, _, _ = _run(
        ["demo", "--config", str(tmp_path / "missing.toml"), "--seed", "7"],
        operation_factory=factory,
    )

    assert code == int(ExitCode.SUCCESS)
    assert seen == [7]


def test_retrywise_error_is_reported_to_stderr(tmp_path: Path) -> None:
    def factory(seed: int | None) -> Callable[[], object]:
        raise RetrywiseError(
            "Operation unavailable",
            code=ExitCode.VALIDATION_ERROR,
            hint="Check the demo setup.",
        )

    code, _, err = _run(
        ["demo", "--config", str(tmp_path / "missing.toml")],
        operation_factory=factory,
    )

    assert code == int(ExitCode.VALIDATION_ERROR)
    assert "Check the demo setup." in err


def test_unexpected_error_returns_runtime_error(tmp_path: Path) -> None:
    def factory(seed: int | None) -> Callable[[], object]:
        raise RuntimeError("boom")

    code, _, err = _run(
        ["--log-file", str(tmp_path / "rw.log"), "demo", "--config", str(tmp_path / "missing.toml")],
        operation_factory=factory,
    )

    assert code == int(ExitCode.RUNTIME_ERROR)
    assert "Unexpected runtime failure" in err
    assert "Unhandled exception in CLI entrypoint" in (tmp_path / "rw.log").read_text(encoding="utf-8")
