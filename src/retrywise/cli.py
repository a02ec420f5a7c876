"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import math
import random
import sys
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from .config import load_config
from .demo import flaky_connection
from .errors import ExitCode, RetrywiseError, user_facing_error
from .logging import configure_logging
from .retry import Failure, retry

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")

OperationFactory = Callable[[int | None], Callable[[], object]]


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--max-retries must be an integer") from exc
    if number < 0:
        raise argparse.ArgumentTypeError("--max-retries must be zero or more")
    return number


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--base-delay must be a number") from exc
    if not math.isfinite(number) or number < 0:
        raise argparse.ArgumentTypeError("--base-delay must be a finite number, zero or more")
    return number


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--multiplier must be a number") from exc
    if not math.isfinite(number) or number <= 0:
        raise argparse.ArgumentTypeError("--multiplier must be a finite number greater than zero")
    return number


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="retrywise")
    parser.add_argument("--log-level", type=_log_level_type, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    subparsers = parser.add_subparsers(dest="command", required=True)

    demo = subparsers.add_parser("demo", help="Retry a flaky demonstration operation")
    demo.add_argument("--config", type=Path, default=None, help="Path to a TOML retry config.")
    demo.add_argument("--max-retries", type=_non_negative_int, default=None)
    demo.add_argument("--base-delay", type=_non_negative_float, default=None, help="Seconds.")
    demo.add_argument("--multiplier", type=_positive_float, default=None)
    demo.add_argument(
        "--transient-kind",
        action="append",
        default=[],
        metavar="KIND",
        help="Additional failure kind to retry on (repeatable).",
    )
    demo.add_argument(
        "--replace-defaults",
        action="store_true",
        help="Retry only on the kinds given with --transient-kind.",
    )
    demo.add_argument("--seed", type=int, default=None)
    return parser


def _default_operation_factory(seed: int | None) -> Callable[[], object]:
    return flaky_connection(random.Random(seed))


def run_demo(
    namespace: argparse.Namespace,
    *,
    operation_factory: OperationFactory = _default_operation_factory,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    cfg = load_config(namespace.config)
    if namespace.max_retries is not None:
        cfg.max_retries = namespace.max_retries
    if namespace.base_delay is not None:
        cfg.base_delay_seconds = namespace.base_delay
    if namespace.multiplier is not None:
        cfg.backoff_multiplier = namespace.multiplier
    if namespace.transient_kind:
        cfg.transient_kinds = [*cfg.transient_kinds, *namespace.transient_kind]
    if namespace.replace_defaults:
        cfg.replace_default_kinds = True

    policy = cfg.to_policy()
    outcome = retry(operation_factory(namespace.seed), policy, sleep=sleep)
    if isinstance(outcome, Failure):
        print(
            user_facing_error(
                f"Operation failed after {outcome.attempts} attempt(s): {outcome.cause}",
                hint="Raise --max-retries or register the failure kind with --transient-kind.",
            ),
            file=sys.stderr,
        )
        return int(ExitCode.OPERATION_FAILED)
    print(outcome.value)
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    operation_factory: OperationFactory = _default_operation_factory,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    logger = configure_logging()
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    logger = configure_logging(level=namespace.log_level, log_file=namespace.log_file)

    try:
        logger.debug("Running command %s", namespace.command)
        return run_demo(namespace, operation_factory=operation_factory, sleep=sleep)
    except RetrywiseError as exc:
        logger.error(
            "Handled RetrywiseError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        hint = f"Inspect logs: {namespace.log_file}" if namespace.log_file is not None else "Rerun with --log-level DEBUG."
        print(user_facing_error("Unexpected runtime failure", hint=hint), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
