"""Flaky operation used to exercise the retry engine from the CLI."""

from __future__ import annotations

import logging as py_logging
import random
from collections.abc import Callable

from .errors import OperationCancelled

logger = py_logging.getLogger(__name__)

SUCCESS_MESSAGE = "Connection Success"


def flaky_connection(rng: random.Random | None = None) -> Callable[[], str]:
    """Return an operation that succeeds one time in four.

    The other outcomes raise a cancellation signal, an interrupted I/O error
    or a dropped connection.
    """
    source = rng or random.Random()

    def operation() -> str:
        status = source.randrange(4)
        if status == 0:
            return SUCCESS_MESSAGE
        if status == 1:
            logger.debug("Raising cancellation signal")
            raise OperationCancelled("Interrupted")
        if status == 2:
            logger.debug("Raising interrupted I/O error")
            raise InterruptedError("Interrupted IO")
        logger.debug("Raising connection error")
        raise ConnectionError("Connection Unstable")

    return operation
