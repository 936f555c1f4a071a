"""Submission workflow: pay fees, submit a task input and wait for its output."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from contextlib import AbstractContextManager, nullcontext
from typing import Protocol

from truebit_tasks.chain import ChainClient
from truebit_tasks.contracts import TaskContract, TokenContract
from truebit_tasks.models import ContractRef, FeeQuote, SubmissionRequest, SubmissionResult
from truebit_tasks.units import format_units

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 3.0


class StopToken(Protocol):
    """Cancellation token; ``threading.Event`` satisfies it."""

    def is_set(self) -> bool: ...

    def wait(self, timeout: float | None = None) -> bool: ...


class OutputSource(Protocol):
    def get_output(self, data: bytes) -> bytes: ...


class OutputTimeoutError(TimeoutError):
    """Raised when no output appears before the wait deadline."""


class WaitCancelledError(RuntimeError):
    """Raised when the output wait is cancelled through its stop token."""


class SubmissionCancelledError(WaitCancelledError):
    """Raised when cancellation is requested before a transaction is sent."""


def wait_for_output(  # noqa: PLR0913
    task: OutputSource,
    data: bytes,
    *,
    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    timeout_seconds: float | None = None,
    stop_event: StopToken | None = None,
    clock: Callable[[], float] = time.monotonic,
    on_poll: Callable[[int], None] | None = None,
) -> tuple[bytes, int]:
    """Poll ``task`` until it reports a non-empty output for ``data``.

    Empty bytes mean the output is not available yet; any non-empty value,
    even a single byte, ends the wait. Queries are spaced by at least
    ``interval_seconds``. Without ``timeout_seconds`` the wait only ends on
    output or cancellation.

    Returns the output and the number of queries issued.
    """

    if interval_seconds <= 0:
        raise ValueError("interval_seconds must be > 0.")
    deadline = clock() + timeout_seconds if timeout_seconds else None
    polls = 0
    while True:
        if stop_event is not None and stop_event.is_set():
            raise WaitCancelledError(f"Stopped waiting for output after {polls} queries.")
        polls += 1
        if on_poll is not None:
            on_poll(polls)
        output = task.get_output(data)
        if len(output) > 0:
            logger.info("Output available after %d queries (%d bytes)", polls, len(output))
            return output, polls

        if deadline is not None:
            remaining = deadline - clock()
            if remaining < interval_seconds:
                raise OutputTimeoutError(
                    f"No output after {polls} queries within {timeout_seconds:g} seconds.",
                )
        logger.debug("Output not ready after query %d; sleeping %.1fs", polls, interval_seconds)
        if stop_event is None:
            time.sleep(interval_seconds)
        elif stop_event.wait(interval_seconds):
            raise WaitCancelledError(f"Stopped waiting for output after {polls} queries.")


def query_fees(chain: ChainClient, task: TaskContract, token: TokenContract) -> FeeQuote:
    return FeeQuote(
        token_balance=token.balance_of(chain.account),
        protocol_fee=task.protocol_fee(),
        platform_fee=task.platform_fee(),
    )


def submit_task(
    chain: ChainClient,
    request: SubmissionRequest,
    *,
    emit: Callable[[str], None] | None = None,
    stop_event: StopToken | None = None,
    wait_guard: Callable[[], AbstractContextManager[object]] = nullcontext,
) -> SubmissionResult:
    """Approve the protocol fee, submit the input and wait for the task output.

    The stop token is checked before each transaction so a cancelled run pays
    nothing further. ``wait_guard`` wraps only the output wait; the CLI uses it
    to turn SIGINT/SIGTERM into a stop request while polling.
    """

    say = emit or _noop
    decimals = request.token_decimals
    task = TaskContract(chain, ContractRef(request.contract_address, request.contract.abi))
    token = TokenContract(chain, request.deployment.tru)

    say(f"Contract address: {task.address}")
    fees = query_fees(chain, task, token)
    say(f"TRU balance: {format_units(fees.token_balance, decimals)}")
    say(f"Protocol fee: {format_units(fees.protocol_fee, decimals)} TRU")
    say(f"Platform fee: {format_units(fees.platform_fee)} ETH")

    _check_not_cancelled(stop_event, "approve")
    say("Allowing smart contract to spend our TRU tokens to pay protocol fees...")
    token.approve(task.address, fees.protocol_fee)

    data = request.task_input.encode("utf-8")
    _check_not_cancelled(stop_event, request.entry_point)
    say(f'Submitting task to {request.entry_point} "{request.task_input}"')
    task.submit(request.entry_point, data, value=fees.platform_fee)
    say("Submitted")

    with wait_guard():
        output, polls = wait_for_output(
            task,
            data,
            interval_seconds=request.poll_interval_seconds,
            timeout_seconds=request.timeout_seconds,
            stop_event=stop_event,
            on_poll=lambda _: say("Waiting..."),
        )
    result = SubmissionResult(task_input=request.task_input, output=output, fees=fees, polls=polls)
    say(f"Result: {result.text}")
    return result


def _check_not_cancelled(stop_event: StopToken | None, step: str) -> None:
    if stop_event is not None and stop_event.is_set():
        raise SubmissionCancelledError(f"Cancelled before sending {step} transaction.")


def _noop(_: str) -> None:
    return None
