"""CLI entrypoint for truebit-tasks."""

import logging
from collections.abc import Callable
from pathlib import Path

import rich_click as click

from truebit_tasks import __version__
from truebit_tasks.controllers import (
    FeesCommand,
    InspectCommand,
    PublishCommand,
    SubmitCommand,
    TaskCliController,
)

click.rich_click.USE_MARKDOWN = True
TASK_CONTROLLER = TaskCliController(emit=click.echo)


@click.group()
@click.version_option(version=__version__, prog_name="truebit-tasks")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity for diagnostic output on stderr.",
)
def truebit_tasks(log_level: str) -> None:
    """Publish Truebit tasks and submit task requests."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@truebit_tasks.command("publish")
@click.option("--task-name", default="reverse", show_default=True, help="Task artifact name.")
@click.option(
    "--contract-name",
    default="Reverse",
    show_default=True,
    help="Compiled task contract to deploy.",
)
@click.option(
    "--address-file",
    "address_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Where to write the deployed address. Defaults to TRUEBIT_TASKS_ADDRESS_PATH.",
)
@click.option(
    "--upload-name",
    default="task.wasm",
    show_default=True,
    help="Logical file name used for the IPFS upload and registry entry.",
)
def publish(
    task_name: str,
    contract_name: str,
    address_path: Path | None,
    upload_name: str,
) -> None:
    """Upload a compiled task, register it and deploy its task contract."""

    _run(
        lambda: TASK_CONTROLLER.publish(
            PublishCommand(
                task_name=task_name,
                contract_name=contract_name,
                address_path=address_path,
                upload_name=upload_name,
            ),
        ),
    )


@truebit_tasks.command("submit")
@click.option("--input", "task_input", default="abc123", show_default=True, help="Task input.")
@click.option(
    "--contract-name",
    default="Reverse",
    show_default=True,
    help="Compiled task contract providing the ABI.",
)
@click.option(
    "--entry-point",
    default="reverse",
    show_default=True,
    help="Task contract function that accepts the input bytes.",
)
@click.option(
    "--address-file",
    "address_path",
    type=click.Path(path_type=Path),
    default=None,
    help="File holding the deployed address. Defaults to TRUEBIT_TASKS_ADDRESS_PATH.",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0.1),
    default=None,
    help="Seconds between output queries. Defaults to TRUEBIT_TASKS_POLL_INTERVAL_SECONDS.",
)
@click.option(
    "--timeout-seconds",
    type=click.FloatRange(min=0),
    default=None,
    help="Give up waiting for output after this many seconds; 0 waits indefinitely.",
)
def submit(  # noqa: PLR0913
    task_input: str,
    contract_name: str,
    entry_point: str,
    address_path: Path | None,
    poll_interval: float | None,
    timeout_seconds: float | None,
) -> None:
    """Pay task fees, submit an input and wait for the result."""

    _run(
        lambda: TASK_CONTROLLER.submit(
            SubmitCommand(
                task_input=task_input,
                contract_name=contract_name,
                entry_point=entry_point,
                address_path=address_path,
                poll_interval_seconds=poll_interval,
                timeout_seconds=timeout_seconds,
            ),
        ),
    )


@truebit_tasks.command("fees")
@click.option(
    "--contract-name",
    default="Reverse",
    show_default=True,
    help="Compiled task contract providing the ABI.",
)
@click.option(
    "--address-file",
    "address_path",
    type=click.Path(path_type=Path),
    default=None,
    help="File holding the deployed address. Defaults to TRUEBIT_TASKS_ADDRESS_PATH.",
)
def fees(contract_name: str, address_path: Path | None) -> None:
    """Show signer balances and the task contract's current fees."""

    _run(
        lambda: TASK_CONTROLLER.fees(
            FeesCommand(contract_name=contract_name, address_path=address_path),
        ),
    )


@truebit_tasks.command("inspect")
@click.option("--task-name", default="reverse", show_default=True, help="Task artifact name.")
def inspect(task_name: str) -> None:
    """Show size, integrity root and code root of a task without publishing it."""

    _run(lambda: TASK_CONTROLLER.inspect(InspectCommand(task_name=task_name)))


def _run(action: Callable[[], list[str]]) -> None:
    try:
        lines = action()
    except click.ClickException:
        raise
    except Exception as exc:
        logging.getLogger(__name__).debug("Command failed", exc_info=True)
        raise click.ClickException(str(exc) or type(exc).__name__) from exc
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    truebit_tasks()
