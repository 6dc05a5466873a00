import json
import logging
from typing import Any, Callable, Dict, List, Optional

import typer
from rich.console import Console
from typing_extensions import Annotated

from analytics.client import Client
from analytics.config import load_client_config
from analytics.constants import EXIT_CODE_DELIVERY_FAILED, EXIT_CODE_INVALID_ARGUMENT
from analytics.errors import ConfigurationError, DeliveryError, InvalidArgumentError
from analytics.meta import get_version

LOG = logging.getLogger(__name__)

console = Console(highlight=False)

CLI_MAIN_INTRODUCTION = (
    "Send track and identify calls to the analytics collection endpoint. "
    "The secret is read from --secret, ANALYTICS_SECRET or ~/.analytics/config.ini."
)
CLI_DEBUG_HELP = "Enable debug logging."
CLI_SECRET_HELP = "Project secret. Defaults to ANALYTICS_SECRET or the config file."
CLI_URL_HELP = "Collection endpoint host or base URL."
CLI_PATH_HELP = "Collection endpoint path."
CLI_INSECURE_HELP = "Use plain HTTP when the URL has no scheme."
CLI_TIMEOUT_HELP = "HTTP timeout in seconds."
CLI_SESSION_ID_HELP = "Session id of the user (optional with --user-id)."
CLI_USER_ID_HELP = "User id (optional with --session-id)."
CLI_CONTEXT_HELP = "Context entry as key=value. Can be repeated."

cli = typer.Typer(
    name="analytics",
    help=CLI_MAIN_INTRODUCTION,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def configure_logger(debug: bool) -> bool:
    level = logging.CRITICAL

    if debug:
        level = logging.DEBUG

    logging.basicConfig(format="%(asctime)s %(name)s => %(message)s", level=level)
    return debug


def parse_pairs(values: Optional[List[str]], option: str) -> Dict[str, Any]:
    """
    Turn repeated ``key=value`` options into a dict. Values that parse as
    JSON (numbers, booleans, objects) keep their type; anything else stays a
    string.
    """
    pairs: Dict[str, Any] = {}

    for item in values or []:
        key, sep, raw = item.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"expected key=value, got {item!r}", param_hint=option)

        try:
            value = json.loads(raw)
        except ValueError:
            value = raw
        pairs[key.strip()] = value

    return pairs


def _send(
    send: Callable[[Client], bool],
    *,
    secret: Optional[str],
    url: Optional[str],
    path: Optional[str],
    insecure: bool,
    timeout: Optional[float],
) -> None:
    errors: List[DeliveryError] = []
    options: Dict[str, Any] = {"use_ssl": not insecure}
    if timeout is not None:
        options["timeout"] = timeout

    try:
        config = load_client_config(
            secret=secret,
            url=url,
            path=path,
            on_error=errors.append,
            register_atexit=False,
            **options,
        )
        client = Client(config=config)
    except ConfigurationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=e.get_exit_code())

    with client:
        try:
            accepted = send(client)
        except InvalidArgumentError as e:
            console.print(f"[red]{e.message}[/red]")
            raise typer.Exit(code=EXIT_CODE_INVALID_ARGUMENT)

    if not accepted:
        console.print("[red]The record was dropped: the queue is full.[/red]")
        raise typer.Exit(code=EXIT_CODE_DELIVERY_FAILED)

    if errors:
        for error in errors:
            console.print(f"[red]{error.message}[/red]")
        raise typer.Exit(code=EXIT_CODE_DELIVERY_FAILED)

    LOG.info("Record delivered to %s", config.transport.endpoint)
    console.print(f"[green]Delivered[/green] to {config.transport.endpoint}")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"analytics-python {get_version() or 'unknown'}")
        raise typer.Exit()


@cli.callback()
def main(
    debug: Annotated[
        bool, typer.Option("--debug", help=CLI_DEBUG_HELP, callback=configure_logger)
    ] = False,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True),
    ] = False,
):
    """
    Send track and identify calls to the analytics collection endpoint.
    """
    LOG.debug("analytics cli started")


@cli.command()
def track(
    event: Annotated[str, typer.Argument(help="Name of the event.")],
    session_id: Annotated[Optional[str], typer.Option(help=CLI_SESSION_ID_HELP)] = None,
    user_id: Annotated[Optional[str], typer.Option(help=CLI_USER_ID_HELP)] = None,
    prop: Annotated[
        Optional[List[str]],
        typer.Option("--property", "-p", help="Event property as key=value. Can be repeated."),
    ] = None,
    context: Annotated[
        Optional[List[str]], typer.Option("--context", "-c", help=CLI_CONTEXT_HELP)
    ] = None,
    secret: Annotated[Optional[str], typer.Option(help=CLI_SECRET_HELP)] = None,
    url: Annotated[Optional[str], typer.Option(help=CLI_URL_HELP)] = None,
    path: Annotated[Optional[str], typer.Option(help=CLI_PATH_HELP)] = None,
    insecure: Annotated[bool, typer.Option("--insecure", help=CLI_INSECURE_HELP)] = False,
    timeout: Annotated[Optional[float], typer.Option(help=CLI_TIMEOUT_HELP)] = None,
):
    """
    Track an event and wait for it to be delivered.
    """
    properties = parse_pairs(prop, "--property")
    context_values = parse_pairs(context, "--context")

    _send(
        lambda client: client.track(
            event,
            session_id=session_id,
            user_id=user_id,
            properties=properties,
            context=context_values,
        ),
        secret=secret,
        url=url,
        path=path,
        insecure=insecure,
        timeout=timeout,
    )


@cli.command()
def identify(
    session_id: Annotated[Optional[str], typer.Option(help=CLI_SESSION_ID_HELP)] = None,
    user_id: Annotated[Optional[str], typer.Option(help=CLI_USER_ID_HELP)] = None,
    trait: Annotated[
        Optional[List[str]],
        typer.Option("--trait", "-t", help="User trait as key=value. Can be repeated."),
    ] = None,
    context: Annotated[
        Optional[List[str]], typer.Option("--context", "-c", help=CLI_CONTEXT_HELP)
    ] = None,
    secret: Annotated[Optional[str], typer.Option(help=CLI_SECRET_HELP)] = None,
    url: Annotated[Optional[str], typer.Option(help=CLI_URL_HELP)] = None,
    path: Annotated[Optional[str], typer.Option(help=CLI_PATH_HELP)] = None,
    insecure: Annotated[bool, typer.Option("--insecure", help=CLI_INSECURE_HELP)] = False,
    timeout: Annotated[Optional[float], typer.Option(help=CLI_TIMEOUT_HELP)] = None,
):
    """
    Identify a user and wait for the call to be delivered.
    """
    traits = parse_pairs(trait, "--trait")
    context_values = parse_pairs(context, "--context")

    _send(
        lambda client: client.identify(
            session_id=session_id,
            user_id=user_id,
            traits=traits,
            context=context_values,
        ),
        secret=secret,
        url=url,
        path=path,
        insecure=insecure,
        timeout=timeout,
    )
