import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import rich_click as click
import yaml
from pydantic import ValidationError
from rich.traceback import install

from commerce_gateway import __version__, log
from commerce_gateway.actions.dispatcher import SchemaFederator, main
from commerce_gateway.config import GatewayConfig, load_gateway_config
from commerce_gateway.remote import build_invoker
from commerce_gateway.state import init_state

config_option = click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML file with the gateway configuration (remote schemas, cache TTL, backend, invoker, state store)",
)

optional_output_option = click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    required=False,
    help="Output file for the JSON response (printed to stdout when omitted)",
)


def load_config_or_exit(config_path: Path | None) -> GatewayConfig:
    try:
        return load_gateway_config(config_path)
    except (OSError, yaml.YAMLError, TypeError, ValidationError) as e:
        log.error(f"Invalid gateway config {config_path}: {e}")
        sys.exit(1)


def parse_variables(variables: str | None) -> dict[str, Any] | None:
    if not variables:
        return None
    try:
        parsed = json.loads(variables)
    except json.JSONDecodeError as e:
        log.error(f"--variables is not valid JSON: {e}")
        sys.exit(1)
    if not isinstance(parsed, dict):
        log.error("--variables must be a JSON object")
        sys.exit(1)
    return parsed


@click.group(context_settings={"auto_envvar_prefix": "commerce_gateway"})
@click.option(
    "-l",
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default="INFO",
    help="Log level",
    show_default=True,
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Log file",
)
@click.version_option(__version__)
def cli(log_level: str, log_file: Path | None) -> None:
    if log_file:
        file_handler = logging.FileHandler(log_file, mode="w")
        file_handler.setFormatter(logging.Formatter("%(asctime)s:%(levelname)s:%(message)s"))
        log.addHandler(file_handler)

    log.setLevel(log_level.upper())
    if log_level.upper() == "DEBUG":
        _ = install(show_locals=True)


@cli.command()
@click.option("--query", "-q", "query_text", type=str, help="GraphQL query text")
@click.option(
    "--query-file",
    "-f",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="File containing the GraphQL query",
)
@click.option("--variables", "-v", type=str, help="Query variables as a JSON object")
@click.option("--operation-name", "-o", type=str, help="Name of the operation to execute")
@config_option
@optional_output_option
def query(
    query_text: str | None,
    query_file: Path | None,
    variables: str | None,
    operation_name: str | None,
    config_path: Path | None,
    output: Path | None,
) -> None:
    """Execute a GraphQL request against the federated commerce schema and print the response."""
    if bool(query_text) == bool(query_file):
        log.error("Provide exactly one of --query or --query-file")
        sys.exit(1)

    config = load_config_or_exit(config_path)
    params = {
        **config.to_action_parameters(),
        "query": query_text if query_text else query_file.read_text(encoding="utf-8"),  # type: ignore[union-attr]
        "variables": parse_variables(variables),
        "operationName": operation_name,
    }

    federator = SchemaFederator(invoker=build_invoker(config.invoker))
    state = init_state(config.state) if config.use_cache is not None else None
    response = asyncio.run(main(params, federator=federator, state=state))

    if "error" in response:
        error = response["error"]
        log.error(f"Request failed with status {error['statusCode']}: {error['body']['error']}")
        sys.exit(1)

    body = response["body"]
    if body.get("errors"):
        log.hint(f"The response carries {len(body['errors'])} GraphQL error(s)")

    if output:
        output.write_text(json.dumps(body, indent=2), encoding="utf-8")
        log.success(f"Response written to {output}")
    else:
        log.print_dict(body)


if __name__ == "__main__":
    cli()
