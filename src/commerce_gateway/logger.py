"""Gateway logger: standard logging levels plus Rich console output for the CLI."""

import json
import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


class GatewayLogger(logging.Logger):
    """
    Logger used by every gateway module.

    Backend fetches, schema composition and request handling log through the standard
    levels, while the CLI renders responses with the console helpers.
    """

    def __init__(self, name: str, level: int = logging.INFO) -> None:
        super().__init__(name, level)
        self.console = Console(stderr=True)

        handler = RichHandler(
            console=self.console,
            rich_tracebacks=True,
            show_time=True,
            show_path=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        self.addHandler(handler)

    def print(self, message: str) -> None:
        """
        Print a plain message (with Rich markup support).

        Args:
            message: Message to display
        """
        self.console.print(message)

    def success(self, message: str) -> None:
        self.print(f"[green]✓[/green] {message}")

    def hint(self, message: str) -> None:
        self.print(f"[dim]{message}[/dim]")

    def print_dict(self, data: dict[str, Any]) -> None:
        """
        Print a JSON-serializable mapping with syntax highlighting.

        GraphQL responses are rendered on stdout so that they can be piped, independently
        of where the log records go.

        Args:
            data: Mapping to display
        """
        Console().print_json(json.dumps(data, indent=2, default=str))


def get_logger(name: str = "commerce_gateway") -> GatewayLogger:
    """
    Get or create a gateway logger instance.

    Args:
        name: Logger name (default: "commerce_gateway")

    Returns:
        GatewayLogger instance
    """
    previous = logging.getLoggerClass()
    logging.setLoggerClass(GatewayLogger)
    try:
        logger = logging.getLogger(name)
    finally:
        logging.setLoggerClass(previous)

    if not isinstance(logger, GatewayLogger):
        raise TypeError(f"Logger '{name}' already exists and is not a GatewayLogger")

    return logger
