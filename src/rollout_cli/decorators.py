"""Command decorators.

This module maps rollout failures onto the CLI exit code convention:
0 for success, 1 for a hard failure.
"""

from functools import wraps
from typing import Callable

import click
from rich.console import Console
from rich.markup import escape

from .errors import HardFailure, StoreError
from .shared.logging import get_logger

console = Console(stderr=True)
logger = get_logger(__name__)


def exits_on_failure(func: Callable):
    """Decorator that turns a HardFailure or StoreError into exit code 1.

    Soft failures never reach this point; they are logged inside the steps.

    Args:
        func: Click command callback.

    Returns:
        Decorated callback.
    """

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (HardFailure, StoreError) as e:
            command = click.get_current_context().info_name
            logger.error("command_failed", command=command, error=e.message)
            console.print(f"[red]✗ Error:[/red] {escape(e.message)}", highlight=False)
            raise SystemExit(1)

    return wrapper
