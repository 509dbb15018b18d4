"""Ordered fallback chains over interchangeable strategies."""

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from autolabel.exceptions import BackendUnavailable

logger = logging.getLogger(__name__)

S = TypeVar("S")
R = TypeVar("R")


def strategy_name(strategy: object) -> str:
    """Get a display name for a strategy (its ``name`` attribute or class name)."""
    return getattr(strategy, "name", None) or type(strategy).__name__


def run_chain(
    strategies: Iterable[S],
    call: Callable[[S], R],
    fall_through: tuple[type[BaseException], ...] = (BackendUnavailable,),
    what: str = "backend",
) -> R:
    """Call strategies in order until one returns.

    Only exceptions listed in ``fall_through`` move on to the next strategy;
    anything else propagates immediately and stops the chain.

    Args:
        strategies: Strategies in priority order.
        call: Function invoked with each strategy.
        fall_through: Exception types that mean "try the next one".
        what: Noun used in log messages.

    Returns:
        R: Result of the first strategy that succeeded.

    Raises:
        BackendUnavailable: If every strategy fell through. The message lists
            each failure in order.
    """
    failures: list[str] = []
    for strategy in strategies:
        name = strategy_name(strategy)
        try:
            return call(strategy)
        except fall_through as e:
            logger.warning(f"{what} {name} failed, trying next: {e}")
            failures.append(f"{name}: {e}")

    if not failures:
        failures.append(f"no {what} configured")
    error = BackendUnavailable("; ".join(failures))
    error.failures = failures
    raise error
