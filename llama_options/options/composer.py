"""Apply ordered override functions on top of a default snapshot."""

from functools import reduce
from typing import Callable, Iterable, Optional, TypeVar

from .option_defaults import DEFAULT_MODEL_OPTIONS, DEFAULT_OPTIONS
from .option_types import ModelOption, ModelOptions, PredictOption, PredictOptions

T = TypeVar("T")


def compose(base: T, overrides: Optional[Iterable[Callable[[T], T]]] = None) -> T:
    """
    Apply overrides to ``base`` in the order given.

    Later overrides of the same field win. No validation happens here:
    out-of-range values pass through untouched and must be checked by
    whatever consumes the result.

    Args:
        base: Starting snapshot (left untouched)
        overrides: Functions mapping a snapshot to an updated snapshot

    Returns:
        The resulting snapshot; ``base`` itself when there are no overrides
    """
    if not overrides:
        return base
    return reduce(lambda current, override: override(current), overrides, base)


def new_model_options(*opts: ModelOption) -> ModelOptions:
    """Create ModelOptions from the defaults and the given overrides."""
    return compose(DEFAULT_MODEL_OPTIONS, opts)


def new_predict_options(*opts: PredictOption) -> PredictOptions:
    """Create PredictOptions from the defaults and the given overrides."""
    return compose(DEFAULT_OPTIONS, opts)
