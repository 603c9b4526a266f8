"""Consumption-time validation of option snapshots.

Composing options never fails. Engines call these checks right before
they use a snapshot and surface any problem to the caller.
"""

import math
import re
from typing import Dict, List

from ..options.option_types import ModelOptions, PredictOptions


_LOGIT_BIAS_ENTRY = re.compile(r"^(\d+)([+-])(inf|\d+(?:\.\d*)?|\.\d+)$", re.IGNORECASE)


class OptionsValidationError(ValueError):
    """Raised when an engine is handed a snapshot it cannot use."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid options: " + "; ".join(problems))


def parse_logit_bias(logit_bias: str) -> Dict[int, float]:
    """
    Parse a llama.cpp style logit bias string.

    Entries look like ``TOKEN_ID+BIAS`` or ``TOKEN_ID-BIAS`` and are
    separated by whitespace or commas; ``inf`` is accepted as a bias.
    Later entries for the same token replace earlier ones.

    Args:
        logit_bias: Encoded biases, may be empty

    Returns:
        Mapping of token id to additive bias

    Raises:
        ValueError: If an entry cannot be parsed
    """
    biases: Dict[int, float] = {}
    for entry in re.split(r"[\s,]+", logit_bias.strip()):
        if not entry:
            continue
        match = _LOGIT_BIAS_ENTRY.match(entry)
        if match is None:
            raise ValueError(f"Malformed logit bias entry: '{entry}'")
        token_id, sign, value = match.groups()
        bias = math.inf if value.lower() == "inf" else float(value)
        biases[int(token_id)] = -bias if sign == "-" else bias
    return biases


def model_options_problems(options: ModelOptions) -> List[str]:
    """Return a description of every invalid field in ``options``."""
    problems = []
    if options.context_size <= 0:
        problems.append(f"context_size must be > 0, got {options.context_size}")
    return problems


def predict_options_problems(options: PredictOptions) -> List[str]:
    """Return a description of every invalid field in ``options``."""
    problems = []

    def check(ok: bool, message: str) -> None:
        if not ok:
            problems.append(message)

    check(options.threads > 0, f"threads must be > 0, got {options.threads}")
    check(options.tokens >= 0, f"tokens must be >= 0, got {options.tokens}")
    check(options.top_k >= 0, f"top_k must be >= 0, got {options.top_k}")
    check(0.0 <= options.top_p <= 1.0, f"top_p must be within [0, 1], got {options.top_p}")
    check(options.temperature >= 0.0, f"temperature must be >= 0, got {options.temperature}")
    check(options.penalty >= 0.0, f"penalty must be >= 0, got {options.penalty}")
    check(options.repeat >= 0, f"repeat must be >= 0, got {options.repeat}")
    check(options.batch > 0, f"batch must be > 0, got {options.batch}")
    check(options.n_keep >= 0, f"n_keep must be >= 0, got {options.n_keep}")
    check(0.0 < options.tail_free_sampling_z <= 1.0,
          f"tail_free_sampling_z must be within (0, 1], got {options.tail_free_sampling_z}")
    check(0.0 < options.typical_p <= 1.0,
          f"typical_p must be within (0, 1], got {options.typical_p}")
    check(options.frequency_penalty >= 0.0,
          f"frequency_penalty must be >= 0, got {options.frequency_penalty}")
    check(options.presence_penalty >= 0.0,
          f"presence_penalty must be >= 0, got {options.presence_penalty}")
    check(options.mirostat in (0, 1, 2), f"mirostat must be 0, 1 or 2, got {options.mirostat}")
    check(options.mirostat_eta > 0.0, f"mirostat_eta must be > 0, got {options.mirostat_eta}")
    check(options.mirostat_tau > 0.0, f"mirostat_tau must be > 0, got {options.mirostat_tau}")

    try:
        parse_logit_bias(options.logit_bias)
    except ValueError as e:
        problems.append(str(e))

    return problems


def validate_model_options(options: ModelOptions) -> ModelOptions:
    """Return ``options`` unchanged or raise OptionsValidationError."""
    problems = model_options_problems(options)
    if problems:
        raise OptionsValidationError(problems)
    return options


def validate_predict_options(options: PredictOptions) -> PredictOptions:
    """Return ``options`` unchanged or raise OptionsValidationError."""
    problems = predict_options_problems(options)
    if problems:
        raise OptionsValidationError(problems)
    return options


def sampling_conflicts(options: PredictOptions) -> List[str]:
    """
    List truncation samplers that are active alongside mirostat.

    These combinations are not rejected. Which sampler takes precedence
    is left to the engine, so callers should only report them.
    """
    if options.mirostat == 0:
        return []

    conflicts = []
    if options.top_k > 0:
        conflicts.append("top_k")
    if options.top_p < 1.0:
        conflicts.append("top_p")
    if options.tail_free_sampling_z < 1.0:
        conflicts.append("tail_free_sampling_z")
    if options.typical_p < 1.0:
        conflicts.append("typical_p")
    return conflicts
