"""Named overrides for prediction options.

Each ``set_*`` factory returns a function that changes exactly one field
of a PredictOptions snapshot and returns the new snapshot. Values are
taken as given; the engine is responsible for range checks.
"""

from dataclasses import replace
from typing import Any, Optional

from .option_types import PredictOption, PredictOptions, TokenCallback


def _setter(field_name: str, value: Any) -> PredictOption:
    def apply(options: PredictOptions) -> PredictOptions:
        return replace(options, **{field_name: value})
    return apply


def set_token_callback(fn: Optional[TokenCallback]) -> PredictOption:
    """Set the function called with each generated token."""
    return _setter("token_callback", fn)


def set_stop_words(*stop: str) -> PredictOption:
    """Set the prompts that will stop predictions."""
    return _setter("stop_prompts", tuple(stop))


def set_seed(seed: int) -> PredictOption:
    """Set the random seed for sampling text generation (-1 for time-based)."""
    return _setter("seed", seed)


def set_threads(threads: int) -> PredictOption:
    """Set the number of threads to use for text generation."""
    return _setter("threads", threads)


def set_tokens(tokens: int) -> PredictOption:
    """Set the number of tokens to generate."""
    return _setter("tokens", tokens)


def set_top_k(top_k: int) -> PredictOption:
    """Set the value for top-K sampling."""
    return _setter("top_k", top_k)


def set_top_p(top_p: float) -> PredictOption:
    """Set the value for nucleus sampling."""
    return _setter("top_p", top_p)


def set_temperature(temperature: float) -> PredictOption:
    """Set the temperature value for text generation."""
    return _setter("temperature", temperature)


def set_penalty(penalty: float) -> PredictOption:
    """Set the repetition penalty for text generation."""
    return _setter("penalty", penalty)


def set_repeat(repeat: int) -> PredictOption:
    """Set how many recent tokens the repetition penalty looks back over."""
    return _setter("repeat", repeat)


def set_batch(size: int) -> PredictOption:
    """Set the batch size for prompt processing."""
    return _setter("batch", size)


def set_n_keep(n: int) -> PredictOption:
    """Set the number of tokens from the initial prompt to keep."""
    return _setter("n_keep", n)


def set_tail_free_sampling_z(tfs_z: float) -> PredictOption:
    """Set the tail free sampling parameter z (1.0 disables it)."""
    return _setter("tail_free_sampling_z", tfs_z)


def set_typical_p(typical_p: float) -> PredictOption:
    """Set the locally typical sampling parameter p (1.0 disables it)."""
    return _setter("typical_p", typical_p)


def set_frequency_penalty(penalty: float) -> PredictOption:
    return _setter("frequency_penalty", penalty)


def set_presence_penalty(penalty: float) -> PredictOption:
    return _setter("presence_penalty", penalty)


def set_mirostat(mode: int) -> PredictOption:
    """Set the mirostat mode: 0 disabled, 1 mirostat, 2 mirostat 2.0."""
    return _setter("mirostat", mode)


def set_mirostat_eta(eta: float) -> PredictOption:
    """Set the mirostat learning rate."""
    return _setter("mirostat_eta", eta)


def set_mirostat_tau(tau: float) -> PredictOption:
    """Set the mirostat target surprise."""
    return _setter("mirostat_tau", tau)


def set_penalize_nl(penalize: bool) -> PredictOption:
    """Set whether newline tokens are subject to the repetition penalty."""
    return _setter("penalize_nl", penalize)


def set_logit_bias(logit_bias: str) -> PredictOption:
    """Set the logit bias, e.g. ``"15043+1 50256-inf"``."""
    return _setter("logit_bias", logit_bias)


# Flag overrides take no argument. Leaving them out keeps the flag off.

def enable_f16_kv(options: PredictOptions) -> PredictOptions:
    return replace(options, f16_kv=True)


def debug(options: PredictOptions) -> PredictOptions:
    return replace(options, debug_mode=True)


def ignore_eos(options: PredictOptions) -> PredictOptions:
    return replace(options, ignore_eos=True)
