"""Named prediction presets built from the standard overrides."""

from typing import Dict, List

from .composer import compose
from .option_defaults import DEFAULT_OPTIONS
from .option_types import PredictOption, PredictOptions
from .predict_options import (
    set_mirostat,
    set_mirostat_eta,
    set_mirostat_tau,
    set_penalty,
    set_seed,
    set_temperature,
    set_top_k,
    set_top_p,
)


# Supported presets with their override lists
PREDICT_PRESETS: Dict[str, List[PredictOption]] = {
    "default": [],

    "deterministic": [
        set_seed(0),
        set_temperature(0.0),  # greedy decoding
    ],

    "precise": [
        set_temperature(0.2),
        set_top_k(20),
        set_top_p(0.8),
        set_penalty(1.15),
    ],

    "creative": [
        set_temperature(1.1),
        set_top_k(100),
        set_top_p(0.98),
    ],

    # Mirostat presets leave top_k/top_p alone; how they interact is up to the engine
    "mirostat": [
        set_mirostat(2),
        set_mirostat_tau(5.0),
        set_mirostat_eta(0.1),
    ],

    "mirostat-v1": [
        set_mirostat(1),
        set_mirostat_tau(5.0),
        set_mirostat_eta(0.1),
    ],
}


def get_preset(name: str) -> List[PredictOption]:
    """
    Get the override list for a named preset.

    Args:
        name: Name of the preset

    Returns:
        A new list of overrides

    Raises:
        ValueError: If the preset is not known
    """
    if name not in PREDICT_PRESETS:
        raise ValueError(
            f"Preset {name} not supported. "
            f"Available presets: {list(PREDICT_PRESETS.keys())}"
        )
    return list(PREDICT_PRESETS[name])


def get_available_presets() -> Dict[str, List[PredictOption]]:
    """Get all presets."""
    return {name: list(overrides) for name, overrides in PREDICT_PRESETS.items()}


def new_predict_options_from_preset(name: str, *opts: PredictOption) -> PredictOptions:
    """Compose a preset, then the caller's overrides, onto the defaults."""
    return compose(DEFAULT_OPTIONS, get_preset(name) + list(opts))
