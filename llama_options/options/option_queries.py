"""Conversions between option snapshots and plain mappings."""

import json
from dataclasses import fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Union

from . import model_options as mo
from . import predict_options as po
from .option_types import ModelOption, ModelOptions, PredictOption, PredictOptions


MODEL_SETTERS: Dict[str, Callable[[Any], ModelOption]] = {
    "context_size": mo.set_context,
    "seed": mo.set_model_seed,
    "parts": mo.set_parts,
}

MODEL_FLAGS: Dict[str, ModelOption] = {
    "embeddings": mo.enable_embeddings,
    "f16_memory": mo.enable_f16_memory,
    "mlock": mo.enable_mlock,
}

PREDICT_SETTERS: Dict[str, Callable[[Any], PredictOption]] = {
    "seed": po.set_seed,
    "threads": po.set_threads,
    "tokens": po.set_tokens,
    "top_k": po.set_top_k,
    "top_p": po.set_top_p,
    "temperature": po.set_temperature,
    "penalty": po.set_penalty,
    "repeat": po.set_repeat,
    "batch": po.set_batch,
    "n_keep": po.set_n_keep,
    "tail_free_sampling_z": po.set_tail_free_sampling_z,
    "typical_p": po.set_typical_p,
    "frequency_penalty": po.set_frequency_penalty,
    "presence_penalty": po.set_presence_penalty,
    "mirostat": po.set_mirostat,
    "mirostat_eta": po.set_mirostat_eta,
    "mirostat_tau": po.set_mirostat_tau,
    "penalize_nl": po.set_penalize_nl,
    "logit_bias": po.set_logit_bias,
}

PREDICT_FLAGS: Dict[str, PredictOption] = {
    "f16_kv": po.enable_f16_kv,
    "debug_mode": po.debug,
    "ignore_eos": po.ignore_eos,
}


def _overrides_from_mapping(values: Dict[str, Any], setters: Dict[str, Callable[[Any], Any]],
                            flags: Dict[str, Any], kind: str) -> List[Any]:
    overrides = []
    for key, value in values.items():
        if key in setters:
            overrides.append(setters[key](value))
        elif key in flags:
            # Flags can only be switched on
            if value:
                overrides.append(flags[key])
        else:
            raise ValueError(
                f"Unknown {kind} option '{key}'. "
                f"Available options: {sorted(list(setters) + list(flags))}"
            )
    return overrides


def model_overrides_from_mapping(values: Dict[str, Any]) -> List[ModelOption]:
    """Translate a field-name mapping into model overrides, in mapping order."""
    return _overrides_from_mapping(values, MODEL_SETTERS, MODEL_FLAGS, "model")


def predict_overrides_from_mapping(values: Dict[str, Any]) -> List[PredictOption]:
    """
    Translate a field-name mapping into predict overrides, in mapping order.

    ``stop_prompts`` accepts a list of strings or a single string.
    ``token_callback`` is not accepted since a mapping cannot carry a function.

    Raises:
        ValueError: If a key does not name a settable field or
            ``stop_prompts`` is not a string or a list of strings
    """
    values = dict(values)
    overrides: List[PredictOption] = []
    if "stop_prompts" in values:
        stop_prompts = values.pop("stop_prompts")
        if isinstance(stop_prompts, str):
            stop_prompts = [stop_prompts]
        if not isinstance(stop_prompts, (list, tuple)) or not all(isinstance(s, str) for s in stop_prompts):
            raise ValueError(f"stop_prompts must be a string or a list of strings, got {stop_prompts!r}")
        overrides.append(po.set_stop_words(*stop_prompts))
    overrides.extend(_overrides_from_mapping(values, PREDICT_SETTERS, PREDICT_FLAGS, "predict"))
    return overrides


def options_to_dict(options: Union[ModelOptions, PredictOptions]) -> Dict[str, Any]:
    """Return a JSON-serializable dict of a snapshot (callbacks are omitted)."""
    result = {}
    for field in fields(options):
        if field.name == "token_callback":
            continue
        result[field.name] = getattr(options, field.name)
    if "stop_prompts" in result:
        result["stop_prompts"] = list(result["stop_prompts"])
    return result


def load_options_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load option overrides from a JSON file.

    The file may hold ``"model"`` and ``"predict"`` objects keyed by field
    name and a ``"preset"`` name. Returns a dict with ``model`` and
    ``predict`` override lists and ``preset`` (None when absent).
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    unknown = set(data) - {"model", "predict", "preset"}
    if unknown:
        raise ValueError(f"Unknown sections in {path}: {sorted(unknown)}")

    return {
        "model": model_overrides_from_mapping(data.get("model", {})),
        "predict": predict_overrides_from_mapping(data.get("predict", {})),
        "preset": data.get("preset"),
    }
