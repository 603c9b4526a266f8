"""Shared CLI helpers: logging, preset listing, and overrides from arguments."""

import argparse
import logging
import sys
from typing import Any, Dict, List, Tuple

from ..options import model_options as mo
from ..options import predict_options as po
from ..options.composer import new_predict_options
from ..options.option_defaults import DEFAULT_OPTIONS
from ..options.option_queries import load_options_file, options_to_dict
from ..options.option_types import ModelOption, PredictOption
from ..options.presets import get_available_presets, get_preset

# argparse dest -> override factory
MODEL_ARG_SETTERS = {
    "context_size": mo.set_context,
    "parts": mo.set_parts,
    "model_seed": mo.set_model_seed,
}

MODEL_ARG_FLAGS = {
    "f16_memory": mo.enable_f16_memory,
    "mlock": mo.enable_mlock,
    "embeddings": mo.enable_embeddings,
}

PREDICT_ARG_SETTERS = {
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
    "tfs_z": po.set_tail_free_sampling_z,
    "typical_p": po.set_typical_p,
    "frequency_penalty": po.set_frequency_penalty,
    "presence_penalty": po.set_presence_penalty,
    "mirostat": po.set_mirostat,
    "mirostat_eta": po.set_mirostat_eta,
    "mirostat_tau": po.set_mirostat_tau,
    "logit_bias": po.set_logit_bias,
}

PREDICT_ARG_FLAGS = {
    "f16_kv": po.enable_f16_kv,
    "debug": po.debug,
    "ignore_eos": po.ignore_eos,
}


def setup_logging(verbose: bool = False) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("transformers").setLevel(logging.WARNING)


def print_available_presets() -> None:
    """Print all presets with the fields they change."""
    defaults = options_to_dict(DEFAULT_OPTIONS)
    presets = get_available_presets()
    print("Available Presets:")
    print("-" * 80)
    print(f"{'Preset':<16} {'Changes'}")
    print("-" * 80)

    for name, overrides in presets.items():
        resolved = options_to_dict(new_predict_options(*overrides))
        changes = [f"{key}={value}" for key, value in resolved.items() if defaults[key] != value]
        print(f"{name:<16} {', '.join(changes) or '(defaults)'}")

    print(f"\nTotal presets: {len(presets)}")


def _from_args(args: argparse.Namespace, setters: Dict[str, Any], flags: Dict[str, Any]) -> List[Any]:
    overrides = []
    for dest, factory in setters.items():
        value = getattr(args, dest, None)
        if value is not None:
            overrides.append(factory(value))
    for dest, flag in flags.items():
        if getattr(args, dest, False):
            overrides.append(flag)
    return overrides


def build_overrides(args: argparse.Namespace) -> Tuple[List[ModelOption], List[PredictOption]]:
    """
    Collect overrides from the config file, the preset, and explicit flags.

    Order (later wins): preset, config file, flags. ``--preset`` replaces
    the preset named in the config file.
    """
    file_overrides: Dict[str, Any] = {"model": [], "predict": [], "preset": None}
    if args.config:
        file_overrides = load_options_file(args.config)

    preset = args.preset or file_overrides["preset"]
    model_overrides: List[ModelOption] = list(file_overrides["model"])
    predict_overrides: List[PredictOption] = get_preset(preset) if preset else []
    predict_overrides.extend(file_overrides["predict"])

    model_overrides.extend(_from_args(args, MODEL_ARG_SETTERS, MODEL_ARG_FLAGS))
    predict_overrides.extend(_from_args(args, PREDICT_ARG_SETTERS, PREDICT_ARG_FLAGS))
    if args.stop is not None:
        predict_overrides.append(po.set_stop_words(*args.stop))
    if args.penalize_nl:
        predict_overrides.append(po.set_penalize_nl(True))

    return model_overrides, predict_overrides
