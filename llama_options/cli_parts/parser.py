"""Argument parser construction for the llama-options CLI."""

import argparse
from typing import List

EPILOG = """
Examples:
  # Print the resolved options as JSON (default command)
  python -m llama_options.cli show --preset precise --tokens 256

  # Generate text with a local or hub model
  python -m llama_options.cli predict --model gpt2 --prompt "Once upon a time" --stop "\\n\\n"

  # Options from a JSON file, flags still win
  python -m llama_options.cli predict --config options.json --model gpt2 --prompt "Hi" --temperature 0.2
"""

COMMANDS = {"show", "predict"}


def normalize_cli_argv(argv: List[str]) -> List[str]:
    """Default to the `show` command when none is given."""
    if not argv:
        return ["show"]
    if len(argv) == 1 and argv[0] in {"-h", "--help"}:
        return argv
    if argv[0] in COMMANDS:
        return argv
    return ["show"] + argv


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", help="JSON file with 'model', 'predict' and 'preset' sections")
    parser.add_argument("--preset", help="Named prediction preset")
    parser.add_argument("--list-presets", action="store_true", help="List all presets and exit")
    parser.add_argument("--verbose", "-v", action="store_true")


def _add_model_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("model options")
    group.add_argument("--context-size", type=int)
    group.add_argument("--parts", type=int)
    group.add_argument("--model-seed", type=int)
    group.add_argument("--f16-memory", action="store_true")
    group.add_argument("--mlock", action="store_true")
    group.add_argument("--embeddings", action="store_true")


def _add_predict_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("predict options")
    group.add_argument("--seed", type=int, help="-1 for a time-based seed")
    group.add_argument("--threads", type=int)
    group.add_argument("--tokens", type=int, help="Maximum tokens to generate")
    group.add_argument("--top-k", type=int)
    group.add_argument("--top-p", type=float)
    group.add_argument("--temperature", type=float)
    group.add_argument("--penalty", type=float, help="Repetition penalty")
    group.add_argument("--repeat", type=int, help="Repetition penalty lookback window")
    group.add_argument("--batch", type=int)
    group.add_argument("--n-keep", type=int)
    group.add_argument("--f16-kv", action="store_true")
    group.add_argument("--debug", action="store_true")
    group.add_argument("--stop", action="append", help="Stop prompt (repeatable)")
    group.add_argument("--ignore-eos", action="store_true")
    group.add_argument("--tfs-z", type=float)
    group.add_argument("--typical-p", type=float)
    group.add_argument("--frequency-penalty", type=float)
    group.add_argument("--presence-penalty", type=float)
    group.add_argument("--mirostat", type=int, choices=[0, 1, 2])
    group.add_argument("--mirostat-eta", type=float)
    group.add_argument("--mirostat-tau", type=float)
    group.add_argument("--penalize-nl", action="store_true")
    group.add_argument("--logit-bias", help="e.g. '15043+1 50256-inf'")


def _add_engine_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--model", help="Model path or hub id")
    parser.add_argument("--prompt", help="Prompt text")
    parser.add_argument("--stream", action="store_true", help="Print tokens as they are produced")
    parser.add_argument("--device", choices=["cuda", "cpu"], default="cuda")
    parser.add_argument("--memory-limit", type=float, default=8.0)


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser with `show` and `predict` commands."""
    parser = argparse.ArgumentParser(
        description="Model and prediction options for llama-style inference",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    show_parser = subparsers.add_parser("show", help="Print resolved options as JSON")
    _add_common_args(show_parser)
    _add_model_args(show_parser)
    _add_predict_args(show_parser)
    show_parser.set_defaults(command="show")

    predict_parser = subparsers.add_parser("predict", help="Generate text with the transformers engine")
    _add_common_args(predict_parser)
    _add_model_args(predict_parser)
    _add_predict_args(predict_parser)
    _add_engine_args(predict_parser)
    predict_parser.set_defaults(command="predict")

    return parser
