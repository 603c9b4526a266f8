"""Command-line interface for resolving options and running predictions."""

import logging
import sys
from typing import List, Optional

from .cli_parts.common import build_overrides, print_available_presets, setup_logging
from .cli_parts.output import print_resolved_options, streaming_callback
from .cli_parts.parser import create_parser, normalize_cli_argv
from .options.composer import new_model_options, new_predict_options
from .options.predict_options import set_token_callback


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(normalize_cli_argv(sys.argv[1:] if argv is None else argv))

    setup_logging(args.verbose or args.debug)
    logger = logging.getLogger(__name__)

    if args.list_presets:
        print_available_presets()
        return

    try:
        model_overrides, predict_overrides = build_overrides(args)
        predict_options = new_predict_options(*predict_overrides)
        if predict_options.debug_mode:
            logging.getLogger().setLevel(logging.DEBUG)

        if args.command == "show":
            print_resolved_options(new_model_options(*model_overrides), predict_options)
            return

        if not args.model:
            parser.error("--model is required for predict")
        if args.prompt is None:
            parser.error("--prompt is required for predict")

        # Imported here so `show` works without loading torch
        from .runtime.model_runtime import TransformersRuntime

        runtime = TransformersRuntime(device=args.device, memory_limit_gb=args.memory_limit)
        runtime.load(args.model, *model_overrides)
        if args.stream:
            predict_overrides.append(set_token_callback(streaming_callback()))

        try:
            text = runtime.predict(args.prompt, *predict_overrides)
        finally:
            runtime.free()

        if args.stream:
            print()
        else:
            print(text)

    except KeyboardInterrupt:
        logger.info("Prediction interrupted by user")
        print("\nPrediction interrupted by user")
        sys.exit(1)

    except Exception as e:
        logger.error(f"Command failed: {str(e)}")
        print(f"\nError: {str(e)}")
        sys.exit(1)


def cli_entry_point() -> None:
    """Entry point for setuptools console script."""
    main()


if __name__ == "__main__":
    main()
