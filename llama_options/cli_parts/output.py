"""CLI output helpers."""

import json
import sys
from typing import Callable

from ..options.option_queries import options_to_dict
from ..options.option_types import ModelOptions, PredictOptions


def print_resolved_options(model: ModelOptions, predict: PredictOptions) -> None:
    """Print both snapshots as one JSON document."""
    document = {
        "model": options_to_dict(model),
        "predict": options_to_dict(predict),
    }
    print(json.dumps(document, indent=2))


def streaming_callback() -> Callable[[str], bool]:
    """Token callback that writes each token to stdout as it arrives."""
    def on_token(token: str) -> bool:
        sys.stdout.write(token)
        sys.stdout.flush()
        return True
    return on_token
