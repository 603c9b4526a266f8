#!/usr/bin/env python3
"""
Compose options and stream a short generation with the transformers engine.

Usage:
    python examples/basic_predict.py gpt2 "The capital of France is"
"""

import logging
import sys

from llama_options.options.composer import new_predict_options
from llama_options.options.model_options import set_context, set_model_seed
from llama_options.options.option_queries import options_to_dict
from llama_options.options.predict_options import (
    set_stop_words,
    set_temperature,
    set_token_callback,
    set_tokens,
    set_top_k,
)
from llama_options.runtime.model_runtime import TransformersRuntime


def main():
    if len(sys.argv) < 3:
        print(__doc__)
        sys.exit(1)

    model_path, prompt = sys.argv[1], sys.argv[2]
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    def on_token(token: str) -> bool:
        print(token, end="", flush=True)
        return True

    overrides = [
        set_temperature(0.2),
        set_top_k(50),
        set_tokens(64),
        set_stop_words("\n\n"),
        set_token_callback(on_token),
    ]
    print("Predict options:", options_to_dict(new_predict_options(*overrides)))

    runtime = TransformersRuntime(device="cpu")
    runtime.load(model_path, set_context(1024), set_model_seed(42))
    try:
        print(prompt, end="")
        runtime.predict(prompt, *overrides)
        print()
    finally:
        runtime.free()


if __name__ == "__main__":
    main()
