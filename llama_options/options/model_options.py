"""Named overrides for model load options."""

from dataclasses import replace

from .option_types import ModelOption, ModelOptions


def set_context(size: int) -> ModelOption:
    """Set the context window size in tokens."""
    def apply(options: ModelOptions) -> ModelOptions:
        return replace(options, context_size=size)
    return apply


def set_model_seed(seed: int) -> ModelOption:
    """Set the RNG seed used when the model is initialized."""
    def apply(options: ModelOptions) -> ModelOptions:
        return replace(options, seed=seed)
    return apply


def set_parts(parts: int) -> ModelOption:
    """Set the number of model parts (-1 or 0 lets the engine decide)."""
    def apply(options: ModelOptions) -> ModelOptions:
        return replace(options, parts=parts)
    return apply


# Flag overrides take no argument. Leaving them out keeps the flag off.

def enable_embeddings(options: ModelOptions) -> ModelOptions:
    return replace(options, embeddings=True)


def enable_f16_memory(options: ModelOptions) -> ModelOptions:
    return replace(options, f16_memory=True)


def enable_mlock(options: ModelOptions) -> ModelOptions:
    return replace(options, mlock=True)
