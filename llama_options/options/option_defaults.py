"""Process-wide default snapshots.

Both values are frozen dataclass instances. Every construction starts
from one of them and produces a new value, so they are never mutated.
"""

from .option_types import ModelOptions, PredictOptions


DEFAULT_MODEL_OPTIONS = ModelOptions(
    context_size=512,
    seed=0,
    f16_memory=False,
    mlock=False,
    embeddings=False,
)

DEFAULT_OPTIONS = PredictOptions(
    seed=-1,
    threads=4,
    tokens=128,
    penalty=1.1,
    repeat=64,
    batch=8,
    n_keep=64,
    top_k=40,
    top_p=0.95,
    tail_free_sampling_z=1.0,
    typical_p=1.0,
    temperature=0.8,
    frequency_penalty=0.0,
    presence_penalty=0.0,
    mirostat=0,
    mirostat_tau=5.0,
    mirostat_eta=0.1,
)
