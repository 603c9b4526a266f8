"""Core option datatypes for model loading and text prediction."""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple

# Invoked once per produced token; returning False asks the engine to stop.
TokenCallback = Callable[[str], bool]


@dataclass(frozen=True)
class ModelOptions:
    """Load-time configuration for a model instance."""

    context_size: int = 512
    parts: int = 0  # -1/0 = auto
    seed: int = 0
    f16_memory: bool = False
    mlock: bool = False
    embeddings: bool = False


@dataclass(frozen=True)
class PredictOptions:
    """Per-request configuration for a single generation call.

    Nothing here is validated. Range and enum checks (and any precedence
    between mirostat and the truncation samplers) belong to the engine
    that consumes the snapshot, see ``llama_options.runtime.validation``.
    """

    seed: int = -1  # -1 = time-based
    threads: int = 4
    tokens: int = 128
    top_k: int = 40
    top_p: float = 0.95
    temperature: float = 0.8
    penalty: float = 1.1
    repeat: int = 64
    batch: int = 8
    n_keep: int = 64
    f16_kv: bool = False
    debug_mode: bool = False
    stop_prompts: Tuple[str, ...] = ()
    ignore_eos: bool = False
    tail_free_sampling_z: float = 1.0
    typical_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    mirostat: int = 0  # 0 = disabled, 1 = mirostat, 2 = mirostat 2.0
    mirostat_eta: float = 0.1
    mirostat_tau: float = 5.0
    penalize_nl: bool = False
    logit_bias: str = ""
    token_callback: Optional[TokenCallback] = None


ModelOption = Callable[[ModelOptions], ModelOptions]
PredictOption = Callable[[PredictOptions], PredictOptions]
