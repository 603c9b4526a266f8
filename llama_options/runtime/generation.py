"""Generation with an already-loaded Hugging Face model driven by PredictOptions."""

import logging
import math
from typing import Any, Dict, List, Optional, Sequence

import torch
from transformers import StoppingCriteria, StoppingCriteriaList, set_seed

from ..options.option_defaults import DEFAULT_OPTIONS
from ..options.option_types import ModelOptions, PredictOptions
from .stopping import GenerationMonitor
from .validation import parse_logit_bias

logger = logging.getLogger(__name__)

# Positive infinite biases would turn every logit into inf/nan after softmax
MAX_FINITE_BIAS = 100.0

# Already-emitted tokens decoded ahead of new ones so tokenizers keep leading spaces
DECODE_CONTEXT_TOKENS = 5

# What a byte-fallback tokenizer decodes an incomplete UTF-8 sequence to
REPLACEMENT_CHAR = "\ufffd"

# Fields transformers' generate() has no equivalent for
UNSUPPORTED_FIELDS = (
    "tail_free_sampling_z",
    "mirostat",
    "mirostat_eta",
    "mirostat_tau",
    "frequency_penalty",
    "presence_penalty",
    "f16_kv",
    "batch",
)


def unsupported_fields(options: PredictOptions) -> List[str]:
    """
    Fields of ``options`` this backend cannot honor.

    ``repetition_penalty`` covers the whole sequence including newlines, so
    with a penalty in effect the ``repeat`` window is never honored and
    neither is ``penalize_nl=False``.
    """
    unsupported = [
        name for name in UNSUPPORTED_FIELDS
        if getattr(options, name) != getattr(DEFAULT_OPTIONS, name)
    ]
    if options.penalty != 1.0:
        unsupported.append("repeat")
        if not options.penalize_nl:
            unsupported.append("penalize_nl")
    return unsupported


def fit_prompt_to_context(input_ids: Sequence[int], limit: int, n_keep: int) -> List[int]:
    """
    Truncate a prompt to at most ``limit`` tokens.

    The first ``n_keep`` tokens are always retained and the rest of the
    room is filled with the most recent tokens.
    """
    ids = list(input_ids)
    if len(ids) <= limit:
        return ids

    keep = min(n_keep, limit)
    tail = limit - keep
    return ids[:keep] + (ids[-tail:] if tail > 0 else [])


def plan_token_budget(prompt_ids: Sequence[int], model_options: ModelOptions,
                      options: PredictOptions) -> Dict[str, Any]:
    """
    Work out the prompt that fits the context window and how many tokens to generate.

    ``tokens == 0`` means generate until the context window is full.

    Returns:
        Dict with ``input_ids`` (possibly truncated) and ``max_new_tokens``
    """
    context_size = model_options.context_size
    if options.tokens > 0:
        reserve = min(options.tokens, context_size - 1)
    else:
        reserve = 1
    limit = max(context_size - reserve, 1)

    input_ids = fit_prompt_to_context(prompt_ids, limit, options.n_keep)
    if len(input_ids) < len(prompt_ids):
        logger.warning(
            "Prompt of %d tokens truncated to %d to fit context size %d (n_keep=%d)",
            len(prompt_ids), len(input_ids), context_size, options.n_keep,
        )

    if options.tokens > 0:
        max_new_tokens = options.tokens
    else:
        max_new_tokens = max(context_size - len(input_ids), 1)
    return {"input_ids": input_ids, "max_new_tokens": max_new_tokens}


def build_generation_kwargs(options: PredictOptions, max_new_tokens: int,
                            eos_token_id: Optional[int] = None) -> Dict[str, Any]:
    """
    Translate a PredictOptions snapshot into ``generate()`` keyword arguments.

    Args:
        options: Validated snapshot
        max_new_tokens: Token budget for this call
        eos_token_id: Tokenizer's end of sequence id, used for ``ignore_eos``

    Returns:
        Dictionary with generation parameters
    """
    do_sample = options.temperature > 0.0
    gen_config: Dict[str, Any] = {
        "max_new_tokens": max_new_tokens,
        "do_sample": do_sample,
    }

    if do_sample:
        gen_config.update({
            "temperature": options.temperature,
            "top_k": options.top_k,
            "top_p": options.top_p,
        })
        if options.typical_p < 1.0:
            gen_config["typical_p"] = options.typical_p

    if options.penalty != 1.0:
        gen_config["repetition_penalty"] = options.penalty

    suppress_tokens = []
    sequence_bias = []
    for token_id, bias in parse_logit_bias(options.logit_bias).items():
        if bias == -math.inf:
            suppress_tokens.append(token_id)
        else:
            sequence_bias.append([[token_id], min(bias, MAX_FINITE_BIAS)])

    # llama.cpp implements ignore_eos by never letting EOS be sampled
    if options.ignore_eos and eos_token_id is not None:
        suppress_tokens.append(eos_token_id)

    if suppress_tokens:
        gen_config["suppress_tokens"] = sorted(set(suppress_tokens))
    if sequence_bias:
        gen_config["sequence_bias"] = sequence_bias

    return gen_config


class MonitorStoppingCriteria(StoppingCriteria):
    """Feed each new token to a GenerationMonitor and stop when it says so.

    Text is decoded incrementally over a short window of ids. Tokens whose
    text is not yet stable (a character split over several byte tokens
    decodes to U+FFFD) are held back and passed on together once the
    character is complete.
    """

    def __init__(self, monitor: GenerationMonitor, tokenizer: Any, prompt_length: int,
                 eos_token_id: Optional[int] = None):
        self.monitor = monitor
        self.tokenizer = tokenizer
        self.prompt_length = prompt_length
        self.eos_token_id = eos_token_id
        self._seen = prompt_length
        # ids[prefix_offset:read_offset] is already-emitted context for the next decode
        self._prefix_offset = max(prompt_length - DECODE_CONTEXT_TOKENS, 0)
        self._read_offset = prompt_length
        self._last_ids: Optional[torch.Tensor] = None

    @property
    def pending_tokens(self) -> int:
        return self._seen - self._read_offset

    def _decode(self, ids: torch.Tensor, start: int, end: int) -> str:
        return self.tokenizer.decode(ids[start:end], skip_special_tokens=True)

    def _stable_piece(self, ids: torch.Tensor) -> Optional[str]:
        prefix = self._decode(ids, self._prefix_offset, self._read_offset)
        text = self._decode(ids, self._prefix_offset, self._seen)
        if len(text) <= len(prefix) or text.endswith(REPLACEMENT_CHAR):
            return None
        return text[len(prefix):]

    def _emit(self, piece: str) -> bool:
        tokens = self.pending_tokens
        self._prefix_offset = self._read_offset
        self._read_offset = self._seen
        return self.monitor.observe(piece, tokens=tokens)

    def flush(self) -> None:
        """Pass held-back tokens to the monitor when generation ended without completing them."""
        if self._last_ids is None or self.pending_tokens <= 0 or self.monitor.stopped:
            return
        prefix = self._decode(self._last_ids, self._prefix_offset, self._read_offset)
        text = self._decode(self._last_ids, self._prefix_offset, self._seen)
        self._emit(text[len(prefix):])

    def __call__(self, input_ids: torch.LongTensor, scores: torch.FloatTensor, **kwargs) -> torch.BoolTensor:
        ids = input_ids[0]
        self._last_ids = ids
        keep_going = not self.monitor.stopped
        while keep_going and self._seen < ids.shape[0]:
            token_id = int(ids[self._seen])
            if token_id == self.eos_token_id:
                self.flush()
                self._seen += 1
                self._prefix_offset = self._read_offset = self._seen
                keep_going = self.monitor.observe("", is_eos=True)
                continue

            self._seen += 1
            piece = self._stable_piece(ids)
            if piece is not None:
                keep_going = self._emit(piece)

        return torch.full((input_ids.shape[0],), not keep_going, dtype=torch.bool, device=input_ids.device)


def generate_with_loaded_model(
    *,
    prompt: str,
    model: Any,
    tokenizer: Any,
    model_options: ModelOptions,
    options: PredictOptions,
    memory_monitor: Any,
) -> str:
    """Generate a response from already-loaded model/tokenizer state."""
    torch.set_num_threads(options.threads)
    if options.seed >= 0:
        set_seed(options.seed)

    prompt_ids = tokenizer.encode(prompt, add_special_tokens=True)
    budget = plan_token_budget(prompt_ids, model_options, options)
    eos_token_id = tokenizer.eos_token_id

    gen_config = build_generation_kwargs(options, budget["max_new_tokens"], eos_token_id)
    if tokenizer.pad_token_id is not None:
        gen_config["pad_token_id"] = tokenizer.pad_token_id
    elif eos_token_id is not None:
        gen_config["pad_token_id"] = eos_token_id

    model_device = next(model.parameters()).device
    input_ids = torch.tensor([budget["input_ids"]], dtype=torch.long, device=model_device)
    attention_mask = torch.ones_like(input_ids)

    monitor = GenerationMonitor(options, max_tokens=budget["max_new_tokens"])
    criteria = MonitorStoppingCriteria(monitor, tokenizer, input_ids.shape[1], eos_token_id)

    if options.debug_mode:
        logger.info("Generation kwargs: %s", gen_config)
    memory_monitor.log_memory_usage("Before generation", logger)

    try:
        with torch.no_grad():
            model.generate(
                input_ids,
                attention_mask=attention_mask,
                stopping_criteria=StoppingCriteriaList([criteria]),
                **gen_config,
            )
    except torch.cuda.OutOfMemoryError as e:
        logger.error("CUDA OOM during generation: %s", str(e))
        memory_monitor.release()
        raise RuntimeError(f"GPU out of memory during generation: {str(e)}")

    criteria.flush()
    memory_monitor.log_memory_usage("After generation", logger)
    logger.debug(
        "Generated %d tokens, stop reason: %s",
        monitor.token_count,
        monitor.stop_reason.value if monitor.stop_reason else "length",
    )
    return monitor.text
