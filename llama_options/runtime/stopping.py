"""Generation stopping rules shared by every engine.

A generation stops at whichever comes first: the token budget, the end
of sequence token (unless ``ignore_eos``), a stop prompt at the end of
the visible text, or the token callback returning False.
"""

from enum import Enum
from typing import Optional

from ..options.option_types import PredictOptions


class StopReason(Enum):
    """Why a generation ended."""

    TOKENS = "tokens"
    EOS = "eos"
    STOP_PROMPT = "stop_prompt"
    CALLBACK = "callback"


class GenerationMonitor:
    """Track produced tokens for one generation call and decide when to stop.

    Engines feed every produced token to :meth:`observe` in generation
    order and stop as soon as it returns False. One monitor serves one
    call; it holds the visible text produced so far.
    """

    def __init__(self, options: PredictOptions, max_tokens: Optional[int] = None):
        """
        Args:
            options: Snapshot for this call
            max_tokens: Token budget, defaults to ``options.tokens``; values <= 0 mean no budget
        """
        self.options = options
        self.max_tokens = options.tokens if max_tokens is None else max_tokens
        self.token_count = 0
        self.stop_reason: Optional[StopReason] = None
        self.matched_stop_prompt: Optional[str] = None
        self._text = ""

    @property
    def stopped(self) -> bool:
        return self.stop_reason is not None

    @property
    def text(self) -> str:
        """Visible output so far, with a matched stop prompt removed from the end."""
        if self.matched_stop_prompt:
            return self._text[: len(self._text) - len(self.matched_stop_prompt)]
        return self._text

    @property
    def raw_text(self) -> str:
        return self._text

    def observe(self, token_text: str, is_eos: bool = False, tokens: int = 1) -> bool:
        """
        Record produced text.

        Args:
            token_text: Decoded text of the token
            is_eos: Whether the token is the end of sequence token
            tokens: Number of tokens behind ``token_text``, more than one when
                a character spans several tokens

        Returns:
            True if generation should continue
        """
        if self.stopped:
            return False

        if is_eos and not self.options.ignore_eos:
            self.stop_reason = StopReason.EOS
            return False

        self.token_count += tokens

        callback = self.options.token_callback
        if callback is not None and not callback(token_text):
            self.stop_reason = StopReason.CALLBACK
            return False

        self._text += token_text

        for stop in self.options.stop_prompts:
            if stop and self._text.endswith(stop):
                self.matched_stop_prompt = stop
                self.stop_reason = StopReason.STOP_PROMPT
                return False

        if 0 < self.max_tokens <= self.token_count:
            self.stop_reason = StopReason.TOKENS
            return False

        return True
