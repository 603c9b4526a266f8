"""Execution interface between option snapshots and an inference backend."""

from abc import ABC, abstractmethod
from typing import List

from ..options.option_types import ModelOption, PredictOption


class InferenceEngine(ABC):
    """A backend that loads a model once and runs generation calls against it.

    Every call composes its own snapshot from the overrides it receives,
    so no two calls share a PredictOptions value (or its token callback).
    Implementations validate snapshots when they consume them.
    """

    @abstractmethod
    def load(self, model_path: str, *opts: ModelOption) -> None:
        """Load a model with options composed from ``opts``."""
        ...

    @abstractmethod
    def predict(self, text: str, *opts: PredictOption) -> str:
        """Generate a continuation of ``text``. Returns the generated text."""
        ...

    @abstractmethod
    def embeddings(self, text: str, *opts: PredictOption) -> List[float]:
        """Return an embedding vector for ``text``."""
        ...

    @abstractmethod
    def free(self) -> None:
        """Release the loaded model."""
        ...
