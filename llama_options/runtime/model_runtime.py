"""Reference inference engine on torch + transformers."""

import logging
import warnings
from typing import Any, Dict, List, Optional

import torch
from transformers import AutoModelForCausalLM, AutoTokenizer, set_seed

from ..options.composer import new_model_options, new_predict_options
from ..options.option_queries import options_to_dict
from ..options.option_types import ModelOption, ModelOptions, PredictOption, PredictOptions
from ..utils.memory_utils import MemoryMonitor, model_memory_gb, take_snapshot
from .engine import InferenceEngine
from .generation import fit_prompt_to_context, generate_with_loaded_model, unsupported_fields
from .validation import sampling_conflicts, validate_model_options, validate_predict_options

logger = logging.getLogger(__name__)


class TransformersRuntime(InferenceEngine):
    """Load a causal LM with ModelOptions and run predictions with PredictOptions."""

    def __init__(self, device: str = "cuda", memory_limit_gb: float = 8.0):
        self.device = device if torch.cuda.is_available() else "cpu"
        self.memory_monitor = MemoryMonitor(device_limit_gb=memory_limit_gb)
        self.current_model: Optional[Any] = None
        self.current_tokenizer: Optional[Any] = None
        self.current_model_path: Optional[str] = None
        self.model_options: Optional[ModelOptions] = None

        logger.info("TransformersRuntime initialized on %s", self.device)

    def free(self) -> None:
        """Unload currently active model and tokenizer."""
        if self.current_model is not None:
            logger.info("Cleaning up model: %s", self.current_model_path)
            del self.current_model
            del self.current_tokenizer
            self.current_model = None
            self.current_tokenizer = None
            self.current_model_path = None
            self.model_options = None
            self.memory_monitor.release()

    def _get_model_loading_config(self, options: ModelOptions) -> Dict[str, Any]:
        config: Dict[str, Any] = {
            "dtype": torch.float16 if options.f16_memory else "auto",
            "low_cpu_mem_usage": True,
        }
        # More than one part: let accelerate spread the weights over the available devices
        if self.device == "cuda" and options.parts > 1:
            config["device_map"] = "auto"
        return config

    def load(self, model_path: str, *opts: ModelOption) -> None:
        """Load model/tokenizer with options composed from ``opts``."""
        options = validate_model_options(new_model_options(*opts))
        if self.current_model_path == model_path and self.model_options == options:
            logger.info("Model %s already loaded", model_path)
            return

        self.free()
        set_seed(options.seed)
        self.memory_monitor.log_memory_usage("Before model loading", logger)
        logger.info("Loading model: %s (%s)", model_path, options_to_dict(options))

        try:
            loading_config = self._get_model_loading_config(options)
            tokenizer = self._load_tokenizer(model_path)
            model = self._load_model(model_path, loading_config)

            max_positions = getattr(model.config, "max_position_embeddings", None)
            if max_positions is not None and options.context_size > max_positions:
                logger.warning(
                    "context_size %d exceeds the model's %d positions",
                    options.context_size, max_positions,
                )
            if options.mlock:
                model = self._lock_memory(model)

            self.current_model = model
            self.current_tokenizer = tokenizer
            self.current_model_path = model_path
            self.model_options = options

            self.memory_monitor.enforce_device_limit(f"loading {model_path}")
            self.memory_monitor.log_memory_usage("After model loading", logger)
            logger.info("Successfully loaded %s", model_path)
        except Exception:
            self.free()
            raise

    def _load_tokenizer(self, model_path: str) -> Any:
        tokenizer = AutoTokenizer.from_pretrained(model_path, padding_side="left")
        if tokenizer.pad_token is None:
            tokenizer.pad_token = tokenizer.eos_token
        logger.info("Tokenizer loaded, vocab size: %s", len(tokenizer))
        return tokenizer

    def _load_model(self, model_path: str, loading_config: Dict[str, Any]) -> Any:
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", category=UserWarning)
            model = AutoModelForCausalLM.from_pretrained(model_path, **loading_config)

        if "device_map" not in loading_config:
            has_meta_tensors = any(p.is_meta for p in model.parameters())
            if has_meta_tensors:
                model = model.to_empty(device=self.device)
            else:
                model = model.to(self.device)

        model.eval()
        return model

    def _lock_memory(self, model: Any) -> Any:
        """Pin host-resident weights so they cannot be swapped out."""
        if self.device != "cpu":
            logger.debug("mlock ignored: weights live in device memory")
            return model

        if not torch.cuda.is_available():
            logger.warning("mlock requested but page-locked memory needs a CUDA runtime; weights may be swapped")
            return model

        size_gb = model_memory_gb(model)
        if not self.memory_monitor.can_lock_memory(size_gb):
            logger.warning("mlock requested but %.2fGB exceeds available system memory; weights may be swapped", size_gb)
            return model

        for param in model.parameters():
            param.data = param.data.pin_memory()
        logger.info("Pinned %.2fGB of model weights", size_gb)
        return model

    def _require_model(self) -> None:
        if self.current_model is None:
            raise RuntimeError("No model loaded. Call load() first")

    def _resolve_predict_options(self, opts) -> PredictOptions:
        options = validate_predict_options(new_predict_options(*opts))

        conflicts = sampling_conflicts(options)
        if conflicts:
            logger.warning(
                "mirostat=%d combined with %s; precedence is backend-defined",
                options.mirostat, ", ".join(conflicts),
            )
        unsupported = unsupported_fields(options)
        if unsupported:
            logger.warning("Options not supported by the transformers backend: %s", ", ".join(unsupported))
        if options.debug_mode:
            logger.info("Predict options: %s", options_to_dict(options))
        return options

    def predict(self, text: str, *opts: PredictOption) -> str:
        """Generate a continuation of ``text``."""
        self._require_model()
        options = self._resolve_predict_options(opts)
        return generate_with_loaded_model(
            prompt=text,
            model=self.current_model,
            tokenizer=self.current_tokenizer,
            model_options=self.model_options,
            options=options,
            memory_monitor=self.memory_monitor,
        )

    def embeddings(self, text: str, *opts: PredictOption) -> List[float]:
        """
        Mean-pooled last hidden state for ``text``.

        Raises:
            RuntimeError: If no model is loaded or it was loaded without embeddings
        """
        self._require_model()
        if not self.model_options.embeddings:
            raise RuntimeError("Model loaded without embeddings. Load it with enable_embeddings")

        options = validate_predict_options(new_predict_options(*opts))
        torch.set_num_threads(options.threads)

        input_ids = self.current_tokenizer.encode(text, add_special_tokens=True)
        input_ids = fit_prompt_to_context(input_ids, self.model_options.context_size, options.n_keep)
        model_device = next(self.current_model.parameters()).device
        inputs = torch.tensor([input_ids], dtype=torch.long, device=model_device)

        with torch.no_grad():
            outputs = self.current_model(input_ids=inputs, output_hidden_states=True)

        hidden = outputs.hidden_states[-1][0]
        return hidden.mean(dim=0).float().tolist()

    def get_model_info(self) -> Dict[str, Any]:
        if self.current_model is None:
            return {"status": "no_model_loaded"}

        memory = take_snapshot()
        return {
            "model_path": self.current_model_path,
            "model_options": options_to_dict(self.model_options),
            "actual_memory_gb": memory.device_allocated_gb,
            "device": self.device,
            "vocab_size": len(self.current_tokenizer) if self.current_tokenizer else None,
            "memory": memory,
        }
