"""Tests for composing options from defaults and overrides."""

from dataclasses import FrozenInstanceError, fields

import pytest

from llama_options.options.composer import compose, new_model_options, new_predict_options
from llama_options.options.model_options import (
    enable_embeddings,
    enable_f16_memory,
    enable_mlock,
    set_context,
    set_model_seed,
    set_parts,
)
from llama_options.options.option_defaults import DEFAULT_MODEL_OPTIONS, DEFAULT_OPTIONS
from llama_options.options.predict_options import (
    debug,
    set_batch,
    set_stop_words,
    set_temperature,
    set_threads,
    set_top_k,
    set_top_p,
)


def _changed_fields(options, base):
    return {f.name for f in fields(options) if getattr(options, f.name) != getattr(base, f.name)}


class TestCompose:
    """Test cases for the generic composer."""

    def test_no_overrides_returns_base(self):
        """Test that an empty or missing override list yields the base."""
        assert compose(DEFAULT_OPTIONS, []) == DEFAULT_OPTIONS
        assert compose(DEFAULT_OPTIONS, None) == DEFAULT_OPTIONS
        assert compose(DEFAULT_OPTIONS) == DEFAULT_OPTIONS

    def test_overrides_applied_in_order(self):
        """Test that overrides run left to right."""
        calls = []

        def first(value):
            calls.append("first")
            return value + 1

        def second(value):
            calls.append("second")
            return value * 10

        assert compose(1, [first, second]) == 20
        assert calls == ["first", "second"]

    def test_accepts_any_iterable(self):
        """Test that a generator of overrides works too."""
        overrides = (set_top_k(k) for k in (1, 2, 3))
        assert compose(DEFAULT_OPTIONS, overrides).top_k == 3

    def test_base_is_not_modified(self):
        """Test that composing never touches the base snapshot."""
        before = DEFAULT_OPTIONS
        result = compose(DEFAULT_OPTIONS, [set_top_k(1), set_temperature(0.1)])

        assert DEFAULT_OPTIONS is before
        assert DEFAULT_OPTIONS.top_k == 40
        assert DEFAULT_OPTIONS.temperature == 0.8
        assert result is not DEFAULT_OPTIONS

    def test_no_validation_on_out_of_range_values(self):
        """Test that out-of-range values pass through unchanged."""
        model = new_model_options(set_context(-5))
        predict = new_predict_options(set_top_p(1.5), set_threads(0))

        assert model.context_size == -5
        assert predict.top_p == 1.5
        assert predict.threads == 0


class TestDefaults:
    """Test cases for the default snapshots."""

    def test_predict_defaults(self):
        """Test exact literal prediction defaults."""
        assert DEFAULT_OPTIONS.seed == -1
        assert DEFAULT_OPTIONS.threads == 4
        assert DEFAULT_OPTIONS.tokens == 128
        assert DEFAULT_OPTIONS.top_k == 40
        assert DEFAULT_OPTIONS.top_p == 0.95
        assert DEFAULT_OPTIONS.temperature == 0.8
        assert DEFAULT_OPTIONS.penalty == 1.1
        assert DEFAULT_OPTIONS.repeat == 64
        assert DEFAULT_OPTIONS.batch == 8
        assert DEFAULT_OPTIONS.n_keep == 64
        assert DEFAULT_OPTIONS.tail_free_sampling_z == 1.0
        assert DEFAULT_OPTIONS.typical_p == 1.0
        assert DEFAULT_OPTIONS.frequency_penalty == 0.0
        assert DEFAULT_OPTIONS.presence_penalty == 0.0
        assert DEFAULT_OPTIONS.mirostat == 0
        assert DEFAULT_OPTIONS.mirostat_tau == 5.0
        assert DEFAULT_OPTIONS.mirostat_eta == 0.1
        assert DEFAULT_OPTIONS.stop_prompts == ()
        assert DEFAULT_OPTIONS.logit_bias == ""
        assert DEFAULT_OPTIONS.token_callback is None

    def test_predict_default_flags_are_false(self):
        """Test that every boolean prediction flag defaults to False."""
        for name in ("f16_kv", "debug_mode", "ignore_eos", "penalize_nl"):
            assert getattr(DEFAULT_OPTIONS, name) is False

    def test_model_defaults(self):
        """Test exact literal model defaults."""
        assert DEFAULT_MODEL_OPTIONS.context_size == 512
        assert DEFAULT_MODEL_OPTIONS.seed == 0
        assert DEFAULT_MODEL_OPTIONS.parts == 0
        assert DEFAULT_MODEL_OPTIONS.f16_memory is False
        assert DEFAULT_MODEL_OPTIONS.mlock is False
        assert DEFAULT_MODEL_OPTIONS.embeddings is False

    def test_defaults_are_frozen(self):
        """Test that the default snapshots cannot be mutated in place."""
        with pytest.raises(FrozenInstanceError):
            DEFAULT_OPTIONS.top_k = 1
        with pytest.raises(FrozenInstanceError):
            DEFAULT_MODEL_OPTIONS.context_size = 1

    def test_empty_composition_equals_defaults(self):
        """Test that composing nothing reproduces the defaults field by field."""
        assert new_model_options() == DEFAULT_MODEL_OPTIONS
        assert new_predict_options() == DEFAULT_OPTIONS


class TestComposition:
    """Test cases for composition properties."""

    def test_unset_fields_keep_defaults(self):
        """Test that overrides never leak into other fields."""
        options = new_predict_options(set_top_k(10), set_batch(16))
        assert _changed_fields(options, DEFAULT_OPTIONS) == {"top_k", "batch"}

    def test_last_write_wins(self):
        """Test that a later override of the same field wins, whatever sits between."""
        options = new_predict_options(set_top_k(10), set_threads(2), debug, set_top_k(99))
        assert options.top_k == 99
        assert options.threads == 2
        assert options.debug_mode is True

        model = new_model_options(set_context(1024), enable_mlock, set_context(2048))
        assert model.context_size == 2048

    def test_model_flags_touch_only_their_field(self):
        """Test that boolean enablers change nothing else."""
        assert _changed_fields(new_model_options(enable_embeddings), DEFAULT_MODEL_OPTIONS) == {"embeddings"}
        assert _changed_fields(new_model_options(enable_f16_memory), DEFAULT_MODEL_OPTIONS) == {"f16_memory"}
        assert _changed_fields(new_model_options(enable_mlock), DEFAULT_MODEL_OPTIONS) == {"mlock"}

    def test_model_scenario(self):
        """Test context and seed overrides together."""
        options = new_model_options(set_context(1024), set_model_seed(42))

        assert options.context_size == 1024
        assert options.seed == 42
        assert options.parts == 0
        assert options.f16_memory is False

    def test_predict_scenario(self):
        """Test temperature, top-k, and stop words together."""
        options = new_predict_options(set_temperature(0.2), set_top_k(50), set_stop_words("\n\n", "END"))

        assert options.temperature == 0.2
        assert options.top_k == 50
        assert options.stop_prompts == ("\n\n", "END")
        assert _changed_fields(options, DEFAULT_OPTIONS) == {"temperature", "top_k", "stop_prompts"}

    def test_set_parts(self):
        """Test setting the number of model parts."""
        assert new_model_options(set_parts(-1)).parts == -1
        assert new_model_options(set_parts(2)).parts == 2

    def test_each_composition_is_independent(self):
        """Test that two compositions do not share state."""
        first = new_predict_options(set_top_k(1))
        second = new_predict_options()

        assert first.top_k == 1
        assert second.top_k == 40
