"""llama-options

Load-time and per-generation configuration for llama-style inference
sessions, built from immutable defaults plus composable overrides.
"""

__version__ = "1.0.0"
__author__ = "llama-options Team"
