"""
Prompt construction for note analysis.

Sanitizes user-authored note fields and assembles the bounded, labeled
prompt sent to the inference backends.
"""

from .builder import build_analysis_prompt
from .sanitizer import DEFAULT_SANITIZER_CONFIG, SanitizerConfig, sanitize_field

__all__ = [
    "DEFAULT_SANITIZER_CONFIG",
    "SanitizerConfig",
    "build_analysis_prompt",
    "sanitize_field",
]
