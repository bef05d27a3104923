from .validator import (
    DEFAULT_ANALYSIS_LIMITS,
    AnalysisLimits,
    ExtractedActionItem,
    NoteAnalysis,
    extract_json_object,
    parse_analysis,
    validate_analysis,
)

__all__ = [
    "DEFAULT_ANALYSIS_LIMITS",
    "AnalysisLimits",
    "ExtractedActionItem",
    "NoteAnalysis",
    "extract_json_object",
    "parse_analysis",
    "validate_analysis",
]
