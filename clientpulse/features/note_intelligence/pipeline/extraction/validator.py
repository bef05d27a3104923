"""
Response extractor and validator.

Pulls the JSON object embedded in raw model text and validates it against
a bounded schema. Callers only use ``parse_analysis``.
"""

import json
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    Field,
    StringConstraints,
    ValidationError,
    create_model,
)

from clientpulse.features.note_intelligence.errors import (
    MalformedJsonError,
    NoJsonFoundError,
    SchemaValidationError,
)
from clientpulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

DueHint = Literal["today", "this week", "next week", "no specific date"]
DUE_HINTS: tuple[str, ...] = ("today", "this week", "next week", "no specific date")
NO_SPECIFIC_DATE = "no specific date"
DEFAULT_TITLE = "Untitled Note"


@dataclass(frozen=True)
class AnalysisLimits:
    """Bounds applied to model output."""

    title_max: int = 150
    summary_max: int = 1000
    action_items_max: int = 10
    action_description_max: int = 300
    list_items_max: int = 5
    risk_signal_max: int = 500
    personal_detail_max: int = 200
    insight_max: int = 500
    topics_max: int = 10
    topic_max: int = 100
    communication_style_max: int = 500


DEFAULT_ANALYSIS_LIMITS = AnalysisLimits()


@dataclass(slots=True)
class ExtractedActionItem:
    description: str
    owner: Literal["me", "client"]
    due_hint: str


@dataclass(slots=True)
class NoteAnalysis:
    """Validated analysis of one note."""

    summary: str
    title: str = DEFAULT_TITLE
    action_items: list[ExtractedActionItem] = field(default_factory=list)
    risk_signals: list[str] = field(default_factory=list)
    personal_details: list[str] = field(default_factory=list)
    sentiment_score: float = 0.0
    topics: list[str] = field(default_factory=list)
    key_insights: list[str] = field(default_factory=list)
    relationship_signals: list[str] = field(default_factory=list)
    follow_up_recommendations: list[str] = field(default_factory=list)
    communication_style: str | None = None


def _normalize_due_hint(value: Any) -> Any:
    if value is None:
        return NO_SPECIFIC_DATE
    if isinstance(value, str):
        normalized = " ".join(value.strip().lower().split())
        return normalized if normalized in DUE_HINTS else NO_SPECIFIC_DATE
    return value


def _none_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


def _clamp_sentiment(value: float) -> float:
    return max(-1.0, min(1.0, value))


def _bounded_list(item_max: int, count_max: int):
    return Annotated[
        list[Annotated[str, StringConstraints(max_length=item_max)]],
        BeforeValidator(_none_to_empty_list),
        Field(max_length=count_max),
    ]


@lru_cache(maxsize=8)
def build_analysis_model(limits: AnalysisLimits) -> type[BaseModel]:
    """Build (and cache) the pydantic model enforcing ``limits``."""
    action_item_model = create_model(
        "ActionItemPayload",
        description=(Annotated[str, StringConstraints(max_length=limits.action_description_max)], ...),
        owner=(Literal["me", "client"], ...),
        due_hint=(Annotated[DueHint, BeforeValidator(_normalize_due_hint)], NO_SPECIFIC_DATE),
    )

    return create_model(
        "NoteAnalysisPayload",
        title=(
            Annotated[
                str,
                BeforeValidator(lambda v: DEFAULT_TITLE if v is None else v),
                StringConstraints(max_length=limits.title_max),
            ],
            DEFAULT_TITLE,
        ),
        summary=(Annotated[str, StringConstraints(max_length=limits.summary_max)], ...),
        action_items=(
            Annotated[
                list[action_item_model],
                BeforeValidator(_none_to_empty_list),
                Field(max_length=limits.action_items_max),
            ],
            [],
        ),
        risk_signals=(_bounded_list(limits.risk_signal_max, limits.list_items_max), []),
        personal_details=(_bounded_list(limits.personal_detail_max, limits.list_items_max), []),
        key_insights=(_bounded_list(limits.insight_max, limits.list_items_max), []),
        relationship_signals=(_bounded_list(limits.insight_max, limits.list_items_max), []),
        follow_up_recommendations=(_bounded_list(limits.insight_max, limits.list_items_max), []),
        sentiment_score=(
            Annotated[
                float,
                BeforeValidator(lambda v: 0.0 if v is None else v),
                AfterValidator(_clamp_sentiment),
            ],
            0.0,
        ),
        topics=(_bounded_list(limits.topic_max, limits.topics_max), []),
        communication_style=(
            Annotated[str, StringConstraints(max_length=limits.communication_style_max)] | None,
            None,
        ),
    )


def extract_json_object(raw_text: str) -> dict[str, Any]:
    """Return the first greedy ``{...}`` block of ``raw_text`` parsed as an object."""
    match = _JSON_OBJECT_PATTERN.search(raw_text or "")
    if not match:
        raise NoJsonFoundError("No JSON found in response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning("Model returned malformed JSON", error=str(e), preview=match.group(0)[:200])
        raise MalformedJsonError(f"Malformed JSON in response: {e}") from e

    if not isinstance(parsed, dict):
        raise MalformedJsonError("Response JSON is not an object")

    return parsed


def validate_analysis(
    payload: dict[str, Any], limits: AnalysisLimits = DEFAULT_ANALYSIS_LIMITS
) -> NoteAnalysis:
    model = build_analysis_model(limits)
    try:
        validated = model.model_validate(payload)
    except ValidationError as e:
        errors = e.errors(include_url=False, include_context=False)
        logger.warning("Model output failed schema validation", error_count=len(errors))
        raise SchemaValidationError(
            f"Response failed schema validation: {e.error_count()} error(s)", errors=errors
        ) from e

    data = validated.model_dump()
    data["action_items"] = [ExtractedActionItem(**item) for item in data["action_items"]]
    return NoteAnalysis(**data)


def parse_analysis(raw_text: str, limits: AnalysisLimits = DEFAULT_ANALYSIS_LIMITS) -> NoteAnalysis:
    """Extract and validate the analysis embedded in raw model output."""
    return validate_analysis(extract_json_object(raw_text), limits)
