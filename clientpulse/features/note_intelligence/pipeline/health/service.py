"""
Client health scoring - derives score, status, trend and signals from
contact recency, overdue commitments and recent analyzed notes.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from clientpulse.features.note_intelligence.domain import (
    ClientHealthRow,
    HealthSignal,
    RecentNoteFactors,
)
from clientpulse.features.note_intelligence.domain.models import HealthStatus, HealthTrend
from clientpulse.infrastructure.observability.logging import get_logger

from .repository import HealthRepository

logger = get_logger(__name__)

NO_CONTACT_DAYS = 999


@dataclass(frozen=True)
class HealthScoringConfig:
    healthy_min: int = 70
    watch_min: int = 40
    lookback_days: int = 30
    max_recent_notes: int = 10
    negative_moods: frozenset[str] = frozenset({"concerned", "frustrated", "negative"})
    risk_texts_per_note: int = 2
    signal_description_max: int = 100


DEFAULT_HEALTH_CONFIG = HealthScoringConfig()


@dataclass(slots=True)
class HealthFactors:
    days_since_contact: int
    overdue_count: int
    recent_notes: Sequence[RecentNoteFactors] = ()


@dataclass(slots=True)
class NoteSignalSummary:
    negative_mood_count: int = 0
    total_risk_signals: int = 0
    concerns_count: int = 0
    avg_sentiment: float = 0.0
    sentiment_count: int = 0
    risk_texts: list[str] = field(default_factory=list)


@dataclass(slots=True)
class HealthAssessment:
    score: int
    status: HealthStatus
    trend: HealthTrend
    signals: list[HealthSignal]

    def signals_payload(self) -> list[dict[str, str]]:
        return [signal.to_dict() for signal in self.signals]


def status_for_score(score: int, config: HealthScoringConfig = DEFAULT_HEALTH_CONFIG) -> HealthStatus:
    if score >= config.healthy_min:
        return "healthy"
    if score >= config.watch_min:
        return "watch"
    return "attention"


def days_since(last_contact_at: datetime | None, now: datetime) -> int:
    if last_contact_at is None:
        return NO_CONTACT_DAYS
    if last_contact_at.tzinfo is None:
        last_contact_at = last_contact_at.replace(tzinfo=UTC)
    return (now - last_contact_at) // timedelta(days=1)


def summarize_notes(
    notes: Sequence[RecentNoteFactors], config: HealthScoringConfig = DEFAULT_HEALTH_CONFIG
) -> NoteSignalSummary:
    summary = NoteSignalSummary()
    sentiment_total = 0.0

    for note in notes:
        if note.mood in config.negative_moods:
            summary.negative_mood_count += 1

        if note.ai_sentiment_score is not None:
            sentiment_total += note.ai_sentiment_score
            summary.sentiment_count += 1

        summary.total_risk_signals += len(note.ai_risk_signals)
        summary.risk_texts.extend(note.ai_risk_signals[: config.risk_texts_per_note])

        if note.concerns and note.concerns.strip():
            summary.concerns_count += 1

    if summary.sentiment_count:
        summary.avg_sentiment = sentiment_total / summary.sentiment_count

    return summary


def compute_health(
    factors: HealthFactors, config: HealthScoringConfig = DEFAULT_HEALTH_CONFIG
) -> HealthAssessment:
    """
    Score a client starting from 100 and applying independent deductions.

    Each rule caps only its own deduction and emits at most one signal; the
    final score is clamped to [0, 100] and the status derived from it.
    """
    notes = summarize_notes(factors.recent_notes, config)
    score = 100
    signals: list[HealthSignal] = []

    def clip(text: str) -> str:
        return text[: config.signal_description_max]

    # Contact gap
    days = factors.days_since_contact
    if days > 21:
        score -= 25
        signals.append(
            HealthSignal("contact_gap", "high", "Needs check-in", f"No contact in {days} days")
        )
    elif days > 14:
        score -= 10
        signals.append(
            HealthSignal("contact_gap", "medium", "Getting quiet", f"No contact in {days} days")
        )

    # Overdue commitments
    overdue = factors.overdue_count
    if overdue > 0:
        score -= min(overdue * 10, 30)
        plural = "s" if overdue > 1 else ""
        signals.append(
            HealthSignal(
                "overdue_commitment",
                "high" if overdue >= 3 else "medium",
                f"{overdue} overdue",
                f"You have {overdue} overdue commitment{plural}",
            )
        )

    # Sentiment across notes that carry a score
    if notes.sentiment_count and notes.avg_sentiment < -0.3:
        score -= 20
        signals.append(
            HealthSignal(
                "negative_sentiment",
                "high",
                "Negative sentiment",
                "Recent interactions show negative sentiment",
            )
        )
    elif notes.sentiment_count and notes.avg_sentiment < -0.1:
        score -= 10
        signals.append(
            HealthSignal(
                "negative_sentiment",
                "medium",
                "Mixed sentiment",
                "Recent interactions show mixed or cautious sentiment",
            )
        )

    # Risk signals from analysis
    risks = notes.total_risk_signals
    top_risk = notes.risk_texts[0] if notes.risk_texts else None
    if risks >= 4:
        score -= 25
        signals.append(
            HealthSignal(
                "risk_signals", "high", f"{risks} risk signals",
                clip(top_risk or "Multiple concerns detected"),
            )
        )
    elif risks >= 2:
        score -= 15
        signals.append(
            HealthSignal(
                "risk_signals", "medium", f"{risks} risk signals",
                clip(top_risk or "Concerns detected"),
            )
        )
    elif risks == 1:
        score -= 8
        signals.append(
            HealthSignal(
                "risk_signals", "low", "1 risk signal", clip(top_risk or "Minor concern detected")
            )
        )

    # Meeting mood
    moods = notes.negative_mood_count
    if moods >= 2:
        score -= 15
        signals.append(
            HealthSignal(
                "negative_mood",
                "high",
                "Pattern of concerns",
                f"{moods} recent meetings had concerns or frustration",
            )
        )
    elif moods == 1:
        score -= 8
        signals.append(
            HealthSignal(
                "negative_mood", "medium", "Recent concern", "Last meeting showed some concerns"
            )
        )

    # Explicit concerns written into notes
    concerns = notes.concerns_count
    if concerns >= 2:
        score -= 12
        signals.append(
            HealthSignal(
                "concerns_raised",
                "high",
                "Multiple concerns raised",
                f"Explicit concerns noted in {concerns} recent meetings",
            )
        )
    elif concerns == 1:
        score -= 6
        signals.append(
            HealthSignal(
                "concerns_raised",
                "medium",
                "Concerns raised",
                "Explicit concerns noted in recent meeting",
            )
        )

    score = max(0, min(100, score))

    trend: HealthTrend = "stable"
    if notes.avg_sentiment > 0.3 and risks == 0:
        trend = "improving"
    elif notes.avg_sentiment < -0.2 or risks >= 3 or moods >= 2:
        trend = "declining"

    return HealthAssessment(
        score=score, status=status_for_score(score, config), trend=trend, signals=signals
    )


class HealthService:
    """Gathers health factors for a client and persists the recomputed assessment."""

    def __init__(self, config: HealthScoringConfig = DEFAULT_HEALTH_CONFIG):
        self.config = config

    async def recalculate_client(
        self, client_id: str, user_id: str, now: datetime | None = None
    ) -> HealthAssessment | None:
        client = await HealthRepository.fetch_client(client_id, user_id)
        if client is None:
            logger.warning("Client not found for health recalculation", client_id=client_id)
            return None
        return await self.recalculate_for_row(client, now)

    async def recalculate_for_row(
        self, client: ClientHealthRow, now: datetime | None = None
    ) -> HealthAssessment:
        now = now or datetime.now(UTC)
        today: date = now.date()

        overdue = await HealthRepository.count_overdue_actions(client.id, client.user_id, today)
        recent_notes = await HealthRepository.fetch_recent_note_factors(
            client.id,
            client.user_id,
            since=today - timedelta(days=self.config.lookback_days),
            limit=self.config.max_recent_notes,
        )

        factors = HealthFactors(
            days_since_contact=days_since(client.last_contact_at, now),
            overdue_count=overdue,
            recent_notes=recent_notes,
        )
        assessment = compute_health(factors, self.config)

        await HealthRepository.update_client_health(client.id, client.user_id, assessment)

        logger.info(
            "Client health recalculated",
            client_id=client.id,
            score=assessment.score,
            status=assessment.status,
            trend=assessment.trend,
            signal_count=len(assessment.signals),
        )
        return assessment


health_service = HealthService()
