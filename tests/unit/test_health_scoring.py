from datetime import UTC, datetime, timedelta

import pytest

from clientpulse.features.note_intelligence.domain import ClientHealthRow, RecentNoteFactors
from clientpulse.features.note_intelligence.pipeline.health import (
    HealthFactors,
    HealthService,
    compute_health,
    status_for_score,
)
from clientpulse.features.note_intelligence.pipeline.health.service import days_since


def _note(mood="neutral", sentiment=None, risks=(), concerns=None):
    return RecentNoteFactors(
        mood=mood, ai_sentiment_score=sentiment, ai_risk_signals=list(risks), concerns=concerns
    )


def test_quiet_client_with_overdue_items_is_on_watch():
    assessment = compute_health(HealthFactors(days_since_contact=25, overdue_count=2))

    assert assessment.score == 55
    assert assessment.status == "watch"
    assert assessment.trend == "stable"
    assert [(s.type, s.severity) for s in assessment.signals] == [
        ("contact_gap", "high"),
        ("overdue_commitment", "medium"),
    ]
    assert assessment.signals[1].description == "You have 2 overdue commitments"


def test_many_risk_signals_decline_trend_but_stay_healthy():
    notes = [_note(risks=["Budget freeze announced"]) for _ in range(4)]

    assessment = compute_health(HealthFactors(days_since_contact=3, overdue_count=0, recent_notes=notes))

    assert assessment.score == 75
    assert assessment.status == "healthy"
    assert assessment.trend == "declining"
    (signal,) = assessment.signals
    assert signal.type == "risk_signals"
    assert signal.severity == "high"
    assert signal.title == "4 risk signals"
    assert signal.description == "Budget freeze announced"


def test_clean_client_is_perfect():
    assessment = compute_health(HealthFactors(days_since_contact=2, overdue_count=0))
    assert (assessment.score, assessment.status, assessment.trend, assessment.signals) == (
        100,
        "healthy",
        "stable",
        [],
    )


def test_contact_gap_medium_band():
    assessment = compute_health(HealthFactors(days_since_contact=15, overdue_count=0))
    assert assessment.score == 90
    assert assessment.signals[0].title == "Getting quiet"


def test_contact_gap_boundaries():
    assert compute_health(HealthFactors(days_since_contact=14, overdue_count=0)).score == 100
    assert compute_health(HealthFactors(days_since_contact=21, overdue_count=0)).score == 90
    assert compute_health(HealthFactors(days_since_contact=22, overdue_count=0)).score == 75


def test_overdue_deduction_is_capped():
    assessment = compute_health(HealthFactors(days_since_contact=0, overdue_count=5))
    assert assessment.score == 70
    assert assessment.signals[0].severity == "high"
    assert assessment.signals[0].title == "5 overdue"


def test_single_overdue_is_singular():
    assessment = compute_health(HealthFactors(days_since_contact=0, overdue_count=1))
    assert assessment.signals[0].description == "You have 1 overdue commitment"


def test_sentiment_bands():
    negative = compute_health(
        HealthFactors(0, 0, [_note(sentiment=-0.5), _note(sentiment=-0.4)])
    )
    mixed = compute_health(HealthFactors(0, 0, [_note(sentiment=-0.2)]))

    assert negative.score == 80
    assert negative.trend == "declining"
    assert mixed.score == 90
    assert mixed.signals[0].title == "Mixed sentiment"


def test_notes_without_sentiment_are_ignored_in_average():
    assessment = compute_health(HealthFactors(0, 0, [_note(sentiment=None), _note(sentiment=0.5)]))
    assert assessment.score == 100
    assert assessment.trend == "improving"


def test_single_risk_signal_description_truncated():
    long_risk = "x" * 250
    assessment = compute_health(HealthFactors(0, 0, [_note(risks=[long_risk])]))

    assert assessment.score == 92
    assert assessment.signals[0].severity == "low"
    assert len(assessment.signals[0].description) == 100


def test_negative_moods_and_concerns():
    notes = [
        _note(mood="frustrated", concerns="Pricing"),
        _note(mood="concerned", concerns="Support delays"),
    ]
    assessment = compute_health(HealthFactors(0, 0, notes))

    assert assessment.score == 100 - 15 - 12
    assert assessment.trend == "declining"
    assert {s.type for s in assessment.signals} == {"negative_mood", "concerns_raised"}


def test_blank_concerns_do_not_count():
    assessment = compute_health(HealthFactors(0, 0, [_note(concerns="   ")]))
    assert assessment.score == 100


def test_score_is_clamped_at_zero():
    notes = [
        _note(mood="negative", sentiment=-0.9, risks=["a", "b"], concerns="c") for _ in range(3)
    ]
    assessment = compute_health(HealthFactors(days_since_contact=999, overdue_count=4, recent_notes=notes))

    assert assessment.score == 0
    assert assessment.status == "attention"


@pytest.mark.parametrize(
    ("score", "status"),
    [(100, "healthy"), (70, "healthy"), (69, "watch"), (40, "watch"), (39, "attention"), (0, "attention")],
)
def test_status_thresholds(score, status):
    assert status_for_score(score) == status


def test_days_since_without_contact_is_999():
    now = datetime(2026, 10, 17, tzinfo=UTC)
    assert days_since(None, now) == 999
    assert days_since(now - timedelta(days=3, hours=5), now) == 3


@pytest.mark.asyncio
async def test_recalculate_for_row_persists_assessment(monkeypatch):
    now = datetime(2026, 10, 17, 12, tzinfo=UTC)
    client = ClientHealthRow(id="client-1", user_id="user-1", last_contact_at=now - timedelta(days=25))
    saved = {}

    async def fake_overdue(client_id, user_id, today):
        assert today == now.date()
        return 2

    async def fake_notes(client_id, user_id, since, limit):
        assert since == now.date() - timedelta(days=30)
        assert limit == 10
        return []

    async def fake_update(client_id, user_id, assessment):
        saved["args"] = (client_id, user_id, assessment)

    repo = "clientpulse.features.note_intelligence.pipeline.health.service.HealthRepository"
    monkeypatch.setattr(f"{repo}.count_overdue_actions", fake_overdue)
    monkeypatch.setattr(f"{repo}.fetch_recent_note_factors", fake_notes)
    monkeypatch.setattr(f"{repo}.update_client_health", fake_update)

    assessment = await HealthService().recalculate_for_row(client, now)

    assert assessment.score == 55
    assert saved["args"][:2] == ("client-1", "user-1")
    assert saved["args"][2] is assessment


@pytest.mark.asyncio
async def test_recalculate_client_missing_client_returns_none(monkeypatch):
    async def fake_fetch(client_id, user_id):
        return None

    monkeypatch.setattr(
        "clientpulse.features.note_intelligence.pipeline.health.service.HealthRepository.fetch_client",
        fake_fetch,
    )

    assert await HealthService().recalculate_client("missing", "user-1") is None
