"""
Client health scoring package.

Recomputes a client's health score, status, trend and signals after each
processed note and during the nightly sweep.
"""

from .service import (
    DEFAULT_HEALTH_CONFIG,
    HealthAssessment,
    HealthFactors,
    HealthScoringConfig,
    HealthService,
    compute_health,
    health_service,
    status_for_score,
)

__all__ = [
    "DEFAULT_HEALTH_CONFIG",
    "HealthAssessment",
    "HealthFactors",
    "HealthScoringConfig",
    "HealthService",
    "compute_health",
    "health_service",
    "status_for_score",
]
