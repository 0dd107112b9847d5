"""Signal scoring: converts aggregated campaign counts into one comparable score.

Architecture
------------
``compute_signal_score`` is a pure function of :class:`SignalScoreInputs`.
Six signals are combined on a log scale so that no single one dominates:

- **Demand value**: weighted intent × median price ceiling (largest weight).
- **Weighted intent**: intent pledges, phone-verified ones counting 1.2.
- **Support**: lightweight endorsement pledges.
- **Lobby reach**: total verified lobbies.
- **Lobby conviction**: average intensity weight across lobbies (0-5).
- **Momentum**: last-7-day intent over prior-7-day intent, clamped to [0, 2].

A linear, uncapped fraud penalty is subtracted and the sum is multiplied by a
completeness bonus of up to 30%.  The result is rounded to one decimal and
clamped to [0, 100]; the tier comes from :data:`TIER_THRESHOLDS`.

The score is cached on the campaign row; :class:`ScoreCacheEntry` decides when
that cache is stale, with the clock always passed in by the caller.
"""
from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from signal_engine.models import LobbyIntensity
from signal_engine.utils import as_naive_utc, clamp, round_half_up

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Weighting constants
# ---------------------------------------------------------------------------

# "Take My Money" is a 5x stronger signal than "Neat Idea"
INTENSITY_WEIGHTS: dict[LobbyIntensity, int] = {
    LobbyIntensity.NEAT_IDEA: 1,
    LobbyIntensity.PROBABLY_BUY: 3,
    LobbyIntensity.TAKE_MY_MONEY: 5,
}

# Assumed lobby-to-customer conversion by intensity (revenue projection)
CONVERSION_RATES: dict[LobbyIntensity, float] = {
    LobbyIntensity.NEAT_IDEA: 0.05,
    LobbyIntensity.PROBABLY_BUY: 0.25,
    LobbyIntensity.TAKE_MY_MONEY: 0.65,
}
INTENT_CONVERSION_RATE = 0.4

PHONE_VERIFIED_BONUS = 0.2
MAX_MOMENTUM = 2.0
COMPLETENESS_BONUS = 0.3

# Coefficients of the raw score formula
SCORE_WEIGHTS = {
    "demand_value": 18,
    "weighted_intent": 8,
    "support": 3,
    "lobbies": 5,
    "conviction": 4,
    "momentum": 6,
    "fraud": 20,
}

# Lower bound (inclusive) of each tier band
TIER_THRESHOLDS = {
    "very_high": 80.0,
    "high": 55.0,
    "medium": 35.0,
}
TIERS = ("low", "medium", "high", "very_high")

# Product milestones keyed off the score
SIGNAL_THRESHOLDS = {
    "TRENDING": 35,
    "NOTIFY_BRAND": 55,
    "HIGH_SIGNAL": 70,
    "SUGGEST_OFFER": 80,
}


# ---------------------------------------------------------------------------
# Value objects
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignalScoreInputs:
    """Counts assembled fresh for every scoring call.

    Negative counts are a programmer error and raise ``ValueError``;
    ``completeness_score`` is clamped to [0, 100].
    """
    support_count: int = 0
    intent_count: int = 0
    intent_phone_verified_count: int = 0
    median_price_ceiling: float = 0.0
    p90_price_ceiling: float = 0.0
    intent_last_7_days: int = 0
    intent_prev_7_days: int = 0
    fraud_risk_score: float = 0.0  # reserved, 0 until fraud detection is wired in
    neat_idea_count: int = 0
    probably_buy_count: int = 0
    take_my_money_count: int = 0
    completeness_score: float = 0.0

    def __post_init__(self) -> None:
        for name in (
            "support_count", "intent_count", "intent_phone_verified_count",
            "median_price_ceiling", "p90_price_ceiling", "intent_last_7_days",
            "intent_prev_7_days", "fraud_risk_score", "neat_idea_count",
            "probably_buy_count", "take_my_money_count",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)!r}")
        object.__setattr__(self, "completeness_score", clamp(self.completeness_score, 0.0, 100.0))

    @property
    def total_lobbies(self) -> int:
        return self.neat_idea_count + self.probably_buy_count + self.take_my_money_count

    def lobby_counts(self) -> dict[LobbyIntensity, int]:
        return {
            LobbyIntensity.NEAT_IDEA: self.neat_idea_count,
            LobbyIntensity.PROBABLY_BUY: self.probably_buy_count,
            LobbyIntensity.TAKE_MY_MONEY: self.take_my_money_count,
        }


@dataclass
class SignalScoreResult:
    score: float
    tier: str
    demand_value: float
    momentum: float
    lobby_conviction: float
    projected_customers: int
    projected_revenue: int
    inputs: SignalScoreInputs = field(default_factory=SignalScoreInputs)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def classify_tier(score: float) -> str:
    """Map a 0-100 score to ``low | medium | high | very_high``."""
    if score >= TIER_THRESHOLDS["very_high"]:
        return "very_high"
    if score >= TIER_THRESHOLDS["high"]:
        return "high"
    if score >= TIER_THRESHOLDS["medium"]:
        return "medium"
    return "low"


def lobby_conviction(counts: dict[LobbyIntensity, int]) -> float:
    """Weighted average intensity across lobbies (0-5), 0 when there are none."""
    total = sum(counts.values())
    if total == 0:
        return 0.0
    return sum(INTENSITY_WEIGHTS[k] * n for k, n in counts.items()) / total


def compute_momentum(intent_last_7_days: int, intent_prev_7_days: int) -> float:
    return clamp(intent_last_7_days / max(1, intent_prev_7_days), 0.0, MAX_MOMENTUM)


def project_customers(counts: dict[LobbyIntensity, int], intent_count: int) -> int:
    expected = sum(CONVERSION_RATES[k] * n for k, n in counts.items())
    expected += intent_count * INTENT_CONVERSION_RATE
    return int(round_half_up(expected))


def compute_signal_score(inputs: SignalScoreInputs) -> SignalScoreResult:
    """Score a campaign from its aggregated counts. Pure, total, deterministic."""
    w = SCORE_WEIGHTS
    counts = inputs.lobby_counts()

    weighted_intent = inputs.intent_count + PHONE_VERIFIED_BONUS * inputs.intent_phone_verified_count
    conviction = lobby_conviction(counts)
    demand_value = weighted_intent * inputs.median_price_ceiling
    momentum = compute_momentum(inputs.intent_last_7_days, inputs.intent_prev_7_days)
    completeness_multiplier = 1 + (inputs.completeness_score / 100) * COMPLETENESS_BONUS

    raw = (
        w["demand_value"] * math.log10(1 + demand_value)
        + w["weighted_intent"] * math.log10(1 + weighted_intent)
        + w["support"] * math.log10(1 + inputs.support_count)
        + w["lobbies"] * math.log10(1 + inputs.total_lobbies)
        + w["conviction"] * conviction
        + w["momentum"] * momentum
        - w["fraud"] * inputs.fraud_risk_score
    ) * completeness_multiplier

    score = clamp(round_half_up(raw, 1), 0.0, 100.0)
    customers = project_customers(counts, inputs.intent_count)
    revenue = int(round_half_up(customers * inputs.median_price_ceiling))

    log.debug("Signal score %.1f (raw %.3f, momentum %.2f, conviction %.2f)", score, raw, momentum, conviction)
    return SignalScoreResult(
        score=score,
        tier=classify_tier(score),
        demand_value=demand_value,
        momentum=momentum,
        lobby_conviction=conviction,
        projected_customers=customers,
        projected_revenue=revenue,
        inputs=inputs,
    )


def tier_bounds(tier: str) -> tuple[float, float]:
    """Half-open ``[low, high)`` score band of a tier."""
    if tier not in TIERS:
        raise ValueError(f"Unknown tier: {tier!r}")
    lows = {"low": 0.0, **TIER_THRESHOLDS}
    idx = TIERS.index(tier)
    high = lows[TIERS[idx + 1]] if idx + 1 < len(TIERS) else math.inf
    return lows[tier], high


# ---------------------------------------------------------------------------
# Cache entry
# ---------------------------------------------------------------------------


@dataclass
class ScoreCacheEntry:
    """Cached score on a campaign record; always recomputable from inputs."""
    score: float | None = None
    updated_at: datetime | None = None

    def is_stale(self, now: datetime, max_age_minutes: float) -> bool:
        if self.score is None or self.updated_at is None:
            return True
        return as_naive_utc(self.updated_at) < as_naive_utc(now) - timedelta(minutes=max_age_minutes)

    def refresh_if_stale(
        self, now: datetime, max_age_minutes: float, compute: Callable[[], float],
    ) -> bool:
        """Recompute via *compute* when stale. Returns True if a refresh happened."""
        if not self.is_stale(now, max_age_minutes):
            return False
        self.score = compute()
        self.updated_at = now
        return True
