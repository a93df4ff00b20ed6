"""
Metrics Aggregator.

Simulates per-provider performance snapshots and folds the latest snapshot
of every connected provider into dashboard totals.

Spend and ROAS are the only random inputs; every other field is derived
from them (or from a fixed baseline), so a snapshot's ratios are always
internally consistent.
"""

import logging
import math
import random
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from core.domain.integration import DashboardTotals, PlatformMetrics

logger = logging.getLogger(__name__)

REVENUE_PER_CONVERSION = 140
IMPRESSIONS_PER_DOLLAR = 25
CLICK_THROUGH_RATE = 0.035


@dataclass(frozen=True)
class MetricsBaseline:
    """Typical magnitudes for a provider; None means derive the field."""

    spend: float = 0
    roas: float | None = None
    revenue: float | None = None
    conversions: int | None = None
    impressions: int | None = None
    clicks: int | None = None


# Ad platforms: spend + ROAS + impressions. Commerce: direct revenue, no ad
# spend. Analytics / email / CRM: traffic and conversions, no spend.
PROVIDER_BASELINES: dict[str, MetricsBaseline] = {
    "google_ads": MetricsBaseline(spend=52340, roas=4.5, impressions=1_200_000),
    "meta_ads": MetricsBaseline(spend=38450, roas=3.8, impressions=890_000),
    "tiktok_ads": MetricsBaseline(spend=18230, roas=4.2, impressions=2_100_000),
    "linkedin_ads": MetricsBaseline(spend=15543, roas=2.9, impressions=340_000),
    "shopify": MetricsBaseline(revenue=450_000, conversions=3500),
    "stripe": MetricsBaseline(revenue=520_000, conversions=4100),
    "ga4": MetricsBaseline(impressions=5_000_000, clicks=250_000, conversions=2600),
    "mailchimp": MetricsBaseline(impressions=500_000, clicks=50_000, conversions=900),
    "hubspot": MetricsBaseline(impressions=420_000, clicks=15_000, conversions=1200),
}

DEFAULT_BASELINE = MetricsBaseline(spend=10_000, roas=3.0)

# Shown to brand-new users until the first provider is connected
SAMPLE_TOTALS = DashboardTotals(
    total_spend=124_563,
    total_revenue=523_400,
    conversions=3847,
    roas=4.2,
    avg_cpa=32.38,
    impressions=2_450_000,
    clicks=89_000,
    is_live=False,
    connected_platforms=(),
)


def _jitter(rng: random.Random, variance: float) -> float:
    return 1 + rng.uniform(-variance, variance)


def simulate_metrics(
    provider: str,
    rng: random.Random,
    now: datetime,
    variance: float = 0.15,
    currency: str = "USD",
) -> PlatformMetrics:
    """
    Generate a realistic metrics snapshot for a provider.

    Args:
        provider: Provider identifier; unknown providers use a generic ad baseline
        rng: Random source (seed it for reproducible snapshots)
        now: Snapshot timestamp
        variance: Relative jitter applied to baseline spend and ROAS
        currency: ISO currency code for monetary fields

    Returns:
        PlatformMetrics whose ratio fields match their defining quantities
    """
    base = PROVIDER_BASELINES.get(provider, DEFAULT_BASELINE)

    spend = round(base.spend * _jitter(rng, variance)) if base.spend else 0
    roas_seed = base.roas * _jitter(rng, variance) if base.roas else 0.0

    if base.revenue is not None:
        revenue = round(base.revenue)
    else:
        revenue = round(spend * roas_seed)

    conversions = (
        base.conversions
        if base.conversions is not None
        else math.floor(revenue / REVENUE_PER_CONVERSION)
    )
    impressions = (
        base.impressions
        if base.impressions is not None
        else math.floor(spend * IMPRESSIONS_PER_DOLLAR)
    )
    clicks = base.clicks if base.clicks is not None else math.floor(impressions * CLICK_THROUGH_RATE)

    return PlatformMetrics(
        provider=provider,
        spend=spend,
        revenue=revenue,
        conversions=conversions,
        impressions=impressions,
        clicks=clicks,
        roas=round(revenue / spend, 2) if spend else 0.0,
        ctr=round(clicks / impressions * 100, 2) if impressions else 0.0,
        cpa=round(spend / max(conversions, 1), 2),
        currency=currency,
        last_updated=now,
    )


def latest_per_provider(all_metrics: Iterable[PlatformMetrics]) -> list[PlatformMetrics]:
    """Keep one snapshot per provider: the newest, later entries winning ties."""
    latest: dict[str, PlatformMetrics] = {}
    for metrics in all_metrics:
        current = latest.get(metrics.provider)
        if current is None or metrics.last_updated >= current.last_updated:
            latest[metrics.provider] = metrics
    return list(latest.values())


def aggregate(all_metrics: Iterable[PlatformMetrics]) -> DashboardTotals:
    """
    Fold provider snapshots into dashboard totals.

    Returns the canned sample (is_live=False) when nothing is connected so a
    new account never sees an all-zero dashboard.
    """
    snapshots = latest_per_provider(all_metrics)
    if not snapshots:
        return SAMPLE_TOTALS

    spend = sum(m.spend for m in snapshots)
    revenue = sum(m.revenue for m in snapshots)
    conversions = sum(m.conversions for m in snapshots)
    impressions = sum(m.impressions for m in snapshots)
    clicks = sum(m.clicks for m in snapshots)

    totals = DashboardTotals(
        total_spend=spend,
        total_revenue=revenue,
        conversions=conversions,
        roas=round(revenue / spend, 1) if spend else 0.0,
        avg_cpa=round(spend / conversions, 2) if conversions else 0.0,
        impressions=impressions,
        clicks=clicks,
        is_live=True,
        connected_platforms=tuple(m.provider for m in snapshots),
    )
    logger.debug(
        "Aggregated %d provider snapshots (spend=%s revenue=%s)",
        len(snapshots),
        spend,
        revenue,
    )
    return totals
