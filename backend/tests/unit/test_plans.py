"""
Unit tests for the plan table.

Covers:
- rank ordering, including free pinned to pro
- capabilities_of is total and deterministic
- unknown identifiers collapse to the `none` row
- plan catalogue ordering
"""

import pytest

from core import plans
from core.domain.subscription import CapabilitySet, PlanTier


@pytest.mark.parametrize("tier", list(PlanTier))
def test_capabilities_defined_for_every_tier(tier):
    caps = plans.capabilities_of(tier)
    assert isinstance(caps, CapabilitySet)
    assert caps == plans.capabilities_of(tier)
    for name in CapabilitySet.names():
        assert caps.get(name) is not None


def test_rank_order():
    assert plans.rank("none") < plans.rank("starter") < plans.rank("growth")
    assert plans.rank("growth") < plans.rank("pro") < plans.rank("enterprise")
    assert plans.rank("free") == plans.rank("pro")


def test_rank_does_not_use_string_order():
    # "enterprise" < "growth" alphabetically
    assert plans.rank("enterprise") > plans.rank("growth")


@pytest.mark.parametrize("raw", ["platinum", "", None, 42, "free_trial"])
def test_unknown_plan_gets_none_capabilities(raw):
    assert plans.capabilities_of(raw) == CapabilitySet()
    assert plans.rank(raw) == 0


def test_parse_plan_is_case_and_whitespace_tolerant():
    assert plans.parse_plan("  Pro ") == PlanTier.PRO
    assert plans.parse_plan("GROWTH") == PlanTier.GROWTH
    assert plans.parse_plan("gold") is None


def test_legacy_trial_identifier():
    assert plans.is_legacy_trial("free_trial")
    assert plans.is_legacy_trial(" FREE_TRIAL ")
    assert not plans.is_legacy_trial("free")
    assert not plans.is_legacy_trial(None)


def test_free_trial_is_full_access_except_support():
    caps = plans.capabilities_of("free")
    assert caps.agent_command_centre
    assert caps.advanced_analytics
    assert caps.api_access
    assert not caps.priority_support
    assert not caps.custom_integrations
    assert caps.team_members == 3


def test_starter_and_growth_rows():
    starter = plans.capabilities_of("starter")
    assert starter.dashboard and starter.ad_manager and starter.integrations
    assert not starter.campaign_builder
    assert starter.team_members == 2

    growth = plans.capabilities_of("growth")
    assert growth.campaign_builder and growth.creative_studio and growth.api_access
    assert not growth.agent_command_centre
    assert growth.team_members == 5


def test_enterprise_has_unlimited_seats():
    assert plans.capabilities_of("enterprise").team_members == -1


def test_capability_lookup_accepts_camel_case():
    caps = plans.capabilities_of("growth")
    assert caps.get("campaignBuilder") is True
    assert caps.get("campaign_builder") is True
    assert caps.get("teamMembers") == 5
    assert caps.get("teleport") is None


def test_display_names():
    assert plans.display_name("free") == "Free Plan"
    assert plans.display_name("none") == "No Plan"
    assert plans.display_name("bogus") == "No Plan"
    assert plans.display_name(PlanTier.ENTERPRISE) == "Enterprise"


def test_catalogue_ordered_by_rank():
    catalogue = plans.plan_catalogue()
    assert [p["plan"] for p in catalogue] == ["starter", "growth", "free", "pro", "enterprise"]
    ranks = [p["rank"] for p in catalogue]
    assert ranks == sorted(ranks)
    free = next(p for p in catalogue if p["plan"] == "free")
    assert free["trial_only"] is True
    assert free["capabilities"]["team_members"] == 3
