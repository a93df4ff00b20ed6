"""
Subscription Engine.

Combines the plan table and the trial clock into a subscription view and
answers entitlement questions about it. Every operation fails closed:
malformed input yields the most restrictive result and nothing here raises.
"""

import logging
from collections.abc import Callable, Iterator
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Optional

from core import plans, trial
from core.clock import Clock, utc_now
from core.domain.subscription import (
    PlanTier,
    Subscription,
    SubscriptionStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_TRIAL_DAYS = 7

# Page -> capability that unlocks it; None means any live subscription
PAGE_CAPABILITIES: dict[str, Optional[str]] = {
    "dashboard": "dashboard",
    "agents": "agent_command_centre",
    "analytics": "dashboard",
    "campaigns": "campaign_builder",
    "integrations": None,
    "settings": None,
}

ExpiryCallback = Callable[[Subscription], Any]


class SubscriptionEngine:
    """Derives subscriptions and evaluates entitlements against them."""

    def __init__(self, clock: Clock = utc_now, trial_days: int = DEFAULT_TRIAL_DAYS):
        self._clock = clock
        self.trial_days = trial_days

    def now(self) -> datetime:
        return self._clock()

    def derive_subscription(
        self,
        raw_plan: Any = None,
        trial_ends_at: Any = None,
        account_type: Optional[str] = None,
    ) -> Subscription:
        """
        Build a subscription from a user's stored plan and trial data.

        Args:
            raw_plan: Plan identifier as stored upstream (may be missing or stale)
            trial_ends_at: Trial expiry as datetime or ISO-8601 string
            account_type: Caller-defined account kind, carried through as-is

        Returns:
            Subscription record; unknown plans collapse to `none`
        """
        ends_at = trial.parse_timestamp(trial_ends_at)

        if raw_plan is None or (isinstance(raw_plan, str) and not raw_plan.strip()):
            return self._new_trial(ends_at, account_type)
        if plans.is_legacy_trial(raw_plan):
            return self._new_trial(ends_at, account_type)

        tier = plans.parse_plan(raw_plan)
        if tier is None:
            logger.warning("Unrecognized plan %r, falling back to none", raw_plan, extra={"plan": str(raw_plan)})
            return Subscription(
                plan=PlanTier.NONE,
                status=SubscriptionStatus.NONE,
                features=plans.capabilities_of(PlanTier.NONE),
                account_type=account_type,
            )
        if tier in (PlanTier.NONE, PlanTier.FREE):
            # `free` only exists as a trial
            return self._new_trial(ends_at, account_type)

        if ends_at is None:
            return Subscription(
                plan=tier,
                status=SubscriptionStatus.ACTIVE,
                features=plans.capabilities_of(tier),
                account_type=account_type,
            )

        # A trial end date marks the record as a trial; an elapsed one is
        # flagged expired by refresh_trial_state rather than here.
        status = (
            SubscriptionStatus.ACTIVE
            if trial.is_expired(ends_at, self.now())
            else SubscriptionStatus.TRIALING
        )
        return Subscription(
            plan=tier,
            status=status,
            is_trial=True,
            trial_ends_at=ends_at,
            features=plans.capabilities_of(tier),
            account_type=account_type,
        )

    def _new_trial(self, ends_at: Optional[datetime], account_type: Optional[str]) -> Subscription:
        if ends_at is None:
            ends_at = self.now() + timedelta(days=self.trial_days)
        return Subscription(
            plan=PlanTier.FREE,
            status=SubscriptionStatus.TRIALING,
            is_trial=True,
            trial_ends_at=ends_at,
            features=plans.capabilities_of(PlanTier.FREE),
            account_type=account_type,
        )

    def refresh_trial_state(
        self,
        subscription: Optional[Subscription],
        on_expired: Optional[ExpiryCallback] = None,
    ) -> Optional[Subscription]:
        """
        Flag a lapsed trial as expired.

        The callback fires only on the transition itself, so calling this
        repeatedly on the returned record triggers it at most once.
        """
        if subscription is None or subscription.is_expired:
            return subscription
        if not subscription.is_trial or not trial.is_expired(subscription.trial_ends_at, self.now()):
            return subscription

        expired = replace(subscription, status=SubscriptionStatus.EXPIRED)
        logger.info("Trial on %s plan expired", subscription.plan.value, extra={"plan": subscription.plan.value})
        if on_expired is not None:
            try:
                on_expired(expired)
            except Exception as e:
                logger.error("Trial expiry callback failed: %s", e, exc_info=True)
        return expired

    # ── Queries ──────────────────────────────────────────────────────────────

    def is_at_least(self, subscription: Optional[Subscription], target: Any) -> bool:
        """Rank comparison, gated by status: an expired record is never at least anything."""
        if subscription is None or subscription.is_expired:
            return False
        tier = plans.parse_plan(target)
        if tier is None:
            return False
        return plans.rank(subscription.plan) >= plans.rank(tier)

    def has_capability(self, subscription: Optional[Subscription], name: Any) -> bool:
        if subscription is None or subscription.is_expired:
            return False
        value = subscription.features.get(name)
        if value is None:
            return False
        # Numeric limits count as granted when non-zero (-1 is unlimited)
        return bool(value)

    def can_access_page(self, subscription: Optional[Subscription], page: Any) -> bool:
        if subscription is None or subscription.is_expired:
            return False
        if not isinstance(page, str) or page not in PAGE_CAPABILITIES:
            return False
        capability = PAGE_CAPABILITIES[page]
        return capability is None or self.has_capability(subscription, capability)

    def is_free_user(self, subscription: Optional[Subscription]) -> bool:
        return subscription is not None and subscription.plan == PlanTier.FREE

    def is_trial_expired(self, subscription: Optional[Subscription]) -> bool:
        if subscription is None or not subscription.is_trial:
            return False
        return trial.is_expired(subscription.trial_ends_at, self.now())

    def days_left_in_trial(self, subscription: Optional[Subscription]) -> int:
        if subscription is None or not subscription.is_trial:
            return 0
        return trial.days_left(subscription.trial_ends_at, self.now())

    def plan_display_name(self, subscription: Optional[Subscription]) -> str:
        if subscription is None:
            return plans.display_name(PlanTier.NONE)
        return plans.display_name(subscription.plan)


class SubscriptionSession:
    """
    Per-user subscription holder.

    Keeps the current record, the time it was last derived and whether the
    user must be prompted to choose a plan.
    """

    def __init__(self, engine: SubscriptionEngine, user_id: Optional[str] = None):
        self._engine = engine
        self.user_id = user_id
        self.subscription: Optional[Subscription] = None
        self.last_fetched: Optional[datetime] = None
        self.show_plan_selection = False
        self._inputs: Optional[tuple] = None

    def set_from_user(
        self,
        raw_plan: Any = None,
        trial_ends_at: Any = None,
        account_type: Optional[str] = None,
    ) -> Optional[Subscription]:
        """Derive from upstream user data, then check the trial immediately.

        Unchanged inputs keep the current record, so a synthesized trial end
        does not move and an expired trial stays expired. Changed inputs
        re-derive from scratch.
        """
        inputs = (raw_plan, trial.parse_timestamp(trial_ends_at), account_type)
        if self.subscription is None or inputs != self._inputs:
            self.subscription = self._engine.derive_subscription(raw_plan, trial_ends_at, account_type)
            self._inputs = inputs
            logger.debug(
                "Derived %s subscription for user %s",
                self.subscription.plan.value,
                self.user_id,
                extra={"user_id": self.user_id, "plan": self.subscription.plan.value},
            )
        self.last_fetched = self._engine.now()
        return self.check_trial_status()

    def check_trial_status(self) -> Optional[Subscription]:
        self.subscription = self._engine.refresh_trial_state(self.subscription, self._on_expired)
        return self.subscription

    def _on_expired(self, subscription: Subscription) -> None:
        self.show_plan_selection = True
        logger.info(
            "User %s must choose a plan",
            self.user_id,
            extra={"user_id": self.user_id, "plan": subscription.plan.value},
        )

    def dismiss_plan_selection(self) -> None:
        self.show_plan_selection = False

    def clear(self) -> None:
        self.subscription = None
        self.last_fetched = None
        self.show_plan_selection = False
        self._inputs = None


class SessionRegistry:
    """Subscription sessions keyed by user id."""

    def __init__(self, engine: SubscriptionEngine):
        self.engine = engine
        self._sessions: dict[str, SubscriptionSession] = {}

    def get(self, user_id: str) -> Optional[SubscriptionSession]:
        return self._sessions.get(user_id)

    def get_or_create(self, user_id: str) -> SubscriptionSession:
        session = self._sessions.get(user_id)
        if session is None:
            session = self._sessions[user_id] = SubscriptionSession(self.engine, user_id)
        return session

    def remove(self, user_id: str) -> bool:
        session = self._sessions.pop(user_id, None)
        if session is None:
            return False
        session.clear()
        return True

    def __iter__(self) -> Iterator[SubscriptionSession]:
        return iter(list(self._sessions.values()))

    def __len__(self) -> int:
        return len(self._sessions)

    def check_all(self) -> int:
        """Run the trial check on every session. Returns how many newly expired."""
        expired = 0
        for session in self:
            was_expired = session.subscription is not None and session.subscription.is_expired
            current = session.check_trial_status()
            if current is not None and current.is_expired and not was_expired:
                expired += 1
        return expired
