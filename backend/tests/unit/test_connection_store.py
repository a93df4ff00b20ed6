"""
Unit tests for the ConnectionStore.

Covers:
- OAuth state issue / consume (single use, TTL, pruning)
- connect / disconnect lifecycle and multiple accounts per provider
- sync overwrite semantics, failures and history
- status transition table
- integration status projection and dashboard totals
"""

import asyncio
import json
import random
from datetime import timedelta

import pytest

from adapters.integrations import InvalidTransitionError, registered_providers
from core.domain.integration import AccountStatus, SyncHealth, SyncJobStatus
from services.connection_store import ConnectionStore
from services.metrics_aggregator import SAMPLE_TOTALS, simulate_metrics


# ---------------------------------------------------------------------------
# OAuth state tokens
# ---------------------------------------------------------------------------


class TestOAuthState:
    def test_state_accepted_exactly_once(self, store):
        state = store.issue_state("google_ads")
        assert store.consume_state(state) == "google_ads"
        assert store.consume_state(state) is None

    def test_unknown_state_rejected(self, store):
        assert store.consume_state("never-issued") is None

    def test_unregistered_provider_gets_no_state(self, store):
        assert store.issue_state("myspace") is None

    def test_states_are_unique(self, store):
        states = {store.issue_state("stripe") for _ in range(50)}
        assert len(states) == 50

    def test_state_valid_up_to_ttl(self, store, clock):
        state = store.issue_state("hubspot")
        clock.advance(seconds=600)
        assert store.consume_state(state) == "hubspot"

    def test_stale_state_rejected_and_discarded(self, store, clock):
        state = store.issue_state("hubspot")
        clock.advance(minutes=10, seconds=1)
        assert store.consume_state(state) is None

        # Deleted even though it was rejected
        clock.advance(minutes=-20)
        assert store.consume_state(state) is None

    def test_max_states_drops_oldest(self, clock, rng):
        store = ConnectionStore(clock=clock, rng=rng, max_states=3)
        first = store.issue_state("ga4")
        clock.advance(seconds=1)
        others = []
        for _ in range(3):
            others.append(store.issue_state("ga4"))
            clock.advance(seconds=1)

        assert store.consume_state(first) is None
        assert all(store.consume_state(s) == "ga4" for s in others)


# ---------------------------------------------------------------------------
# connect / disconnect
# ---------------------------------------------------------------------------


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_runs_initial_sync(self, store, clock):
        account = await store.connect("google_ads", "auth-code")

        assert account.status == AccountStatus.CONNECTED
        assert account.sync_status == SyncHealth.HEALTHY
        assert account.last_sync == clock.now
        assert account.connected_at == clock.now
        assert "https://www.googleapis.com/auth/adwords" in account.permissions
        assert store.is_connected("google_ads")
        assert store.metrics_for("google_ads") is not None

    @pytest.mark.asyncio
    async def test_provider_shaped_account_ids(self, store):
        google = await store.connect("google_ads", "c")
        meta = await store.connect("meta_ads", "c")
        stripe = await store.connect("stripe", "c")

        assert len(google.account_id.split("-")) == 3
        assert meta.account_id.startswith("act_")
        assert stripe.account_id.startswith("acct_")
        assert google.email == "user@googleads.com"

    @pytest.mark.asyncio
    async def test_shopify_uses_shop_from_metadata(self, store):
        account = await store.connect("shopify", "c", {"shop": "acme"})
        assert account.account_id == "acme.myshopify.com"
        assert account.metadata == {"shop": "acme"}

    @pytest.mark.asyncio
    async def test_unregistered_provider_refused(self, store):
        assert await store.connect("myspace", "c") is None
        assert store.list_accounts() == []

    @pytest.mark.asyncio
    async def test_empty_auth_code_refused(self, store):
        assert await store.connect("stripe", "") is None
        assert store.list_accounts() == []

    @pytest.mark.asyncio
    async def test_same_provider_twice_creates_two_accounts(self, store):
        a = await store.connect("google_ads", "c1")
        b = await store.connect("google_ads", "c2")

        assert a.id != b.id
        assert [x.id for x in store.accounts_for("google_ads")] == [a.id, b.id]
        assert store.account_for("google_ads").id == a.id
        assert len(store.all_metrics()) == 1

    @pytest.mark.asyncio
    async def test_seeded_store_is_reproducible(self, clock):
        a = await ConnectionStore(clock=clock, rng=random.Random(9)).connect("tiktok_ads", "c")
        b = await ConnectionStore(clock=clock, rng=random.Random(9)).connect("tiktok_ads", "c")
        assert a == b


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnect_removes_account_and_metrics(self, store):
        account = await store.connect("meta_ads", "c")

        assert store.disconnect(account.id) is True
        assert store.get_account(account.id) is None
        assert store.metrics_for("meta_ads") is None
        assert store.is_connected("meta_ads") is False

    @pytest.mark.asyncio
    async def test_disconnect_keeps_metrics_while_provider_has_accounts(self, store):
        first = await store.connect("google_ads", "c")
        second = await store.connect("google_ads", "c")
        snapshot = store.metrics_for("google_ads")

        assert store.disconnect(first.id) is True
        assert store.is_connected("google_ads") is True
        assert store.metrics_for("google_ads") == snapshot
        assert store.dashboard_metrics().is_live is True

        assert store.disconnect(second.id) is True
        assert store.metrics_for("google_ads") is None
        assert store.dashboard_metrics() == SAMPLE_TOTALS

    def test_disconnect_unknown_is_noop(self, store):
        assert store.disconnect("nope") is False

    @pytest.mark.asyncio
    async def test_disconnect_twice(self, store):
        account = await store.connect("meta_ads", "c")
        assert store.disconnect(account.id) is True
        assert store.disconnect(account.id) is False


# ---------------------------------------------------------------------------
# sync
# ---------------------------------------------------------------------------


class TestSync:
    @pytest.mark.asyncio
    async def test_sync_never_connected_has_no_side_effects(self, store):
        assert await store.sync("linkedin_ads") is None
        assert store.metrics_for("linkedin_ads") is None
        assert store.sync_jobs("linkedin_ads") == []
        assert store.list_accounts() == []

    @pytest.mark.asyncio
    async def test_sync_unregistered_provider(self, store):
        assert await store.sync("myspace") is None

    @pytest.mark.asyncio
    async def test_sync_overwrites_snapshot(self, store, clock):
        await store.connect("google_ads", "c")
        first = store.metrics_for("google_ads")

        clock.advance(hours=1)
        second = await store.sync("google_ads")

        assert second is store.metrics_for("google_ads")
        assert second.last_updated == clock.now
        assert second != first
        assert len(store.all_metrics()) == 1
        assert store.account_for("google_ads").last_sync == clock.now

    @pytest.mark.asyncio
    async def test_sync_records_jobs(self, store):
        await store.connect("stripe", "c")
        await store.sync("stripe")

        jobs = store.sync_jobs("stripe")
        assert [j.status for j in jobs] == [SyncJobStatus.COMPLETED, SyncJobStatus.COMPLETED]
        assert all(j.records_processed == 1 for j in jobs)

    @pytest.mark.asyncio
    async def test_history_is_bounded(self, clock, rng):
        store = ConnectionStore(clock=clock, rng=rng, history_limit=3)
        await store.connect("ga4", "c")
        for _ in range(5):
            await store.sync("ga4")
        assert len(store.sync_jobs("ga4")) == 3

    @pytest.mark.asyncio
    async def test_failed_sync_keeps_previous_snapshot(self, clock, rng):
        calls = {"n": 0}

        async def flaky(provider):
            calls["n"] += 1
            if calls["n"] > 1:
                raise ConnectionError("provider API down")
            return simulate_metrics(provider, rng, clock())

        store = ConnectionStore(clock=clock, rng=rng, metrics_fetcher=flaky)
        account = await store.connect("meta_ads", "c")
        snapshot = store.metrics_for("meta_ads")

        assert await store.sync("meta_ads") is None
        assert store.metrics_for("meta_ads") is snapshot

        failed = store.get_account(account.id)
        assert failed.status == AccountStatus.ERROR
        assert failed.sync_status == SyncHealth.ERROR
        assert store.sync_jobs("meta_ads")[-1].status == SyncJobStatus.FAILED
        assert store.sync_jobs("meta_ads")[-1].errors == ("provider API down",)

    @pytest.mark.asyncio
    async def test_errored_account_recovers_on_next_sync(self, clock, rng):
        fail = {"on": False}

        async def fetcher(provider):
            if fail["on"]:
                raise TimeoutError("timed out")
            return simulate_metrics(provider, rng, clock())

        store = ConnectionStore(clock=clock, rng=rng, metrics_fetcher=fetcher)
        account = await store.connect("hubspot", "c")
        fail["on"] = True
        await store.sync("hubspot")
        fail["on"] = False

        assert await store.sync("hubspot") is not None
        assert store.get_account(account.id).status == AccountStatus.CONNECTED

    @pytest.mark.asyncio
    async def test_concurrent_syncs_are_serialized(self, clock, rng):
        in_flight = {"now": 0, "max": 0}

        async def slow(provider):
            in_flight["now"] += 1
            in_flight["max"] = max(in_flight["max"], in_flight["now"])
            await asyncio.sleep(0.01)
            in_flight["now"] -= 1
            return simulate_metrics(provider, rng, clock())

        store = ConnectionStore(clock=clock, rng=rng, metrics_fetcher=slow)
        await store.connect("tiktok_ads", "c")
        results = await asyncio.gather(*(store.sync("tiktok_ads") for _ in range(4)))

        assert in_flight["max"] == 1
        assert store.metrics_for("tiktok_ads") is results[-1]

    @pytest.mark.asyncio
    async def test_disconnect_during_sync_discards_result(self, clock, rng):
        release = asyncio.Event()

        async def blocked(provider):
            await release.wait()
            return simulate_metrics(provider, rng, clock())

        store = ConnectionStore(clock=clock, rng=rng, metrics_fetcher=blocked)
        task = asyncio.create_task(store.connect("stripe", "c"))
        await asyncio.sleep(0)
        account = store.list_accounts()[0]
        assert account.status == AccountStatus.SYNCING
        assert store.is_connected("stripe") is False

        assert store.disconnect(account.id) is True
        release.set()

        assert await task is None
        assert store.metrics_for("stripe") is None
        assert store.sync_jobs("stripe")[-1].status == SyncJobStatus.FAILED


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


class TestTransitions:
    @pytest.mark.asyncio
    async def test_mark_expired(self, store):
        account = await store.connect("linkedin_ads", "c")

        assert store.mark_expired(account.id) is True
        assert store.get_account(account.id).status == AccountStatus.EXPIRED
        assert store.is_connected("linkedin_ads") is False
        assert store.mark_expired(account.id) is False

    @pytest.mark.asyncio
    async def test_expired_account_is_not_synced(self, store):
        account = await store.connect("linkedin_ads", "c")
        store.mark_expired(account.id)
        assert await store.sync("linkedin_ads") is None

    @pytest.mark.asyncio
    async def test_expired_account_can_be_disconnected(self, store):
        account = await store.connect("linkedin_ads", "c")
        store.mark_expired(account.id)
        assert store.disconnect(account.id) is True

    def test_mark_expired_unknown(self, store):
        assert store.mark_expired("nope") is False

    @pytest.mark.asyncio
    async def test_illegal_transition_raises(self, store):
        account = await store.connect("mailchimp", "c")
        store.mark_expired(account.id)
        with pytest.raises(InvalidTransitionError):
            store._transition(account.id, AccountStatus.SYNCING)

    @pytest.mark.asyncio
    async def test_transition_replaces_record(self, store):
        account = await store.connect("mailchimp", "c")
        store.mark_expired(account.id)
        assert account.status == AccountStatus.CONNECTED
        assert store.get_account(account.id) is not account


# ---------------------------------------------------------------------------
# Projections
# ---------------------------------------------------------------------------


class TestProjections:
    def test_statuses_include_every_provider_once(self, store):
        statuses = store.integration_statuses()
        assert [s.provider for s in statuses] == registered_providers()
        assert all(s.status == "not_connected" for s in statuses)

    @pytest.mark.asyncio
    async def test_connected_projection(self, store, clock):
        account = await store.connect("ga4", "c")
        status = next(s for s in store.integration_statuses() if s.provider == "ga4")

        assert status.status == "connected"
        assert status.account_id == account.account_id
        assert status.last_sync == clock.now
        assert status.health == "healthy"
        assert len(store.integration_statuses()) == len(registered_providers())

    @pytest.mark.asyncio
    async def test_expired_account_reports_error_health(self, store):
        account = await store.connect("ga4", "c")
        store.mark_expired(account.id)
        status = next(s for s in store.integration_statuses() if s.provider == "ga4")
        assert status.health == "error"

    @pytest.mark.asyncio
    async def test_projection_prefers_connected_account(self, store):
        lapsed = await store.connect("meta_ads", "c")
        healthy = await store.connect("meta_ads", "c")
        store.mark_expired(lapsed.id)
        status = next(s for s in store.integration_statuses() if s.provider == "meta_ads")

        assert status.health == "healthy"
        assert status.account_id == healthy.account_id

    @pytest.mark.asyncio
    async def test_projection_falls_back_to_oldest_account(self, store):
        first = await store.connect("meta_ads", "c")
        second = await store.connect("meta_ads", "c")
        store.mark_expired(first.id)
        store.mark_expired(second.id)
        status = next(s for s in store.integration_statuses() if s.provider == "meta_ads")

        assert status.health == "error"
        assert status.account_id == first.account_id

    def test_dashboard_sample_when_nothing_connected(self, store):
        assert store.dashboard_metrics() == SAMPLE_TOTALS

    @pytest.mark.asyncio
    async def test_dashboard_totals_from_connected_providers(self, store):
        await store.connect("google_ads", "c")
        await store.connect("shopify", "c", {"shop": "acme"})

        totals = store.dashboard_metrics()
        google = store.metrics_for("google_ads")
        shopify = store.metrics_for("shopify")
        assert totals.is_live is True
        assert totals.total_spend == google.spend + shopify.spend
        assert totals.total_revenue == google.revenue + shopify.revenue
        assert set(totals.connected_platforms) == {"google_ads", "shopify"}

    @pytest.mark.asyncio
    async def test_connected_providers_in_connect_order(self, store):
        await store.connect("stripe", "c")
        await store.connect("ga4", "c")
        await store.connect("stripe", "c")
        assert store.connected_providers() == ["stripe", "ga4"]


@pytest.mark.asyncio
async def test_account_serializes_for_persistence(store):
    account = await store.connect("shopify", "c", {"shop": "acme"})
    data = account.to_dict()

    assert data["status"] == "connected"
    assert data["sync_status"] == "healthy"
    assert json.loads(json.dumps(data)) == data
