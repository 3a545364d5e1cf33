"""
Test suite for the liquidity orchestrator.

Runs complete provisioning flows against the in-memory chain: automatic
runs, existing pools, per-pool failures, operator decisions and the
conditional token discovery fallback.
"""

from dataclasses import replace
from decimal import Decimal
from unittest.mock import Mock

import pytest
from eth_account import Account

from ....config import ConfigManager
from ....errors import PriceComputationError
from ....pools.amm import SingleTierAMM
from ....tests.fakes import FakeAdapter, make_orchestrator
from ..base import (
    AutomaticDecisions,
    LoggingResultListener,
    PoolResult,
    PoolStatus,
    ProvisioningDecisions,
    ProvisioningMode,
    ResultListener,
    TokenRef,
)
from ..factory import build_provisioner


class RecordingListener(ResultListener):
    def __init__(self):
        self.results = []

    async def on_pool_result(self, result):
        self.results.append(result)


class BrokenListener(ResultListener):
    async def on_pool_result(self, result):
        raise RuntimeError("listener down")


class ScriptedDecisions(ProvisioningDecisions):
    """Operator answers fixed up front."""

    def __init__(self, run=True, add_existing=(), manual_addresses=None, declined=()):
        self.run = run
        self.add_existing = set(add_existing)
        self.manual_addresses = manual_addresses or {}
        self.declined = set(declined)
        self.asked = []

    async def confirm_run(self, proposal_input, configs):
        return self.run

    async def add_to_existing_pool(self, config, pool_address):
        self.asked.append(config.pool_id)
        return config.pool_id in self.add_existing

    async def existing_pool_address(self, config):
        return self.manual_addresses.get(config.pool_id)

    async def confirm_pool(self, config):
        return config.pool_id not in self.declined


def position_in(world, pool_address):
    return [p for p in world.position_manager.positions if p["pool"] == pool_address]


class TestAutomaticRun:
    """Fully automatic provisioning."""

    @pytest.mark.asyncio
    async def test_provisions_all_six_pools(self, world, orchestrator, proposal_input):
        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert [r.pool_number for r in results] == [1, 2, 3, 4, 5, 6]
        assert all(r.status == PoolStatus.SUCCESS for r in results), [r.error for r in results]
        assert len(world.position_manager.positions) == 6
        assert all(r.token_id is not None for r in results)
        assert all(r.deviation < 1 for r in results)

    @pytest.mark.asyncio
    async def test_reordered_pool_is_reported(self, orchestrator, proposal_input):
        results = await orchestrator.setup_futarchy_pools(proposal_input)

        # the currency token has a lower address than YES-Company
        assert results[2].tokens_inverted is True
        assert results[0].tokens_inverted is False

    @pytest.mark.asyncio
    async def test_conditional_tokens_split_before_minting(self, world, orchestrator, proposal_input):
        await orchestrator.setup_futarchy_pools(proposal_input)

        names = [tx.name for tx in world.chain.transactions]
        assert names.index("splitPosition") < names.index("mint")
        split_collateral = {tx.args[1] for tx in world.chain.sent("splitPosition")}
        assert split_collateral == {world.company.address, world.currency.address}

    @pytest.mark.asyncio
    async def test_swapr_run_uses_full_range(self, swapr_world, proposal_input):
        orchestrator = make_orchestrator(swapr_world)
        swapr_input = replace(
            proposal_input,
            proposal_address=swapr_world.proposal.address,
            company_token=TokenRef(swapr_world.company.address, "GNO"),
            currency_token=TokenRef(swapr_world.currency.address, "sDAI"),
        )

        results = await orchestrator.setup_futarchy_pools(swapr_input)

        assert all(r.success for r in results)
        for position in swapr_world.position_manager.positions:
            assert (position["tick_lower"], position["tick_upper"]) == (-887220, 887220)

    @pytest.mark.asyncio
    async def test_invalid_prices_abort_before_any_transaction(self, world, orchestrator, proposal_input):
        proposal_input.event_probability = "1.2"

        with pytest.raises(PriceComputationError):
            await orchestrator.setup_futarchy_pools(proposal_input)
        assert world.chain.transactions == []

    @pytest.mark.asyncio
    async def test_bad_amount_aborts_before_discovery(self, world, orchestrator, proposal_input):
        proposal_input.proposal_address = world.chain.new_address(0x55)
        proposal_input.liquidity_amounts = [1, 1, -1, 1, 1, 1]

        with pytest.raises(PriceComputationError, match="pool 3"):
            await orchestrator.setup_futarchy_pools(proposal_input)
        assert world.chain.transactions == []

    @pytest.mark.asyncio
    async def test_unsupported_fee_tier_aborts(self, world, orchestrator, proposal_input):
        proposal_input.fee_tier = 2500

        with pytest.raises(ValueError, match="fee tier 2500"):
            await orchestrator.setup_futarchy_pools(proposal_input)
        assert world.chain.transactions == []

    @pytest.mark.asyncio
    async def test_configured_full_range_is_kept(self, world, proposal_input):
        orchestrator = make_orchestrator(world, tick_width_steps=0)

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert all(r.success for r in results)
        assert orchestrator.pool_manager.tick_width_steps == 0
        for position in world.position_manager.positions:
            assert (position["tick_lower"], position["tick_upper"]) == (-887220, 887220)

    @pytest.mark.asyncio
    async def test_run_tick_width_applies_to_that_run_only(self, world, orchestrator, proposal_input):
        proposal_input.tick_width_steps = 0

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert all(r.success for r in results)
        assert orchestrator.pool_manager.tick_width_steps == 10
        for position in world.position_manager.positions:
            assert (position["tick_lower"], position["tick_upper"]) == (-887220, 887220)

    @pytest.mark.asyncio
    async def test_missing_proposal_address(self, orchestrator, proposal_input):
        proposal_input.proposal_address = None
        with pytest.raises(ValueError, match="proposal address"):
            await orchestrator.setup_futarchy_pools(proposal_input)


class TestExistingPools:

    @pytest.mark.asyncio
    async def test_existing_pool_skipped(self, world, orchestrator, proposal_input):
        pool = world.chain.seed_pool(world.factory, world.yes_currency.address, world.currency.address, "0.5")

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert results[4].status == PoolStatus.SKIPPED
        assert results[4].pool_address == pool.address
        assert position_in(world, pool.address) == []
        assert sum(1 for r in results if r.success) == 5

    @pytest.mark.asyncio
    async def test_forced_pool_rebalanced_to_live_price(self, world, orchestrator, proposal_input):
        pool = world.chain.seed_pool(world.factory, world.yes_company.address, world.currency.address, "0.03")
        proposal_input.force_add_liquidity = [3]

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert results[2].status == PoolStatus.SUCCESS
        assert results[2].pool_address == pool.address
        (position,) = position_in(world, pool.address)
        # AMM order is (currency, YES-Company): amount0 / amount1 is the logical price
        ratio = Decimal(position["amount0"]) / Decimal(position["amount1"])
        assert abs(ratio - Decimal("0.03")) < Decimal("1e-15")
        assert results[2].deviation < Decimal("0.000001")

    @pytest.mark.asyncio
    async def test_operator_provided_pool_address(self, world, orchestrator, proposal_input):
        pool = world.chain.seed_pool(world.factory, world.yes_currency.address, world.currency.address, "0.5")
        # hide the pool from the factory so only the operator knows it
        world.factory.view_delay = 1
        decisions = ScriptedDecisions(manual_addresses={5: pool.address.lower(), 6: "not-an-address"})

        results = await orchestrator.setup_futarchy_pools(
            proposal_input, mode=ProvisioningMode.MANUAL, decisions=decisions
        )

        assert results[4].pool_address == pool.address
        assert len(position_in(world, pool.address)) == 1
        assert results[5].success

    @pytest.mark.asyncio
    async def test_semi_automatic_asks_for_existing_pools(self, world, orchestrator, proposal_input):
        world.chain.seed_pool(world.factory, world.no_currency.address, world.currency.address, "0.5")
        decisions = ScriptedDecisions(add_existing=[6])

        results = await orchestrator.setup_futarchy_pools(
            proposal_input, mode="semi-automatic", decisions=decisions
        )

        assert decisions.asked == [6]
        assert results[5].success


class TestFailures:
    """Per-pool failures never stop the run."""

    @pytest.mark.asyncio
    async def test_failed_mints_do_not_stop_other_pools(self, world, orchestrator, proposal_input):
        world.position_manager.fail_mint_tokens.add(world.no_company.address.lower())

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        statuses = {r.pool_number: r.status for r in results}
        assert statuses == {
            1: PoolStatus.SUCCESS,
            2: PoolStatus.FAILED,
            3: PoolStatus.SUCCESS,
            4: PoolStatus.FAILED,
            5: PoolStatus.SUCCESS,
            6: PoolStatus.SUCCESS,
        }
        assert "reverted" in results[1].error

    @pytest.mark.asyncio
    async def test_insufficient_base_balance(self, world, orchestrator, proposal_input):
        # the YES-Currency split for pool 1 leaves too little currency for pool 3
        world.currency.balances[world.chain.signer.lower()] = 15 * 10**17

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert results[0].success and results[1].success
        assert results[2].status == PoolStatus.FAILED
        assert "Insufficient sDAI balance" in results[2].error

    @pytest.mark.asyncio
    async def test_unresolved_legs_fail_their_pools(self, world, orchestrator, proposal_input):
        stray = world.chain.add_token("STRAY")
        stray.mint(world.chain.signer, 10**18)
        proposal_input.proposal_address = world.chain.new_address(0x55)
        proposal_input.company_token = TokenRef(stray.address, "STRAY")

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert [r.status for r in results[:4]] == [PoolStatus.FAILED] * 4
        assert "unresolved" in results[0].error
        assert results[4].success and results[5].success


class TestProposalResolution:

    @pytest.mark.asyncio
    async def test_discovery_when_proposal_unreadable(self, world, orchestrator, proposal_input):
        proposal_input.proposal_address = world.chain.new_address(0x55)

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert all(r.success for r in results)
        probe_splits = [tx for tx in world.chain.sent("splitPosition") if tx.args[2] == 1]
        assert len(probe_splits) == 2

    @pytest.mark.asyncio
    async def test_adapter_override(self, world, orchestrator, proposal_input):
        override = world.chain.register(FakeAdapter(world.chain, world.chain.new_address(0xAE)))
        override.outcomes = dict(world.adapter.outcomes)
        proposal_input.adapter_address = override.address

        await orchestrator.setup_futarchy_pools(proposal_input)

        assert {tx.to for tx in world.chain.sent("splitPosition")} == {override.address}
        assert orchestrator.adapter.adapter_address == world.adapter.address
        assert orchestrator.proposal_manager.adapter is orchestrator.adapter

    @pytest.mark.asyncio
    async def test_override_does_not_leak_into_next_run(self, world, orchestrator, proposal_input):
        override = world.chain.register(FakeAdapter(world.chain, world.chain.new_address(0xAE)))
        override.outcomes = dict(world.adapter.outcomes)

        await orchestrator.setup_futarchy_pools(replace(proposal_input, adapter_address=override.address))
        first_run_splits = len(world.chain.sent("splitPosition"))

        results = await orchestrator.setup_futarchy_pools(
            replace(proposal_input, force_add_liquidity=[1, 2, 3, 4, 5, 6])
        )

        assert all(r.success for r in results), [r.error for r in results]
        second_run = world.chain.sent("splitPosition")[first_run_splits:]
        assert second_run
        assert {tx.to for tx in second_run} == {world.adapter.address}

    @pytest.mark.asyncio
    async def test_discovery_uses_run_adapter(self, world, orchestrator, proposal_input):
        override = world.chain.register(FakeAdapter(world.chain, world.chain.new_address(0xAE)))
        override.outcomes = dict(world.adapter.outcomes)
        proposal_input.proposal_address = world.chain.new_address(0x55)
        proposal_input.adapter_address = override.address

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert all(r.success for r in results)
        assert {tx.to for tx in world.chain.sent("splitPosition")} == {override.address}


class TestDecisionsAndListeners:

    @pytest.mark.asyncio
    async def test_manual_mode_requires_decisions(self, orchestrator, proposal_input):
        with pytest.raises(ValueError, match="manual"):
            await orchestrator.setup_futarchy_pools(proposal_input, mode="manual")

    @pytest.mark.asyncio
    async def test_declined_run_sends_nothing(self, world, orchestrator, proposal_input):
        results = await orchestrator.setup_futarchy_pools(
            proposal_input, mode=ProvisioningMode.MANUAL, decisions=ScriptedDecisions(run=False)
        )
        assert results == []
        assert world.chain.transactions == []

    @pytest.mark.asyncio
    async def test_declined_pool_is_skipped(self, world, orchestrator, proposal_input):
        results = await orchestrator.setup_futarchy_pools(
            proposal_input, mode=ProvisioningMode.MANUAL, decisions=ScriptedDecisions(declined=[1])
        )
        assert results[0].status == PoolStatus.SKIPPED
        assert len(world.position_manager.positions) == 5

    @pytest.mark.asyncio
    async def test_listeners_notified_in_order(self, orchestrator, proposal_input):
        recorder = RecordingListener()
        orchestrator.add_listener(BrokenListener())
        orchestrator.add_listener(recorder)
        orchestrator.add_listener(LoggingResultListener())

        results = await orchestrator.setup_futarchy_pools(proposal_input)

        assert recorder.results == results

    @pytest.mark.asyncio
    async def test_automatic_decisions(self):
        decisions = AutomaticDecisions([2])
        config = Mock(pool_id=2)
        assert await decisions.add_to_existing_pool(config, "0x1") is True
        assert await decisions.add_to_existing_pool(Mock(pool_id=3), "0x1") is False
        assert await decisions.existing_pool_address(config) is None

    def test_pool_result_to_dict(self):
        result = PoolResult(pool_number=1, status=PoolStatus.SUCCESS, deviation=Decimal("0.5"))
        data = result.to_dict()
        assert data["status"] == "success"
        assert data["deviation"] == "0.5"
        assert result.success


class TestBuildProvisioner:

    def test_builds_swapr_graph_for_gnosis(self):
        config = ConfigManager(chain_id=100)

        orchestrator = build_provisioner(config, Mock(), Account.create())

        assert isinstance(orchestrator.pool_manager.amm, SingleTierAMM)
        assert orchestrator.adapter.adapter_address.lower() == config.default_adapter.lower()
        assert orchestrator.proposal_manager.adapter is orchestrator.adapter
        assert orchestrator.pool_manager.client.fallback_gas_price > 0
        assert any(isinstance(listener, LoggingResultListener) for listener in orchestrator.listeners)

    def test_adapter_override_at_build_time(self):
        adapter = "0x00000000000000000000000000000000000000ad"

        orchestrator = build_provisioner(
            ConfigManager(chain_id=100), Mock(), Account.create(), adapter_address=adapter
        )

        assert orchestrator.adapter.adapter_address.lower() == adapter
