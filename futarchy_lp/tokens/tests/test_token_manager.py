"""
Tests for the token metadata cache, balances and allowances.
"""

import pytest

from ...errors import ProvisioningError
from ..token_manager import TokenManager


class TestTokenMetadata:

    @pytest.mark.asyncio
    async def test_load_token(self, world, token_manager):
        token = await token_manager.load_token(world.company.address.lower())
        assert token.symbol == "GNO"
        assert token.decimals == 18
        assert token.address == world.company.address

    @pytest.mark.asyncio
    async def test_cache_is_case_insensitive(self, world, token_manager):
        first = await token_manager.load_token(world.currency.address)
        world.currency._symbol = "renamed"
        second = await token_manager.load_token(world.currency.address.lower())
        assert second is first
        assert second.symbol == "sDAI"
        assert token_manager.symbol_of(world.currency.address) == "sDAI"

    @pytest.mark.asyncio
    async def test_unknown_token(self, world, token_manager):
        missing = world.chain.new_address(0x99)
        with pytest.raises(ProvisioningError, match="metadata"):
            await token_manager.load_token(missing)
        assert token_manager.symbol_of(missing) == missing

    @pytest.mark.asyncio
    async def test_load_tokens_keeps_order(self, world, token_manager):
        tokens = await token_manager.load_tokens([world.no_currency.address, world.company.address])
        assert [t.symbol for t in tokens] == ["NO_sDAI", "GNO"]


class TestBalances:

    @pytest.mark.asyncio
    async def test_signer_balance_is_cached_on_token(self, world, token_manager):
        balance = await token_manager.get_balance(world.company.address)
        assert balance == 1000 * 10**18
        assert token_manager.get_cached(world.company.address).balance == balance

    @pytest.mark.asyncio
    async def test_other_owner_balance(self, world, token_manager):
        other = world.chain.new_address(0x77)
        world.company.mint(other, 5)
        assert await token_manager.get_balance(world.company.address, owner=other) == 5
        assert token_manager.get_cached(world.company.address).balance is None

    @pytest.mark.asyncio
    async def test_refresh_balances_deduplicates(self, world, token_manager):
        balances = await token_manager.refresh_balances(
            [world.company.address, world.company.address.lower(), world.yes_company.address]
        )
        assert balances == {
            world.company.address.lower(): 1000 * 10**18,
            world.yes_company.address.lower(): 0,
        }


class TestAllowances:

    @pytest.mark.asyncio
    async def test_approves_when_short(self, world, token_manager):
        spender = world.adapter.address
        result = await token_manager.ensure_allowance(world.company.address, spender, 100, "Adapter")

        assert result is not None
        approvals = world.chain.sent("approve")
        assert len(approvals) == 1
        assert approvals[0].args[1] == 100
        assert await token_manager.get_allowance(world.company.address, spender) == 100

    @pytest.mark.asyncio
    async def test_skips_when_sufficient(self, world, token_manager):
        spender = world.adapter.address
        world.company.allowances[(world.chain.signer.lower(), spender.lower())] = 500
        assert await token_manager.ensure_allowance(world.company.address, spender, 100) is None
        assert world.chain.sent("approve") == []

    @pytest.mark.asyncio
    async def test_resets_non_zero_allowance_first(self, world, token_manager):
        spender = world.adapter.address
        world.company.allowances[(world.chain.signer.lower(), spender.lower())] = 10
        await token_manager.ensure_allowance(world.company.address, spender, 100)

        assert [tx.args[1] for tx in world.chain.sent("approve")] == [0, 100]

    def test_default_gas_limit(self, world):
        assert TokenManager(world.client).approve_gas_limit == 100000
