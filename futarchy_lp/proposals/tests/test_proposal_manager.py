"""
Tests for proposal loading, conditional token discovery and creation.
"""

import pytest

from ...errors import ProposalAddressUnresolved, ProvisioningError
from ...tests.fakes import ZERO_ADDRESS
from ...tokens.models import TokenRole
from ..proposal_manager import ProposalManager


class TestLoadProposal:

    @pytest.mark.asyncio
    async def test_load_proposal(self, world, proposal_manager):
        proposal = await proposal_manager.load_proposal(world.proposal.address.lower())

        assert proposal.address == world.proposal.address
        assert proposal.market_name == "Will GIP-1 pass?"
        assert proposal.company_token == world.company.address
        assert proposal.currency_token == world.currency.address
        assert proposal.token_for_role(TokenRole.YES_COMPANY) == world.yes_company.address
        assert proposal.token_for_role(TokenRole.NO_CURRENCY) == world.no_currency.address
        assert proposal.unresolved_roles == []

    @pytest.mark.asyncio
    async def test_load_missing_proposal(self, world, proposal_manager):
        with pytest.raises(ProvisioningError, match="Failed to load proposal"):
            await proposal_manager.load_proposal(world.chain.new_address(0x55))


class TestDiscovery:
    """Probe-split classification of conditional tokens."""

    @pytest.mark.asyncio
    async def test_discovers_all_four_tokens(self, world, proposal_manager):
        proposal = await proposal_manager.discover_conditional_tokens(
            world.proposal.address, world.company.address, world.currency.address
        )

        assert proposal.yes_company_token == world.yes_company.address
        assert proposal.no_company_token == world.no_company.address
        assert proposal.yes_currency_token == world.yes_currency.address
        assert proposal.no_currency_token == world.no_currency.address
        assert proposal.market_name == "unknown"
        assert [tx.args[2] for tx in world.chain.sent("splitPosition")] == [1, 1]

    @pytest.mark.asyncio
    async def test_ignores_adapter_and_native_token_logs(self, world, proposal_manager):
        world.adapter.noise_logs = True

        proposal = await proposal_manager.discover_conditional_tokens(
            world.proposal.address, world.company.address, world.currency.address
        )

        assert proposal.unresolved_roles == []

    @pytest.mark.asyncio
    async def test_unknown_collateral_leaves_slots_empty(self, world, proposal_manager):
        stray = world.chain.add_token("STRAY")
        stray.mint(world.chain.signer, 10)

        proposal = await proposal_manager.discover_conditional_tokens(
            world.proposal.address, stray.address, world.currency.address
        )

        assert proposal.unresolved_roles == [TokenRole.YES_COMPANY, TokenRole.NO_COMPANY]
        assert proposal.yes_currency_token == world.yes_currency.address

    @pytest.mark.asyncio
    async def test_requires_adapter(self, world, token_manager):
        manager = ProposalManager(world.client, token_manager)
        with pytest.raises(ValueError):
            await manager.discover_conditional_tokens(
                world.proposal.address, world.company.address, world.currency.address
            )


class TestCreateProposal:

    @pytest.mark.asyncio
    async def test_address_from_event(self, world, proposal_manager):
        result = await proposal_manager.create_proposal(
            "Will GIP-2 pass?", world.company.address, world.currency.address, opening_time=1700000000
        )

        address, params = world.futarchy_factory.created[0]
        assert result.proposal_address == address
        assert result.opening_time == 1700000000
        assert params[0] == "Will GIP-2 pass?"
        assert params[3:] == ("crypto, kleros, governance", "en", 10**18, 1700000000)

        tx = world.chain.sent("createProposal")[0]
        assert tx.min_gas_limit == 5000000

    @pytest.mark.asyncio
    async def test_address_from_prediction(self, world, proposal_manager):
        world.futarchy_factory.emit_event = False

        result = await proposal_manager.create_proposal(
            "Will GIP-2 pass?", world.company.address, world.currency.address, category="dao"
        )

        assert result.proposal_address == world.futarchy_factory.created[0][0]
        assert world.futarchy_factory.created[0][1][3] == "dao"

    @pytest.mark.asyncio
    async def test_unresolved_address(self, world, proposal_manager, monkeypatch):
        world.futarchy_factory.emit_event = False
        monkeypatch.setattr(world.futarchy_factory, "static_createProposal", lambda params: ZERO_ADDRESS)

        with pytest.raises(ProposalAddressUnresolved) as exc_info:
            await proposal_manager.create_proposal("Q", world.company.address, world.currency.address)
        assert exc_info.value.tx_hash == world.chain.sent("createProposal")[0].tx_hash

    @pytest.mark.asyncio
    async def test_requires_factory(self, world, token_manager):
        manager = ProposalManager(world.client, token_manager)
        with pytest.raises(ValueError, match="factory"):
            await manager.create_proposal("Q", world.company.address, world.currency.address)
