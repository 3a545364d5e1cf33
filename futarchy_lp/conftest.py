"""
Shared pytest fixtures: an in-memory chain and the managers built on it.
"""

import pytest

from .adapter.futarchy_adapter import FutarchyAdapter
from .core.orchestrator.base import ProposalInput, TokenRef
from .proposals.proposal_manager import ProposalManager
from .tests.fakes import build_world, make_orchestrator, make_pool_manager
from .tokens.token_manager import TokenManager


@pytest.fixture
def world():
    """Uniswap-style world with a funded signer and a ready proposal."""
    return build_world(fee_tiered=True)


@pytest.fixture
def swapr_world():
    """Algebra-style (single fee tier) world."""
    return build_world(fee_tiered=False)


@pytest.fixture
def token_manager(world):
    return TokenManager(world.client)


@pytest.fixture
def futarchy_adapter(world, token_manager):
    return FutarchyAdapter(world.client, token_manager, world.adapter.address)


@pytest.fixture
def pool_manager(world, token_manager):
    return make_pool_manager(world, token_manager)


@pytest.fixture
def proposal_manager(world, token_manager, futarchy_adapter):
    return ProposalManager(
        world.client,
        token_manager,
        adapter=futarchy_adapter,
        factory_address=world.futarchy_factory.address,
    )


@pytest.fixture
def orchestrator(world):
    return make_orchestrator(world)


@pytest.fixture
def proposal_input(world):
    return ProposalInput(
        proposal_address=world.proposal.address,
        company_token=TokenRef(world.company.address, "GNO"),
        currency_token=TokenRef(world.currency.address, "sDAI"),
        spot_price="0.05",
        event_probability="0.5",
        impact=10,
        liquidity_amounts=[1, 1, 1, 1, 1, 1],
    )
