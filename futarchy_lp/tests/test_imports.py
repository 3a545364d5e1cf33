"""
Each module must import on its own in a fresh interpreter.

Import order inside one test session hides cycles between sub-packages, so
every module is imported in a separate process.
"""

import subprocess
import sys
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]

MODULES = [
    "futarchy_lp",
    "futarchy_lp.pricing.units",
    "futarchy_lp.pricing.price_model",
    "futarchy_lp.pricing.v3_math",
    "futarchy_lp.tokens.models",
    "futarchy_lp.tokens.ordering",
    "futarchy_lp.tokens.token_manager",
    "futarchy_lp.adapter.futarchy_adapter",
    "futarchy_lp.pools.amm",
    "futarchy_lp.pools.pool_manager",
    "futarchy_lp.proposals.proposal_manager",
    "futarchy_lp.core.orchestrator.base",
    "futarchy_lp.core.orchestrator.orchestrator",
    "futarchy_lp.config.manager",
    "futarchy_lp.chain.client",
]


@pytest.mark.parametrize("module", MODULES)
def test_module_imports_standalone(module):
    completed = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        cwd=REPO_ROOT,
        capture_output=True,
        text=True,
    )
    assert completed.returncode == 0, completed.stderr


def test_public_api():
    import futarchy_lp

    assert futarchy_lp.__version__ == "0.1.0"
    assert futarchy_lp.build_provisioner is not None
    assert futarchy_lp.ProposalInput is not None
