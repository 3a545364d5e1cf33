"""
Contract ABIs used by the provisioning engine.

Only the functions and events that are actually called or decoded are
declared. Position manager, factory and pool ABIs differ between the
fee-tiered (Uniswap V3) and single-tier (Algebra/Swapr) AMMs.
"""

from typing import Dict, List, Sequence, Tuple

Param = Tuple[str, str]


def _params(params: Sequence[Param]) -> List[Dict]:
    return [{"name": name, "type": typ, "internalType": typ} for name, typ in params]


def _tuple(name: str, components: Sequence[Param]) -> Dict:
    return {
        "name": name,
        "type": "tuple",
        "internalType": "struct",
        "components": _params(components),
    }


def function(
    name: str,
    inputs: Sequence = (),
    outputs: Sequence = (),
    mutability: str = "view",
) -> Dict:
    """ABI entry for a function. Inputs may mix (name, type) pairs and tuple dicts."""
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [p if isinstance(p, dict) else _params([p])[0] for p in inputs],
        "outputs": [p if isinstance(p, dict) else _params([p])[0] for p in outputs],
    }


def event(name: str, inputs: Sequence[Tuple[str, str, bool]]) -> Dict:
    """ABI entry for an event from (name, type, indexed) triples."""
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": n, "type": t, "internalType": t, "indexed": indexed}
            for n, t, indexed in inputs
        ],
    }


ERC20_ABI = [
    function("name", outputs=[("", "string")]),
    function("symbol", outputs=[("", "string")]),
    function("decimals", outputs=[("", "uint8")]),
    function("balanceOf", [("account", "address")], [("", "uint256")]),
    function("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")]),
    function(
        "approve",
        [("spender", "address"), ("amount", "uint256")],
        [("", "bool")],
        mutability="nonpayable",
    ),
    event(
        "Transfer",
        [("from", "address", True), ("to", "address", True), ("value", "uint256", False)],
    ),
]

FUTARCHY_ADAPTER_ABI = [
    function(
        "splitPosition",
        [("proposal", "address"), ("collateralToken", "address"), ("amount", "uint256")],
        mutability="nonpayable",
    ),
    function(
        "mergePositions",
        [("proposal", "address"), ("collateralToken", "address"), ("amount", "uint256")],
        mutability="nonpayable",
    ),
]

FUTARCHY_PROPOSAL_ABI = [
    function("marketName", outputs=[("", "string")]),
    function("collateralToken1", outputs=[("", "address")]),
    function("collateralToken2", outputs=[("", "address")]),
    function(
        "wrappedOutcome",
        [("index", "uint256")],
        [("wrapped1155", "address"), ("data", "bytes")],
    ),
]

PROPOSAL_CREATION_PARAMS = _tuple(
    "params",
    [
        ("marketName", "string"),
        ("companyToken", "address"),
        ("currencyToken", "address"),
        ("category", "string"),
        ("lang", "string"),
        ("minBond", "uint256"),
        ("openingTime", "uint32"),
    ],
)

FUTARCHY_FACTORY_ABI = [
    function(
        "createProposal",
        [PROPOSAL_CREATION_PARAMS],
        [("", "address")],
        mutability="nonpayable",
    ),
    function("proposals", [("index", "uint256")], [("", "address")]),
    function("marketsCount", outputs=[("", "uint256")]),
    event("ProposalCreated", [("proposal", "address", True)]),
]

_MINT_OUTPUTS = [
    ("tokenId", "uint256"),
    ("liquidity", "uint128"),
    ("amount0", "uint256"),
    ("amount1", "uint256"),
]

UNISWAP_POSITION_MANAGER_ABI = [
    function("factory", outputs=[("", "address")]),
    function(
        "createAndInitializePoolIfNecessary",
        [("token0", "address"), ("token1", "address"), ("fee", "uint24"), ("sqrtPriceX96", "uint160")],
        [("pool", "address")],
        mutability="payable",
    ),
    function(
        "mint",
        [
            _tuple(
                "params",
                [
                    ("token0", "address"),
                    ("token1", "address"),
                    ("fee", "uint24"),
                    ("tickLower", "int24"),
                    ("tickUpper", "int24"),
                    ("amount0Desired", "uint256"),
                    ("amount1Desired", "uint256"),
                    ("amount0Min", "uint256"),
                    ("amount1Min", "uint256"),
                    ("recipient", "address"),
                    ("deadline", "uint256"),
                ],
            )
        ],
        _MINT_OUTPUTS,
        mutability="payable",
    ),
]

ALGEBRA_POSITION_MANAGER_ABI = [
    function("factory", outputs=[("", "address")]),
    function(
        "createAndInitializePoolIfNecessary",
        [("token0", "address"), ("token1", "address"), ("sqrtPriceX96", "uint160")],
        [("pool", "address")],
        mutability="payable",
    ),
    function(
        "mint",
        [
            _tuple(
                "params",
                [
                    ("token0", "address"),
                    ("token1", "address"),
                    ("tickLower", "int24"),
                    ("tickUpper", "int24"),
                    ("amount0Desired", "uint256"),
                    ("amount1Desired", "uint256"),
                    ("amount0Min", "uint256"),
                    ("amount1Min", "uint256"),
                    ("recipient", "address"),
                    ("deadline", "uint256"),
                ],
            )
        ],
        _MINT_OUTPUTS,
        mutability="payable",
    ),
]

UNISWAP_FACTORY_ABI = [
    function(
        "getPool",
        [("tokenA", "address"), ("tokenB", "address"), ("fee", "uint24")],
        [("pool", "address")],
    ),
    function(
        "createPool",
        [("tokenA", "address"), ("tokenB", "address"), ("fee", "uint24")],
        [("pool", "address")],
        mutability="nonpayable",
    ),
    event(
        "PoolCreated",
        [
            ("token0", "address", True),
            ("token1", "address", True),
            ("fee", "uint24", True),
            ("tickSpacing", "int24", False),
            ("pool", "address", False),
        ],
    ),
]

ALGEBRA_FACTORY_ABI = [
    function("poolByPair", [("tokenA", "address"), ("tokenB", "address")], [("pool", "address")]),
    function(
        "createPool",
        [("tokenA", "address"), ("tokenB", "address")],
        [("pool", "address")],
        mutability="nonpayable",
    ),
    event(
        "Pool",
        [("token0", "address", True), ("token1", "address", True), ("pool", "address", False)],
    ),
]

_POOL_COMMON = [
    function("token0", outputs=[("", "address")]),
    function("token1", outputs=[("", "address")]),
    function("tickSpacing", outputs=[("", "int24")]),
    function("initialize", [("sqrtPriceX96", "uint160")], mutability="nonpayable"),
    event("Initialize", [("sqrtPriceX96", "uint160", False), ("tick", "int24", False)]),
]

UNISWAP_POOL_ABI = _POOL_COMMON + [
    function(
        "slot0",
        outputs=[
            ("sqrtPriceX96", "uint160"),
            ("tick", "int24"),
            ("observationIndex", "uint16"),
            ("observationCardinality", "uint16"),
            ("observationCardinalityNext", "uint16"),
            ("feeProtocol", "uint8"),
            ("unlocked", "bool"),
        ],
    ),
    function("fee", outputs=[("", "uint24")]),
]

ALGEBRA_POOL_ABI = _POOL_COMMON + [
    function(
        "globalState",
        outputs=[
            ("price", "uint160"),
            ("tick", "int24"),
            ("feeZto", "uint16"),
            ("feeOtz", "uint16"),
            ("timepointIndex", "uint16"),
            ("communityFeeToken0", "uint8"),
            ("unlocked", "bool"),
        ],
    ),
]
