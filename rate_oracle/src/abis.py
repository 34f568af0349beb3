"""Minimal contract ABIs for the collaborators the engine reads from."""

_ROUND_DATA_OUTPUTS = [
    {"internalType": "uint80", "name": "roundId", "type": "uint80"},
    {"internalType": "int256", "name": "answer", "type": "int256"},
    {"internalType": "uint256", "name": "startedAt", "type": "uint256"},
    {"internalType": "uint256", "name": "updatedAt", "type": "uint256"},
    {"internalType": "uint80", "name": "answeredInRound", "type": "uint80"},
]

AGGREGATOR_V2V3_ABI = [
    {
        "inputs": [],
        "name": "decimals",
        "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "description",
        "outputs": [{"internalType": "string", "name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "latestRound",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [],
        "name": "latestRoundData",
        "outputs": _ROUND_DATA_OUTPUTS,
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint80", "name": "_roundId", "type": "uint80"}],
        "name": "getRoundData",
        "outputs": _ROUND_DATA_OUTPUTS,
        "stateMutability": "view",
        "type": "function",
    },
]

FLAGS_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "subject", "type": "address"}],
        "name": "getFlag",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address[]", "name": "subjects", "type": "address[]"}],
        "name": "getFlags",
        "outputs": [{"internalType": "bool[]", "name": "", "type": "bool[]"}],
        "stateMutability": "view",
        "type": "function",
    },
]

CIRCUIT_BREAKER_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "oracleAddress", "type": "address"},
            {"internalType": "uint256", "name": "value", "type": "uint256"},
        ],
        "name": "probeCircuitBreaker",
        "outputs": [{"internalType": "bool", "name": "circuitBroken", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "oracleAddress", "type": "address"},
            {"internalType": "uint256", "name": "value", "type": "uint256"},
        ],
        "name": "isInvalid",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "view",
        "type": "function",
    },
]

ABIS = {
    "AggregatorV2V3Interface": AGGREGATOR_V2V3_ABI,
    "Flags": FLAGS_ABI,
    "CircuitBreaker": CIRCUIT_BREAKER_ABI,
}
