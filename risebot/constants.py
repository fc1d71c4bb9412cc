NATIVE_SYMBOL = "ETH"

# Fixed gas units per action
GAS_WRAP = 95312
GAS_GATEWAY = 310079
GAS_APPROVE = 100000
GAS_SWAP = 300000

SWAP_DEADLINE_SECONDS = 3600

TASK_TITLES = {
    "1": "Faucet",
    "2": "Share ETH to wallets.txt",
    "3": "Deposit ETH to Gateway (Inari Finance)",
    "4": "Withdraw WETH from Gateway (Inari Finance)",
    "5": "Wrap ETH => WETH (GasPump)",
    "6": "Unwrap WETH => ETH (GasPump)",
    "7": "Swap WETH to USDC (GasPump)",
    "8": "Swap USDC to WETH (GasPump)",
    "9": "Auto All",
}

RUN_ALL_TASK = "9"

# DODO mixSwap route through the WETH/USDC pool
MIX_ADAPTERS = ["0x0f9053E174c123098C17e60A2B1FAb3b303f9e29"]
MIX_PAIRS = ["0xc7E2B7C2519bB911bA4a1eeE246Cb05ACb0b1df1"]
MORE_INFOS = [b"\x00"]
FEE_DATA = b"\x00" * 64

ERC20_ABI = [
    {"inputs": [{"internalType": "address", "name": "account", "type": "address"}], "name": "balanceOf", "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [], "name": "decimals", "outputs": [{"internalType": "uint8", "name": "", "type": "uint8"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"internalType": "address", "name": "owner", "type": "address"}, {"internalType": "address", "name": "spender", "type": "address"}], "name": "allowance", "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}], "stateMutability": "view", "type": "function"},
    {"inputs": [{"internalType": "address", "name": "spender", "type": "address"}, {"internalType": "uint256", "name": "amount", "type": "uint256"}], "name": "approve", "outputs": [{"internalType": "bool", "name": "", "type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
    {"inputs": [{"internalType": "address", "name": "to", "type": "address"}, {"internalType": "uint256", "name": "amount", "type": "uint256"}], "name": "transfer", "outputs": [{"internalType": "bool", "name": "", "type": "bool"}], "stateMutability": "nonpayable", "type": "function"},
]

WETH_ABI = ERC20_ABI + [
    {"inputs": [], "name": "deposit", "outputs": [], "stateMutability": "payable", "type": "function"},
    {"inputs": [{"internalType": "uint256", "name": "wad", "type": "uint256"}], "name": "withdraw", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
]

GATEWAY_ABI = [
    {"inputs": [{"internalType": "address", "name": "", "type": "address"}, {"internalType": "address", "name": "onBehalfOf", "type": "address"}, {"internalType": "uint16", "name": "referralCode", "type": "uint16"}], "name": "depositETH", "outputs": [], "stateMutability": "payable", "type": "function"},
    {"inputs": [{"internalType": "address", "name": "", "type": "address"}, {"internalType": "uint256", "name": "amount", "type": "uint256"}, {"internalType": "address", "name": "to", "type": "address"}], "name": "withdrawETH", "outputs": [], "stateMutability": "nonpayable", "type": "function"},
]

DODO_ROUTE_PROXY_ABI = [
    {"inputs": [{"internalType": "address", "name": "fromToken", "type": "address"}, {"internalType": "address", "name": "toToken", "type": "address"}, {"internalType": "uint256", "name": "fromTokenAmount", "type": "uint256"}, {"internalType": "uint256", "name": "expReturnAmount", "type": "uint256"}, {"internalType": "uint256", "name": "minReturnAmount", "type": "uint256"}, {"internalType": "address[]", "name": "mixAdapters", "type": "address[]"}, {"internalType": "address[]", "name": "mixPairs", "type": "address[]"}, {"internalType": "address[]", "name": "assetTo", "type": "address[]"}, {"internalType": "uint256", "name": "directions", "type": "uint256"}, {"internalType": "bytes[]", "name": "moreInfos", "type": "bytes[]"}, {"internalType": "bytes", "name": "feeData", "type": "bytes"}, {"internalType": "uint256", "name": "deadLine", "type": "uint256"}], "name": "mixSwap", "outputs": [{"internalType": "uint256", "name": "receiveAmount", "type": "uint256"}], "stateMutability": "payable", "type": "function"},
]
