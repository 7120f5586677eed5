"""Minimal ABIs for the contracts the client talks to.

Only the functions the client calls are listed.
"""

from eth_utils import keccak


def _param(type_: str, name: str = "", components: list | None = None) -> dict:
    param = {"name": name, "type": type_}
    if components is not None:
        param["components"] = components
    return param


def _fn(name: str, inputs: list, outputs: list, mutability: str = "view") -> dict:
    return {
        "type": "function",
        "name": name,
        "inputs": inputs,
        "outputs": outputs,
        "stateMutability": mutability,
    }


ERC20_ABI = [
    _fn("approve", [_param("address", "spender"), _param("uint256", "amount")],
        [_param("bool")], "nonpayable"),
    _fn("allowance", [_param("address", "owner"), _param("address", "spender")],
        [_param("uint256")]),
    _fn("balanceOf", [_param("address", "account")], [_param("uint256")]),
    _fn("decimals", [], [_param("uint8")]),
]

VAULT_ABI = [
    _fn("depositCollateral",
        [_param("address", "tokenCollateralAddress"), _param("uint256", "amountCollateral")],
        [], "nonpayable"),
    _fn("depositCollateralAndMintZusd",
        [_param("address", "tokenCollateralAddress"), _param("uint256", "amountCollateral"),
         _param("uint256", "amountZusdToMint")],
        [], "nonpayable"),
    _fn("mintZusd", [_param("uint256", "amountZusdToMint")], [], "nonpayable"),
    _fn("burnZusd", [_param("uint256", "amount")], [], "nonpayable"),
    _fn("redeemCollateral",
        [_param("address", "tokenCollateralAddress"), _param("uint256", "amountCollateral")],
        [], "nonpayable"),
    _fn("liquidate",
        [_param("address", "collateral"), _param("address", "user"),
         _param("uint256", "debtToCover")],
        [], "nonpayable"),
    _fn("getUserCollateralBalance", [_param("address", "user"), _param("address", "token")],
        [_param("uint256")]),
    _fn("getMintedZusd", [_param("address", "user")], [_param("uint256")]),
    _fn("getHealthFactor", [_param("address", "user")], [_param("uint256")]),
    _fn("getUsers", [], [_param("address[]")]),
]

NFT_ABI = [
    _fn("supportsInterface", [_param("bytes4", "interfaceId")], [_param("bool")]),
    _fn("balanceOf", [_param("address", "owner")], [_param("uint256")]),
    _fn("tokenOfOwnerByIndex", [_param("address", "owner"), _param("uint256", "index")],
        [_param("uint256")]),
    _fn("tokenURI", [_param("uint256", "tokenId")], [_param("string")]),
    _fn("ownerOf", [_param("uint256", "tokenId")], [_param("address")]),
    _fn("getEntryFee", [], [_param("uint256")]),
    _fn("tryLuck", [], [], "payable"),
    _fn("getAllPlayers", [], [_param("address[]")]),
    _fn("getRecentWinner", [], [_param("address")]),
    _fn("getRaffleState", [], [_param("uint8")]),
]

_EVM_TOKEN_AMOUNT = [_param("address", "token"), _param("uint256", "amount")]
_EVM2ANY_MESSAGE = [
    _param("bytes", "receiver"),
    _param("bytes", "data"),
    _param("tuple[]", "tokenAmounts", _EVM_TOKEN_AMOUNT),
    _param("address", "feeToken"),
    _param("bytes", "extraArgs"),
]

CCIP_ROUTER_ABI = [
    _fn("getFee",
        [_param("uint64", "destinationChainSelector"),
         _param("tuple", "message", _EVM2ANY_MESSAGE)],
        [_param("uint256", "fee")]),
    _fn("ccipSend",
        [_param("uint64", "destinationChainSelector"),
         _param("tuple", "message", _EVM2ANY_MESSAGE)],
        [_param("bytes32", "messageId")], "payable"),
]

# ERC-721 Enumerable interface id (ERC-165)
ERC721_ENUMERABLE_INTERFACE_ID = bytes.fromhex("780e9d63")

# Transfer(address,address,uint256); a mint is a Transfer from the zero address
TRANSFER_EVENT_TOPIC = "0x" + keccak(text="Transfer(address,address,uint256)").hex()

# Client._argsToExtraArgs tag for EVMExtraArgsV1
CCIP_EVM_EXTRA_ARGS_V1_TAG = bytes.fromhex("97a657c9")

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

ABI_BY_NAME = {
    "zusd": ERC20_ABI,
    "vault": VAULT_ABI,
    "nft": NFT_ABI,
    "messenger": CCIP_ROUTER_ABI,
}


def abi_for(name: str) -> list:
    """ABI for a logical contract name; unknown names are ERC-20 collateral tokens."""
    return ABI_BY_NAME.get(name, ERC20_ABI)
