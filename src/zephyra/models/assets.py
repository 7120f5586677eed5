"""Asset descriptors."""

from pydantic import BaseModel, ConfigDict, Field


class AssetDescriptor(BaseModel):
    """A token the protocol knows about. Immutable once loaded."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Token symbol (WETH, WBTC, ZUSD)")
    contract_address: str = Field(..., description="Token contract address")
    decimals: int = Field(..., ge=0, description="Base unit exponent")
