"""Wallet session models.

The session holds a reference to the wallet's signer; key material stays
with the wallet provider.
"""

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field

from zephyra.models.base import ServiceResult
from zephyra.wallet.signer import Signer


@dataclass(frozen=True)
class Session:
    """Connected wallet session.

    Address and network label exist only together with a signer, so a
    missing session is represented by ``None`` rather than empty fields.
    """

    signer: Signer
    address: str
    network_id: int
    network_label: str

    def info(self) -> "SessionInfo":
        return SessionInfo(
            address=self.address,
            network_id=self.network_id,
            network_label=self.network_label,
        )


class SessionInfo(BaseModel):
    """Public view of a session (no signer reference)."""

    address: str = Field(..., description="Connected wallet address (checksummed)")
    network_id: int = Field(..., description="Active chain ID")
    network_label: str = Field(..., description="Human-readable network name")


class ConnectResult(ServiceResult):
    """Outcome of a connect attempt."""

    session: Optional[SessionInfo] = Field(None, description="Session if connected")
    redirected: bool = Field(default=False, description="Whether the dashboard redirect fired")
