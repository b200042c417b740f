from __future__ import annotations

"""Pydantic request schemas for the public API.

These exist only for HTTP input validation; tx semantics live in
geyser.runtime.
"""

from typing import Any, Dict

from pydantic import BaseModel, Field


class TxSubmitRequest(BaseModel):
    tx_type: str = Field(..., min_length=1, description="Tx type, e.g. STAKE")
    signer: str = Field(..., min_length=1, description="Submitting account")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Tx-specific fields")
    system: bool = Field(default=False, description="Must be false over public HTTP")
    nonce: int = Field(default=0, ge=0, description="Signer's next nonce")
    sig: str = Field(default="", description="ed25519 signature over the canonical tx message")

    # Extra fields are ignored (forward compatible)
    model_config = {"extra": "ignore"}

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "tx_type": self.tx_type,
            "signer": self.signer,
            "payload": dict(self.payload),
            "system": bool(self.system),
            "nonce": int(self.nonce),
            "sig": self.sig,
        }
