"""
Pydantic schemas for API requests and responses
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ..account import AccountId, validate_balance


# u128 amounts exceed JSON number precision, so they travel as strings
AMOUNT_PATTERN = r"^[0-9]{1,39}$"


class AmountField(BaseModel):
    value: str = Field(..., pattern=AMOUNT_PATTERN, description="Unsigned integer amount as decimal string")

    def amount(self) -> int:
        return validate_balance(int(self.value))


class TransferRequest(AmountField):
    to: str = Field(..., description="Recipient account id (hex)")

    def recipient(self) -> AccountId:
        return AccountId.from_hex(self.to)


class ApproveRequest(AmountField):
    spender: str = Field(..., description="Spender account id (hex)")

    def spender_account(self) -> AccountId:
        return AccountId.from_hex(self.spender)


class TransferFromRequest(AmountField):
    owner: str = Field(..., description="Account whose tokens are moved (hex)")
    to: str = Field(..., description="Recipient account id (hex)")

    def owner_account(self) -> AccountId:
        return AccountId.from_hex(self.owner)

    def recipient(self) -> AccountId:
        return AccountId.from_hex(self.to)


class BalanceResponse(BaseModel):
    account: str
    balance: str


class AllowanceResponse(BaseModel):
    owner: str
    spender: str
    allowance: str


class TotalSupplyResponse(BaseModel):
    total_supply: str


class CallResponse(BaseModel):
    ok: bool
    message: str
    error: Optional[str] = None
    detail: Optional[str] = None
    requested: Optional[str] = None
    available: Optional[str] = None
    events: List[Dict[str, Any]] = []
    correlation_id: Optional[str] = None
