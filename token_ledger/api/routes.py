"""
Token endpoints
"""

from fastapi import APIRouter, HTTPException, Depends, Header, Query
from fastapi.responses import JSONResponse
from typing import Optional

from .dependencies import get_caller, get_host, parse_account
from .schemas import (
    AllowanceResponse, ApproveRequest, BalanceResponse, CallResponse,
    TotalSupplyResponse, TransferFromRequest, TransferRequest
)
from ..account import AccountId
from ..host import CallOutcome, LedgerHost


router = APIRouter()


def _respond(outcome: CallOutcome):
    if outcome.ok:
        return outcome.to_dict()
    # Ledger rejections are normal outcomes, reported as a conflict with current state
    return JSONResponse(status_code=409, content=outcome.to_dict())


def _dispatch(host: LedgerHost, caller: AccountId, message: str,
              correlation_id: Optional[str], **args):
    try:
        outcome = host.call(caller, message, correlation_id=correlation_id, **args)
    except (ValueError, TypeError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _respond(outcome)


@router.get("/total-supply", response_model=TotalSupplyResponse)
def total_supply(host: LedgerHost = Depends(get_host)):
    """Get the total token supply"""
    return {"total_supply": str(host.total_supply())}


@router.get("/balances/{account}", response_model=BalanceResponse)
def balance_of(account: str, host: LedgerHost = Depends(get_host)):
    """Get an account's balance (0 for unknown accounts)"""
    account_id = parse_account(account)
    return {"account": account_id.to_hex(), "balance": str(host.balance_of(account_id))}


@router.get("/allowances/{owner}/{spender}", response_model=AllowanceResponse)
def allowance(owner: str, spender: str, host: LedgerHost = Depends(get_host)):
    """Get how much spender may still move out of owner's balance"""
    owner_id = parse_account(owner)
    spender_id = parse_account(spender)
    return {
        "owner": owner_id.to_hex(),
        "spender": spender_id.to_hex(),
        "allowance": str(host.allowance(owner_id, spender_id))
    }


@router.get("/events")
def list_events(
    event: Optional[str] = Query(None, description="Filter by event name (Transfer, Approval)"),
    host: LedgerHost = Depends(get_host)
):
    """
    Events published by this server process, oldest first

    The event log is kept in memory from host start. It is not a history of
    the ledger: events from before a restart are not returned.
    """
    records = host.events(event)
    return {"events": [record.to_dict() for record in records], "count": len(records)}


@router.post("/transfer", response_model=CallResponse)
def transfer(
    request: TransferRequest,
    caller: AccountId = Depends(get_caller),
    x_correlation_id: Optional[str] = Header(None),
    host: LedgerHost = Depends(get_host)
):
    """Transfer tokens from the caller to another account"""
    try:
        to, value = request.recipient(), request.amount()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _dispatch(host, caller, "transfer", x_correlation_id, to=to, value=value)


@router.post("/approve", response_model=CallResponse)
def approve(
    request: ApproveRequest,
    caller: AccountId = Depends(get_caller),
    x_correlation_id: Optional[str] = Header(None),
    host: LedgerHost = Depends(get_host)
):
    """Allow a spender to move up to value of the caller's tokens"""
    try:
        spender, value = request.spender_account(), request.amount()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _dispatch(host, caller, "approve", x_correlation_id, spender=spender, value=value)


@router.post("/transfer-from", response_model=CallResponse)
def transfer_from(
    request: TransferFromRequest,
    caller: AccountId = Depends(get_caller),
    x_correlation_id: Optional[str] = Header(None),
    host: LedgerHost = Depends(get_host)
):
    """Transfer tokens out of owner's account using the caller's allowance"""
    try:
        owner, to, value = request.owner_account(), request.recipient(), request.amount()
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _dispatch(host, caller, "transfer_from", x_correlation_id,
                     from_account=owner, to=to, value=value)
