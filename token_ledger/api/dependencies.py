"""
Request dependencies: the hosted ledger and the calling account
"""

from typing import Optional
from fastapi import Header, HTTPException

from ..account import AccountId
from ..host import LedgerHost


# Global host instance, created from configuration on first use
_host: Optional[LedgerHost] = None


def get_host() -> LedgerHost:
    global _host
    if _host is None:
        _host = LedgerHost.from_config()
    return _host


def set_host(host: Optional[LedgerHost]) -> None:
    """Replace the global host (used by create_app and tests)"""
    global _host
    _host = host


def parse_account(value: str) -> AccountId:
    try:
        return AccountId.from_hex(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid account id: {value}")


def get_caller(x_caller: str = Header(..., description="Hex account id of the caller")) -> AccountId:
    """Caller identity supplied by the client"""
    return parse_account(x_caller)
