"""
Token Ledger

A fungible-token ledger: account balances, delegated spending allowances
and the transfer operations that move value between accounts while the
total supply is conserved.
"""

__version__ = "1.0.0"
