"""
Simple DAO - governance engine for a small fixed-membership organization

Tracks an internal token balance per member and runs proposal voting with
majority outcomes and voting windows measured in blocks. State is
event-sourced: every change is an immutable event in an append-only log,
and balances, membership and proposals are rebuilt from it.
"""

from simple_dao.dao import DAO

__version__ = "0.1.0"
__all__ = ["DAO", "__version__"]
