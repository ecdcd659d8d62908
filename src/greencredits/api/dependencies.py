"""Collaborator wiring for the HTTP layer.

Supabase-backed stores are used when credentials are configured; otherwise the
process falls back to in-memory stores (useful for local development).
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from ..data.accounts_repository import SupabaseAccountDirectory
from ..data.booths_repository import RepositoryBoothDirectory
from ..db.supabase import get_supabase_client
from ..errors import PersistenceFailure
from ..models.domain import Operator
from ..persistence.database import SupabaseCreditLedger, SupabaseSubmissionStore
from ..persistence.memory import InMemoryAccountStore, InMemorySubmissionStore
from ..services.ports import BoothDirectory, CreditLedgerStore, IdentityResolver, OperatorDirectory, SubmissionStore
from ..services.rewards import RateTable, default_rate_table


@lru_cache(maxsize=1)
def _memory_submissions() -> InMemorySubmissionStore:
    return InMemorySubmissionStore()


@lru_cache(maxsize=1)
def _memory_accounts() -> InMemoryAccountStore:
    return InMemoryAccountStore()


def get_rate_table() -> RateTable:
    return default_rate_table()


@lru_cache(maxsize=1)
def get_booth_directory() -> BoothDirectory:
    return RepositoryBoothDirectory()


def get_submission_store() -> SubmissionStore:
    client = get_supabase_client()
    return SupabaseSubmissionStore(client) if client else _memory_submissions()


def get_identity_resolver() -> IdentityResolver:
    client = get_supabase_client()
    return SupabaseAccountDirectory(client) if client else _memory_accounts()


def get_operator_directory() -> OperatorDirectory:
    client = get_supabase_client()
    return SupabaseAccountDirectory(client) if client else _memory_accounts()


def get_credit_ledger() -> CreditLedgerStore:
    client = get_supabase_client()
    return SupabaseCreditLedger(client) if client else _memory_accounts()


def get_current_user_id(x_user_id: str = Header(..., description="Authenticated user id.")) -> str:
    return x_user_id


def get_current_operator(
    x_operator_id: str = Header(..., description="Authenticated booth operator id."),
    directory: OperatorDirectory = Depends(get_operator_directory),
) -> Operator:
    try:
        operator = directory.get_operator(x_operator_id)
    except PersistenceFailure as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    if operator is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unknown booth operator.")
    return operator
