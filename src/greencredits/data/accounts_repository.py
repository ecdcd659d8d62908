"""User and operator lookups against Supabase."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..db.supabase import get_supabase_client
from ..errors import PersistenceFailure
from ..models.domain import Operator, User


def user_from_row(row: Mapping[str, Any]) -> User:
    return User(
        user_id=str(row["user_id"]),
        name=str(row.get("name") or ""),
        username=str(row.get("username") or ""),
        green_credits=int(row.get("green_credits") or 0),
        total_waste_kg=float(row.get("total_waste_kg") or 0.0),
        qr_code=row.get("qr_code"),
    )


def operator_from_row(row: Mapping[str, Any]) -> Operator:
    return Operator(
        operator_id=str(row["operator_id"]),
        name=str(row.get("name") or ""),
        booth_ids=tuple(str(booth_id) for booth_id in (row.get("booth_ids") or ())),
        is_super_admin=bool(row.get("is_super_admin")),
    )


class SupabaseAccountDirectory:
    """Resolves user QR tokens and operator records from the ``users`` and ``operators`` tables."""

    def __init__(self, client: Any = None) -> None:
        self.client = client or get_supabase_client()
        if self.client is None:
            raise ValueError("Supabase is not configured.")

    def resolve_user_by_token(self, token: str) -> Optional[User]:
        token = (token or "").strip()
        if not token:
            return None
        try:
            response = (
                self.client.table("users")
                .select("*")
                .eq("qr_code", token)
                .eq("is_active", True)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logging.error(f"User lookup failed: {e}")
            raise PersistenceFailure(f"User lookup failed: {e}") from e
        if not response.data:
            return None
        return user_from_row(response.data[0])

    def get_operator(self, operator_id: str) -> Optional[Operator]:
        try:
            response = self.client.table("operators").select("*").eq("operator_id", operator_id).limit(1).execute()
        except Exception as e:
            logging.error(f"Operator lookup failed: {e}")
            raise PersistenceFailure(f"Operator lookup failed: {e}") from e
        if not response.data:
            return None
        return operator_from_row(response.data[0])
