"""Supabase client for Python backend."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.info("Supabase credentials not configured; using in-memory stores")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Tables used by the service:
#
#   booths(booth_id, name, address, area, latitude, longitude, status,
#          accepted_waste_types text[], open_time, close_time, closed_days text[],
#          is_24h, contact_number, qr_code, max_kg_per_day, kg_today, load_date)
#   users(user_id, name, username, green_credits, total_waste_kg, qr_code, is_active)
#   operators(operator_id, name, booth_ids text[], is_super_admin)
#   waste_submissions(submission_id, booth_id, user_id, waste_type, quantity_kg,
#          points, submitted_at, status, method, notes, latitude, longitude, photos jsonb,
#          reviewed_by, reviewed_at)
#   credit_ledger(entry_id, user_id, booth_id, operator_id, waste_type, quantity_kg,
#          points_delta, resulting_balance, created_at, notes)
#
# apply_green_credit(p_user_id, p_delta, p_booth_id, p_operator_id, p_waste_type,
#                    p_quantity_kg, p_notes) increments users.green_credits and
# users.total_waste_kg and inserts the credit_ledger row in one transaction,
# returning the inserted row.
#
# record_booth_load(p_booth_id, p_quantity_kg) resets booths.kg_today when
# load_date is before current_date, then adds p_quantity_kg in one statement.
