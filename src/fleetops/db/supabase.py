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
        logging.info("Supabase credentials not configured, using in-memory storage")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


# Tables used by persistence.database:
#
# driver_rse_counters   (organization_id, driver_id, date, regulatory_category) unique,
#                       driving/amplitude/break/rest minutes
# compliance_rules      one row per organization and regulatory_category
# compliance_audit_logs append-only decisions
# quotes, quote_lines   read-only from this service
# missions              quote_line_id references quote_lines ON DELETE SET NULL
#
# RPCs:
# increment_driver_rse_counter(...)   atomic upsert-with-increment, returns the row
# apply_mission_sync_batch(operations) applies create/update/delete ops in one transaction
