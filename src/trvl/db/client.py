"""
TRVL - Supabase Client.

Low-level database access. Onboarding adapters receive a client from here.
"""

from supabase import Client, create_client

from trvl.config import settings

# Singleton client instance
_service_client: Client | None = None


def get_service_client() -> Client:
    """
    Get the Supabase client with the service role key.

    Used server-side for the profile and onboarding session tables, and for
    validating user JWTs. Uses singleton pattern to reuse connection.
    """
    global _service_client

    if _service_client is None:
        _service_client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )

    return _service_client
