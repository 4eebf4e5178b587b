# boutique/core/supabase_client.py
from supabase import create_client, Client

from boutique.core.config import get_settings


def supabase_for_user(access_token: str) -> Client:
    """
    Create a Supabase client with the anon/public key, acting as the
    signed-in user.

    Use cases:
      - calling the payment-intent edge function, which reads the
        caller from the Authorization header

    Note: This client still respects RLS. A fresh client is built per
    call so one user's token is never left on a shared instance.
    """
    settings = get_settings()
    client = create_client(settings.SUPABASE_URL, settings.SUPABASE_KEY)
    client.functions.set_auth(access_token)
    return client
