"""Auth module public exports."""

from pinsync.auth.base import KeyResolver
from pinsync.auth.factory import create_key_resolver
from pinsync.auth.session import StoredSessionProvider
from pinsync.auth.supabase import SupabaseAuthClient, email_from_username

__all__ = [
    "KeyResolver",
    "StoredSessionProvider",
    "SupabaseAuthClient",
    "create_key_resolver",
    "email_from_username",
]
