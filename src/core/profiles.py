"""Auth user -> profile id resolution."""

from typing import Optional

from supabase import Client

from core.errors import UpstreamUnavailableError
from core.logging import get_logger

logger = get_logger(__name__)


class ProfileDirectory:
    """Looks up (and lazily creates) the durable profile for an auth user."""

    def __init__(self, supabase: Optional[Client] = None):
        if supabase is None:
            from config.database import get_supabase_client
            supabase = get_supabase_client()
        self._supabase = supabase

    def get_or_create_profile(self, auth_user_id: str, email: Optional[str] = None) -> str:
        try:
            result = (
                self._supabase.table("profiles")
                .select("id")
                .eq("auth_user_id", auth_user_id)
                .limit(1)
                .execute()
            )
            if result.data:
                return result.data[0]["id"]

            created = self._supabase.table("profiles").insert({
                "auth_user_id": auth_user_id,
                "email": email,
            }).execute()
        except Exception as e:
            raise UpstreamUnavailableError("datastore", str(e)) from e

        profile_id = created.data[0]["id"]
        logger.info("Created profile", profile_id=profile_id)
        return profile_id
