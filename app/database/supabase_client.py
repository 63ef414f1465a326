from supabase import acreate_client, AsyncClient
from app.config.settings import settings


class SupabaseClient:
    _client: AsyncClient = None
    _service_client: AsyncClient = None

    @classmethod
    async def get_client(cls) -> AsyncClient:
        if cls._client is None:
            cls._client = await acreate_client(settings.supabase_url, settings.supabase_key)
        return cls._client

    @classmethod
    async def get_service_client(cls) -> AsyncClient:
        """Client with service_role key; bypasses RLS. Use in scripts."""
        if cls._service_client is None and settings.supabase_service_role_key:
            cls._service_client = await acreate_client(
                settings.supabase_url, settings.supabase_service_role_key
            )
        return cls._service_client or await cls.get_client()


async def get_supabase() -> AsyncClient:
    return await SupabaseClient.get_client()
