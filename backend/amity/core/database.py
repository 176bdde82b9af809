from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from amity.core.config import settings

parsed_db_url = urlparse(settings.DATABASE_URL)
requires_ssl = parsed_db_url.hostname is not None and parsed_db_url.hostname.endswith("supabase.com")


def engine_connect_args() -> dict:
    if not settings.DATABASE_URL.startswith("postgresql+asyncpg"):
        return {}
    return {
        "statement_cache_size": 0,  # required for Supabase pooler compatibility
        "ssl": "require" if requires_ssl else False,
    }


engine = create_async_engine(settings.DATABASE_URL, echo=False, connect_args=engine_connect_args())
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


class Base(DeclarativeBase):
    pass
