from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from app.core.config import get_settings
from app.models.base import Base

settings = get_settings()

# Create engine
engine = create_async_engine(settings.database_url, echo=settings.database_echo)


async def create_db_and_tables(bind: AsyncEngine = None):
    import app.models  # registers every table on Base.metadata

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Reusable engine getter
def get_async_engine() -> AsyncEngine:
    return engine
