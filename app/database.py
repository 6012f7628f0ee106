from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from app.config import get_settings

settings = get_settings()

if settings.is_sqlite:
    # Local/standalone runs - no pool tuning, aiosqlite handles its own connection
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,
        connect_args={"check_same_thread": False},
    )
else:
    # Hosted Postgres behind pgbouncer
    engine = create_async_engine(
        settings.database_url,
        echo=settings.debug,  # Log SQL queries in debug mode
        pool_pre_ping=True,   # Check connection health before using
        pool_size=3,
        max_overflow=5,
        pool_timeout=10,      # Fail fast if can't get connection
        pool_recycle=300,     # Recycle connections every 5 min to avoid stale connections
        connect_args={
            "statement_cache_size": 0,           # Required for pgbouncer
            "prepared_statement_cache_size": 0,
            "command_timeout": 30,
        },
    )

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


async def get_db():
    """
    Dependency that provides a database session.

    Usage in FastAPI:
        @app.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create all tables directly (local SQLite runs and tests; Postgres uses Alembic)."""
    import app.models  # noqa: F401  register models on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
