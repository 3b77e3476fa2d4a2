"""
MarketFeed – SQLAlchemy Base Configuration
==========================================
Engine async sobre un archivo SQLite local (driver aiosqlite).

Clean Architecture: esta es la implementación concreta del almacenamiento;
el controller depende de IWindowCache, no de esta clase.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from sqlalchemy import MetaData
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from marketfeed.shared.logging.logger import get_logger

logger = get_logger("database")

# ─── Naming Convention (para migraciones consistentes) ─────────────────────
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Base declarativa para los modelos ORM."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class DatabaseManager:
    """
    Engine + session factory del cache local.

    USO:
        db = DatabaseManager("kline_cache.db")
        await db.initialize()          # lazy, idempotente

        async with db.session() as session:
            row = await session.get(...)

        await db.close()               # en shutdown
    """

    def __init__(self, path: str, echo: bool = False) -> None:
        self._path = str(Path(path).expanduser())
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def database_url(self) -> str:
        return f"sqlite+aiosqlite:///{self._path}"

    async def initialize(self) -> None:
        """Crea el engine, la session factory y las tablas si no existen."""
        if self._engine is not None:
            return

        Path(self._path).resolve().parent.mkdir(parents=True, exist_ok=True)

        engine = create_async_engine(self.database_url, echo=self._echo)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Cache SQLite inicializado en %s", self._path)

    async def close(self) -> None:
        """Cierra el engine y todas las conexiones del pool."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Context manager async para sesiones (rollback ante error)."""
        if self._session_factory is None:
            raise RuntimeError("DatabaseManager no inicializado. Llama a initialize() primero.")

        async with self._session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise
