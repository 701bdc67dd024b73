# taskify/database.py
from typing import AsyncIterator, Optional, Tuple

from fastapi import Request
from sqlalchemy import String, event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement
from sqlmodel import SQLModel

import taskify.models  # noqa: F401  registers the tables on SQLModel.metadata

SQLITE_LOWER = "unicode_lower"


class unicode_lower(FunctionElement):
    """lower() that folds non-ASCII letters on every backend."""
    name = SQLITE_LOWER
    type = String()
    inherit_cache = True


@compiles(unicode_lower)
def _compile_lower(element, compiler, **kw):
    return "lower(%s)" % compiler.process(element.clauses, **kw)


@compiles(unicode_lower, "sqlite")
def _compile_lower_sqlite(element, compiler, **kw):
    # SQLite's built-in lower() only handles ASCII.
    return "%s(%s)" % (SQLITE_LOWER, compiler.process(element.clauses, **kw))


def _python_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if isinstance(value, str) else value


def create_engine_and_sessionmaker(database_url: str) -> Tuple[AsyncEngine, async_sessionmaker]:
    engine = create_async_engine(database_url, echo=False)
    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _register_functions(dbapi_connection, connection_record):
            dbapi_connection.create_function(SQLITE_LOWER, 1, _python_lower)

    return engine, async_sessionmaker(engine, expire_on_commit=False)



async def create_db_and_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.sessionmaker() as session:
        yield session
