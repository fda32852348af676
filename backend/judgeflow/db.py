from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from fastapi import Depends
from sqlalchemy.orm import DeclarativeBase

from .config import DATABASE_URL, SCHEMA_SEARCH_PATH


class Base(DeclarativeBase):
    pass


connect_args = {}
if SCHEMA_SEARCH_PATH:
    connect_args["server_settings"] = {"search_path": SCHEMA_SEARCH_PATH}

engine = create_async_engine(DATABASE_URL, connect_args=connect_args)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False)


async def create_db_and_tables():

    from judgeflow.models import user_model, question_model, exam_session_model, submission_model

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_maker() as session:
        yield session


async def get_user_db(session: AsyncSession = Depends(get_async_session)):
    from judgeflow.models.user_model import User
    from fastapi_users.db import SQLAlchemyUserDatabase
    yield SQLAlchemyUserDatabase(session, User)
