from ondevice_ai.common.db.models.base import MemoryDB_Base
# NOTE: import every table model so it registers with MemoryDB_Base.metadata
from ondevice_ai.common.db.models.memory.memory_records import MemoryRecordRow
from sqlalchemy.ext.asyncio import create_async_engine
import asyncio

from dotenv import load_dotenv
import os
from pathlib import Path

async def reset_all_tables(memory_db_url: str) -> None:
    engine = create_async_engine(memory_db_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(MemoryDB_Base.metadata.drop_all)
            await conn.run_sync(MemoryDB_Base.metadata.create_all)
    finally:
        await engine.dispose()

if __name__ == "__main__":
    # one-off script to reset the memory db, by dropping then creating all tables

    # load in the proper .env file, defaulted to .env.dev
    APP_ENV = os.getenv("APP_ENV", "dev")
    # This file is in scripts/db/, so we go up two levels to project root
    SERVICE_ROOT = Path(__file__).resolve().parents[2]
    env_file_path = SERVICE_ROOT / f".env.{APP_ENV}"

    print(f"Loading env file from: {env_file_path}")
    load_dotenv(dotenv_path=env_file_path)

    # same default as MemoryDBSettingsMixin
    MEMORY_DB_URL = os.getenv("MEMORY_DB_URL", "sqlite+aiosqlite:///./assistant-memory.db")
    print(f"Resetting tables ({MemoryRecordRow.__tablename__}) in {MEMORY_DB_URL}")

    try:
        asyncio.run(reset_all_tables(MEMORY_DB_URL))
    except Exception as e:
        print(f"Error resetting database: {e}")
        exit(1)
    print("All tables reset successfully!")
