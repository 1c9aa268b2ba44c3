#!/usr/bin/env python3
"""
Wait for the database, run migrations (same DATABASE_URL), seed, then exec uvicorn.
Ensures tables exist before seed and app start.
"""
import os
import sys
import time

from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from wheeldeal.core.config import settings
from wheeldeal.core.logging import configure_logging, get_logger

configure_logging()
logger = get_logger("start_api")


def wait_for_db(url: str, timeout_s: int) -> None:
    engine = create_engine(url, pool_pre_ping=True)
    start = time.time()
    logger.info("db_wait_started", timeout_s=timeout_s)
    try:
        while True:
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                logger.info("db_ready")
                return
            except OperationalError as e:
                if time.time() - start > timeout_s:
                    logger.error("db_wait_timed_out", error=str(e))
                    raise
                time.sleep(1)
    finally:
        engine.dispose()


# 1) Wait for DB
wait_for_db(settings.DATABASE_URL, int(os.getenv("DB_WAIT_TIMEOUT", "60")))

# 2) Run migrations using the same settings as the app
from alembic.config import Config
from alembic import command

alembic_cfg = Config(os.path.join(os.path.dirname(__file__), "alembic.ini"))
alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
command.upgrade(alembic_cfg, "head")

# 3) Seed using an engine created *after* migrations (avoids app engine created during Alembic env load)
seed_engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
SeedSession = sessionmaker(autocommit=False, autoflush=False, bind=seed_engine)
seed_db = SeedSession()
from wheeldeal.seed import run as run_seed
run_seed(seed_db)
seed_db.close()
seed_engine.dispose()

# 4) Start uvicorn (replace current process)
os.execv(
    sys.executable,
    [sys.executable, "-m", "uvicorn", "wheeldeal.main:app", "--host", "0.0.0.0", "--port", os.getenv("PORT", "8000")],
)
