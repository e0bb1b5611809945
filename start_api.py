#!/usr/bin/env python3
"""
Run migrations (same process, same DATABASE_URL), then seed, then uvicorn.
Ensures tables exist before seed and app start.
"""
import logging
import os
import sys

from hotel_booking.core.config import settings

logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

# 1) Wait for DB (Postgres only; SQLite files are created on first connect)
if settings.DATABASE_URL.startswith("postgresql"):
    from wait_for_db import wait_for_db
    wait_for_db(settings.DATABASE_URL, float(os.getenv("DB_WAIT_TIMEOUT", "60")))

# 2) Run migrations using the same settings as the app
from alembic.config import Config
from alembic import command

alembic_cfg = Config(os.path.join(os.path.dirname(os.path.abspath(__file__)), "alembic.ini"))
alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
command.upgrade(alembic_cfg, "head")

# 3) Seed using an engine created *after* migrations
from hotel_booking.db.session import build_engine, make_session_factory
seed_engine = build_engine(settings.DATABASE_URL)
SeedSession = make_session_factory(seed_engine)
from hotel_booking.seed import run as run_seed
run_seed(SeedSession())
seed_engine.dispose()

# 4) Start uvicorn (replace current process)
os.execv(
    sys.executable,
    [sys.executable, "-m", "uvicorn", "hotel_booking.main:app", "--host", "0.0.0.0", "--port", "8000"],
)
