"""Block until the PostgreSQL server behind DATABASE_URL accepts connections."""
import logging
import os
import time

import psycopg2
from sqlalchemy.engine import make_url

from hotel_booking.core.config import settings

logger = logging.getLogger("wait_for_db")


def wait_for_db(database_url: str, timeout_s: float, interval_s: float = 1.0) -> None:
    url = make_url(database_url)
    params = {
        "host": url.host or "db",
        "port": url.port or 5432,
        "user": url.username or "postgres",
        "password": url.password or "postgres",
        "dbname": url.database or "hotel_booking",
        "connect_timeout": max(1, int(settings.DB_LOCK_TIMEOUT_SECONDS)),
    }
    logger.info("Waiting for Postgres at %s:%s db=%s (timeout=%ss)", params["host"], params["port"], params["dbname"], timeout_s)

    deadline = time.monotonic() + timeout_s
    while True:
        try:
            psycopg2.connect(**params).close()
            logger.info("Postgres is ready")
            return
        except psycopg2.OperationalError as e:
            if time.monotonic() > deadline:
                logger.error("Timed out waiting for Postgres: %s", e)
                raise
            logger.debug("Postgres not ready yet: %s", e)
            time.sleep(interval_s)


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    wait_for_db(settings.DATABASE_URL, float(os.getenv("DB_WAIT_TIMEOUT", "60")))
