
import logging

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import ISOLATION_LEVEL_AUTOCOMMIT
from sqlalchemy.engine import make_url

from app.core.config import settings

logger = logging.getLogger(__name__)


def create_database(database_url: str = settings.DATABASE_URL) -> None:
    """Create the PostgreSQL database named in DATABASE_URL if it doesn't exist."""
    url = make_url(database_url)
    if url.get_backend_name() != "postgresql":
        logger.info("Store backend is %s, skipping database creation.", url.get_backend_name())
        return

    try:
        # Connect to default 'postgres' database to check/create target DB
        con = psycopg2.connect(
            user=url.username,
            password=url.password,
            host=url.host or "localhost",
            port=url.port or 5432,
            dbname="postgres",
        )
        con.set_isolation_level(ISOLATION_LEVEL_AUTOCOMMIT)
        cur = con.cursor()

        cur.execute("SELECT 1 FROM pg_catalog.pg_database WHERE datname = %s", (url.database,))
        exists = cur.fetchone()

        if not exists:
            logger.info("Database %s does not exist. Creating...", url.database)
            cur.execute(sql.SQL("CREATE DATABASE {}").format(sql.Identifier(url.database)))
            logger.info("Database %s created successfully.", url.database)
        else:
            logger.info("Database %s already exists.", url.database)

        cur.close()
        con.close()
    except psycopg2.Error as e:
        # The target DB may already exist and the role may lack access to 'postgres'
        logger.error("Error creating database: %s", e)


if __name__ == "__main__":
    logging.basicConfig(level=settings.LOG_LEVEL)
    create_database()
