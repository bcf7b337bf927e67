"""
Database connection bootstrap.

Connection parameters come either from a dotenv-style connection file
(``--config-file``) or from the DATABASE_URL setting.
"""

import logging
from pathlib import Path
from typing import Optional

from dotenv import dotenv_values
from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import Session, sessionmaker

from backend.config import get_settings
from services.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Connection defaults for config files that only set some parameters
CONNECTION_DEFAULTS = {
    'DB_DRIVER': 'postgresql',
    'DB_HOST': 'localhost',
    'DB_PORT': None,
    'DB_NAME': 'db',
    'DB_USER': 'root',
    'DB_PASSWORD': '',
}


def load_connection_url(config_file: Optional[str] = None) -> str:
    """
    Resolve the database URL.

    Args:
        config_file: Optional dotenv file with DATABASE_URL or DB_* parameters

    Returns:
        SQLAlchemy database URL
    """
    if not config_file:
        return get_settings().DATABASE_URL

    if not Path(config_file).is_file():
        raise ConfigurationError(f"Config file not found: {config_file}")

    values = dotenv_values(config_file)
    if values.get('DATABASE_URL'):
        return values['DATABASE_URL']

    params = {**CONNECTION_DEFAULTS, **{k: v for k, v in values.items() if v is not None}}
    url = URL.create(
        drivername=params['DB_DRIVER'],
        username=params['DB_USER'],
        password=params['DB_PASSWORD'] or None,
        host=params['DB_HOST'] or None,
        port=int(params['DB_PORT']) if params['DB_PORT'] else None,
        database=params['DB_NAME'],
    )
    logger.debug(f"Loaded connection parameters from {config_file}")
    return url.render_as_string(hide_password=False)


def create_db_engine(database_url: str) -> Engine:
    """Create database engine."""
    return create_engine(database_url, pool_pre_ping=get_settings().DB_POOL_PRE_PING)


def create_session(engine: Engine) -> Session:
    """Create a session with autocommit off; every file is committed explicitly."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    return SessionLocal()
