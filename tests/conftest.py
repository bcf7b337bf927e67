"""
Pytest configuration and fixtures for spreadsheet import tests.
"""

import os
import pytest
from pathlib import Path
from sqlalchemy import Column, Integer, MetaData, String, Table, create_engine, select
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv
import openpyxl

from backend.config import get_settings

# Load environment
load_dotenv()

# Test database URL (defaults to a throwaway SQLite file per test)
TEST_DATABASE_URL = os.getenv('TEST_DATABASE_URL')

metadata = MetaData()

users_table = Table(
    'fe_users', metadata,
    Column('uid', Integer, primary_key=True, autoincrement=True),
    Column('username', String(255)),
    Column('name', String(255)),
    Column('first_name', String(255)),
    Column('age', String(50)),
    Column('gender', String(10)),
    Column('email', String(255), unique=True),
    Column('pid', String(50)),
    Column('crdate', String(50)),
)

people_table = Table(
    'people', metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('Name', String(255)),
    Column('Age', String(50)),
)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keep tests away from log files and cached settings."""
    monkeypatch.setenv('LOG_FILE', '')
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def database_url(tmp_path):
    """Database URL for one test."""
    return TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'import_test.db'}"


@pytest.fixture
def engine(database_url):
    """Create test database engine with a fresh fe_users table."""
    eng = create_engine(database_url)
    metadata.drop_all(eng)
    metadata.create_all(eng)
    yield eng
    metadata.drop_all(eng)
    eng.dispose()


@pytest.fixture
def session(engine):
    """Create a new database session for a test."""
    Session = sessionmaker(bind=engine, autoflush=False)
    sess = Session()

    yield sess

    sess.close()


@pytest.fixture
def fetch_rows(engine):
    """Return all rows of a test table as dicts, in primary key order."""
    def _fetch(table):
        with engine.connect() as conn:
            query = select(table).order_by(*table.primary_key.columns)
            rows = conn.execute(query).mappings().all()
        return [dict(r) for r in rows]
    return _fetch


@pytest.fixture
def fetch_users(fetch_rows):
    """Return all fe_users rows as dicts, ordered by uid."""
    return lambda: fetch_rows(users_table)


@pytest.fixture
def make_workbook(tmp_path):
    """
    Write an .xlsx file.

    Usage: make_workbook('users.xlsx', [header, row, ...], extra_sheets={'Other': [...]})
    """
    def _make(name, rows, extra_sheets=None, directory=None):
        target_dir = Path(directory) if directory else tmp_path
        target_dir.mkdir(parents=True, exist_ok=True)

        workbook = openpyxl.Workbook()
        sheet = workbook.active
        sheet.title = 'Sheet1'
        for row in rows:
            sheet.append(list(row))

        for title, sheet_rows in (extra_sheets or {}).items():
            extra = workbook.create_sheet(title)
            for row in sheet_rows:
                extra.append(list(row))

        path = target_dir / name
        workbook.save(path)
        return str(path)
    return _make


@pytest.fixture
def fetch_people(fetch_rows):
    """Return all people rows as dicts, ordered by id."""
    return lambda: fetch_rows(people_table)
