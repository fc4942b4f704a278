"""
Pytest configuration and fixtures.

This file provides pytest-specific configuration and fixtures.
For standard test utilities, see tests/__init__.py
"""

import os
import pytest


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "db: marks tests as requiring PostgreSQL (deselect with '-m \"not db\"')"
    )


@pytest.fixture(scope="session")
def test_database():
    """
    Session-scoped PostgreSQL URL with the schema created.

    Uses TEST_DATABASE_URL when set, otherwise starts a container with
    testcontainers. Skips when neither is possible.
    """
    from sqlalchemy import create_engine
    from database.models import Base

    external_url = os.environ.get("TEST_DATABASE_URL")
    if external_url:
        engine = create_engine(external_url)
        try:
            Base.metadata.create_all(engine)
        except Exception as e:
            pytest.skip(f"External database not available: {e}")
        finally:
            engine.dispose()
        yield external_url
        return

    try:
        from testcontainers.postgres import PostgresContainer

        postgres = PostgresContainer(
            image="postgres:16-alpine",
            username="testuser",
            password="testpass",
            dbname="matching_test",
            driver="psycopg2"
        )
        postgres.start()
    except Exception as e:
        pytest.skip(f"Could not start test database container: {e}")

    db_url = postgres.get_connection_url()
    engine = create_engine(db_url)
    Base.metadata.create_all(engine)
    engine.dispose()

    yield db_url

    postgres.stop()


@pytest.fixture(scope="session")
def test_db_url(test_database):
    """Get test database URL."""
    return test_database
