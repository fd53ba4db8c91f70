import pytest

from db import resolve_database_url


def test_defaults_to_sqlite_path():
    assert resolve_database_url({"DATABASE_PATH": "/data/standups.db"}) == "sqlite:////data/standups.db"
    assert resolve_database_url({}) == "sqlite:///./standups.db"


def test_postgres_scheme_is_rewritten():
    url = resolve_database_url({"DATABASE_URL": "postgres://u:p@db:5432/standups"})
    assert url == "postgresql://u:p@db:5432/standups"


def test_production_requires_database_url():
    with pytest.raises(RuntimeError):
        resolve_database_url({"ENV": "production"})

    assert resolve_database_url({"ENV": "prod", "DATABASE_URL": "postgresql://db/standups"}) == "postgresql://db/standups"


def test_only_env_marks_production():
    assert resolve_database_url({"RENDER": "true"}).startswith("sqlite:///")
