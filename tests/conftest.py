import pytest

from estoque_vet.infra.migrations import apply_migrations
from estoque_vet.infra.views import create_views


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "estoque_test.sqlite")
    apply_migrations(path)
    create_views(path)
    return path
