import os
import pytest

# Enable database access for all tests by default (pytest-django)
pytestmark = pytest.mark.django_db


@pytest.fixture(autouse=True)
def _enable_db_access_for_all_tests(db):
    pass


@pytest.fixture
def make_user(django_user_model):
    """Factory for users that already hold a cash wallet."""
    from gangs.models import Player

    def _make(username, cash=50000, password='secret'):
        user = django_user_model.objects.create_user(username=username, password=password)
        Player.objects.create(user=user, cash=cash)
        return user
    return _make


@pytest.fixture
def founded_gang(make_user):
    """A gang founded by 'boss' with a funded treasury."""
    from gangs.models import Gang
    from gangs.services import roster

    boss = make_user('boss')
    gang = roster.found_gang(boss, 'The Syndicate', 'SYN', 'First family')
    Gang.objects.filter(pk=gang.pk).update(bank_balance=10000)
    gang.refresh_from_db()
    return gang


def pytest_collection_modifyitems(config, items):
    """Skip thread-based concurrency tests unless a row-locking database is configured.
    Files named 'test_concurrency.py' run only when DATABASE_URL points at PostgreSQL.
    """
    db_url = os.environ.get("DATABASE_URL", "")
    run_concurrency = db_url.startswith(("postgres://", "postgresql://"))
    skip_concurrency = pytest.mark.skip(reason="Concurrency tests need DATABASE_URL=postgres://...")

    for item in items:
        path = str(getattr(item, "fspath", ""))
        if path.endswith("test_concurrency.py") and not run_concurrency:
            item.add_marker(skip_concurrency)
