import pytest


@pytest.fixture(autouse=True)
def _allow_channels_connection_housekeeping(django_db_blocker):
    # Channels consumers call close_old_connections() on every message, which
    # probes the (still open) test database connection. pytest-django's
    # blocker rejects that inside SimpleTestCase; Django's own runner does not.
    with django_db_blocker.unblock():
        yield
