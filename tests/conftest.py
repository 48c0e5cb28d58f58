import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from ordering.domain import ordering

    ordering.init()
    ordering.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path or "/bdd/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, setup_db

    setup_db(ordering)

    yield

    drop_db(ordering)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from notifications.channel import reset_channels
    from payments.gateway import reset_gateway
    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_gateway()
    reset_channels()


@pytest.fixture()
def gateway():
    """A fresh FakeGateway installed as the active gateway."""
    from payments.gateway import set_gateway
    from payments.gateway.fake_adapter import FakeGateway

    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def mailbox():
    """A fresh FakeEmailAdapter installed as the active email channel."""
    from notifications.channel import set_email_channel
    from notifications.channel.fake_email import FakeEmailAdapter

    adapter = FakeEmailAdapter()
    set_email_channel(adapter)
    return adapter
