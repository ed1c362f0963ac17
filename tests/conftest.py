import os
from pathlib import Path

import pytest

# Directory under tests/ordering/ -> marker applied to every test inside it
_LAYER_MARKERS = {
    "domain": pytest.mark.domain,
    "application": pytest.mark.application,
    "bdd": pytest.mark.bdd,
    "integration": pytest.mark.integration,
}


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="domain.toml environment overlay to run tests against",
    )


def pytest_sessionstart(session):
    """Initialize the ordering domain before collection.

    PROTEAN_ENV picks the domain.toml overlay, so ``--env production`` runs the
    suite against PostgreSQL. The pushed context makes the domain available as
    `current_domain` for the whole session.
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from ordering.domain import ordering

    ordering.init()
    ordering.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Mark each test with its layer, taken from the directory it lives in."""
    for item in items:
        parts = Path(item.fspath).parts
        for layer, marker in _LAYER_MARKERS.items():
            if layer in parts:
                item.add_marker(marker)
                break

        # HTTP round trips are slow unless a test opts out
        if "integration" in parts and not any(m.name == "fast" for m in item.iter_markers()):
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
    """Reset persisted state and process-wide singletons after every test."""
    yield

    from protean import current_domain

    from ordering.cache import reset_cache
    from ordering.catalog import reset_catalog
    from ordering.config import reset_settings
    from ordering.directory import reset_directory
    from ordering.gateway import reset_gateway

    for _, provider in current_domain.providers.items():
        provider._data_reset()
    current_domain.event_store.store._data_reset()

    reset_catalog()
    reset_directory()
    reset_gateway()
    reset_cache()
    reset_settings()
