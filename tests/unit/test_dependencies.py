"""
Tests for the service container.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from foliora.api.dependencies import ServiceContainer


@pytest.mark.parametrize("name", [
    "database",
    "book_repository",
    "interaction_repository",
    "goal_repository",
    "bookmark_repository",
    "token_verifier",
])
def test_concurrent_first_access_builds_one_instance(settings, name):
    container = ServiceContainer(settings)
    barrier = threading.Barrier(8)

    def resolve(_):
        barrier.wait()
        return getattr(container, name)

    with ThreadPoolExecutor(max_workers=8) as pool:
        instances = list(pool.map(resolve, range(8)))

    try:
        assert all(instance is instances[0] for instance in instances)
    finally:
        container.close()


def test_repositories_share_the_database(settings):
    container = ServiceContainer(settings)
    try:
        assert container.book_repository.database is container.database
        assert container.interaction_repository.database is container.database
    finally:
        container.close()
