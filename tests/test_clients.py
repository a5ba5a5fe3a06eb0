import pytest

from alloydb_connector import clients


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear the lru_cache registry around each test."""
    clients.get_admin_client.cache_clear()
    clients.get_executor.cache_clear()
    yield
    clients.get_admin_client.cache_clear()
    clients.get_executor.cache_clear()


def test_get_admin_client_is_cached(mocker):
    mock_cls = mocker.patch("alloydb_connector.clients.alloydb_v1alpha.AlloyDBAdminClient")

    first = clients.get_admin_client()
    second = clients.get_admin_client()

    assert first is second
    mock_cls.assert_called_once_with()


def test_get_executor_is_cached():
    executor = clients.get_executor(max_workers=2)
    try:
        assert clients.get_executor(max_workers=2) is executor
        assert executor.submit(lambda: 42).result(timeout=5) == 42
    finally:
        executor.shutdown(wait=True)
