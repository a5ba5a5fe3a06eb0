import pytest
from tenacity import wait_none

from alloydb_connector.errors import TerminalError, TransientError
from alloydb_connector.fetcher import ConnectionInfoFetcher
from alloydb_connector.retry import fetch_with_retry


@pytest.fixture
def fetch_fast():
    """fetch_with_retry without the backoff sleeps."""
    return fetch_with_retry.retry_with(wait=wait_none())


def test_fetch_with_retry_recovers_from_transient(mocker, fetch_fast, instance_name, key):
    fetcher = mocker.Mock(spec=ConnectionInfoFetcher)
    info = mocker.sentinel.info
    fetcher.fetch_and_wait.side_effect = [TransientError("blip"), info]

    assert fetch_fast(fetcher, instance_name, key, timeout=5) is info
    assert fetcher.fetch_and_wait.call_count == 2
    fetcher.fetch_and_wait.assert_called_with(instance_name, key, timeout=5)


def test_fetch_with_retry_does_not_retry_terminal(mocker, fetch_fast, instance_name, key):
    fetcher = mocker.Mock(spec=ConnectionInfoFetcher)
    fetcher.fetch_and_wait.side_effect = TerminalError("not found")

    with pytest.raises(TerminalError):
        fetch_fast(fetcher, instance_name, key)

    assert fetcher.fetch_and_wait.call_count == 1


def test_fetch_with_retry_gives_up(mocker, fetch_fast, instance_name, key):
    fetcher = mocker.Mock(spec=ConnectionInfoFetcher)
    fetcher.fetch_and_wait.side_effect = TransientError("still down")

    with pytest.raises(TransientError, match="still down"):
        fetch_fast(fetcher, instance_name, key)

    assert fetcher.fetch_and_wait.call_count == 3
