from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from tenacity import retry

from .core import RETRY_CONFIG
from .fetcher import ConnectionInfoFetcher
from .schemas.connection import ConnectionInfo, InstanceName


@retry(**RETRY_CONFIG)  # type: ignore[call-overload, untyped-decorator]
def fetch_with_retry(
    fetcher: ConnectionInfoFetcher,
    instance_name: InstanceName,
    key: RSAPrivateKey,
    timeout: float | None = None,
) -> ConnectionInfo:
    """
    Fetches connection info, retrying transient failures with backoff.
    Terminal failures are raised on the first attempt.
    """
    return fetcher.fetch_and_wait(instance_name, key, timeout=timeout)
