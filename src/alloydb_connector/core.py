from tenacity import retry_if_exception_type, stop_after_attempt, wait_exponential

from .errors import TransientError

# Lifetime requested for every client certificate (1 hour)
CERT_DURATION_SECONDS = 3600

# Default RSA key size used when the connector generates its own key pair
DEFAULT_KEY_SIZE = 2048

# OpenSSL-style public key markers expected by the Admin API PEM parser
OPENSSL_PUBLIC_KEY_BEGIN = "-----BEGIN RSA PUBLIC KEY-----"
OPENSSL_PUBLIC_KEY_END = "-----END RSA PUBLIC KEY-----"
PEM_LINE_LENGTH = 64

# Shared retry configuration for callers of the fetcher.
# Only transient failures are retried; terminal ones surface immediately.
# usage: @retry(**RETRY_CONFIG)
RETRY_CONFIG = {
    "stop": stop_after_attempt(3),
    "wait": wait_exponential(multiplier=1, min=4, max=10),
    "retry": retry_if_exception_type(TransientError),
    "reraise": True,
}
