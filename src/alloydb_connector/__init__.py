import warnings

# Suppress Google SDK FutureWarning messages about Python version deprecation.
warnings.filterwarnings("ignore", category=FutureWarning, module="google.api_core")
warnings.filterwarnings("ignore", category=FutureWarning, module="google.cloud")

from .certs import (  # noqa: E402
    encode_public_key_as_pem,
    generate_key_pair,
    parse_certificate,
    parse_public_key_from_pem,
)
from .errors import (  # noqa: E402
    CertificateParseError,
    ConnectorError,
    FailureClassification,
    TerminalError,
    TransientError,
)
from .fetcher import ConnectionInfoFetcher  # noqa: E402
from .schemas.connection import ConnectionInfo, InstanceName  # noqa: E402

__all__ = [
    "CertificateParseError",
    "ConnectionInfo",
    "ConnectionInfoFetcher",
    "ConnectorError",
    "FailureClassification",
    "InstanceName",
    "TerminalError",
    "TransientError",
    "encode_public_key_as_pem",
    "generate_key_pair",
    "parse_certificate",
    "parse_public_key_from_pem",
]
