"""TLS context construction for the socket factory."""

import socket
import ssl
import tempfile
from collections.abc import Mapping
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .certs import generate_key_pair
from .clients import get_admin_client, get_executor
from .fetcher import ConnectionInfoFetcher
from .logger import logger
from .schemas.connection import ConnectionInfo, InstanceName, IPType

SERVER_PROXY_PORT = 5433


def create_ssl_context(info: ConnectionInfo, key: RSAPrivateKey) -> ssl.SSLContext:
    """Build a client SSL context from a fetched ConnectionInfo.

    The server is verified against the instance CA only. Hostname checks are
    off because instances are addressed by IP.

    Args:
        info: Connection info returned by ConnectionInfoFetcher
        key: The private key whose public half was sent to the Admin API

    Returns:
        SSL context presenting the client certificate chain
    """
    # No default trust store: only the instance CA may vouch for the server
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = ssl.TLSVersion.TLSv1_3
    context.check_hostname = False
    context.verify_mode = ssl.CERT_REQUIRED

    ca_pem = info.ca_certificate.public_bytes(serialization.Encoding.PEM)
    context.load_verify_locations(cadata=ca_pem.decode("ascii"))

    chain_pem = b"".join(
        cert.public_bytes(serialization.Encoding.PEM) for cert in info.certificate_chain
    )
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )

    # load_cert_chain only reads from disk
    with tempfile.TemporaryDirectory(prefix="alloydb-") as tmp_dir:
        cert_path = Path(tmp_dir) / "client.pem"
        key_path = Path(tmp_dir) / "client.key"
        cert_path.write_bytes(chain_pem)
        key_path.write_bytes(key_pem)
        key_path.chmod(0o600)
        context.load_cert_chain(certfile=cert_path, keyfile=key_path)

    return context


class SocketFactory:
    """Opens TLS sockets to an instance using freshly fetched credentials.

    Every connect() runs a full fetch, so a failed fetch raises before any
    socket is opened.
    """

    def __init__(
        self,
        fetcher: ConnectionInfoFetcher,
        instance_name: InstanceName,
        ip_type: IPType = IPType.PRIVATE,
        key: RSAPrivateKey | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.instance_name = instance_name
        self.ip_type = ip_type
        self.key = key if key is not None else generate_key_pair()

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "SocketFactory":
        """Build a factory from ConnectorConfig.data_source_properties() output.

        The fetcher runs on the shared executor and admin client.
        """
        instance_name = properties.get("alloydbInstanceName")
        if not instance_name:
            raise ValueError("alloydbInstanceName property is required")

        fetcher = ConnectionInfoFetcher(get_executor(), get_admin_client())
        return cls(fetcher, InstanceName.parse(instance_name))

    def connect(self, timeout: float | None = None) -> ssl.SSLSocket:
        info = self.fetcher.fetch_and_wait(self.instance_name, self.key, timeout=timeout)
        context = create_ssl_context(info, self.key)
        host = info.address_for(self.ip_type)

        logger.debug(f"Connecting to {self.instance_name} at {host}:{SERVER_PROXY_PORT}")
        sock = socket.create_connection((host, SERVER_PROXY_PORT), timeout=timeout)
        try:
            return context.wrap_socket(sock, server_hostname=host)
        except OSError:
            sock.close()
            raise
