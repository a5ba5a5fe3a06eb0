from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey
from cryptography.x509.oid import NameOID
from google.cloud import alloydb_v1alpha

from alloydb_connector.certs import generate_key_pair
from alloydb_connector.schemas.connection import InstanceName

INSTANCE = "projects/p/locations/l/clusters/c/instances/i"


def _build_certificate(
    common_name: str,
    public_key: RSAPublicKey,
    issuer_name: x509.Name | None,
    issuer_key: RSAPrivateKey,
    is_ca: bool,
) -> x509.Certificate:
    subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer_name or subject)
        .public_key(public_key)
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=5))
        .not_valid_after(now + timedelta(hours=1))
        .add_extension(x509.BasicConstraints(ca=is_ca, path_length=None), critical=True)
        .sign(issuer_key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def key() -> RSAPrivateKey:
    """Client key pair whose public half the Admin API signs."""
    return generate_key_pair()


@pytest.fixture(scope="session")
def root_key() -> RSAPrivateKey:
    return generate_key_pair()


@pytest.fixture(scope="session")
def intermediate_key() -> RSAPrivateKey:
    return generate_key_pair()


@pytest.fixture(scope="session")
def ca_cert(root_key: RSAPrivateKey) -> x509.Certificate:
    return _build_certificate("Test Root CA", root_key.public_key(), None, root_key, True)


@pytest.fixture(scope="session")
def intermediate_cert(
    ca_cert: x509.Certificate, root_key: RSAPrivateKey, intermediate_key: RSAPrivateKey
) -> x509.Certificate:
    return _build_certificate(
        "Test Intermediate CA", intermediate_key.public_key(), ca_cert.subject, root_key, True
    )


@pytest.fixture(scope="session")
def client_cert(
    key: RSAPrivateKey,
    intermediate_cert: x509.Certificate,
    intermediate_key: RSAPrivateKey,
) -> x509.Certificate:
    return _build_certificate(
        "test-client", key.public_key(), intermediate_cert.subject, intermediate_key, False
    )


def to_pem(cert: x509.Certificate) -> str:
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture
def instance_name() -> InstanceName:
    return InstanceName.parse(INSTANCE)


@pytest.fixture
def connection_info_response() -> alloydb_v1alpha.ConnectionInfo:
    return alloydb_v1alpha.ConnectionInfo(
        name=f"{INSTANCE}/connectionInfo",
        ip_address="10.0.0.5",
        instance_uid="abc123",
    )


@pytest.fixture
def certificate_response(
    client_cert: x509.Certificate,
    intermediate_cert: x509.Certificate,
    ca_cert: x509.Certificate,
) -> alloydb_v1alpha.GenerateClientCertificateResponse:
    return alloydb_v1alpha.GenerateClientCertificateResponse(
        pem_certificate_chain=[to_pem(client_cert), to_pem(intermediate_cert)],
        ca_cert=to_pem(ca_cert),
    )


@pytest.fixture
def admin_client(mocker, connection_info_response, certificate_response):
    client = mocker.Mock()
    client.get_connection_info.return_value = connection_info_response
    client.generate_client_certificate.return_value = certificate_response
    return client


@pytest.fixture
def executor() -> Iterator[ThreadPoolExecutor]:
    pool = ThreadPoolExecutor(max_workers=4)
    yield pool
    pool.shutdown(wait=True, cancel_futures=True)


@pytest.fixture(name="to_pem")
def to_pem_fixture():
    return to_pem
