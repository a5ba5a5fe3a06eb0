"""Certificate utility functions for key generation, PEM encoding, and parsing."""

import base64
import binascii

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .core import (
    DEFAULT_KEY_SIZE,
    OPENSSL_PUBLIC_KEY_BEGIN,
    OPENSSL_PUBLIC_KEY_END,
    PEM_LINE_LENGTH,
)
from .errors import CertificateParseError

PEM_MARKER = b"-----BEGIN"


def generate_key_pair(key_size: int = DEFAULT_KEY_SIZE) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def encode_public_key_as_pem(public_key: RSAPublicKey) -> str:
    """Encode a public key as an OpenSSL-style PEM block.

    The body is the base64 DER SubjectPublicKeyInfo, wrapped at 64
    characters per line.

    Args:
        public_key: RSA public key to encode

    Returns:
        PEM string terminated by a newline
    """
    der = public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    body = base64.b64encode(der).decode("ascii")
    lines = [body[i : i + PEM_LINE_LENGTH] for i in range(0, len(body), PEM_LINE_LENGTH)]
    return f"{OPENSSL_PUBLIC_KEY_BEGIN}\n" + "\n".join(lines) + f"\n{OPENSSL_PUBLIC_KEY_END}\n"


def parse_public_key_from_pem(pem: str) -> RSAPublicKey:
    """Decode a public key produced by encode_public_key_as_pem.

    Raises:
        ValueError: If the markers are missing or the body is not an RSA key
    """
    text = pem.strip()
    if not text.startswith(OPENSSL_PUBLIC_KEY_BEGIN) or not text.endswith(
        OPENSSL_PUBLIC_KEY_END
    ):
        raise ValueError("expected an RSA PUBLIC KEY PEM block")

    body = text[len(OPENSSL_PUBLIC_KEY_BEGIN) : -len(OPENSSL_PUBLIC_KEY_END)]
    try:
        der = base64.b64decode("".join(body.split()), validate=True)
    except binascii.Error as e:
        raise ValueError(f"invalid base64 in public key PEM: {e}") from e

    key = serialization.load_der_public_key(der)
    if not isinstance(key, RSAPublicKey):
        raise ValueError("expected RSA public key")
    return key


def parse_certificate(data: bytes | str) -> x509.Certificate:
    """Decode a single X.509 certificate from PEM or DER bytes.

    Raises:
        CertificateParseError: If the data is not a well-formed certificate
    """
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    try:
        if raw.lstrip().startswith(PEM_MARKER):
            return x509.load_pem_x509_certificate(raw)
        return x509.load_der_x509_certificate(raw)
    except ValueError as e:
        raise CertificateParseError(f"failed to parse X.509 certificate: {e}") from e
