"""Fetches connection metadata and a client certificate for an instance.

The two Admin API calls are independent, so they are dispatched together on
the shared executor and joined once both have finished.
"""

import contextlib
import threading
from concurrent.futures import CancelledError, Executor, Future, InvalidStateError
from concurrent.futures import TimeoutError as FutureTimeoutError

import grpc
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from google.cloud import alloydb_v1alpha
from google.protobuf import duration_pb2

from .certs import encode_public_key_as_pem, parse_certificate
from .core import CERT_DURATION_SECONDS
from .errors import (
    ADMIN_API_ERROR_MESSAGE,
    CertificateParseError,
    ConnectorError,
    TransientError,
    handle_exception,
    pick_representative,
)
from .logger import logger
from .schemas.connection import ConnectionInfo, InstanceName


class ConnectionInfoFetcher:
    """Builds ConnectionInfo bundles from the AlloyDB Admin API.

    The executor and admin client are owned by the caller and may be shared
    between fetchers. The fetcher keeps no per-call state, so concurrent
    fetch() calls are safe.
    """

    def __init__(
        self, executor: Executor, admin_client: alloydb_v1alpha.AlloyDBAdminClient
    ) -> None:
        self._executor = executor
        self._admin_client = admin_client
        self._closed = False
        self._close_lock = threading.Lock()

    def fetch(self, instance_name: InstanceName, key: RSAPrivateKey) -> "Future[ConnectionInfo]":
        """
        Starts both Admin API calls and returns a future for the joined result.
        The future fails with a TerminalError or TransientError.
        """
        logger.debug(f"Fetching connection info for {instance_name}")

        info_future = self._executor.submit(self._get_connection_info, instance_name)
        cert_future = self._executor.submit(
            self._generate_client_certificate, instance_name, key
        )
        return _join(instance_name, info_future, cert_future)

    def fetch_and_wait(
        self,
        instance_name: InstanceName,
        key: RSAPrivateKey,
        timeout: float | None = None,
    ) -> ConnectionInfo:
        """
        Blocking variant of fetch(). On timeout both in-flight calls are
        cancelled and a TransientError is raised.
        """
        future = self.fetch(instance_name, key)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise TransientError(
                ADMIN_API_ERROR_MESSAGE.format(
                    reason=f"timed out after {timeout} seconds"
                ),
                e,
                grpc.StatusCode.DEADLINE_EXCEEDED,
            ) from e

    def close(self) -> None:
        """Releases the admin client transport. Safe to call more than once."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        logger.debug("Closing AlloyDB Admin API client")
        self._admin_client.transport.close()

    def __enter__(self) -> "ConnectionInfoFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _get_connection_info(
        self, instance_name: InstanceName
    ) -> alloydb_v1alpha.ConnectionInfo:
        request = alloydb_v1alpha.GetConnectionInfoRequest(parent=str(instance_name))
        try:
            return self._admin_client.get_connection_info(request=request)
        except Exception as e:
            raise handle_exception(e)

    def _generate_client_certificate(
        self, instance_name: InstanceName, key: RSAPrivateKey
    ) -> alloydb_v1alpha.GenerateClientCertificateResponse:
        request = alloydb_v1alpha.GenerateClientCertificateRequest(
            parent=instance_name.cluster_name,
            public_key=encode_public_key_as_pem(key.public_key()),
            cert_duration=duration_pb2.Duration(seconds=CERT_DURATION_SECONDS),
            use_metadata_exchange=True,
        )
        try:
            return self._admin_client.generate_client_certificate(request=request)
        except Exception as e:
            raise handle_exception(e)


def _join(
    instance_name: InstanceName,
    info_future: "Future[alloydb_v1alpha.ConnectionInfo]",
    cert_future: "Future[alloydb_v1alpha.GenerateClientCertificateResponse]",
) -> "Future[ConnectionInfo]":
    """Resolves a new future once both subtasks are done.

    Runs from subtask callbacks so no executor thread blocks on the join.
    """
    result: Future[ConnectionInfo] = Future()
    subtasks: tuple[Future, ...] = (info_future, cert_future)
    lock = threading.Lock()

    def _on_subtask_done(_: Future) -> None:
        with lock:
            if result.done() or not all(f.done() for f in subtasks):
                return
            try:
                outcome = _combine(info_future, cert_future)
            except ConnectorError as e:
                logger.warning(f"Failed to fetch connection info for {instance_name}: {e}")
                # The caller may have cancelled the result in the meantime
                with contextlib.suppress(InvalidStateError):
                    result.set_exception(e)
                return
            with contextlib.suppress(InvalidStateError):
                result.set_result(outcome)

    def _on_result_done(f: Future) -> None:
        if f.cancelled():
            for subtask in subtasks:
                subtask.cancel()

    result.add_done_callback(_on_result_done)
    for subtask in subtasks:
        subtask.add_done_callback(_on_subtask_done)
    return result


def _combine(
    info_future: "Future[alloydb_v1alpha.ConnectionInfo]",
    cert_future: "Future[alloydb_v1alpha.GenerateClientCertificateResponse]",
) -> ConnectionInfo:
    """Builds the bundle from two finished subtasks, or raises one ConnectorError."""
    errors: list[ConnectorError] = []
    for subtask in (info_future, cert_future):
        try:
            subtask.result()
        except CancelledError as e:
            errors.append(
                TransientError(
                    ADMIN_API_ERROR_MESSAGE.format(reason="request was cancelled"),
                    e,
                    grpc.StatusCode.CANCELLED,
                )
            )
        except Exception as e:
            errors.append(handle_exception(e))
    if errors:
        raise pick_representative(errors)

    info = info_future.result()
    certificate_response = cert_future.result()

    try:
        if not certificate_response.pem_certificate_chain:
            raise CertificateParseError("Admin API returned an empty certificate chain")
        certificate_chain = tuple(
            parse_certificate(pem) for pem in certificate_response.pem_certificate_chain
        )
        ca_certificate = parse_certificate(certificate_response.ca_cert)

        return ConnectionInfo(
            ip_address=info.ip_address,
            public_ip_address=info.public_ip_address,
            psc_dns_name=info.psc_dns_name,
            instance_uid=info.instance_uid,
            client_certificate=certificate_chain[0],
            certificate_chain=certificate_chain,
            ca_certificate=ca_certificate,
        )
    except Exception as e:
        raise handle_exception(e)
