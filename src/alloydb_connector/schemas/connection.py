import enum
from datetime import datetime

from cryptography import x509
from google.cloud.alloydb_v1alpha import AlloyDBAdminClient
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class IPType(enum.Enum):
    PRIVATE = "PRIVATE"
    PUBLIC = "PUBLIC"
    PSC = "PSC"


class InstanceName(BaseModel):
    """Fully-qualified AlloyDB instance resource name."""

    model_config = ConfigDict(frozen=True)

    project: str
    location: str
    cluster: str
    instance: str

    @field_validator("project", "location", "cluster", "instance")
    @classmethod
    def _single_segment(cls, value: str) -> str:
        if not value or "/" in value:
            raise ValueError(f"invalid resource name segment: {value!r}")
        return value

    @classmethod
    def parse(cls, name: str) -> "InstanceName":
        """
        Parses projects/<p>/locations/<l>/clusters/<c>/instances/<i>.
        Raises ValueError for anything else.
        """
        segments = AlloyDBAdminClient.parse_instance_path(name.strip())
        if not segments:
            raise ValueError(
                f"invalid instance name {name!r}, expected "
                "projects/<PROJECT>/locations/<REGION>/clusters/<CLUSTER>/instances/<INSTANCE>"
            )
        return cls(**segments)

    @property
    def cluster_name(self) -> str:
        """The parent cluster (instance segment stripped)."""
        return AlloyDBAdminClient.cluster_path(self.project, self.location, self.cluster)

    def __str__(self) -> str:
        return AlloyDBAdminClient.instance_path(
            self.project, self.location, self.cluster, self.instance
        )


class ConnectionInfo(BaseModel):
    """Everything needed to open a mutually authenticated connection."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    ip_address: str = Field(description="Private IP address of the instance")
    public_ip_address: str | None = None
    psc_dns_name: str | None = None
    instance_uid: str
    client_certificate: x509.Certificate
    certificate_chain: tuple[x509.Certificate, ...] = Field(
        description="Leaf first, in the order returned by the Admin API"
    )
    ca_certificate: x509.Certificate

    @field_validator("public_ip_address", "psc_dns_name", mode="before")
    @classmethod
    def _empty_to_none(cls, value: str | None) -> str | None:
        # Unset proto3 string fields come back as ""
        return value or None

    @model_validator(mode="after")
    def _client_certificate_leads_chain(self) -> "ConnectionInfo":
        if not self.certificate_chain:
            raise ValueError("certificate chain must not be empty")
        if self.certificate_chain[0] != self.client_certificate:
            raise ValueError("client certificate must be the first element of the chain")
        return self

    @property
    def expiration(self) -> datetime:
        return self.client_certificate.not_valid_after_utc

    def address_for(self, ip_type: IPType) -> str:
        """Returns the endpoint for ip_type, or raises ValueError if the instance has none."""
        addresses = {
            IPType.PRIVATE: self.ip_address,
            IPType.PUBLIC: self.public_ip_address,
            IPType.PSC: self.psc_dns_name,
        }
        address = addresses[ip_type]
        if not address:
            raise ValueError(f"instance {self.instance_uid} has no {ip_type.value} address")
        return address
