"""
NodeIdent: Beacon Node Records

A beacon node is a bootstrap peer known by its address and node ID. Nodes
publish these records as small YAML documents after deriving their own ID,
and every record is checked for a prefixed, checksum-valid node ID when
it is loaded.
"""

from __future__ import annotations

import enum
from pathlib import Path

import structlog
import yaml
from pydantic import field_validator

from nodeident.errors import ChecksumMismatch, EncodingError, MalformedNodeIdentifier
from nodeident.primitives.common import NodeIdentBaseModel
from nodeident.systems.credentials.loader import read_bytes
from nodeident.systems.credentials.writer import CERTIFICATE_MODE, atomic_write
from nodeident.systems.identity.node_id import NodeIdentityDeriver, decode_peer_node_id

logger = structlog.get_logger("nodeident.network.beacon")


class NodeType(str, enum.Enum):
    BEACON = "beacon"
    NON_BEACON = "non-beacon"

    @classmethod
    def parse(cls, value: str) -> NodeType:
        normalized = value.strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"unknown node type '{value}'") from None


class BeaconNode(NodeIdentBaseModel):
    ip: str
    id: str

    @field_validator("ip")
    @classmethod
    def _ip_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("ip must not be empty")
        return v

    @field_validator("id")
    @classmethod
    def _valid_node_id(cls, v: str) -> str:
        try:
            decode_peer_node_id(v)
        except (MalformedNodeIdentifier, ChecksumMismatch) as exc:
            raise ValueError(str(exc)) from exc
        return v

    @classmethod
    def from_certificate(cls, ip: str, cert_path: str | Path) -> BeaconNode:
        node_id = NodeIdentityDeriver().derive_from_file(cert_path)
        return cls(ip=ip, id=node_id.textual)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.model_dump(), sort_keys=False)

    def sync(self, path: str | Path) -> None:
        """Atomically write this record to ``path`` as YAML."""
        atomic_write(path, self.to_yaml().encode("utf-8"), CERTIFICATE_MODE)
        logger.info("beacon_node_synced", path=str(path), node_id=self.id)


def load_beacon_node(path: str | Path) -> BeaconNode:
    """
    Load a beacon node record.

    Raises CredentialIOError if the file cannot be read, EncodingError if it
    is not a YAML mapping, and pydantic's ValidationError for a bad record.
    """
    raw = read_bytes(path)
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise EncodingError(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise EncodingError(f"beacon node record must be a mapping: {path}")
    return BeaconNode(**data)
