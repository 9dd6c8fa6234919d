"""
NodeIdent: Node Identity

Derives and validates the checksummed identifiers nodes are known by.
"""

from nodeident.systems.identity.node_id import (
    NODE_ID_PREFIX,
    NodeIdentityDeriver,
    decode_peer_node_id,
    is_valid_node_id,
    parse_node_id,
)

__all__ = [
    "NODE_ID_PREFIX",
    "NodeIdentityDeriver",
    "decode_peer_node_id",
    "is_valid_node_id",
    "parse_node_id",
]
