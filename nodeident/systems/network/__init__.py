"""
NodeIdent: Network Records

Bootstrap peer records that carry node identifiers.
"""

from nodeident.systems.network.beacon import BeaconNode, NodeType, load_beacon_node

__all__ = ["BeaconNode", "NodeType", "load_beacon_node"]
