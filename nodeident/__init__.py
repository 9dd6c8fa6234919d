"""
NodeIdent

Self-signed staking credentials and the checksummed node identifiers
derived from them.
"""

__version__ = "0.1.0"
