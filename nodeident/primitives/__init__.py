"""
NodeIdent: Primitives
"""
