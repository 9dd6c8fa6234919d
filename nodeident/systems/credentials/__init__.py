"""
NodeIdent: Credentials System

Key pair generation, self-signed certificates, and their PEM files on disk.
The pipeline itself lives in ``nodeident.systems.credentials.service``.
"""
