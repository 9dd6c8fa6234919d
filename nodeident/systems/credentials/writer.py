"""
NodeIdent: Credential Writer

Writes the private key and certificate as PEM. Each file goes to a temp
file in the destination directory, is flushed and fsynced, then renamed
over the destination, so a reader starting concurrently sees either the
old file, nothing, or the complete new file. The key file is 0600 from
the moment it exists.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

import structlog

from nodeident.errors import CredentialIOError
from nodeident.primitives.credentials import KeyPair, PrivateKey
from nodeident.systems.credentials.certificate import Certificate

logger = structlog.get_logger("nodeident.credentials.writer")

PRIVATE_KEY_MODE = 0o600
CERTIFICATE_MODE = 0o644


def atomic_write(path: str | Path, data: bytes, mode: int) -> None:
    """
    Replace ``path`` with ``data`` via temp file + rename.

    The temp file is removed on every failure path. Raises
    CredentialIOError for any filesystem failure.
    """
    dest = Path(path)
    directory = dest.parent

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{dest.name}.", suffix=".tmp", dir=directory,
        )
    except OSError as exc:
        raise CredentialIOError(f"failed to create temp file: {exc}", str(dest)) from exc

    try:
        # mkstemp already creates 0600; chmod makes the final mode explicit
        # before a single byte of content lands.
        os.fchmod(fd, mode)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, dest)
    except OSError as exc:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise CredentialIOError(f"failed to write file: {exc}", str(dest)) from exc
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise

    _fsync_directory(directory)


def _fsync_directory(directory: Path) -> None:
    # Makes the rename durable. Some filesystems refuse O_RDONLY on dirs.
    try:
        dir_fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        logger.debug("directory_fsync_unsupported", directory=str(directory))
    finally:
        os.close(dir_fd)


class CredentialWriter:
    """Serializes a key pair's private half and its certificate to disk."""

    def __init__(self) -> None:
        self._logger = logger.bind(component="credential_writer")

    def write(
        self,
        private_key: PrivateKey | KeyPair,
        certificate: Certificate,
        key_path: str | Path,
        cert_path: str | Path,
    ) -> None:
        key_pem = (
            private_key.private_key_pem()
            if isinstance(private_key, KeyPair)
            else KeyPair.pem_for(private_key)
        )

        atomic_write(key_path, key_pem, PRIVATE_KEY_MODE)
        self._logger.info("private_key_written", path=str(key_path))

        atomic_write(cert_path, certificate.pem, CERTIFICATE_MODE)
        self._logger.info("certificate_written", path=str(cert_path))
