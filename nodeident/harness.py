"""
NodeIdent: Compatibility Harness

Proves that a second, independently built program derives the same node ID
from the same certificate. The harness owns both credential paths: it
clears stale files, generates fresh credentials in-process, runs the
external deriver against them, and compares the two identifiers
byte-for-byte.

The external deriver is any command whose last non-empty stdout line is the
textual node ID. Its argument template may reference ``{key}`` and
``{cert}``.
"""

from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

import structlog

from nodeident.config import HarnessConfig
from nodeident.errors import CompatibilityMismatch, CredentialIOError
from nodeident.systems.credentials.service import CredentialService

logger = structlog.get_logger("nodeident.harness")


def default_deriver_command() -> list[str]:
    """Re-derive through a fresh process of our own CLI."""
    return [sys.executable, "-m", "nodeident.cli", "id", "{cert}"]


@dataclass(frozen=True)
class CompatibilityReport:
    local: str
    remote: str
    key_path: str
    cert_path: str

    @property
    def matched(self) -> bool:
        return self.local == self.remote


class CompatibilityHarness:
    def __init__(
        self,
        config: HarnessConfig | None = None,
        service: CredentialService | None = None,
    ) -> None:
        self._config = config or HarnessConfig()
        self._service = service or CredentialService()
        self._logger = logger.bind(component="compatibility_harness")

    @property
    def command_template(self) -> list[str]:
        return list(self._config.deriver_command) or default_deriver_command()

    def run(self, key_path: str | Path, cert_path: str | Path) -> CompatibilityReport:
        """
        Generate once, derive twice, compare.

        Raises CompatibilityMismatch if the identifiers differ or the
        external deriver fails; generation errors propagate unchanged.
        """
        key_path, cert_path = Path(key_path), Path(cert_path)
        if self._config.cleanup_before_run:
            self.cleanup(key_path, cert_path)

        local = self._service.generate(key_path, cert_path).textual
        remote = self.run_deriver(key_path, cert_path)

        report = CompatibilityReport(
            local=local, remote=remote, key_path=str(key_path), cert_path=str(cert_path),
        )
        if not report.matched:
            self._logger.error("node_id_mismatch", local=local, remote=remote)
            raise CompatibilityMismatch(
                f"node IDs differ: local {local!r} != remote {remote!r}",
                local=local,
                remote=remote,
            )

        self._logger.info("node_id_compatible", node_id=local)
        return report

    def run_deriver(self, key_path: str | Path, cert_path: str | Path) -> str:
        """Run the external deriver and return the node ID it printed."""
        argv = [
            part.replace("{key}", str(key_path)).replace("{cert}", str(cert_path))
            for part in self.command_template
        ]
        self._logger.info("external_deriver_started", argv=argv)

        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                timeout=self._config.timeout_s,
                check=False,
            )
        except subprocess.TimeoutExpired as exc:
            raise CompatibilityMismatch(
                f"external deriver timed out after {self._config.timeout_s}s"
            ) from exc
        except OSError as exc:
            raise CompatibilityMismatch(f"failed to launch external deriver: {exc}") from exc

        if result.returncode != 0:
            raise CompatibilityMismatch(
                f"external deriver exited with {result.returncode}: "
                f"{result.stderr.strip() or result.stdout.strip()}"
            )

        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        if not lines:
            raise CompatibilityMismatch("external deriver printed no node ID")
        return lines[-1]

    @staticmethod
    def cleanup(*paths: Path) -> None:
        """Remove stale credential files so an old run cannot pass for this one."""
        for path in paths:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                raise CredentialIOError(f"failed to remove stale file: {exc}", str(path)) from exc
