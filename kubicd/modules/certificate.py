"""Issue short-lived user certificates with certstrap."""
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Union

from kubicd.errors import CertificateError

logger = logging.getLogger("kubicd.certificate")

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class Certificate:
    name: str
    key: str
    crt: str


class CertificateIssuer:
    """Create and sign a key pair for a user, then remove it from the depot."""

    def __init__(
        self,
        pki_dir: Union[str, Path],
        ca_name: str = "Kubic-Control-CA",
        certstrap: str = "certstrap",
        runner: Runner = subprocess.run,
    ):
        self.pki_dir = Path(pki_dir)
        self.ca_name = ca_name
        self.certstrap = certstrap
        self.runner = runner

    def _run(self, args: List[str]) -> str:
        cmd = [self.certstrap, "--depot-path", str(self.pki_dir)] + args
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = self.runner(cmd, capture_output=True, text=True)
        except OSError as e:
            raise CertificateError(f"Error invoking {self.certstrap}: {e}") from e
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.error("Error invoking %s: exit status %d\n%s", self.certstrap, result.returncode, stderr)
            raise CertificateError(
                f"Error invoking {self.certstrap}: exit status {result.returncode} \n({stderr})"
            )
        logger.info(result.stdout)
        return result.stdout

    def create(self, name: str) -> Certificate:
        """Issue a certificate for ``name``.

        Raises:
            CertificateError: If certstrap fails or the files cannot be read
        """
        if not name or "/" in name:
            raise CertificateError(f"Invalid certificate name: {name!r}")

        self._run(["request-cert", "--common-name", name, "--domain", name, "--passphrase", ""])
        self._run(["sign", name, "--CA", self.ca_name])

        try:
            key = (self.pki_dir / f"{name}.key").read_text()
            crt = (self.pki_dir / f"{name}.crt").read_text()
        except OSError as e:
            raise CertificateError(str(e)) from e
        finally:
            for suffix in (".key", ".crt", ".csr"):
                (self.pki_dir / f"{name}{suffix}").unlink(missing_ok=True)

        logger.info("Issued certificate for %s", name)
        return Certificate(name=name, key=key, crt=crt)
