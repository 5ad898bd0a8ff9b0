import base64
import os
import secrets
import string
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from clientbuild.logger import get_console
from clientbuild.src.core.credentials import DistributionCertificate, PushKey
from clientbuild.src.core.errors import ClientBuildError
from clientbuild.src.utils.config_loader import get_home_dir

console = get_console()


def _openssl(args: List[str]) -> subprocess.CompletedProcess:
    result = subprocess.run(["openssl", *args], capture_output=True, text=True)
    if result.returncode != 0:
        raise ClientBuildError(
            f"openssl {args[0]} failed: {result.stderr.strip()}", code="OPENSSL_FAILED"
        )
    return result


def generate_password(length: int = 16) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_signing_request(common_name: str, email: str) -> Tuple[str, str]:
    """Create a private key and certificate signing request. Returns both as PEM."""
    with tempfile.TemporaryDirectory() as tmp:
        key_path = Path(tmp) / "key.pem"
        csr_path = Path(tmp) / "request.csr"
        _openssl(
            [
                "req",
                "-new",
                "-newkey",
                "rsa:2048",
                "-nodes",
                "-keyout",
                str(key_path),
                "-out",
                str(csr_path),
                "-subj",
                f"/emailAddress={email}/CN={common_name}/C=US",
            ]
        )
        return key_path.read_text(), csr_path.read_text()


def export_p12(certificate_der: bytes, private_key_pem: str, password: str) -> str:
    """Bundle a DER certificate issued by Apple with its key. Returns the p12 base64 encoded."""
    with tempfile.TemporaryDirectory() as tmp:
        der_path = Path(tmp) / "cert.der"
        pem_path = Path(tmp) / "cert.pem"
        key_path = Path(tmp) / "key.pem"
        p12_path = Path(tmp) / "cert.p12"
        der_path.write_bytes(certificate_der)
        key_path.write_text(private_key_pem)

        _openssl(["x509", "-inform", "DER", "-in", str(der_path), "-out", str(pem_path)])
        _openssl(
            [
                "pkcs12",
                "-export",
                "-inkey",
                str(key_path),
                "-in",
                str(pem_path),
                "-out",
                str(p12_path),
                "-passout",
                f"pass:{password}",
            ]
        )
        return base64.b64encode(p12_path.read_bytes()).decode()


def read_p12_serial(p12_path: Path, password: str) -> str:
    """Serial number of the certificate inside a p12, as the developer portal lists it"""
    with tempfile.NamedTemporaryFile(suffix=".pem") as temp_pem:
        args = [
            "pkcs12",
            "-in",
            str(p12_path),
            "-nokeys",
            "-clcerts",
            "-passin",
            f"pass:{password}",
            "-out",
            temp_pem.name,
        ]
        try:
            _openssl(args)
        except ClientBuildError:
            # p12 files exported by Keychain Access use algorithms OpenSSL 3 calls legacy
            _openssl(args + ["-legacy"])

        result = _openssl(["x509", "-noout", "-serial", "-in", temp_pem.name])
        return result.stdout.strip().split("=")[1]


class LocalCredentials:
    """Credentials the operator placed in the certificate directory.

    Layout::

        <cert_dir>/distribution/cert.p12
        <cert_dir>/distribution/cert_pass.txt
        <cert_dir>/push/key.p8
        <cert_dir>/push/key_id.txt
    """

    def __init__(self, cert_dir: Optional[Path] = None):
        self.cert_dir = Path(
            cert_dir or os.getenv("CLIENTBUILD_CERT_DIR") or get_home_dir() / "certificates"
        )

    def distribution_cert(self) -> Optional[DistributionCertificate]:
        cert_dir = self.cert_dir / "distribution"
        cert_path = cert_dir / "cert.p12"
        pass_path = cert_dir / "cert_pass.txt"
        if not cert_path.exists():
            return None
        if not pass_path.exists():
            console.print(
                f"[yellow]Found {cert_path} but no cert_pass.txt next to it, ignoring it[/]"
            )
            return None

        password = pass_path.read_text().strip()
        serial = read_p12_serial(cert_path, password)
        console.log(f"[green]Loaded local distribution certificate:[/] {cert_path}")
        return DistributionCertificate(
            cert_id=None,
            cert_p12=base64.b64encode(cert_path.read_bytes()).decode(),
            cert_password=password,
            serial_number=serial,
        )

    def push_key(self) -> Optional[PushKey]:
        key_dir = self.cert_dir / "push"
        key_path = key_dir / "key.p8"
        key_id_path = key_dir / "key_id.txt"
        if not key_path.exists() or not key_id_path.exists():
            return None

        console.log(f"[green]Loaded local push key:[/] {key_path}")
        return PushKey(key_id=key_id_path.read_text().strip(), key_p8=key_path.read_text())
