"""Per-connection mTLS certificate materials.

Each bank connection owns a directory under the certificates root holding
exactly three files:

    <certs_root>/<connection_id>/ca.cer
    <certs_root>/<connection_id>/cert.pem
    <certs_root>/<connection_id>/private.key

The directory is the cache: when the three files exist they are reused as-is.
Otherwise they are materialized from base64 blobs stored in the wallet
metadata under "certificates" (caBase64, certBase64, keyBase64).
"""

import base64
import binascii
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional

from bb_gateway.domain.exceptions import CertificatesNotFound
from bb_gateway.domain.models import CertificateSet
from bb_gateway.infrastructure.database.repositories import WalletMetadataStore

logger = logging.getLogger(__name__)

CA_FILENAME = "ca.cer"
CERT_FILENAME = "cert.pem"
KEY_FILENAME = "private.key"

PRIVATE_KEY_MODE = 0o600
DIRECTORY_MODE = 0o700

_BLOB_KEYS = (("caBase64", CA_FILENAME), ("certBase64", CERT_FILENAME), ("keyBase64", KEY_FILENAME))


def extract_pem(content: bytes) -> bytes:
    """
    Strip "Bag Attributes" headers that PKCS#12 export tools put around PEM blocks.

    Keeps everything from the first BEGIN marker to the end of the line holding
    the last END marker. DER or already clean PEM content is returned unchanged.
    """
    if b"Bag Attributes" not in content:
        return content
    begin = content.find(b"-----BEGIN")
    end = content.rfind(b"-----END")
    if begin == -1 or end == -1 or end < begin:
        return content
    line_end = content.find(b"\n", end)
    extracted = content[begin:] if line_end == -1 else content[begin:line_end + 1]
    logger.debug("Extracted PEM section from PKCS bag", extra={"size": len(extracted)})
    return extracted


def _non_empty(path: str) -> bool:
    try:
        return os.path.getsize(path) > 0
    except OSError:
        return False


class CertificateManager:
    """Locates or materializes the mTLS certificate set of a connection"""

    def __init__(self, certs_root: str | Path, wallet_store: Optional[WalletMetadataStore] = None):
        self.certs_root = Path(certs_root)
        self.wallet_store = wallet_store
        self.write_count = 0

    def certificate_dir(self, connection_id: str) -> Path:
        """Deterministic directory of a connection's certificates"""
        if not connection_id or connection_id in (".", "..") or any(sep in connection_id for sep in ("/", "\\", "\x00")):
            raise CertificatesNotFound(connection_id or "", "invalid connection id")
        return self.certs_root / connection_id

    def certificate_set(self, connection_id: str) -> CertificateSet:
        directory = self.certificate_dir(connection_id)
        return CertificateSet(
            ca_cert_path=str(directory / CA_FILENAME),
            client_cert_path=str(directory / CERT_FILENAME),
            private_key_path=str(directory / KEY_FILENAME),
        )

    @staticmethod
    def is_complete(certs: CertificateSet) -> bool:
        return all(_non_empty(p) for p in certs.paths())

    def resolve_certificates(self, connection_id: str) -> CertificateSet:
        """
        Return the certificate set of a connection, materializing it on first use.

        Raises:
            CertificatesNotFound: nothing on disk and no usable blobs in metadata
        """
        certs = self.certificate_set(connection_id)
        if self.is_complete(certs):
            logger.debug("Using cached certificates", extra={"connection_id": connection_id})
            return certs

        blobs = self._load_blobs(connection_id)
        if blobs is None:
            logger.error("Certificates not found", extra={"connection_id": connection_id})
            raise CertificatesNotFound(connection_id)

        directory = self.certificate_dir(connection_id)
        directory.mkdir(parents=True, exist_ok=True, mode=DIRECTORY_MODE)
        for filename, content in blobs.items():
            mode = PRIVATE_KEY_MODE if filename == KEY_FILENAME else None
            self._write_atomic(directory / filename, content, mode)

        if not self.is_complete(certs):
            raise CertificatesNotFound(connection_id, "certificates could not be materialized")

        logger.info("Certificates materialized from wallet metadata", extra={"connection_id": connection_id})
        return certs

    def _load_blobs(self, connection_id: str) -> Optional[dict[str, bytes]]:
        if self.wallet_store is None:
            return None
        metadata = self.wallet_store.get_metadata(connection_id) or {}
        stored = metadata.get("certificates")
        if not isinstance(stored, dict):
            return None
        if not all(stored.get(key) for key, _ in _BLOB_KEYS):
            return None

        blobs = {}
        for key, filename in _BLOB_KEYS:
            try:
                decoded = base64.b64decode(stored[key], validate=False)
            except (binascii.Error, ValueError, TypeError) as e:
                raise CertificatesNotFound(connection_id, f"invalid base64 in {key}") from e
            blobs[filename] = extract_pem(decoded)
        return blobs

    def _write_atomic(self, target: Path, content: bytes, mode: Optional[int]) -> None:
        """Write to a temp file in the same directory, then rename over the target"""
        fd, tmp_path = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            if mode is not None:
                os.chmod(tmp_path, mode)
            os.replace(tmp_path, target)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        self.write_count += 1
