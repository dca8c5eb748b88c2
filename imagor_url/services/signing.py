import abc
import base64
import hashlib
import hmac
from typing import Dict, Optional, Type

from imagor_url.core.config import settings
from imagor_url.core.errors import SigningUnavailableError
from imagor_url.core.logging import get_logger

logger = get_logger("signing")

DIGEST_NAME = "sha1"

EXPOSED_SECRET_WARNING = (
    "It is highly recommended to NOT sign imagor URLs where the result is "
    "visible to end users, otherwise you will expose your imagor secret to the public."
)


def encode_signature(digest: bytes) -> str:
    """URL-safe base64 with padding kept ('+' -> '-', '/' -> '_')."""
    return base64.urlsafe_b64encode(digest).decode("ascii")


class Signer(abc.ABC):
    """Produces the imagor signature for a path.

    Subclasses only provide ``digest``; encoding and the exposure warning
    are shared so every backend yields identical output.
    """

    name = "base"

    def __init__(self, exposed: bool = False):
        self.exposed = exposed

    @abc.abstractmethod
    def digest(self, message: bytes, key: bytes) -> bytes:
        """Raw HMAC-SHA1 of message under key."""

    def sign(self, message: str, key: str) -> str:
        """Sign ``message`` with ``key``.

        Args:
            message: The path after the server address and leading slash
            key: The shared imagor secret

        Returns:
            URL-safe base64 encoded HMAC-SHA1
        """
        if self.exposed:
            logger.warning(EXPOSED_SECRET_WARNING)

        try:
            raw = self.digest(message.encode("utf-8"), key.encode("utf-8"))
        except (ValueError, TypeError) as e:
            # hashlib refuses sha1 when the interpreter runs in FIPS mode
            logger.error(f"HMAC-{DIGEST_NAME} failed with backend {self.name}: {str(e)}")
            raise SigningUnavailableError(self.name, original_exception=e)

        return encode_signature(raw)


class HmacSigner(Signer):
    """Incremental HMAC object from the ``hmac`` module."""

    name = "hmac"

    def digest(self, message: bytes, key: bytes) -> bytes:
        mac = hmac.new(key, digestmod=getattr(hashlib, DIGEST_NAME))
        mac.update(message)
        return mac.digest()


class OpenSSLSigner(Signer):
    """One-shot HMAC computed directly by the OpenSSL backed ``hmac.digest``."""

    name = "openssl"

    def digest(self, message: bytes, key: bytes) -> bytes:
        if DIGEST_NAME not in hashlib.algorithms_available:
            raise SigningUnavailableError(self.name)
        return hmac.digest(key, message, DIGEST_NAME)


SIGNERS: Dict[str, Type[Signer]] = {
    HmacSigner.name: HmacSigner,
    OpenSSLSigner.name: OpenSSLSigner,
}


def get_signer(backend: Optional[str] = None, exposed: Optional[bool] = None) -> Signer:
    """Build the signer selected by name, falling back to settings.

    Raises:
        SigningUnavailableError: If no signer is registered under ``backend``
    """
    backend = (backend or settings.imagor_signing_backend).lower()
    if exposed is None:
        exposed = settings.imagor_signing_exposed

    signer_cls = SIGNERS.get(backend)
    if signer_cls is None:
        raise SigningUnavailableError(backend, context={"available": sorted(SIGNERS)})
    return signer_cls(exposed=exposed)


def sign(message: str, key: str, signer: Optional[Signer] = None) -> str:
    """Convenience function to sign a path with the configured backend."""
    return (signer or get_signer()).sign(message, key)
