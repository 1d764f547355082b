"""Client for the external fingerprint verification service.

The service accepts ``{"animation_hash": <64 hex chars>}`` and answers
``{"valid": bool, "message": str, "entry": {...}}``. Matching and expiry are
the service's business; this client only transports a well-formed fingerprint.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from qrggif.common.config_loader import VerificationConfig
from qrggif.common.errors import VerificationError
from qrggif.sequence.fingerprint import is_fingerprint

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    """Verification service answer.

    Attributes:
        valid: Whether the service recognized an active credential
        message: Service message
        entry: Matching credential record, if any
    """

    valid: bool
    message: str
    entry: Optional[Dict[str, Any]] = None


class VerificationClient:
    """Posts fingerprints to the verification endpoint.

    Args:
        config: Verification configuration (defaults if None)
    """

    def __init__(self, config: Optional[VerificationConfig] = None):
        self.config = config or VerificationConfig()

    def verify(self, fingerprint: str) -> VerificationResult:
        """Ask the service whether a fingerprint is a valid credential.

        Args:
            fingerprint: 64 lowercase hex characters

        Returns:
            VerificationResult; client errors with a JSON body come back as
            ``valid=False``

        Raises:
            ValueError: If ``fingerprint`` is malformed
            VerificationError: On transport errors, server errors or a
                response that is not a JSON object
        """
        if not is_fingerprint(fingerprint):
            raise ValueError(f"Malformed fingerprint: {fingerprint!r}")

        try:
            response = requests.post(
                self.config.url,
                json={"animation_hash": fingerprint},
                timeout=self.config.timeout_s,
            )
        except requests.RequestException as e:
            logger.error(f"Verification request to {self.config.url} failed: {e}")
            raise VerificationError(f"Verification service unreachable: {e}") from e

        if response.status_code >= 500:
            raise VerificationError(
                f"Verification service error: HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise VerificationError(
                f"Verification service returned non-JSON response (HTTP {response.status_code})"
            ) from e
        if not isinstance(body, dict):
            raise VerificationError(f"Unexpected verification response: {body!r}")

        valid = response.status_code < 400 and bool(body.get("valid", False))
        result = VerificationResult(
            valid=valid,
            message=str(body.get("message", "")),
            entry=body.get("entry"),
        )
        logger.info(
            f"Verification of {fingerprint[:12]}...: valid={result.valid} ({result.message})"
        )
        return result
