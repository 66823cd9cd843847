"""Webhook signature validation."""

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_PREFIX = "sha256="


def compute_signature(payload: bytes, secret: str, digestmod=hashlib.sha256) -> str:
    """Return the hex HMAC digest of ``payload`` keyed by ``secret``."""
    return hmac.new(secret.encode("utf-8"), payload, digestmod).hexdigest()


def _digests_equal(expected: str, received: str) -> bool:
    # Compare as bytes: compare_digest rejects non-ASCII str input
    return hmac.compare_digest(
        expected.encode("utf-8"),
        received.encode("utf-8", errors="replace"),
    )


def validate_github_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """
    Validate GitHub webhook signature using HMAC SHA-256.

    The comparison is constant-time and never raises; a missing, malformed
    or mismatched header simply yields ``False``.

    Args:
        payload: The raw request body bytes
        signature: The X-Hub-Signature-256 header value
        secret: The webhook secret configured in GitHub

    Returns:
        True if the signature is valid, False otherwise
    """
    if not signature:
        logger.debug("Missing webhook signature")
        return False

    if not signature.startswith(SIGNATURE_PREFIX):
        logger.warning("Invalid signature format - expected sha256= prefix")
        return False

    expected_signature = SIGNATURE_PREFIX + compute_signature(payload, secret)

    return _digests_equal(expected_signature, signature)


verify_signature = validate_github_signature


def validate_webex_signature(payload: bytes, signature: str | None, secret: str) -> bool:
    """
    Validate a Webex webhook signature (X-Spark-Signature).

    Webex signs the raw body with HMAC SHA-1 and sends the bare hex digest.
    """
    if not signature:
        return False

    expected_signature = compute_signature(payload, secret, hashlib.sha1)
    return _digests_equal(expected_signature, signature.lower())
