import hashlib
import hmac
import time

from aws_lambda_powertools import Logger

from .errors import AuthenticationFailed


logger = Logger(child=True)

SIGNATURE_VERSION = "v0"
MAX_REQUEST_AGE_SECONDS = 60 * 5


def compute_signature(signing_secret: str, timestamp: str, body: str) -> str:
    base_string = f"{SIGNATURE_VERSION}:{timestamp}:{body}"
    digest = hmac.new(signing_secret.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_slack_request(
    signing_secret: str | None,
    signature: str | None,
    timestamp: str | None,
    body: str | None,
    now: float | None = None,
) -> None:
    """Raise AuthenticationFailed unless the request was signed by Slack.

    ``body`` must be the raw request body exactly as received.
    """
    if not signature or not timestamp or not body or not signing_secret:
        logger.warning("Missing Slack signature headers, body, or signing secret")
        raise AuthenticationFailed("Request could not be verified")

    try:
        request_time = int(timestamp)
    except ValueError:
        logger.warning("Malformed request timestamp")
        raise AuthenticationFailed("Request could not be verified") from None

    current_time = time.time() if now is None else now
    if abs(current_time - request_time) > MAX_REQUEST_AGE_SECONDS:
        logger.warning("Request timestamp outside freshness window", timestamp=request_time)
        raise AuthenticationFailed("Request could not be verified")

    expected = compute_signature(signing_secret, timestamp, body).encode("utf-8")
    received = signature.encode("utf-8")

    if len(expected) != len(received):
        logger.warning("Signature length mismatch")
        raise AuthenticationFailed("Request could not be verified")

    if not hmac.compare_digest(expected, received):
        logger.warning("Signature mismatch")
        raise AuthenticationFailed("Request could not be verified")

    logger.info("Slack signature verified")
