# session.py
"""Signed session tokens and the explicit identity passed to each request."""
import base64
import hashlib
import hmac
import json
import logging
import time
from dataclasses import dataclass

from config import TOKEN_MAX_AGE

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    name: str = ""
    email: str = ""


def _b64encode(raw):
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text):
    padded = text + "=" * (-len(text) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _sign(payload, secret):
    return hmac.new(secret.encode("utf-8"), payload.encode("ascii"), hashlib.sha256).digest()


def issue_token(user_id, secret, max_age=TOKEN_MAX_AGE, now=None):
    now = time.time() if now is None else now
    body = json.dumps({"userId": str(user_id), "exp": int(now + max_age)}, separators=(",", ":"))
    payload = _b64encode(body.encode("utf-8"))
    return f"{payload}.{_b64encode(_sign(payload, secret))}"


def verify_token(token, secret, now=None):
    """Return the user id carried by ``token``, or None if it is bad or expired."""
    if not token or token.count(".") != 1:
        return None
    payload, signature = token.split(".")
    try:
        given = _b64decode(signature)
        claims = json.loads(_b64decode(payload))
    except ValueError:
        LOGGER.debug("Rejected malformed session token")
        return None
    if not hmac.compare_digest(given, _sign(payload, secret)):
        LOGGER.debug("Rejected session token with bad signature")
        return None
    now = time.time() if now is None else now
    if not isinstance(claims, dict) or claims.get("exp", 0) < now:
        return None
    user_id = claims.get("userId")
    return str(user_id) if user_id else None
