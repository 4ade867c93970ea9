import logging
import re
import socket
import ssl
from datetime import datetime, timezone
from typing import Dict
from urllib.parse import urlparse

import requests

logger = logging.getLogger(__name__)

PROBE_TIMEOUT = 5.0
MAX_HEADER_REDIRECTS = 5

MALICIOUS_HOST_KEYWORDS = [
    "login",
    "account",
    "banking",
    "secure",
    "update",
    "verify",
    "signin",
    "payment",
    "confirm",
    "password",
    "credential",
]

SUSPICIOUS_QUERY_TOKENS = ["token", "auth", "password"]

SUSPICIOUS_TLDS = [".xyz", ".top", ".work", ".loan", ".click", ".diet"]

# RFC 3986 unreserved + reserved characters. "%" is flagged separately.
ENCODED_CHARACTER_PATTERN = re.compile(r"%|[^A-Za-z0-9\-._~:/?#\[\]@!$&'()*+,;=]")
IP_HOST_PATTERN = re.compile(r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}")


def ssl_probe_default() -> Dict:
    return {"valid": False}


def headers_probe_default() -> Dict:
    return {"hasHSTS": False, "hasCSP": False, "hasXFrame": False}


def _certificate_issuer(cert: Dict) -> str:
    issuer_fields: Dict[str, str] = {}
    for part in cert.get("issuer", []):
        for key, value in part:
            issuer_fields.setdefault(key, value)
    return issuer_fields.get("organizationName") or issuer_fields.get("commonName") or ""


def _certificate_expiry(cert: Dict) -> str | None:
    not_after = cert.get("notAfter")
    if not isinstance(not_after, str) or not not_after:
        return None
    expires_at = datetime.fromtimestamp(ssl.cert_time_to_seconds(not_after), tz=timezone.utc)
    return expires_at.isoformat().replace("+00:00", "Z")


def check_ssl_certificate(hostname: str, port: int = 443, timeout: float = PROBE_TIMEOUT) -> Dict:
    if not hostname:
        return ssl_probe_default()

    try:
        # Default context verifies the chain and the hostname, so self-signed
        # and expired certificates fail the handshake.
        context = ssl.create_default_context()
        with socket.create_connection((hostname, port), timeout=timeout) as sock, context.wrap_socket(
            sock, server_hostname=hostname
        ) as ssock:
            cert = ssock.getpeercert() or {}
    except (OSError, ssl.SSLError, ValueError) as error:
        logger.debug("TLS check failed for %s:%s: %s", hostname, port, error)
        return ssl_probe_default()

    result: Dict = {"valid": True}
    issuer = _certificate_issuer(cert)
    if issuer:
        result["issuer"] = issuer
    try:
        expires_at = _certificate_expiry(cert)
    except ValueError:
        expires_at = None
    if expires_at:
        result["expiresAt"] = expires_at
    return result


def check_security_headers(
    url: str,
    timeout: float = PROBE_TIMEOUT,
    max_redirects: int = MAX_HEADER_REDIRECTS,
    session: requests.Session | None = None,
) -> Dict:
    http = session or requests.Session()
    previous_limit = http.max_redirects
    http.max_redirects = max_redirects
    try:
        response = http.head(url, timeout=timeout, allow_redirects=True)
    except requests.RequestException as error:
        logger.debug("Header check failed for %s: %s", url, error)
        return headers_probe_default()
    finally:
        if session is None:
            http.close()
        else:
            http.max_redirects = previous_limit

    # Any status is accepted; only header presence matters.
    headers = response.headers
    return {
        "hasHSTS": "strict-transport-security" in headers,
        "hasCSP": "content-security-policy" in headers,
        "hasXFrame": "x-frame-options" in headers,
    }


def analyze_url_patterns(url: str, hostname: str) -> Dict:
    parsed = urlparse(url)
    query = parsed.query.lower()
    host = (hostname or "").lower()

    return {
        "hasSuspiciousQuery": any(token in query for token in SUSPICIOUS_QUERY_TOKENS),
        "hasMaliciousKeywords": any(keyword in host for keyword in MALICIOUS_HOST_KEYWORDS),
        "hasEncodedCharacters": bool(ENCODED_CHARACTER_PATTERN.search(url)),
        "hasIpAddress": bool(IP_HOST_PATTERN.fullmatch(hostname or "")),
    }


def is_suspicious_url(hostname: str) -> bool:
    host = (hostname or "").lower()
    if any(keyword in host for keyword in MALICIOUS_HOST_KEYWORDS):
        return True
    return any(host.endswith(tld) for tld in SUSPICIOUS_TLDS)
