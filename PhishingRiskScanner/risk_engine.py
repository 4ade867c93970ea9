import json
import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Tuple
from urllib.parse import ParseResult, urlparse

from reputation import check_safe_browsing, check_virustotal, safe_browsing_default, virustotal_default
from scanner_config import ScannerConfig
from site_probes import (
    analyze_url_patterns,
    check_security_headers,
    check_ssl_certificate,
    headers_probe_default,
    is_suspicious_url,
    ssl_probe_default,
)

logger = logging.getLogger(__name__)

PHISHING_THRESHOLD = 70
HEADER_WEIGHT = 3.33

# (rule name, weight, trigger over the features record)
SCORING_RULES: List[Tuple[str, float, Callable[[Dict], bool]]] = [
    ("virustotal_unclean", 30, lambda f: not f["virusTotal"]["isClean"]),
    ("safe_browsing_unsafe", 25, lambda f: not f["safeBrowsing"]["isSafe"]),
    ("tls_invalid", 15, lambda f: not f["hasHttps"] or not f["sslCertificate"]["valid"]),
    ("missing_hsts", HEADER_WEIGHT, lambda f: not f["securityHeaders"]["hasHSTS"]),
    ("missing_csp", HEADER_WEIGHT, lambda f: not f["securityHeaders"]["hasCSP"]),
    ("missing_x_frame_options", HEADER_WEIGHT, lambda f: not f["securityHeaders"]["hasXFrame"]),
    ("suspicious_query", 5, lambda f: f["phishingPatterns"]["hasSuspiciousQuery"]),
    ("malicious_keyword", 5, lambda f: f["phishingPatterns"]["hasMaliciousKeywords"]),
    ("encoded_characters", 5, lambda f: f["phishingPatterns"]["hasEncodedCharacters"]),
    ("ip_address_host", 5, lambda f: f["phishingPatterns"]["hasIpAddress"]),
]

RULE_LABELS = {
    "virustotal_unclean": "VirusTotal reported malicious/suspicious detections",
    "safe_browsing_unsafe": "Google Safe Browsing threat match",
    "tls_invalid": "HTTPS missing or certificate invalid",
    "missing_hsts": "Strict-Transport-Security header missing",
    "missing_csp": "Content-Security-Policy header missing",
    "missing_x_frame_options": "X-Frame-Options header missing",
    "suspicious_query": "Query string mentions token/auth/password",
    "malicious_keyword": "Hostname contains a phishing keyword",
    "encoded_characters": "URL contains encoded or unusual characters",
    "ip_address_host": "Hostname is a raw IP address",
}

URL_SCHEME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")


class InvalidUrlError(ValueError):
    """Raised when the input is not a syntactically valid absolute URL."""


@dataclass(frozen=True)
class RiskAssessment:
    risk_score: int
    is_phishing: bool
    features: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            "riskScore": self.risk_score,
            "isPhishing": self.is_phishing,
            "features": json.loads(self.features_json()),
        }

    def features_json(self) -> str:
        return json.dumps(self.features, sort_keys=True)


def normalize_target_url(url: str) -> str:
    candidate = url.strip()
    if not candidate:
        return ""
    if not urlparse(candidate).scheme:
        candidate = f"https://{candidate}"
    return candidate


def parse_target_url(url: str) -> ParseResult:
    if not isinstance(url, str) or not url or url != url.strip():
        raise InvalidUrlError(f"Invalid URL: {url!r}")
    try:
        parsed = urlparse(url)
        # .port raises ValueError when the port is malformed or out of range.
        _ = parsed.port
    except ValueError as error:
        raise InvalidUrlError(f"Invalid URL: {url!r} ({error})") from error
    if not URL_SCHEME_PATTERN.fullmatch(parsed.scheme or "") or not parsed.hostname:
        raise InvalidUrlError(f"Invalid URL: {url!r}")
    if any(char.isspace() for char in parsed.netloc):
        raise InvalidUrlError(f"Invalid URL: {url!r}")
    return parsed


def score_signals(features: Dict) -> Tuple[float, List[Tuple[str, float]]]:
    triggered = [(name, weight) for name, weight, predicate in SCORING_RULES if predicate(features)]
    return sum(weight for _, weight in triggered), triggered


def round_risk_score(raw_score: float) -> int:
    return max(0, min(100, int(math.floor(raw_score + 0.5))))


def _run_guarded(name: str, probe: Callable[[], Dict], default: Callable[[], Dict]) -> Dict:
    try:
        return probe()
    except Exception as error:
        logger.warning("%s probe failed, using default: %s", name, error)
        return default()


def evaluate(url: str, config: ScannerConfig | None = None) -> RiskAssessment:
    parsed = parse_target_url(url)
    config = config or ScannerConfig()
    hostname = parsed.hostname or ""
    has_https = parsed.scheme.lower() == "https"
    timeout = config.probe_timeout

    probes: Dict[str, Tuple[Callable[[], Dict], Callable[[], Dict]]] = {
        "virusTotal": (lambda: check_virustotal(url, config), virustotal_default),
        "safeBrowsing": (lambda: check_safe_browsing(url, config), safe_browsing_default),
        "securityHeaders": (lambda: check_security_headers(url, timeout=timeout), headers_probe_default),
    }
    if has_https:
        port = parsed.port or 443
        probes["sslCertificate"] = (
            lambda: check_ssl_certificate(hostname, port, timeout=timeout),
            ssl_probe_default,
        )

    # Leaving the executor block waits for every probe; nothing is cancelled.
    with ThreadPoolExecutor(max_workers=len(probes)) as executor:
        futures = {
            name: executor.submit(_run_guarded, name, probe, default)
            for name, (probe, default) in probes.items()
        }
    probe_results = {name: future.result() for name, future in futures.items()}

    features = {
        "hasHttps": has_https,
        "domainAge": "Unknown",
        "suspiciousUrl": is_suspicious_url(hostname),
        "redirectCount": 0,
        "sslCertificate": probe_results.get("sslCertificate", ssl_probe_default()),
        "securityHeaders": probe_results["securityHeaders"],
        "phishingPatterns": analyze_url_patterns(url, hostname),
        "virusTotal": probe_results["virusTotal"],
        "safeBrowsing": probe_results["safeBrowsing"],
    }

    raw_score, triggered = score_signals(features)
    is_phishing = raw_score > PHISHING_THRESHOLD
    risk_score = round_risk_score(raw_score)
    logger.info(
        "Evaluated %s: score=%s phishing=%s rules=%s",
        url,
        risk_score,
        is_phishing,
        ",".join(name for name, _ in triggered) or "none",
    )
    return RiskAssessment(risk_score=risk_score, is_phishing=is_phishing, features=features)
