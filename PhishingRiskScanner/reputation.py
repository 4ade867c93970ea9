import base64
import logging
from typing import Dict, List

import requests

from scanner_config import ScannerConfig

logger = logging.getLogger(__name__)

VIRUSTOTAL_URL_TEMPLATE = "https://www.virustotal.com/api/v3/urls/{url_id}"
SAFE_BROWSING_ENDPOINT = "https://safebrowsing.googleapis.com/v4/threatMatches:find"

SAFE_BROWSING_CLIENT = {"clientId": "website-scanner", "clientVersion": "1.0.0"}
SAFE_BROWSING_THREAT_TYPES = [
    "MALWARE",
    "SOCIAL_ENGINEERING",
    "UNWANTED_SOFTWARE",
    "POTENTIALLY_HARMFUL_APPLICATION",
]

VIRUSTOTAL_STAT_KEYS = ["malicious", "suspicious", "harmless", "undetected"]


def virustotal_default() -> Dict:
    return {
        "isClean": True,
        "stats": {key: 0 for key in VIRUSTOTAL_STAT_KEYS},
        "reputation": 0,
    }


def safe_browsing_default() -> Dict:
    return {"isSafe": True, "threats": []}


def virustotal_url_id(url: str) -> str:
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


def check_virustotal(url: str, config: ScannerConfig, session: requests.Session | None = None) -> Dict:
    if config.skip_remote_reputation:
        logger.debug("VirusTotal lookup skipped: remote reputation disabled")
        return virustotal_default()
    if not config.virustotal_api_key:
        logger.debug("VirusTotal lookup skipped: VIRUSTOTAL_API_KEY not configured")
        return virustotal_default()

    http = session or requests
    try:
        response = http.get(
            VIRUSTOTAL_URL_TEMPLATE.format(url_id=virustotal_url_id(url)),
            headers={"x-apikey": config.virustotal_api_key},
            timeout=config.reputation_timeout,
        )
        response.raise_for_status()
        attributes = response.json()["data"]["attributes"]
        raw_stats = attributes["last_analysis_stats"]
        stats = {key: int(raw_stats.get(key, 0) or 0) for key in VIRUSTOTAL_STAT_KEYS}
        reputation = int(attributes.get("reputation", 0) or 0)
    except (requests.RequestException, ValueError, KeyError, AttributeError, TypeError) as error:
        logger.warning("VirusTotal API error for %s: %s", url, error)
        return virustotal_default()

    return {
        "isClean": stats["malicious"] == 0 and stats["suspicious"] == 0,
        "stats": stats,
        "reputation": reputation,
    }


def check_safe_browsing(url: str, config: ScannerConfig, session: requests.Session | None = None) -> Dict:
    if config.skip_remote_reputation:
        logger.debug("Safe Browsing lookup skipped: remote reputation disabled")
        return safe_browsing_default()
    if not config.safe_browsing_api_key:
        logger.debug("Safe Browsing lookup skipped: GOOGLE_SAFE_BROWSING_API_KEY not configured")
        return safe_browsing_default()

    payload = {
        "client": SAFE_BROWSING_CLIENT,
        "threatInfo": {
            "threatTypes": SAFE_BROWSING_THREAT_TYPES,
            "platformTypes": ["ANY_PLATFORM"],
            "threatEntryTypes": ["URL"],
            "threatEntries": [{"url": url}],
        },
    }

    http = session or requests
    try:
        response = http.post(
            SAFE_BROWSING_ENDPOINT,
            params={"key": config.safe_browsing_api_key},
            json=payload,
            timeout=config.reputation_timeout,
        )
        response.raise_for_status()
        # An empty object means no matches.
        body = response.json() if response.content else {}
        matches = body.get("matches") or []
        threats: List[str] = [str(match.get("threatType", "")) for match in matches]
    except (requests.RequestException, ValueError, AttributeError, TypeError) as error:
        logger.warning("Google Safe Browsing API error for %s: %s", url, error)
        return safe_browsing_default()

    return {"isSafe": not matches, "threats": threats}
