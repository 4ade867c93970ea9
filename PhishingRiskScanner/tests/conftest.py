"""
Pytest fixtures: network collaborators of the risk engine are replaced so
tests never leave the machine.
"""

import pytest
import requests

import risk_engine
from scanner_config import ScannerConfig


class ProbeRecorder:
    def __init__(self):
        self.calls = []
        self.ssl_result = {"valid": True, "issuer": "Let's Encrypt", "expiresAt": "2030-01-01T00:00:00Z"}
        self.headers_result = {"hasHSTS": True, "hasCSP": True, "hasXFrame": True}
        self.virustotal_result = {
            "isClean": True,
            "stats": {"malicious": 0, "suspicious": 0, "harmless": 70, "undetected": 10},
            "reputation": 5,
        }
        self.safe_browsing_result = {"isSafe": True, "threats": []}

    def _answer(self, name, result):
        self.calls.append(name)
        if isinstance(result, Exception):
            raise result
        return dict(result)

    def ssl(self, hostname, port=443, timeout=5.0):
        return self._answer("ssl", self.ssl_result)

    def headers(self, url, timeout=5.0):
        return self._answer("headers", self.headers_result)

    def virustotal(self, url, config):
        return self._answer("virustotal", self.virustotal_result)

    def safe_browsing(self, url, config):
        return self._answer("safe_browsing", self.safe_browsing_result)


@pytest.fixture
def probes(monkeypatch):
    recorder = ProbeRecorder()
    monkeypatch.setattr(risk_engine, "check_ssl_certificate", recorder.ssl)
    monkeypatch.setattr(risk_engine, "check_security_headers", recorder.headers)
    monkeypatch.setattr(risk_engine, "check_virustotal", recorder.virustotal)
    monkeypatch.setattr(risk_engine, "check_safe_browsing", recorder.safe_browsing)
    return recorder


@pytest.fixture
def unreachable_probes(probes):
    """Every network probe fails the way an offline host would."""
    probes.ssl_result = OSError("connection refused")
    probes.headers_result = requests.ConnectionError("unreachable")
    probes.virustotal_result = requests.ConnectionError("unreachable")
    probes.safe_browsing_result = requests.Timeout("timed out")
    return probes


@pytest.fixture
def scanner_config(tmp_path):
    return ScannerConfig(
        virustotal_api_key="vt-test-key",
        safe_browsing_api_key="gsb-test-key",
        database_path=str(tmp_path / "scan_history.db"),
        secret_key="test-secret",
    )
