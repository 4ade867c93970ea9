import pytest

from risk_engine import RiskAssessment
from scan_store import DuplicateUserError, ScanStore


@pytest.fixture
def store(tmp_path):
    scan_store = ScanStore(tmp_path / "nested" / "history.db")
    scan_store.init_db()
    return scan_store


def assessment(score=35, phishing=False):
    return RiskAssessment(
        risk_score=score,
        is_phishing=phishing,
        features={"hasHttps": False, "safeBrowsing": {"isSafe": True, "threats": []}},
    )


def test_init_db_is_repeatable(store):
    store.init_db()
    assert store.get_user(1) is None


def test_create_and_fetch_user(store):
    user = store.create_user("alice", "hash")

    assert store.get_user(user["id"])["username"] == "alice"
    assert store.get_user_by_username("alice")["role"] == "user"
    assert store.get_user_by_username("bob") is None


def test_duplicate_username_is_rejected(store):
    store.create_user("alice", "hash")
    with pytest.raises(DuplicateUserError):
        store.create_user("alice", "other")


def test_create_scan_returns_record(store):
    user = store.create_user("alice", "hash")

    scan = store.create_scan(user["id"], "http://example.com/", assessment())

    assert scan["id"] == 1
    assert scan["userId"] == user["id"]
    assert scan["url"] == "http://example.com/"
    assert scan["riskScore"] == 35
    assert scan["isPhishing"] is False
    assert scan["features"]["safeBrowsing"] == {"isSafe": True, "threats": []}
    assert scan["createdAt"]


def test_user_scans_are_newest_first_and_isolated(store):
    alice = store.create_user("alice", "hash")
    bob = store.create_user("bob", "hash")
    store.create_scan(alice["id"], "http://one.example/", assessment())
    store.create_scan(bob["id"], "http://two.example/", assessment())
    store.create_scan(alice["id"], "http://three.example/", assessment())

    urls = [scan["url"] for scan in store.get_user_scans(alice["id"])]

    assert urls == ["http://three.example/", "http://one.example/"]


def test_latest_scan_by_url(store):
    alice = store.create_user("alice", "hash")
    store.create_scan(alice["id"], "http://example.com/", assessment(score=10))
    store.create_scan(alice["id"], "http://example.com/", assessment(score=80, phishing=True))

    latest = store.get_latest_scan_by_url("http://example.com/")

    assert latest["riskScore"] == 80
    assert latest["isPhishing"] is True
    assert store.get_latest_scan_by_url("http://missing.example/") is None


def test_get_missing_scan(store):
    assert store.get_scan(42) is None
