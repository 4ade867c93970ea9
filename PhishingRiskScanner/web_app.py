import logging
from functools import wraps
from html import escape
from typing import Callable, Dict

from flask import Flask, Response, g, jsonify, request, session
from werkzeug.security import check_password_hash, generate_password_hash

from risk_engine import InvalidUrlError, RiskAssessment, evaluate
from scan_store import DuplicateUserError, ScanStore
from scanner_config import ScannerConfig, load_config

logger = logging.getLogger(__name__)

BADGE_TEMPLATE = (
    '<svg xmlns="http://www.w3.org/2000/svg" width="200" height="50" role="img" aria-label="{label}">'
    '<rect width="200" height="50" rx="6" fill="{fill}"/>'
    '<text x="100" y="30" text-anchor="middle" font-family="Verdana,sans-serif" font-size="13" fill="{color}">'
    "{label}</text></svg>"
)

BADGE_STYLES = {
    "unscanned": ("#f1f5f9", "#0f172a"),
    "safe": ("#dcfce7", "#166534"),
    "dangerous": ("#fee2e2", "#991b1b"),
}


def public_user(user: Dict) -> Dict:
    return {"id": user["id"], "username": user["username"], "role": user.get("role", "user")}


def render_badge(scan: Dict | None) -> str:
    if scan is None:
        label, style = "Not scanned", "unscanned"
    elif scan["isPhishing"]:
        label, style = f"Potentially Dangerous ({scan['riskScore']}%)", "dangerous"
    else:
        label, style = f"Safe Website ({scan['riskScore']}%)", "safe"
    fill, color = BADGE_STYLES[style]
    return BADGE_TEMPLATE.format(label=escape(label), fill=fill, color=color)


def create_app(
    config: ScannerConfig | None = None,
    evaluator: Callable[[str], RiskAssessment] | None = None,
) -> Flask:
    config = config or load_config()
    store = ScanStore(config.database_path)
    store.init_db()
    run_evaluation = evaluator or (lambda url: evaluate(url, config))

    app = Flask(__name__)
    # Scanned URLs are embedded in paths; "https://" must survive routing.
    app.url_map.merge_slashes = False
    app.config["SECRET_KEY"] = config.secret_key
    app.config["SCAN_STORE"] = store

    def login_required(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            user_id = session.get("user_id")
            user = store.get_user(user_id) if user_id is not None else None
            if user is None:
                return Response(status=401)
            g.user = user
            return view(*args, **kwargs)

        return wrapped

    def credentials_from_body():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return None, None
        username = body.get("username")
        password = body.get("password")
        if not isinstance(username, str) or not isinstance(password, str):
            return None, None
        username = username.strip()
        if not username or not password:
            return None, None
        return username, password

    @app.post("/api/register")
    def register():
        username, password = credentials_from_body()
        if username is None:
            return jsonify({"error": "Username and password are required"}), 400
        try:
            user = store.create_user(username, generate_password_hash(password))
        except DuplicateUserError:
            return jsonify({"error": "Username already exists"}), 400
        session.clear()
        session["user_id"] = user["id"]
        return jsonify(public_user(user)), 201

    @app.post("/api/login")
    def login():
        username, password = credentials_from_body()
        user = store.get_user_by_username(username) if username else None
        if user is None or not check_password_hash(user["password_hash"], password):
            return Response(status=401)
        session.clear()
        session["user_id"] = user["id"]
        return jsonify(public_user(user))

    @app.post("/api/logout")
    def logout():
        session.clear()
        return Response(status=200)

    @app.get("/api/user")
    @login_required
    def current_user():
        return jsonify(public_user(g.user))

    @app.post("/api/scan")
    @login_required
    def create_scan():
        body = request.get_json(silent=True) or {}
        url = body.get("url") if isinstance(body, dict) else None
        if not isinstance(url, str) or not url:
            return jsonify({"error": "Invalid URL"}), 400
        try:
            assessment = run_evaluation(url)
        except InvalidUrlError as error:
            logger.info("Rejected scan request: %s", error)
            return jsonify({"error": "Invalid URL or analysis failed"}), 400
        scan = store.create_scan(g.user["id"], url, assessment)
        return jsonify(scan)

    @app.get("/api/scans")
    @login_required
    def list_scans():
        return jsonify(store.get_user_scans(g.user["id"]))

    @app.get("/api/scans/<int:scan_id>")
    @login_required
    def get_scan(scan_id: int):
        scan = store.get_scan(scan_id)
        if scan is None or scan["userId"] != g.user["id"]:
            return Response(status=404)
        return jsonify(scan)

    @app.get("/api/scans/url/<path:url>")
    def latest_scan_for_url(url: str):
        scan = store.get_latest_scan_by_url(url)
        if scan is None:
            return Response(status=404)
        return jsonify(scan)

    @app.get("/badge/<path:url>")
    def badge(url: str):
        scan = store.get_latest_scan_by_url(url)
        return Response(render_badge(scan), mimetype="image/svg+xml")

    return app
