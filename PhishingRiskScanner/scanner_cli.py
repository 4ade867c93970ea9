import argparse
import json
import logging
from datetime import datetime, timezone
from typing import Dict

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table
from werkzeug.security import generate_password_hash

from risk_engine import InvalidUrlError, RiskAssessment, evaluate, normalize_target_url
from scan_report import DEFAULT_BASE_URL, console, embed_code, generate_report, print_terminal_report
from scan_store import ScanStore
from scanner_config import ScannerConfig, load_config
from web_app import create_app

APP_NAME = "Phishing Risk Scanner"
APP_VERSION = "1.0.0"
APP_TAGLINE = "Weighted TLS/header/lexical/reputation phishing risk scoring"


def cli_version_text() -> str:
    return f"{APP_NAME} v{APP_VERSION} | {APP_TAGLINE}"


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def assessment_record(url: str, assessment: RiskAssessment) -> Dict:
    record = {"url": url, "createdAt": datetime.now(timezone.utc).isoformat()}
    record.update(assessment.to_dict())
    return record


def ensure_cli_user(store: ScanStore, username: str) -> Dict:
    user = store.get_user_by_username(username)
    if user is not None:
        return user
    # Empty password: the web login rejects it, so CLI users stay CLI-only.
    return store.create_user(username, generate_password_hash(""), role="cli")


def print_history(store: ScanStore, username: str):
    user = store.get_user_by_username(username)
    if user is None:
        console.print(f"[yellow]No scan history for user:[/yellow] {username}")
        return
    scans = store.get_user_scans(user["id"])
    if not scans:
        console.print(f"[yellow]No scan history for user:[/yellow] {username}")
        return
    table = Table(title=f"Scan history for {username}")
    table.add_column("ID", justify="right")
    table.add_column("URL")
    table.add_column("Score", justify="right")
    table.add_column("Verdict")
    table.add_column("Scanned at")
    for scan in scans:
        verdict = "[bold red]Phishing[/]" if scan["isPhishing"] else "[bold green]Safe[/]"
        table.add_row(str(scan["id"]), scan["url"], str(scan["riskScore"]), verdict, scan["createdAt"])
    console.print(table)


def run_server(config: ScannerConfig, host: str, port: int):
    app = create_app(config)
    console.print(f"[bold green]Serving on[/bold green] http://{host}:{port}")
    app.run(host=host, port=port)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Phishing Risk Scanner (Rich terminal + Markdown report + web API)"
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=cli_version_text(),
        help="Show tool version and exit",
    )
    parser.add_argument("url", nargs="?", help="Website URL to check")
    parser.add_argument(
        "--markdown-output",
        "--md-output",
        default="scan_report.md",
        dest="markdown_output",
        help="Markdown report file",
    )
    parser.add_argument("--output", dest="markdown_output", help="Alias for --markdown-output")
    parser.add_argument("--json", action="store_true", help="Print the assessment as JSON instead of the Rich report")
    parser.add_argument("--save-as", default="", help="Store the scan in history under this username")
    parser.add_argument("--history", default="", metavar="USER", help="List stored scans for a username and exit")
    parser.add_argument("--serve", action="store_true", help="Run the web API instead of scanning")
    parser.add_argument("--host", default="127.0.0.1", help="Web API bind address (with --serve)")
    parser.add_argument("--port", type=int, default=5000, help="Web API port (with --serve)")
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help="Public address of the web API, used for badge embed and share links",
    )
    args = parser.parse_args(argv)

    config = load_config()
    configure_logging(config.log_level)

    if args.serve:
        run_server(config, args.host, args.port)
        return

    store = ScanStore(config.database_path)
    if args.history:
        store.init_db()
        print_history(store, args.history)
        return

    target = args.url
    if not target:
        try:
            target = input("Enter website URL to check: ").strip()
        except EOFError:
            parser.error("No URL input available. Pass the URL as an argument when running non-interactively.")

    target = normalize_target_url(target or "")
    if not target:
        parser.error("URL is required. Enter one at prompt or pass it as an argument.")

    if not args.json:
        console.print(f"\n[bold yellow]Checking website:[/bold yellow] {target}")
        console.print("[yellow]This tool uses heuristics. Always verify with trusted sources.[/yellow]\n")

    try:
        assessment = evaluate(target, config)
    except InvalidUrlError as error:
        parser.error(f"Could not analyze this URL: {error}")
        return

    if args.save_as:
        store.init_db()
        user = ensure_cli_user(store, args.save_as)
        record = store.create_scan(user["id"], target, assessment)
    else:
        record = assessment_record(target, assessment)

    if args.json:
        print(json.dumps(record, indent=2))
        return

    print_terminal_report(record)
    console.print(f"[dim]Embed: {escape(embed_code(target, args.base_url))}[/dim]")
    generate_report(record, args.markdown_output, args.base_url)


if __name__ == "__main__":
    main()
