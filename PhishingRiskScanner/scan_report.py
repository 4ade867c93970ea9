from datetime import datetime
from typing import Dict, List
from urllib.parse import quote

from colorama import init
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from risk_engine import PHISHING_THRESHOLD, RULE_LABELS, score_signals

init(autoreset=True)
console = Console()

DEFAULT_BASE_URL = "http://127.0.0.1:5000"


def verdict_label(is_phishing: bool) -> str:
    return "Potentially Dangerous" if is_phishing else "Safe Website"


def verdict_style(is_phishing: bool, risk_score: int) -> str:
    if is_phishing:
        return "bold red"
    if risk_score >= 40:
        return "bold yellow"
    return "bold green"


def share_text(record: Dict) -> str:
    if record.get("isPhishing"):
        return f"⚠️ This website might be dangerous! Risk score: {record.get('riskScore', 0)}%"
    return f"✅ This website is safe! Risk score: {record.get('riskScore', 0)}%"


def badge_url(url: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f"{base_url.rstrip('/')}/badge/{quote(url, safe='')}"


def embed_code(url: str, base_url: str = DEFAULT_BASE_URL) -> str:
    return f'<iframe src="{badge_url(url, base_url)}" width="200" height="50" frameborder="0"></iframe>'


def share_links(record: Dict, base_url: str = DEFAULT_BASE_URL) -> Dict[str, str]:
    link = quote(badge_url(record.get("url", ""), base_url), safe="")
    text = quote(share_text(record), safe="")
    return {
        "twitter": f"https://twitter.com/intent/tweet?text={text}&url={link}",
        "facebook": f"https://www.facebook.com/sharer/sharer.php?u={link}",
        "linkedin": f"https://www.linkedin.com/sharing/share-offsite/?url={link}",
    }


def _yes_no(value: bool) -> str:
    return "[green]Yes[/green]" if value else "[red]No[/red]"


def _present(value: bool) -> str:
    return "[green]Present[/green]" if value else "[red]Missing[/red]"


def rule_breakdown(features: Dict) -> List[Dict]:
    _, triggered = score_signals(features)
    rows = [
        {"rule": name, "label": RULE_LABELS.get(name, name), "weight": weight}
        for name, weight in triggered
    ]
    rows.sort(key=lambda item: item["weight"], reverse=True)
    return rows


def print_terminal_report(record: Dict):
    features = record.get("features", {})
    risk_score = int(record.get("riskScore", 0))
    is_phishing = bool(record.get("isPhishing"))

    console.rule("[bold cyan]Phishing Risk Scan")
    console.print(f"[bold]Target:[/bold] {record.get('url', '')}")

    overview = Table(box=box.SIMPLE_HEAVY, expand=True)
    overview.add_column("Check", style="bold cyan")
    overview.add_column("Result")
    overview.add_row("Risk Score", f"{risk_score}/100")
    overview.add_row("Secured (HTTPS)", _yes_no(features.get("hasHttps", False)))
    overview.add_row("Suspicious URL", _yes_no(features.get("suspiciousUrl", False)))
    overview.add_row("Domain Age", str(features.get("domainAge", "Unknown")))
    overview.add_row("Redirects", str(features.get("redirectCount", 0)))
    console.print(Panel(overview, title="Overview", border_style="cyan"))

    style = verdict_style(is_phishing, risk_score)
    console.print(
        Panel(
            f"[{style}]Verdict: {verdict_label(is_phishing)}[/]\n"
            f"[bold]Threshold:[/bold] flagged when the weighted score exceeds {PHISHING_THRESHOLD}",
            title="Decision",
            border_style="magenta",
        )
    )

    breakdown = rule_breakdown(features)
    weighted_table = Table(box=box.MINIMAL_DOUBLE_HEAD, expand=True)
    weighted_table.add_column("Signal", style="cyan")
    weighted_table.add_column("Weight", justify="right")
    for row in breakdown:
        weighted_table.add_row(row["label"], f"{row['weight']:.2f}")
    if not breakdown:
        weighted_table.add_row("No risk signals triggered", "0.00")
    console.print(Panel(weighted_table, title="Weighted Signals", border_style="yellow"))

    cert = features.get("sslCertificate", {})
    headers = features.get("securityHeaders", {})
    patterns = features.get("phishingPatterns", {})
    checks = Table(box=box.SIMPLE, expand=True)
    checks.add_column("Check", style="bold")
    checks.add_column("Result")
    checks.add_row("Certificate", "[green]Valid[/green]" if cert.get("valid") else "[red]Invalid / unavailable[/red]")
    if cert.get("issuer"):
        checks.add_row("Issuer", str(cert["issuer"]))
    if cert.get("expiresAt"):
        checks.add_row("Expires", str(cert["expiresAt"]))
    checks.add_row("HSTS", _present(headers.get("hasHSTS", False)))
    checks.add_row("CSP", _present(headers.get("hasCSP", False)))
    checks.add_row("X-Frame-Options", _present(headers.get("hasXFrame", False)))
    checks.add_row("Suspicious query", _yes_no(patterns.get("hasSuspiciousQuery", False)))
    checks.add_row("Phishing keywords", _yes_no(patterns.get("hasMaliciousKeywords", False)))
    checks.add_row("Encoded characters", _yes_no(patterns.get("hasEncodedCharacters", False)))
    checks.add_row("IP address host", _yes_no(patterns.get("hasIpAddress", False)))
    console.print(Panel(checks, title="Site Checks", border_style="blue"))

    virus_total = features.get("virusTotal", {})
    safe_browsing = features.get("safeBrowsing", {})
    stats = virus_total.get("stats", {})
    reputation_lines = [
        f"VirusTotal: {'clean' if virus_total.get('isClean', True) else 'flagged'} "
        f"(malicious={stats.get('malicious', 0)}, suspicious={stats.get('suspicious', 0)}, "
        f"reputation={virus_total.get('reputation', 0)})",
        f"Google Safe Browsing: {'safe' if safe_browsing.get('isSafe', True) else 'threats found'}",
    ]
    reputation_lines.extend(f"• {threat}" for threat in safe_browsing.get("threats", []))
    console.print(Panel("\n".join(reputation_lines), title="Reputation", border_style="red"))
    console.print(f"[dim]{share_text(record)}[/dim]")


def generate_report(record: Dict, output_file: str = "scan_report.md", base_url: str = DEFAULT_BASE_URL):
    features = record.get("features", {})
    cert = features.get("sslCertificate", {})
    headers = features.get("securityHeaders", {})
    patterns = features.get("phishingPatterns", {})
    virus_total = features.get("virusTotal", {})
    safe_browsing = features.get("safeBrowsing", {})
    checked_at = str(record.get("createdAt") or datetime.now().strftime("%Y-%m-%d %H:%M:%S"))

    lines: List[str] = []
    lines.append("# Phishing Risk Report")
    lines.append("")
    lines.append(f"- Generated: {checked_at}")
    lines.append(f"- Target: {record.get('url', '')}")
    lines.append(f"- Risk Score: {record.get('riskScore', 0)}/100")
    lines.append(f"- Verdict: {verdict_label(bool(record.get('isPhishing')))}")
    lines.append("")

    lines.append("## Weighted Signals")
    breakdown = rule_breakdown(features)
    lines.extend(
        [f"- {row['label']}: +{row['weight']:.2f}" for row in breakdown]
        if breakdown
        else ["- No risk signals triggered"]
    )
    lines.append("")

    lines.append("## Certificate")
    lines.append(f"- Valid: {'Yes' if cert.get('valid') else 'No'}")
    lines.append(f"- Issuer: {cert.get('issuer', '')}")
    lines.append(f"- Expires: {cert.get('expiresAt', '')}")
    lines.append("")

    lines.append("## Security Headers")
    lines.append(f"- Strict-Transport-Security: {'Present' if headers.get('hasHSTS') else 'Missing'}")
    lines.append(f"- Content-Security-Policy: {'Present' if headers.get('hasCSP') else 'Missing'}")
    lines.append(f"- X-Frame-Options: {'Present' if headers.get('hasXFrame') else 'Missing'}")
    lines.append("")

    lines.append("## URL Patterns")
    lines.append(f"- HTTPS: {'Yes' if features.get('hasHttps') else 'No'}")
    lines.append(f"- Suspicious URL: {'Yes' if features.get('suspiciousUrl') else 'No'}")
    lines.append(f"- Suspicious query: {'Yes' if patterns.get('hasSuspiciousQuery') else 'No'}")
    lines.append(f"- Phishing keywords: {'Yes' if patterns.get('hasMaliciousKeywords') else 'No'}")
    lines.append(f"- Encoded characters: {'Yes' if patterns.get('hasEncodedCharacters') else 'No'}")
    lines.append(f"- IP address host: {'Yes' if patterns.get('hasIpAddress') else 'No'}")
    lines.append("")

    lines.append("## Reputation")
    stats = virus_total.get("stats", {})
    lines.append(
        f"- VirusTotal: {'clean' if virus_total.get('isClean', True) else 'flagged'} "
        f"(malicious={stats.get('malicious', 0)}, suspicious={stats.get('suspicious', 0)}, "
        f"reputation={virus_total.get('reputation', 0)})"
    )
    threats = safe_browsing.get("threats", [])
    lines.append(f"- Google Safe Browsing: {', '.join(threats) if threats else 'no threats'}")
    lines.append("")

    lines.append("## Share")
    lines.append(f"- {share_text(record)}")
    for network, link in share_links(record, base_url).items():
        lines.append(f"- {network.capitalize()}: {link}")
    lines.append("")

    lines.append("## Embed")
    lines.append("```html")
    lines.append(embed_code(record.get("url", ""), base_url))
    lines.append("```")

    markdown = "\n".join(lines).rstrip() + "\n"
    with open(output_file, "w", encoding="utf-8") as file:
        file.write(markdown)
    console.print(f"\n[bold green]Markdown report saved →[/bold green] {output_file}")
