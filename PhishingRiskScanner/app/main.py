"""Launch the phishing risk scanner from a source checkout.

``python app/main.py <url>`` scans from the terminal; ``python app/main.py
--serve`` starts the web API. Installed copies use the
``phishing-risk-scanner`` console script instead.
"""
from pathlib import Path
import sys

SCANNER_DIR = Path(__file__).resolve().parent.parent
if str(SCANNER_DIR) not in sys.path:
    sys.path.insert(0, str(SCANNER_DIR))

from scanner_cli import main  # noqa: E402


def run(argv=None) -> int:
    try:
        main(argv)
    except KeyboardInterrupt:
        print("\nScan cancelled.", file=sys.stderr)
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(run())
