from __future__ import annotations

import argparse
import os


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the smoke runner."""
    parser = argparse.ArgumentParser(description="Probe a running go-import-redirector")
    parser.add_argument("--base-url", default=os.getenv("BASE_URL", "http://127.0.0.1:9001"))
    parser.add_argument("--timeout", type=float, default=10.0)
    parser.add_argument("import_paths", nargs="+", metavar="import-path")
    return parser.parse_args(argv)
