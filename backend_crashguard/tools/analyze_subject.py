"""
Analyze one VRChat user or avatar identifier and print the Verdict as JSON.

How to run:
    From project root (with .env configured):
        py -m backend_crashguard.tools.analyze_subject usr_0123abcd-... --pretty
        py -m backend_crashguard.tools.analyze_subject avtr_0123abcd-... --store path/to/activity.db

Required env vars:
    VRCHAT_USERNAME, VRCHAT_PASSWORD   (remote session; without them only local evidence is used)
    CRASHGUARD_STORE_PATH              (optional; overridden by --store)

Exit codes:
    0 verdict printed, 2 invalid identifier, 3 rate limited, 4 no source available
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from backend_crashguard.analytics.analytics_pipeline import CrashGuardAnalyzer
from backend_crashguard.config.settings import get_settings
from backend_crashguard.core.exceptions import (
    AllSourcesUnavailable,
    CrashGuardError,
    InvalidIdentifier,
    RateLimited,
)
from backend_crashguard.crashguard_logging import get_logger

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_INVALID_IDENTIFIER = 2
EXIT_RATE_LIMITED = 3
EXIT_NO_SOURCE = 4

EXIT_CODES = {
    InvalidIdentifier: EXIT_INVALID_IDENTIFIER,
    RateLimited: EXIT_RATE_LIMITED,
    AllSourcesUnavailable: EXIT_NO_SOURCE,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Advisory crash-risk verdict for a VRChat user (usr_...) or avatar (avtr_...).",
    )
    parser.add_argument("identifier", help="usr_... or avtr_... identifier")
    parser.add_argument("--store", type=Path, default=None, help="Local activity store path (default: CRASHGUARD_STORE_PATH)")
    parser.add_argument("--pretty", action="store_true", help="Indent JSON output")
    return parser


def main(argv: list[str] | None = None, analyzer: CrashGuardAnalyzer | None = None) -> int:
    args = build_parser().parse_args(argv)
    if analyzer is None:
        settings = get_settings()
        if args.store is not None:
            settings.store_path = args.store
        analyzer = CrashGuardAnalyzer(settings)

    indent = 2 if args.pretty else None
    try:
        verdict = analyzer.analyze(args.identifier)
    except (InvalidIdentifier, RateLimited, AllSourcesUnavailable) as e:
        print(json.dumps(e.to_dict(), indent=indent))
        return EXIT_CODES[type(e)]
    except CrashGuardError as e:
        logger.exception("analyze_subject_failed", error_kind=e.kind)
        print(json.dumps(e.to_dict(), indent=indent))
        return 1

    print(json.dumps(verdict.to_dict(), indent=indent))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
