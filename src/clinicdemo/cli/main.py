"""Command-line entry point for the clinic demo.

Usage:
    # Remote store (reads CLINIC_STORE_* from the environment or .env)
    clinicdemo

    # Local JSON store, no server needed
    clinicdemo --local data/fhir

    # Bound the patient summary fan-out and show debug logs
    clinicdemo --local --summary-timeout 5 --log-level DEBUG
"""

from __future__ import annotations

import argparse
import logging
import sys

from ..config import StoreConfig
from ..errors import ConfigError
from ..fetch import CompositeFetcher
from ..protocols import Store
from ..store import FhirJsonStore, FhirStoreClient
from .menu import ClinicApp

BANNER = "Community Health Clinic - FHIR Store Demo"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clinicdemo",
        description="Interactive terminal demo for a FHIR clinical-records store",
    )
    parser.add_argument(
        "--local", nargs="?", const="", default=None, metavar="DIR",
        help="Use a local JSON store (default dir: CLINIC_DATA_DIR or data/fhir)",
    )
    parser.add_argument(
        "--summary-timeout", type=float, default=None, metavar="SECONDS",
        help="Give up on patient summary calls still running after this long",
    )
    parser.add_argument(
        "--log-level", type=str, default=None,
        help="Logging level (default: CLINIC_LOG_LEVEL or WARNING)",
    )
    return parser


def build_store(config: StoreConfig, local_dir: str | None) -> Store:
    """Local JSON store when ``local_dir`` is given, remote client otherwise.

    Raises:
        ConfigError: Remote settings are missing or invalid
    """
    if local_dir is not None:
        return FhirJsonStore(local_dir or config.data_dir)
    config.validate()
    return FhirStoreClient(config)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = StoreConfig.from_env()

    logging.basicConfig(
        level=(args.log_level or config.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        store = build_store(config, args.local)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    timeout = args.summary_timeout if args.summary_timeout is not None else config.summary_timeout
    clinic = ClinicApp(store, fetcher=CompositeFetcher(timeout=timeout))

    print()
    print(BANNER)
    try:
        clinic.main_menu()
    finally:
        clinic.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
