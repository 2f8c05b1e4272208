from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from catalog_bootstrap.app import bootstrap_instance, create_spec
from catalog_bootstrap.config import (
    DEFAULT_MAX_WORKERS,
    ConfigurationError,
    RunConfig,
    configure_logging,
)
from catalog_bootstrap.domain.export import ExportOptions
from catalog_bootstrap.domain.spec import Spec

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

_LOG_LEVELS = {"silent": logging.WARNING, "info": logging.INFO, "verbose": logging.DEBUG}


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Bootstrap a catalog instance from a spec")
    parser.add_argument(
        "--log-level",
        choices=tuple(_LOG_LEVELS),
        default="info",
        help="Amount of run and request logging (default: %(default)s)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    bootstrap = subparsers.add_parser("bootstrap", help="Create what the spec declares")
    bootstrap.add_argument("instance", help="Identifier of the target instance")
    bootstrap.add_argument("spec", type=Path, help="Path to the JSON spec document")
    bootstrap.add_argument(
        "--max-workers",
        type=int,
        default=DEFAULT_MAX_WORKERS,
        help="Concurrent requests per API (default: %(default)s)",
    )
    bootstrap.add_argument(
        "--multilingual",
        action="store_true",
        help="Operate on every instance language (forces a single worker)",
    )
    bootstrap.add_argument(
        "--item-topics",
        choices=("amend", "replace"),
        default="amend",
        help="How repeated item declarations combine their topics (default: %(default)s)",
    )
    bootstrap.add_argument(
        "--use-reference-cache",
        action="store_true",
        help="Memoize item lookups for the whole run",
    )

    export = subparsers.add_parser("export", help="Write the instance state as a spec")
    export.add_argument("instance", help="Identifier of the source instance")
    export.add_argument("output", type=Path, help="Where to write the JSON spec document")
    export.add_argument("--language", help="Language to export (defaults to the instance default)")
    export.add_argument(
        "--skip",
        action="append",
        default=[],
        choices=(
            "languages",
            "price_variants",
            "vat_types",
            "stock_locations",
            "subscription_plans",
            "topic_maps",
            "shapes",
            "grids",
            "items",
        ),
        help="Area to leave out of the export; may be repeated",
    )
    export.add_argument(
        "--items-base-path",
        default="/",
        help="Catalog folder whose items are exported (default: %(default)s)",
    )

    return parser.parse_args(list(argv))


def _run_config(args: argparse.Namespace) -> RunConfig:
    if args.command == "export":
        return RunConfig(log_level=args.log_level)
    return RunConfig(
        max_workers=args.max_workers,
        multilingual=args.multilingual,
        item_topics=args.item_topics,
        log_level=args.log_level,
        use_reference_cache=args.use_reference_cache,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=_LOG_LEVELS[parsed_args.log_level])

    try:
        config = _run_config(parsed_args)
    except ConfigurationError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "bootstrap":
            spec = Spec.from_path(parsed_args.spec)
            status = bootstrap_instance(parsed_args.instance, spec, config=config)
            warnings = sum(len(entries) for entries in status.warnings.values())
            log.info("Bootstrap finished with %d warning(s)", warnings)
        elif parsed_args.command == "export":
            options = ExportOptions(
                language=parsed_args.language,
                items_base_path=parsed_args.items_base_path,
                **dict.fromkeys(parsed_args.skip, False),
            )
            spec = create_spec(parsed_args.instance, options, config=config)
            parsed_args.output.write_text(spec.to_json(), encoding="utf-8")
            log.info("Wrote spec to %s", parsed_args.output)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
