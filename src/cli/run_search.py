"""
Command-line entry point for ProviderSearch.

Runs searches, suggestions and the locations listing against a local data
directory and prints the JSON response.
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from ..ingestion.directory_loader import load_directory_store
from ..search.config import DEFAULT_CONFIG_PATH, load_search_config, validate_search_config
from ..search.errors import SearchError
from ..search.service import DirectoryService, error_response

logger = logging.getLogger(__name__)

SEARCH_PARAMS = ["q", "type", "lat", "lng", "city", "specialization", "department",
                 "experience", "fee", "rating", "distance", "page", "limit"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ProviderSearch directory search")
    parser.add_argument("--data", required=True, help="Directory with one data file per collection")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Configuration file path")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Federated search across provider kinds")
    for name in SEARCH_PARAMS:
        search.add_argument(f"--{name}", dest=name, default=None)
    search.add_argument("--role", default=None, help="Pre-verified caller role")

    suggest = commands.add_parser("suggest", help="Typeahead suggestions")
    suggest.add_argument("--q", dest="q", default=None)
    suggest.add_argument("--type", dest="type", default="all")

    commands.add_parser("locations", help="List known place names")
    return parser


def run(args: argparse.Namespace, config: Dict) -> Dict:
    """Execute one command and return the response body."""
    store = load_directory_store(args.data)
    service = DirectoryService(store, config)

    if args.command == "search":
        params = {name: getattr(args, name) for name in SEARCH_PARAMS
                  if getattr(args, name) is not None}
        return service.search(params, role=args.role).to_dict()

    if args.command == "suggest":
        suggestions = service.suggest(args.q, args.type)
        return {"suggestions": [s.to_dict() for s in suggestions]}

    return {"success": True, "locations": service.list_known_locations()}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the ProviderSearch CLI."""
    args = build_parser().parse_args(argv)
    config = load_search_config(args.config)

    log_config = config.get("logging", {})
    logging.basicConfig(
        level=getattr(logging, args.log_level or log_config.get("level", "INFO")),
        format=log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    if not validate_search_config(config):
        logger.error(f"Invalid configuration in {args.config}")
        return 2

    try:
        body = run(args, config)
    except SearchError as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps(error_response(e), indent=2, default=str))
        return 1
    except FileNotFoundError as e:
        logger.error(str(e))
        return 2

    print(json.dumps(body, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
