"""CLI for fetching the rule-set artifact and running local decisions."""

import argparse
import json
import logging
import sys
from pathlib import Path

from ..config.runtime import get_settings
from ..errors import DecisioningError
from ..wiring import build_decisioning_service, build_rule_loader
from .payloads import (
    artifact_payload,
    evaluation_payload,
    parse_target_request,
    response_payload,
)


def _print_error(error: DecisioningError) -> None:
    print(f"Error: {error.message}", file=sys.stderr)


def load_request_from_file(path: Path):
    """Load a delivery request from a JSON file. Exits on missing file or invalid JSON/schema."""
    if not path.exists():
        print(f"Error: request file not found: {path}", file=sys.stderr)
        sys.exit(1)
    with open(path, encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as e:
            print(f"Error: invalid JSON in {path}: {e}", file=sys.stderr)
            sys.exit(1)
    try:
        return parse_target_request(raw)
    except ValueError as e:
        print(f"Error: invalid delivery request: {e}", file=sys.stderr)
        sys.exit(1)


def show_artifact() -> int:
    loader = build_rule_loader(exception_handler=_print_error)
    try:
        loader.refresh()
        payload = artifact_payload(loader)
    finally:
        loader.close()
    print(json.dumps(payload, indent=2))
    return 0 if payload["loaded"] else 1


def check_request(path: Path) -> int:
    request = load_request_from_file(path)
    service = build_decisioning_service(exception_handler=_print_error)
    try:
        service.rule_loader.refresh()
        evaluation = service.evaluate_local_execution(request)
    finally:
        service.close()
    print(json.dumps(evaluation_payload(evaluation), indent=2))
    return 0 if evaluation.eligible else 2


def execute_request(path: Path) -> int:
    request = load_request_from_file(path)
    service = build_decisioning_service(exception_handler=_print_error)
    try:
        service.rule_loader.refresh()
        response = service.execute_request(request)
    finally:
        service.close()
    print(json.dumps(response_payload(response), indent=2))
    return 0 if response.status == 200 else 1


def main():
    parser = argparse.ArgumentParser(description="Local decisioning against a rule-set artifact")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("artifact", help="Fetch the rule-set artifact and summarize it")

    check_parser = subparsers.add_parser(
        "check", help="Report whether a request can be decided locally"
    )
    check_parser.add_argument("request", type=Path, help="Path to a delivery request JSON file")

    execute_parser = subparsers.add_parser(
        "execute", help="Run local decisioning for a request and print the response"
    )
    execute_parser.add_argument("request", type=Path, help="Path to a delivery request JSON file")

    args = parser.parse_args()
    logging.basicConfig(level=get_settings().log_level, stream=sys.stderr)

    if args.command == "artifact":
        sys.exit(show_artifact())
    elif args.command == "check":
        sys.exit(check_request(args.request))
    elif args.command == "execute":
        sys.exit(execute_request(args.request))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
