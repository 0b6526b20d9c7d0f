"""
Handles command-line interface parsing and actions.
"""
import argparse
import asyncio
import json
import sys
from typing import List, Optional

from aigateway import __version__
from aigateway.config import SECRET_KEYS, load_config, validate_config
from aigateway.exceptions import ConfigurationError
from aigateway.utils.logging import get_logger, init_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aigateway", description="AI Friend resilience gateway")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--config-check", action="store_true", help="Validate configuration and exit.")
    parser.add_argument("--version", action="store_true", help="Show version info and exit.")

    sub = parser.add_subparsers(dest="command")

    chat = sub.add_parser("chat", help="Send one message and print the reply.")
    chat.add_argument("user_id")
    chat.add_argument("message")
    chat.add_argument("--attachment", default=None, help="Attachment reference (URL or file name).")

    gif = sub.add_parser("gif", help="Search GIFs and print the normalized JSON.")
    gif.add_argument("query", nargs="?", default="")
    gif.add_argument("--limit", type=int, default=None)
    gif.add_argument("--type", dest="media_type", choices=["gifs", "stickers"], default="gifs")

    sub.add_parser("health", help="Probe the primary backend and print its status.")
    return parser


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)


def show_version_info():
    """Display version and system information."""
    print(f"AI Friend Gateway - Version {__version__}")
    print(f"Python Version: {sys.version}")


def masked_config(config: dict) -> dict:
    return {key: ("********" if key in SECRET_KEYS and value else value) for key, value in config.items()}


def validate_configuration_only() -> int:
    """Validate configuration and print the active settings."""
    logger = get_logger(__name__)
    try:
        logger.info("--- Running Configuration-Only Validation ---", extra={"subsys": "core", "event": "config_check_start"})
        config = load_config()
        validate_config(config)
    except ConfigurationError as e:
        logger.critical(f"Configuration error: {e}", extra={"subsys": "core", "event": "config_fail"})
        return 1

    logger.info("Configuration validation successful. The following settings are active:", extra={"subsys": "core", "event": "config_valid_start"})
    for key, value in masked_config(config).items():
        if key == "AI_SYSTEM_PROMPT":
            value = f"{str(value)[:60]}..."
        logger.info(f"  • {key}: {value}", extra={"subsys": "core", "event": "config_valid"})
    return 0


async def run_chat(user_id: str, message: str, attachment: Optional[str]) -> int:
    from aigateway.orchestrator import create_orchestrator

    orchestrator = create_orchestrator()
    try:
        print(await orchestrator.generate_response(user_id, message, attachment))
    finally:
        await orchestrator.close()
    return 0


async def run_gif(query: str, limit: Optional[int], media_type: str) -> int:
    from aigateway.gif import create_gif_chain

    chain = create_gif_chain()
    try:
        result = await chain.search(query, limit, media_type)
    finally:
        await chain.close()
    print(json.dumps(result, indent=2, ensure_ascii=False))
    return 0


async def run_health() -> int:
    from aigateway.orchestrator import create_orchestrator

    orchestrator = create_orchestrator()
    try:
        healthy = await orchestrator.health.is_available()
        snapshot = orchestrator.health.snapshot()
        print(json.dumps(snapshot.to_dict() if snapshot else {"healthy": healthy}, indent=2))
    finally:
        await orchestrator.close()
    return 0 if healthy else 2


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    config = load_config()
    init_logging(level="DEBUG" if args.debug else config["LOG_LEVEL"], jsonl_path=config["LOG_JSONL_PATH"])

    if args.version:
        show_version_info()
        return 0
    if args.config_check:
        return validate_configuration_only()

    if args.command == "chat":
        return asyncio.run(run_chat(args.user_id, args.message, args.attachment))
    if args.command == "gif":
        return asyncio.run(run_gif(args.query, args.limit, args.media_type))
    if args.command == "health":
        return asyncio.run(run_health())

    build_parser().print_help()
    return 0
