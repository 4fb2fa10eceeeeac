"""ABOUTME: Command-line entry point for searxng-mcp.

Exit codes:
    0  graceful shutdown
    1  startup or transport failure (bind error, malformed stdio frame)
    2  invalid configuration
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from . import SERVER_NAME, __version__
from .common.error_handling import ConfigError, ProtocolError
from .common.mcp_base import setup_logging, verbosity_to_level
from .config import ToolName, Transport, load_config
from .server import SearxngMcpServer

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser. Every default is None so unset flags never override env or file."""
    parser = argparse.ArgumentParser(
        prog=SERVER_NAME,
        description="MCP server exposing SearXNG search and guarded page browsing.",
        argument_default=None,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", dest="config", help="Path to a TOML config file")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase log verbosity (-v info, -vv debug)")
    parser.add_argument("--log-level", dest="server.log_level", help="Log level: debug, info, warning, error")

    server = parser.add_argument_group("server")
    server.add_argument("-t", "--transport", dest="server.transport", choices=[t.value for t in Transport],
                        help="Transport to serve on (default: stdio)")
    server.add_argument("-b", "--bind", dest="server.bind",
                        help="host:port for streamable-http (default: 127.0.0.1:3344)")
    server.add_argument("--path", dest="server.path", help="HTTP endpoint path (default: /mcp)")
    server.add_argument("--tools", dest="tools",
                        help=f"Comma-separated tools to enable ({','.join(t.value for t in ToolName)})")
    server.add_argument("--stateful", dest="streamable_http.stateful_mode", action=argparse.BooleanOptionalAction,
                        help="Keep per-client sessions over streamable-http (default: on)")
    server.add_argument("--sse-keep-alive", dest="streamable_http.sse_keep_alive_secs", type=float, metavar="SECS",
                        help="Seconds between SSE keep-alive comments (0 disables)")
    server.add_argument("--sse-retry", dest="streamable_http.sse_retry_secs", type=float, metavar="SECS",
                        help="SSE retry hint sent to clients")

    searxng = parser.add_argument_group("searxng")
    searxng.add_argument("--searxng-url", dest="searxng.base_url",
                         help="SearXNG base URL (default: http://localhost:8080)")
    searxng.add_argument("--engines", dest="searxng.default_engines", help="Default engines, comma-separated")
    searxng.add_argument("--categories", dest="searxng.default_categories", help="Default categories, comma-separated")
    searxng.add_argument("--language", dest="searxng.language", help="Default search language (default: en)")
    searxng.add_argument("--safe-search", dest="searxng.safe_search",
                         help="Default safe search: 0/none, 1/moderate, 2/strict")
    searxng.add_argument("--num-results", dest="searxng.num_results", type=int,
                         help="Default result limit, 0 for no limit (default: 5)")
    searxng.add_argument("--timeout", dest="searxng.timeout_secs", type=float, metavar="SECS",
                         help="SearXNG request timeout")
    searxng.add_argument("--user-agent", dest="searxng.user_agent", help="User-Agent for SearXNG requests")

    browse = parser.add_argument_group("browse")
    browse.add_argument("--follow-redirects", dest="browse.follow_redirects", action=argparse.BooleanOptionalAction,
                        help="Follow redirects by default (each hop is re-checked)")
    browse.add_argument("--max-redirects", dest="browse.max_redirects", type=int,
                        help="Maximum redirect hops (default: 10)")
    browse.add_argument("--max-bytes", dest="browse.max_bytes", type=int,
                        help="Maximum body bytes to read (default: 2000000)")
    browse.add_argument("--browse-timeout", dest="browse.timeout_secs", type=float, metavar="SECS",
                        help="Total fetch timeout")
    browse.add_argument("--browse-user-agent", dest="browse.user_agent", help="User-Agent for browse requests")
    browse.add_argument("--allowed-hosts", dest="browse.allowed_hosts",
                        help="Comma-separated hosts; when set, only these may be fetched")
    browse.add_argument("--allow-private", dest="browse.allow_private", action=argparse.BooleanOptionalAction,
                        help="Allow fetching private, loopback and metadata addresses")
    return parser


def cli_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Turn parsed args into the "section.field" mapping the config resolver expects."""
    overrides = {k: v for k, v in vars(args).items() if k != "verbose"}
    if overrides.get("server.log_level") is None:
        overrides["server.log_level"] = verbosity_to_level(args.verbose)
    return overrides


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(cli_overrides(args))
    except ConfigError as e:
        setup_logging()
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIG_ERROR

    setup_logging(config.server.log_level)
    server = SearxngMcpServer(config)

    try:
        asyncio.run(server.run())
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except ProtocolError as e:
        logger.error(f"Protocol error on stdio, exiting: {e}")
        return EXIT_FAILURE
    except OSError as e:
        logger.error(f"Transport failure: {e}")
        return EXIT_FAILURE
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
