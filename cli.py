"""CLI entry point for git-oauth-relay.

Runs the relay with uvicorn and offers a few inspection commands.
"""
import argparse
import sys

import requests
import uvicorn

from config import RelayConfig, load_config
from logging_config import setup_logging
from relay.allowlist import Provider
from relay.endpoints import VERSION


# ============== Helper Functions ==============

def mask(value: str, keep: int = 4) -> str:
    """Show only the first few characters of a value."""
    if not value:
        return ""
    return value[:keep] + "..." if len(value) > keep else "***"


def check_relay(url: str) -> dict:
    """Hit a running relay's /health endpoint.

    Returns dict with:
        - running: bool
        - status: health payload on success
        - error: error message on failure
    """
    try:
        response = requests.get(f"{url.rstrip('/')}/health", timeout=5)
        response.raise_for_status()
        return {"running": True, "status": response.json()}
    except requests.RequestException as e:
        return {"running": False, "error": f"Network error: {e}"}
    except ValueError as e:
        return {"running": False, "error": f"Invalid response: {e}"}


# ============== Commands ==============

def cmd_serve(config: RelayConfig, host: str = None, port: int = None):
    """Run the relay in the foreground."""
    setup_logging(level=config.log_level, fmt=config.log_format, secrets=config.secrets())
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
    )


def cmd_status(config: RelayConfig, url: str = None) -> int:
    """Report whether a relay is answering on the given URL."""
    url = url or f"http://localhost:{config.port}"
    result = check_relay(url)

    print("\n[Relay]")
    print(f"  URL:      {url}")
    if result["running"]:
        print("  Status:   Running")
        print(f"  Service:  {result['status'].get('service', 'unknown')}")
        return 0
    print("  Status:   Not running")
    print(f"  Error:    {result['error']}")
    return 1


def cmd_config(config: RelayConfig):
    """Show which providers have credentials (secrets masked)."""
    print("\n[Credentials]")
    for provider in Provider:
        creds = config.credentials_for(provider)
        if creds:
            print(f"  {provider.value:<10} client_id={creds.client_id} client_secret={mask(creds.client_secret)}")
        else:
            print(f"  {provider.value:<10} not configured")

    print("\n[OAuth endpoints]")
    for endpoint in config.oauth_endpoints:
        print(f"  {endpoint}")

    print("\n[API prefixes]")
    for prefix in config.api_prefixes:
        print(f"  {prefix}")

    print("\n[Server]")
    print(f"  Bind:     {config.host}:{config.port}")
    print(f"  Timeout:  {config.timeout}s")
    print(f"  Excerpt:  {config.excerpt_limit} chars")
    print(f"  Logging:  {config.log_level} ({config.log_format})")
    print()


def cmd_version():
    """Show version information."""
    print(f"git-oauth-relay v{VERSION}")


def cmd_help():
    """Show detailed help."""
    print("""
Git OAuth Relay - OAuth token and API relay for browser-based Git clients

USAGE:
    git-oauth-relay <command> [options]

COMMANDS:
    serve       Run the relay (default)
    status      Check whether a relay is running
    config      Show the loaded configuration (secrets masked)
    version     Show version information
    help        Show this help message

ENVIRONMENT:
    GITHUB_CLIENT_ID, GITHUB_CLIENT_SECRET
    GITLAB_CLIENT_ID, GITLAB_CLIENT_SECRET
    RELAY_HOST, RELAY_PORT, RELAY_TIMEOUT, RELAY_EXCERPT_LIMIT
    LOG_LEVEL, LOG_FORMAT (plain|json)

Values are also read from a .env file in the working directory.

EXAMPLES:
    git-oauth-relay serve --port 8787
    git-oauth-relay status --url https://relay.example.com
""")


# ============== Main Entry Point ==============

def main(argv=None):
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="git-oauth-relay",
        description="OAuth token and API relay for browser-based Git clients",
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="serve",
        choices=["serve", "status", "config", "version", "help"],
        help="Command to run (default: serve)"
    )
    parser.add_argument("--host", help="Bind address for serve")
    parser.add_argument("--port", type=int, help="Port for serve")
    parser.add_argument("--url", help="Relay base URL for status")

    args = parser.parse_args(argv)

    if args.command == "version":
        cmd_version()
        return 0
    if args.command == "help":
        cmd_help()
        return 0

    try:
        config = load_config()
    except ValueError as e:
        print(f"[X] Invalid configuration: {e}", file=sys.stderr)
        return 2

    if args.command == "serve":
        cmd_serve(config, host=args.host, port=args.port)
    elif args.command == "status":
        return cmd_status(config, url=args.url)
    elif args.command == "config":
        cmd_config(config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
