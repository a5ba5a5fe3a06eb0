import argparse
import json
import logging
import os
import sys
from importlib.metadata import version

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .certs import generate_key_pair
from .clients import get_admin_client, get_executor
from .config import ConnectorConfig
from .errors import ConnectorError, TerminalError
from .fetcher import ConnectionInfoFetcher
from .logger import setup_logger
from .retry import fetch_with_retry
from .schemas.connection import ConnectionInfo, InstanceName


def _subject(info: ConnectionInfo) -> str:
    return info.client_certificate.subject.rfc4514_string()


def _to_dict(info: ConnectionInfo) -> dict[str, object]:
    return {
        "ip_address": info.ip_address,
        "public_ip_address": info.public_ip_address,
        "psc_dns_name": info.psc_dns_name,
        "instance_uid": info.instance_uid,
        "client_certificate_subject": _subject(info),
        "client_certificate_expiration": info.expiration.isoformat(),
        "certificate_chain_length": len(info.certificate_chain),
        "ca_certificate_subject": info.ca_certificate.subject.rfc4514_string(),
    }


def render_table(instance_name: InstanceName, info: ConnectionInfo) -> Table:
    table = Table(title=f"Connection Info: {instance_name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")

    for field, value in _to_dict(info).items():
        table.add_row(field, "-" if value is None else str(value))

    return table


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="AlloyDB Connector: fetch connection info and a client certificate",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Fetch connection info for an instance
  alloydb-connector --instance projects/my-project/locations/us-central1/clusters/my-cluster/instances/my-instance

  # Use ALLOYDB_INSTANCE_NAME and print JSON
  ALLOYDB_INSTANCE_NAME=projects/p/locations/l/clusters/c/instances/i alloydb-connector --json
""",
    )
    try:
        ver = version("alloydb-connector")
    except Exception:
        ver = "unknown"
    parser.add_argument("--version", action="version", version=f"alloydb-connector v{ver}")

    parser.add_argument(
        "--instance",
        help="Instance name (default: $ALLOYDB_INSTANCE_NAME)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Seconds to wait for the Admin API (default: 30)",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        help="Admin API worker threads (default: $ALLOYDB_MAX_WORKERS or 4)",
    )
    parser.add_argument(
        "--retry", action="store_true", help="Retry transient failures with backoff"
    )
    parser.add_argument("--json", action="store_true", help="Output results as JSON")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    args = parser.parse_args(argv)

    # Flags override the environment
    env = dict(os.environ)
    if args.instance:
        env["ALLOYDB_INSTANCE_NAME"] = args.instance
    if args.max_workers is not None:
        env["ALLOYDB_MAX_WORKERS"] = str(args.max_workers)

    if not env.get("ALLOYDB_INSTANCE_NAME"):
        parser.error("--instance is required when ALLOYDB_INSTANCE_NAME is not set")

    try:
        config = ConnectorConfig.from_env(env)
    except ValueError as e:
        parser.error(str(e))
    instance_name = config.instance_name

    setup_logger(level=logging.DEBUG if args.verbose else logging.ERROR)

    # Use stderr for errors if stdout is piped for JSON
    log_console = Console(stderr=True)
    out_console = Console()

    key = generate_key_pair()
    executor = get_executor(config.max_workers)
    fetcher = ConnectionInfoFetcher(executor, get_admin_client())
    try:
        if args.retry:
            info = fetch_with_retry(fetcher, instance_name, key, timeout=args.timeout)
        else:
            info = fetcher.fetch_and_wait(instance_name, key, timeout=args.timeout)
    except TerminalError as e:
        log_console.print(f"[bold red]Terminal failure:[/bold red] {escape(str(e))}")
        return 1
    except ConnectorError as e:
        log_console.print(f"[red]Transient failure (safe to retry):[/red] {escape(str(e))}")
        return 1
    finally:
        fetcher.close()
        executor.shutdown(wait=False, cancel_futures=True)
        get_executor.cache_clear()

    if args.json:
        out_console.print_json(json.dumps(_to_dict(info)))
    else:
        out_console.print(render_table(instance_name, info))
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        console = Console(stderr=True)
        console.print("\n[bold red]Operation cancelled by user.[/bold red]")
        sys.exit(130)
