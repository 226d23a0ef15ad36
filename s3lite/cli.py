"""Command-line interface for the object storage client.

Provides argument parsing and the main entry point for running single
operations (put, get, delete, list, presign) from the command line.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from s3lite.client import ObjectStoreClient
from s3lite.config import ClientConfig, ConfigError, DEFAULT_CONFIG_PATH, load_config
from s3lite.console import ConsolePrinter
from s3lite.constants import CannedACL, DEFAULT_PRESIGN_TTL, ServerSideEncryption, StorageClass
from s3lite.errors import ListingParseError, SigningInputError

# Exit codes
EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def parse_header(value: str) -> tuple[str, str]:
    """Parse a ``Name: value`` header argument."""
    name, sep, header_value = value.partition(":")
    if not sep or not name.strip():
        raise argparse.ArgumentTypeError(f"Header must look like 'Name: value', got {value!r}")
    return name.strip(), header_value.strip()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="s3lite",
        description="Minimal client for S3-compatible object storage",
    )

    parser.add_argument(
        "-c", "--config",
        default=DEFAULT_CONFIG_PATH,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH})",
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Only print errors and requested data",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log requests, including canonical requests",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    put = commands.add_parser("put", help="Upload a file")
    put.add_argument("key", help="Object key")
    put.add_argument("source", type=Path, help="File to upload")
    put.add_argument(
        "--acl",
        choices=[acl.value for acl in CannedACL],
        default=CannedACL.PRIVATE.value,
        help="Canned ACL (default: private)",
    )
    put.add_argument(
        "--storage-class",
        choices=[sc.value for sc in StorageClass],
        default=StorageClass.STANDARD.value,
        help="Storage class (default: STANDARD)",
    )
    put.add_argument(
        "--sse",
        choices=[sse.value for sse in ServerSideEncryption],
        help="Request server-side encryption",
    )
    put.add_argument(
        "-H", "--header",
        type=parse_header,
        action="append",
        default=[],
        metavar="'NAME: VALUE'",
        help="Extra request header, may be repeated",
    )

    get = commands.add_parser("get", help="Download an object")
    get.add_argument("key", help="Object key")
    get.add_argument(
        "destination",
        nargs="?",
        type=Path,
        help="File to write (default: standard output)",
    )

    delete = commands.add_parser("delete", help="Delete an object")
    delete.add_argument("key", help="Object key")

    listing = commands.add_parser("list", help="List objects in the bucket")
    listing.add_argument("--prefix", help="Only keys starting with this prefix")
    listing.add_argument("--marker", help="Start listing after this key")
    listing.add_argument("--max-keys", type=int, metavar="N", help="Return at most N keys")
    listing.add_argument("--delimiter", help="Group keys by this delimiter")
    listing.add_argument("--json", action="store_true", help="Print entries as JSON")

    presign = commands.add_parser("presign", help="Print a presigned URL")
    presign.add_argument("key", help="Object key")
    presign.add_argument(
        "--ttl",
        type=int,
        default=DEFAULT_PRESIGN_TTL,
        help=f"Seconds the URL stays valid (default: {DEFAULT_PRESIGN_TTL})",
    )
    presign.add_argument(
        "--method",
        default="GET",
        type=str.upper,
        choices=["GET", "PUT", "DELETE"],
        help="HTTP method the URL is for (default: GET)",
    )
    presign.add_argument(
        "--content-length",
        type=int,
        metavar="BYTES",
        help="Bind a PUT URL to exactly this many bytes",
    )

    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(show_path=False)],
    )


def create_client(config: ClientConfig) -> ObjectStoreClient:
    """Build a client from a loaded configuration."""
    return ObjectStoreClient(
        config.access_key,
        config.secret_key,
        config.bucket,
        region=config.region,
        endpoint=config.endpoint,
    )


def run_command(
    args: argparse.Namespace,
    client: ObjectStoreClient,
    printer: ConsolePrinter,
) -> int:
    """Run the selected command.

    Returns:
        Exit code: 0 for a 2xx response, 1 otherwise
    """
    if args.command == "put":
        result = client.put(
            args.key,
            args.source,
            acl=CannedACL(args.acl),
            storage_class=StorageClass(args.storage_class),
            encryption=ServerSideEncryption(args.sse) if args.sse else None,
            headers=dict(args.header),
        )
        printer.status("PUT", args.key, result)

    elif args.command == "get":
        if args.destination is None:
            result = client.get(args.key)
            if result.ok:
                sys.stdout.buffer.write(result.result)
                sys.stdout.buffer.flush()
                return EXIT_OK
        else:
            result = client.get(args.key, args.destination)
        printer.status("GET", args.key, result)

    elif args.command == "delete":
        result = client.delete(args.key)
        printer.status("DELETE", args.key, result)

    elif args.command == "list":
        result = client.list(
            prefix=args.prefix,
            marker=args.marker,
            max_keys=args.max_keys,
            delimiter=args.delimiter,
        )
        if not result.ok:
            printer.status("LIST", client.bucket, result)
        elif args.json:
            printer.listing_json(result.result)
        else:
            printer.listing(client.bucket, result.result)

    elif args.command == "presign":
        printer.url(client.presign(
            args.key,
            ttl=args.ttl,
            method=args.method,
            content_length=args.content_length,
        ))
        return EXIT_OK

    else:
        raise ValueError(f"Unknown command: {args.command}")

    return EXIT_OK if result.ok else EXIT_FAILED


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code: 0 for success, 1 for a failed request, 2 for errors
    """
    args = parse_args(argv)
    configure_logging(args.verbose)

    # Load configuration
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_ERROR

    printer = ConsolePrinter(quiet=args.quiet)

    try:
        with create_client(config) as client:
            return run_command(args, client, printer)
    except (SigningInputError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except ListingParseError as e:
        print(f"Invalid listing response: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
