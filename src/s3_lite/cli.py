"""Command-line access to an S3-compatible store.

Usage:
    s3-lite buckets
    s3-lite ls BUCKET
    s3-lite put BUCKET KEY FILE
    s3-lite get BUCKET KEY FILE
    s3-lite rm BUCKET KEY

Environment Variables:
    S3_ENDPOINT     - Store base URL (required)
    S3_ACCESS_KEY   - Access key (unless --profile is given)
    S3_SECRET_KEY   - Secret key (unless --profile is given)
    S3_VERIFY_SSL   - Set to "false" to accept any certificate (INSECURE)
    S3_TIMEOUT      - Request timeout in seconds
"""

import argparse
import logging
import mimetypes
import os
import sys
from typing import Optional

import urllib3

from s3_lite.client import S3Client
from s3_lite.config import StoreConfig
from s3_lite.errors import ConfigurationError
from s3_lite.utils import copy_stream

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

DOWNLOAD_CHUNK_SIZE = 64 * 1024


class ErrorCollector:
    """Error handler that prints each error to stderr and remembers it."""

    def __init__(self, stream=None):
        self.errors: list[Exception] = []
        self._stream = stream

    def __call__(self, error: Exception) -> None:
        self.errors.append(error)
        print(f"Error: {error}", file=self._stream or sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="s3-lite",
        description="Bucket and object operations against an S3-compatible store",
    )
    parser.add_argument(
        "--profile", "-p",
        help="Read keys from this AWS credentials profile instead of S3_ACCESS_KEY/S3_SECRET_KEY",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Disable TLS certificate verification (INSECURE - use for testing only)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log requests and responses",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("buckets", help="List bucket names")

    ls = commands.add_parser("ls", help="List object keys in a bucket")
    ls.add_argument("bucket")

    put = commands.add_parser("put", help="Upload a file, creating the bucket if needed")
    put.add_argument("bucket")
    put.add_argument("key")
    put.add_argument("file")
    put.add_argument("--content-type", help="Content type (default: guessed from file name)")

    get = commands.add_parser("get", help="Download an object to a file")
    get.add_argument("bucket")
    get.add_argument("key")
    get.add_argument("file")

    rm = commands.add_parser("rm", help="Delete an object")
    rm.add_argument("bucket")
    rm.add_argument("key")
    return parser


def load_config(args: argparse.Namespace, environ=None) -> StoreConfig:
    environ = os.environ if environ is None else environ
    if args.profile:
        config = StoreConfig.from_profile(environ.get("S3_ENDPOINT", ""), args.profile)
    else:
        config = StoreConfig.from_env(environ)
    if args.insecure and not config.insecure_tls:
        config = StoreConfig(
            base_url=config.base_url,
            access_key=config.access_key,
            secret_key=config.secret_key,
            insecure_tls=True,
            timeout=config.timeout,
        )
    return config


def run(args: argparse.Namespace, client: S3Client, errors: ErrorCollector) -> bool:
    """Execute one command; return True on success."""
    if args.command == "buckets":
        for name in client.list_buckets(errors):
            print(name)
        return not errors.errors

    if args.command == "ls":
        for key in client.get_object_list(args.bucket, errors):
            print(key)
        return not errors.errors

    if args.command == "put":
        content_type = args.content_type or mimetypes.guess_type(args.file)[0] or "application/octet-stream"
        with open(args.file, "rb") as source:
            return client.create_bucket_and_upload(args.bucket, args.key, source, content_type, errors)

    if args.command == "get":
        stream = client.get_object(args.bucket, args.key, errors)
        if stream is None:
            return False
        try:
            output = open(args.file, "wb")
            try:
                with output:
                    copy_stream(stream, output, DOWNLOAD_CHUNK_SIZE)
            except (OSError, urllib3.exceptions.HTTPError) as e:
                errors(e)
                # Drop the partial file
                os.remove(args.file)
                return False
        finally:
            stream.close()
        return True

    if args.command == "rm":
        client.delete_object(args.bucket, args.key, errors)
        return not errors.errors

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Optional[list[str]] = None, environ=None, transport=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args, environ)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Set S3_ENDPOINT, S3_ACCESS_KEY and S3_SECRET_KEY (or use --profile)", file=sys.stderr)
        return EXIT_CONFIG

    errors = ErrorCollector()
    client = S3Client(config, transport=transport, on_error=errors)
    try:
        success = run(args, client, errors)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED
    return EXIT_OK if success else EXIT_FAILED


if __name__ == "__main__":
    sys.exit(main())
