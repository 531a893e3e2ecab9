import argparse
import logging
import os
import sys
from datetime import timedelta
from typing import List, Optional

from . import config as cfg
from .client import make_r2_client, object_url
from .config import R2Config, load_config
from .errors import Cfr2Error
from .operations import (
    delete_object,
    download_object,
    list_objects,
    presign_object,
    rename_object,
    upload_object,
)

logger = logging.getLogger(__name__)

ERROR_MARK = "×"


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on bad input instead of 2."""

    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(1, f"{ERROR_MARK} {message}\n")


def _add_bucket_flag(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-b",
        "--bucket",
        default=None,
        help="R2 bucket name (defaults to DefaultBucket in config)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="cfr2",
        description="Manage objects in a Cloudflare R2 bucket.",
        epilog=f"Credentials are read from {cfg.CONFIG_FILE_PATH} or the "
        f"{cfg.ENV_ACCOUNT_ID}, {cfg.ENV_ACCESS_KEY_ID}, {cfg.ENV_SECRET_ACCESS_KEY} "
        f"and {cfg.ENV_DEFAULT_BUCKET} environment variables.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging on stderr")
    sub = p.add_subparsers(dest="command", metavar="<command>")

    ls = sub.add_parser("list", help="List all objects in the bucket")
    _add_bucket_flag(ls)

    dl = sub.add_parser("download", help="Download an object")
    _add_bucket_flag(dl)
    dl.add_argument("-k", "--key", default="", help="Object key to download (required)")
    dl.add_argument(
        "-o",
        "--output",
        default="",
        help="Output file path or directory (defaults to current directory, filename from key)",
    )

    up = sub.add_parser("upload", help="Upload a file")
    _add_bucket_flag(up)
    up.add_argument("-f", "--file", default="", help="Local file to upload (required)")
    up.add_argument("-k", "--key", default="", help="Object key for the uploaded file (required)")

    rm = sub.add_parser("delete", help="Delete an object")
    _add_bucket_flag(rm)
    rm.add_argument("-k", "--key", default="", help="Object key to delete (required)")

    mv = sub.add_parser("rename", help="Rename an object (copy, then delete the original)")
    _add_bucket_flag(mv)
    mv.add_argument("-o", "--old-key", default="", help="Object key to rename (required)")
    mv.add_argument("-n", "--new-key", default="", help="New object key (required)")

    ps = sub.add_parser("presign", help="Generate a presigned GET URL for an object")
    _add_bucket_flag(ps)
    ps.add_argument("-k", "--key", default="", help="Object key (required)")
    ps.add_argument(
        "-e",
        "--expiry",
        type=int,
        default=cfg.DEFAULT_PRESIGN_EXPIRY_HOURS,
        help=f"URL expiry time in hours (default: {cfg.DEFAULT_PRESIGN_EXPIRY_HOURS})",
    )
    return p


def configure_logging(verbose: bool) -> None:
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, os.getenv(cfg.LOG_LEVEL_ENV, "WARNING").upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def fail(message: str) -> int:
    print(f"{ERROR_MARK} {message}", file=sys.stderr)
    return 1


def resolve_bucket(args: argparse.Namespace, r2_cfg: R2Config) -> Optional[str]:
    # Priority: --bucket flag > DefaultBucket from config/env
    return args.bucket or r2_cfg.default_bucket or None


def resolve_output_path(key: str, output: str) -> str:
    if not output:
        return os.path.join(".", key.replace("/", "_"))
    if os.path.isdir(output):
        return os.path.join(output, os.path.basename(key.rstrip("/")))
    return output


_NO_BUCKET = "Bucket name not specified. Use -b or --bucket flag, or set DefaultBucket in config."
_NO_KEY = "Object key not specified. Use -k or --key flag."


def cmd_list(args: argparse.Namespace, s3, r2_cfg: R2Config) -> int:
    bucket = resolve_bucket(args, r2_cfg)
    if not bucket:
        return fail(_NO_BUCKET)

    try:
        objects = list_objects(s3, bucket)
    except Cfr2Error as e:
        return fail(f"Failed to list objects in bucket '{bucket}': {e}")

    if not objects:
        print("No objects found in the bucket.")
        return 0
    for obj in objects:
        size = str(obj.size) if obj.size is not None else "N/A"
        print(f"{obj.key} | {size}")
    return 0


def cmd_download(args: argparse.Namespace, s3, r2_cfg: R2Config) -> int:
    bucket = resolve_bucket(args, r2_cfg)
    if not bucket:
        return fail(_NO_BUCKET)
    if not args.key:
        return fail(_NO_KEY)

    dest = resolve_output_path(args.key, args.output)
    print(f"Downloading '{args.key}' from bucket '{bucket}' to '{dest}'...", flush=True)
    try:
        download_object(s3, bucket, args.key, dest)
    except Cfr2Error as e:
        return fail(f"Failed to download object '{args.key}': {e}")
    print(f"Successfully downloaded '{args.key}' to '{dest}'.")
    return 0


def cmd_upload(args: argparse.Namespace, s3, r2_cfg: R2Config) -> int:
    bucket = resolve_bucket(args, r2_cfg)
    if not bucket:
        return fail(_NO_BUCKET)
    if not args.file:
        return fail("File path not specified. Use -f or --file flag.")
    if not args.key:
        return fail(_NO_KEY)

    print(f"Uploading '{args.file}' to bucket '{bucket}' as '{args.key}'...", flush=True)
    try:
        upload_object(s3, bucket, args.key, args.file)
    except Cfr2Error as e:
        return fail(f"Failed to upload file '{args.file}': {e}")
    print(f"Successfully uploaded '{args.file}' to '{args.key}'.")
    print(f"Object URL: {object_url(r2_cfg.account_id, bucket, args.key)}")
    return 0


def cmd_delete(args: argparse.Namespace, s3, r2_cfg: R2Config) -> int:
    bucket = resolve_bucket(args, r2_cfg)
    if not bucket:
        return fail(_NO_BUCKET)
    if not args.key:
        return fail(_NO_KEY)

    print(f"Deleting '{args.key}' from bucket '{bucket}'...", flush=True)
    try:
        delete_object(s3, bucket, args.key)
    except Cfr2Error as e:
        return fail(f"Failed to delete object '{args.key}': {e}")
    print(f"Successfully deleted '{args.key}' from '{bucket}'.")
    return 0


def cmd_rename(args: argparse.Namespace, s3, r2_cfg: R2Config) -> int:
    bucket = resolve_bucket(args, r2_cfg)
    if not bucket:
        return fail(_NO_BUCKET)
    if not args.old_key:
        return fail("Old object key not specified. Use -o or --old-key flag.")
    if not args.new_key:
        return fail("New object key not specified. Use -n or --new-key flag.")

    print(f"Renaming '{args.old_key}' to '{args.new_key}' in bucket '{bucket}'...", flush=True)
    try:
        rename_object(s3, bucket, args.old_key, args.new_key)
    except Cfr2Error as e:
        return fail(f"Failed to rename object '{args.old_key}' to '{args.new_key}': {e}")
    print(f"Successfully renamed '{args.old_key}' to '{args.new_key}' in '{bucket}'.")
    return 0


def cmd_presign(args: argparse.Namespace, s3, r2_cfg: R2Config) -> int:
    bucket = resolve_bucket(args, r2_cfg)
    if not bucket:
        return fail(_NO_BUCKET)
    if not args.key:
        return fail(_NO_KEY)

    print(
        f"Generating presigned URL for '{args.key}' in bucket '{bucket}' with {args.expiry}-hour expiry...",
        flush=True,
    )
    try:
        url = presign_object(s3, bucket, args.key, timedelta(hours=args.expiry))
    except Cfr2Error as e:
        return fail(f"Failed to generate presigned URL for object '{args.key}': {e}")
    print(f"Presigned URL: {url}")
    return 0


COMMANDS = {
    "list": cmd_list,
    "download": cmd_download,
    "upload": cmd_upload,
    "delete": cmd_delete,
    "rename": cmd_rename,
    "presign": cmd_presign,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.verbose)

    try:
        r2_cfg = load_config()
    except Cfr2Error as e:
        return fail(f"Configuration error: {e}")

    try:
        s3 = make_r2_client(r2_cfg)
    except Cfr2Error as e:
        return fail(f"Failed to create R2 client: {e}")

    logger.debug("running %s", args.command)
    return COMMANDS[args.command](args, s3, r2_cfg)


if __name__ == "__main__":
    raise SystemExit(main())
