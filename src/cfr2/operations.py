"""
Object operations against an R2 bucket.

Every function takes a boto3 S3 client as its first argument and wraps
failures from boto3/botocore in StoreError and local filesystem failures in
LocalIOError, with the bucket and key in the message.
"""

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, TextIO

from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError
from botocore.exceptions import ClientError as BotoClientError

from . import config as cfg
from .errors import LocalIOError, RenamePartialError, StoreError
from .progress import ProgressReader, ProgressWriter, TransferProgress

logger = logging.getLogger(__name__)

_STORE_ERRORS = (BotoClientError, BotoCoreError)


@dataclass
class ObjectInfo:
    key: str
    size: Optional[int] = None


def list_objects(s3, bucket: str) -> List[ObjectInfo]:
    """Return every object in the bucket, draining all listing pages.

    A failure on any page discards what was collected so far.
    """
    objects: List[ObjectInfo] = []
    paginator = s3.get_paginator("list_objects_v2")
    try:
        for page in paginator.paginate(Bucket=bucket):
            for obj in page.get("Contents", []) or []:
                size = obj.get("Size")
                objects.append(ObjectInfo(key=obj["Key"], size=int(size) if size is not None else None))
    except _STORE_ERRORS as e:
        raise StoreError(f"failed to list objects in bucket '{bucket}': {e}") from e
    logger.debug("listed %d objects in bucket %s", len(objects), bucket)
    return objects


def delete_object(s3, bucket: str, key: str) -> None:
    try:
        s3.delete_object(Bucket=bucket, Key=key)
    except _STORE_ERRORS as e:
        raise StoreError(f"failed to delete object '{key}' from bucket '{bucket}': {e}") from e
    logger.debug("deleted %s from bucket %s", key, bucket)


def rename_object(s3, bucket: str, old_key: str, new_key: str) -> None:
    """Rename by server-side copy to `new_key`, then delete `old_key`.

    Not atomic. If the copy fails nothing has changed. If the delete fails
    both keys exist and RenamePartialError is raised; the copy is not undone.
    """
    try:
        s3.copy_object(
            Bucket=bucket,
            Key=new_key,
            CopySource={"Bucket": bucket, "Key": old_key},
        )
    except _STORE_ERRORS as e:
        raise StoreError(
            f"failed to copy object from '{old_key}' to '{new_key}' in bucket '{bucket}': {e}"
        ) from e
    logger.debug("copied %s to %s in bucket %s", old_key, new_key, bucket)

    try:
        delete_object(s3, bucket, old_key)
    except StoreError as e:
        logger.debug("rename left both %s and %s in bucket %s", old_key, new_key, bucket)
        raise RenamePartialError(
            f"copy successful but failed to delete original object '{old_key}' from bucket '{bucket}': {e}",
            bucket=bucket,
            old_key=old_key,
            new_key=new_key,
        ) from e


def download_object(
    s3,
    bucket: str,
    key: str,
    dest_path: str,
    stream: Optional[TextIO] = None,
    chunk_size: int = cfg.DOWNLOAD_CHUNK_SIZE,
) -> int:
    """Stream an object into `dest_path` and return the number of bytes written.

    A partially written file is left in place when the transfer fails.
    """
    try:
        resp = s3.get_object(Bucket=bucket, Key=key)
    except _STORE_ERRORS as e:
        raise StoreError(f"failed to get object '{key}' from bucket '{bucket}': {e}") from e
    body = resp["Body"]

    try:
        total = resp.get("ContentLength")
        if total is None:
            print("Warning: ContentLength not available, download progress percentage will not be shown.")

        try:
            out = open(dest_path, "wb")
        except OSError as e:
            raise LocalIOError(f"failed to create local file '{dest_path}': {e}") from e

        progress = TransferProgress(total, stream=stream)
        try:
            with ProgressWriter(out, progress) as writer:
                chunks = body.iter_chunks(chunk_size=chunk_size)
                while True:
                    try:
                        chunk = next(chunks, None)
                    except _STORE_ERRORS as e:
                        raise StoreError(f"failed to read object '{key}' from bucket '{bucket}': {e}") from e
                    if chunk is None:
                        break
                    try:
                        writer.write(chunk)
                    except OSError as e:
                        raise LocalIOError(f"failed to write object content to file '{dest_path}': {e}") from e
        finally:
            progress.finish()
    finally:
        body.close()

    logger.debug("downloaded %s (%d bytes) to %s", key, progress.transferred, dest_path)
    return progress.transferred


def upload_object(
    s3,
    bucket: str,
    key: str,
    source_path: str,
    stream: Optional[TextIO] = None,
) -> int:
    """Upload a local file and return its size.

    boto3's managed uploader decides between a single PUT and multipart.
    """
    try:
        f = open(source_path, "rb")
    except OSError as e:
        raise LocalIOError(f"failed to open local file '{source_path}': {e}") from e

    with f:
        try:
            size = os.fstat(f.fileno()).st_size
        except OSError as e:
            raise LocalIOError(f"failed to get file info for '{source_path}': {e}") from e

        progress = TransferProgress(size, stream=stream)
        reader = ProgressReader(f, progress)
        try:
            s3.upload_fileobj(reader, bucket, key)
        except (S3UploadFailedError,) + _STORE_ERRORS as e:
            raise StoreError(f"failed to upload object '{key}' to bucket '{bucket}': {e}") from e
        except OSError as e:
            raise LocalIOError(f"failed to read local file '{source_path}': {e}") from e
        finally:
            progress.finish()

    logger.debug("uploaded %s (%d bytes) as %s", source_path, size, key)
    return size


def presign_object(
    s3,
    bucket: str,
    key: str,
    expiry: timedelta = timedelta(hours=cfg.DEFAULT_PRESIGN_EXPIRY_HOURS),
) -> str:
    """Return a GET URL for the object valid for `expiry`.

    The expiry is passed through as-is; the signer or R2 enforces any limits.
    """
    try:
        return s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=int(expiry.total_seconds()),
        )
    except _STORE_ERRORS as e:
        raise StoreError(f"failed to generate presigned URL for object '{key}' in bucket '{bucket}': {e}") from e
