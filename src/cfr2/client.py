import logging
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError

from . import config as cfg
from .errors import ClientError

logger = logging.getLogger(__name__)


def r2_endpoint(account_id: str) -> str:
    return f"https://{account_id}.{cfg.R2_STORAGE_HOST}"


def bucket_url(account_id: str, bucket: str) -> str:
    return f"{r2_endpoint(account_id)}/{bucket}"


def object_url(account_id: str, bucket: str, key: str) -> str:
    # The key is escaped as a single path segment, "/" included.
    return f"{bucket_url(account_id, bucket)}/{quote(key, safe='')}"


def make_r2_client(r2_cfg: cfg.R2Config):
    """Build a boto3 S3 client pointed at the account's R2 endpoint."""
    endpoint_url = r2_endpoint(r2_cfg.account_id)
    boto_cfg = BotoConfig(signature_version="s3v4")
    client_kwargs = {
        "endpoint_url": endpoint_url,
        "region_name": cfg.R2_REGION,
        "aws_access_key_id": r2_cfg.access_key_id,
        "aws_secret_access_key": r2_cfg.secret_access_key,
        "config": boto_cfg,
    }
    try:
        session = boto3.session.Session()
        s3 = session.client("s3", **client_kwargs)
    except (BotoCoreError, ValueError) as e:
        raise ClientError(f"failed to create S3 client for {endpoint_url}: {e}") from e
    logger.debug("S3 client initialized with endpoint: %s", endpoint_url)
    return s3
