"""
Configuration for the Cloudflare R2 CLI.

Credentials and the default bucket come from a TOML file and from environment
variables. Environment variables override the file per field when they are set
and non-empty. CLI flags (e.g. `--bucket`) override the loaded values at
runtime.
"""

import os
import tomllib
from dataclasses import dataclass
from typing import Mapping, Optional

from .errors import ConfigError

# Location of the TOML config file. A leading "~" is expanded to the home directory.
CONFIG_FILE_PATH: str = "~/.local/cfg/cfr2.toml"

# R2 endpoints are https://<account id>.<host>, without a region segment.
R2_STORAGE_HOST: str = "r2.cloudflarestorage.com"

# R2 is region-less but botocore still wants one for signing.
R2_REGION: str = "auto"

DEFAULT_PRESIGN_EXPIRY_HOURS: int = 24

DOWNLOAD_CHUNK_SIZE: int = 64 * 1024

# Logging level name (DEBUG, INFO, ...) used when `--verbose` is not given.
LOG_LEVEL_ENV: str = "CFR2_LOG_LEVEL"

ENV_ACCOUNT_ID: str = "CFR2_ACCOUNT_ID"
ENV_ACCESS_KEY_ID: str = "CFR2_ACCESS_KEY_ID"
ENV_SECRET_ACCESS_KEY: str = "CFR2_SECRET_ACCESS_KEY"
ENV_DEFAULT_BUCKET: str = "CFR2_DEFAULT_BUCKET"

# (TOML key, dataclass field, environment variable), in validation order.
_FIELDS = (
    ("AccountID", "account_id", ENV_ACCOUNT_ID),
    ("AccessKeyID", "access_key_id", ENV_ACCESS_KEY_ID),
    ("SecretAccessKey", "secret_access_key", ENV_SECRET_ACCESS_KEY),
    ("DefaultBucket", "default_bucket", ENV_DEFAULT_BUCKET),
)


@dataclass(frozen=True)
class R2Config:
    account_id: str
    access_key_id: str
    secret_access_key: str
    default_bucket: str


def expand_path(path: str) -> str:
    return os.path.expanduser(path)


def read_config_file(path: str) -> dict:
    """Return the recognized fields from the TOML file at `path`.

    A missing file yields an empty dict. Unknown keys are ignored.
    """
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"failed to parse config file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e

    values = {}
    for toml_key, field, _ in _FIELDS:
        if toml_key not in data:
            continue
        value = data[toml_key]
        if not isinstance(value, str):
            raise ConfigError(f"{toml_key} in config file {path} must be a string")
        values[field] = value
    return values


def load_config(path: str = CONFIG_FILE_PATH, environ: Optional[Mapping[str, str]] = None) -> R2Config:
    expanded = expand_path(path)
    env = os.environ if environ is None else environ

    values = read_config_file(expanded)
    for _, field, env_name in _FIELDS:
        # Environment wins whenever it is set, even if the file had a value.
        if env.get(env_name):
            values[field] = env[env_name]

    for toml_key, field, env_name in _FIELDS:
        if not values.get(field):
            raise ConfigError(
                f"{toml_key} is not set. Please provide it in {expanded} or via {env_name} environment variable"
            )

    return R2Config(**values)
