import pytest

from cfr2.config import R2Config, load_config
from cfr2.errors import ConfigError

FULL_TOML = """
AccountID = "file-acct"
AccessKeyID = "file-key"
SecretAccessKey = "file-secret"
DefaultBucket = "file-bucket"
Unrelated = 42
"""


def write(tmp_path, text):
    path = tmp_path / "cfr2.toml"
    path.write_text(text)
    return str(path)


def test_load_from_file_only(tmp_path):
    cfg = load_config(write(tmp_path, FULL_TOML), environ={})
    assert cfg == R2Config("file-acct", "file-key", "file-secret", "file-bucket")


def test_environment_overrides_file_per_field(tmp_path):
    env = {"CFR2_ACCOUNT_ID": "env-acct", "CFR2_DEFAULT_BUCKET": "env-bucket"}
    cfg = load_config(write(tmp_path, FULL_TOML), environ=env)
    assert cfg.account_id == "env-acct"
    assert cfg.default_bucket == "env-bucket"
    assert cfg.access_key_id == "file-key"
    assert cfg.secret_access_key == "file-secret"


def test_empty_environment_value_does_not_override(tmp_path):
    cfg = load_config(write(tmp_path, FULL_TOML), environ={"CFR2_ACCOUNT_ID": ""})
    assert cfg.account_id == "file-acct"


def test_missing_file_uses_environment(tmp_path):
    env = {
        "CFR2_ACCOUNT_ID": "a",
        "CFR2_ACCESS_KEY_ID": "b",
        "CFR2_SECRET_ACCESS_KEY": "c",
        "CFR2_DEFAULT_BUCKET": "d",
    }
    cfg = load_config(str(tmp_path / "nope.toml"), environ=env)
    assert cfg == R2Config("a", "b", "c", "d")


def test_missing_field_after_merge(tmp_path):
    path = write(tmp_path, 'AccountID = "x"\nAccessKeyID = "y"\nSecretAccessKey = "z"\n')
    with pytest.raises(ConfigError, match="DefaultBucket is not set.*CFR2_DEFAULT_BUCKET"):
        load_config(path, environ={})


def test_first_missing_field_is_reported(tmp_path):
    with pytest.raises(ConfigError, match="^AccountID is not set"):
        load_config(str(tmp_path / "nope.toml"), environ={})


def test_malformed_toml(tmp_path):
    with pytest.raises(ConfigError, match="failed to parse config file"):
        load_config(write(tmp_path, "AccountID = "), environ={})


def test_non_string_value(tmp_path):
    with pytest.raises(ConfigError, match="AccountID .* must be a string"):
        load_config(write(tmp_path, "AccountID = 12\n"), environ={})


def test_tilde_path_is_expanded(tmp_path, monkeypatch):
    monkeypatch.setenv("HOME", str(tmp_path))
    (tmp_path / ".local" / "cfg").mkdir(parents=True)
    (tmp_path / ".local" / "cfg" / "cfr2.toml").write_text(FULL_TOML)
    cfg = load_config(environ={})
    assert cfg.default_bucket == "file-bucket"
