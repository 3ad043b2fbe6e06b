import ssl

import pytest

from sfs.config import ConfigError, Settings, load_settings, str_as_bool
from sfs.policy import ListingMode


@pytest.fixture()
def env(site):
    return {"FOLDER": str(site)}


def test_defaults(env, site):
    s = load_settings(environ=env)
    assert s.folder == str(site)
    assert s.port == 8080
    assert s.host == ""
    assert s.referrers == ()
    assert s.listing is ListingMode.SHOWN
    assert not s.use_tls


def test_yaml_file_then_env_override(tmp_path, site):
    cfg = tmp_path / "config.yml"
    cfg.write_text(
        "\n".join(
            [
                f"folder: {site}",
                "port: 9000",
                "cors: true",
                "show-listing: false",
                "url-prefix: /files",
                "referrers:",
                "  - ''",
                "  - http://localhost",
                "access-key: abc",
            ]
        ),
        encoding="utf-8",
    )
    s = load_settings(str(cfg), environ={"PORT": "9100"})
    assert s.port == 9100
    assert s.cors is True
    assert s.listing is ListingMode.INDEX_ONLY
    assert s.url_prefix == "/files"
    assert s.referrers == ("", "http://localhost")

    policy = s.policy()
    assert policy.access_key == "abc"
    assert policy.referrers == ("", "http://localhost")
    assert policy.min_tls_version == ssl.TLSVersion.TLSv1


def test_referrers_env_keeps_empty_entries(env):
    env["REFERRERS"] = ",http://localhost,https://some.site"
    s = load_settings(environ=env)
    assert s.referrers == ("", "http://localhost", "https://some.site")


def test_legacy_env_aliases(env):
    env.update({"CREDENTIALS": "old.json", "FAST_AUTH": "alice:pw"})
    s = load_settings(environ=env, check=False)
    assert s.credentials_file == "old.json"
    assert s.basic_auth == "alice:pw"

    env.update({"CREDENTIALS_FILE": "new.json", "BASIC_AUTH": "bob:pw"})
    s = load_settings(environ=env, check=False)
    assert s.credentials_file == "new.json"
    assert s.basic_auth == "bob:pw"


def test_invalid_env_values_fall_back(env, caplog):
    env.update({"DEBUG": "maybe", "PORT": "eighty"})
    s = load_settings(environ=env)
    assert s.debug is False
    assert s.port == 8080
    assert "DEBUG" in caplog.text


def test_listing_modes(env):
    env.update({"SHOW_LISTING": "false", "ALLOW_INDEX": "no"})
    assert load_settings(environ=env).listing is ListingMode.HIDDEN
    env["ALLOW_INDEX"] = "yes"
    assert load_settings(environ=env).listing is ListingMode.INDEX_ONLY


@pytest.mark.parametrize(
    "extra",
    [
        {"TLS_CERT": "cert.pem"},
        {"TLS_KEY": "key.pem"},
        {"TLS_CERT": "/missing/cert.pem", "TLS_KEY": "/missing/key.pem"},
        {"TLS_MIN_VERS": "tls12"},
        {"URL_PREFIX": "no-slash"},
        {"URL_PREFIX": "/trailing/"},
        {"FOLDER": "/definitely/not/here"},
        {"BASIC_AUTH": "nocolon"},
        {"BASIC_AUTH": "user:"},
        {"BASIC_AUTH": "user:pa:ss"},
        {"FAST_AUTH": "nocolon"},
        {"BASIC_AUTH": "user:pw", "CREDENTIALS_FILE": "creds.json"},
    ],
)
def test_validation_errors(env, extra):
    env.update(extra)
    with pytest.raises(ConfigError):
        load_settings(environ=env)


def test_tls_settings(env, tmp_path):
    cert = tmp_path / "cert.pem"
    key = tmp_path / "key.pem"
    cert.write_text("cert")
    key.write_text("key")
    env.update({"TLS_CERT": str(cert), "TLS_KEY": str(key), "TLS_MIN_VERS": "TLS12"})
    s = load_settings(environ=env)
    assert s.use_tls
    assert s.policy().min_tls_version == ssl.TLSVersion.TLSv1_2

    env["TLS_MIN_VERS"] = "tls99"
    with pytest.raises(ConfigError):
        load_settings(environ=env)


def test_invalid_yaml(tmp_path):
    cfg = tmp_path / "bad.yml"
    cfg.write_text("port: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_settings(str(cfg), environ={})


def test_unchecked_load_skips_validation():
    s = load_settings(environ={"FOLDER": "/nope", "CREDENTIALS_FILE": "c.json"}, check=False)
    assert s.credentials_file == "c.json"


def test_summary_masks_secrets():
    text = Settings(access_key="topsecret", basic_auth="a:b").summary()
    assert "topsecret" not in text
    assert "a:b" not in text
    assert "access-key" in text


@pytest.mark.parametrize("value,expected", [("1", True), ("T", True), ("yes", True), ("n", False), ("False", False)])
def test_str_as_bool(value, expected):
    assert str_as_bool(value) is expected


def test_str_as_bool_rejects_garbage():
    with pytest.raises(ValueError):
        str_as_bool("perhaps")
