import pytest

from opsplugs.nacos.config import NacosConfig, load_config

_ENV = (
    "NACOS_HOST",
    "NACOS_PORT",
    "NACOS_NAMESPACE",
    "NACOS_USERNAME",
    "NACOS_PASSWORD",
    "NACOS_CONTEXT_PATH",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_file_missing(tmp_path):
    cfg = load_config(tmp_path / "missing.yml")
    assert cfg == NacosConfig()
    assert cfg.host == "127.0.0.1"
    assert cfg.port == 8848
    assert cfg.namespace == "public"
    assert cfg.context_path == "/nacos"


def test_server_address():
    cfg = NacosConfig(host="nacos.example.com", port=9000, context_path="/ctx")
    assert cfg.server_address() == "http://nacos.example.com:9000/ctx"


def test_file_overrides_defaults(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        "host: nacos.example.com\nport: 9848\nnamespace: dev\ncontextPath: /ctx\n",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg.host == "nacos.example.com"
    assert cfg.port == 9848
    assert cfg.namespace == "dev"
    assert cfg.context_path == "/ctx"
    assert cfg.username == ""


def test_empty_file_values_keep_defaults(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text('host: ""\nport: 0\n', encoding="utf-8")
    assert load_config(path) == NacosConfig()


def test_malformed_file_is_ignored(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text("host: nacos.example.com\nport: notanumber\n", encoding="utf-8")
    assert load_config(path) == NacosConfig()


def test_environment_wins(tmp_path, monkeypatch):
    path = tmp_path / "config.yml"
    path.write_text("host: file.example.com\nport: 1111\n", encoding="utf-8")
    monkeypatch.setenv("NACOS_HOST", "env.example.com")
    monkeypatch.setenv("NACOS_PORT", "2222")
    monkeypatch.setenv("NACOS_USERNAME", "user")
    monkeypatch.setenv("NACOS_PASSWORD", "password")
    cfg = load_config(path)
    assert cfg.host == "env.example.com"
    assert cfg.port == 2222
    assert cfg.username == "user"
    assert cfg.password == "password"


def test_invalid_port_env_is_ignored(tmp_path, monkeypatch):
    monkeypatch.setenv("NACOS_PORT", "abc")
    assert load_config(tmp_path / "missing.yml").port == NacosConfig().port