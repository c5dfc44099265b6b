import pytest

from config import MetricStoreConfig, load_config

_ENV_VARS = [
    "METRICS_DB_DRIVER",
    "METRICS_DB_USERNAME",
    "METRICS_DB_PASSWORD",
    "METRICS_DB_TEXT_TYPE",
    "METRICS_RECORD_ALL",
    "METRICS_DB_CONNECT_TIMEOUT",
    "METRICS_DB_STATEMENT_TIMEOUT",
]


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    # Keep a developer's local .env out of these tests.
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("config.dotenv.load_dotenv", lambda *a, **k: False)
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.mark.parametrize("url", ["", "   ", "your_metrics_db_url_here"])
def test_metric_store_config_url_required(url: str):
    with pytest.raises(ValueError):
        MetricStoreConfig(url=url)


def test_metric_store_config_rejects_unknown_driver():
    with pytest.raises(ValueError):
        MetricStoreConfig(driver="oracle", url="metrics.db")


@pytest.mark.parametrize("text_type", ["VARCHAR; DROP TABLE x", "1TEXT", "VARCHAR(a)"])
def test_metric_store_config_rejects_bad_text_type(text_type: str):
    with pytest.raises(ValueError):
        MetricStoreConfig(url="metrics.db", text_type=text_type)


def test_metric_store_config_normalizes_text_type_and_timeouts():
    cfg = MetricStoreConfig(url="metrics.db", text_type="varchar(256)", statement_timeout_s=0)
    assert cfg.text_type == "VARCHAR(256)"
    assert cfg.statement_timeout_s is None


def test_load_config_reads_required_and_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("METRICS_DB_URL", "/var/lib/metrics.duckdb")

    cfg = load_config().metrics
    assert cfg.driver == "duckdb"
    assert cfg.url == "/var/lib/metrics.duckdb"
    assert cfg.username == ""
    assert cfg.password == ""
    assert cfg.text_type is None
    assert cfg.record_all_metrics is False
    assert cfg.connect_timeout_s == 5.0
    assert cfg.statement_timeout_s == 10.0


def test_load_config_parses_optional_fields(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("METRICS_DB_URL", "metrics.sqlite")
    monkeypatch.setenv("METRICS_DB_DRIVER", "SQLite")
    monkeypatch.setenv("METRICS_DB_USERNAME", "sa")
    monkeypatch.setenv("METRICS_DB_PASSWORD", "secret")
    monkeypatch.setenv("METRICS_DB_TEXT_TYPE", "VARCHAR(512)")
    monkeypatch.setenv("METRICS_RECORD_ALL", "yes")
    monkeypatch.setenv("METRICS_DB_CONNECT_TIMEOUT", "1.5")
    monkeypatch.setenv("METRICS_DB_STATEMENT_TIMEOUT", "0")

    cfg = load_config().metrics
    assert cfg.driver == "sqlite"
    assert cfg.username == "sa"
    assert cfg.password == "secret"
    assert cfg.text_type == "VARCHAR(512)"
    assert cfg.record_all_metrics is True
    assert cfg.connect_timeout_s == 1.5
    assert cfg.statement_timeout_s is None


def test_load_config_requires_url(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("METRICS_DB_URL", raising=False)
    with pytest.raises(ValueError, match="METRICS_DB_URL"):
        load_config()


@pytest.mark.parametrize(
    ("name", "raw"),
    [("METRICS_RECORD_ALL", "maybe"), ("METRICS_DB_CONNECT_TIMEOUT", "soon")],
)
def test_load_config_rejects_malformed_values(monkeypatch: pytest.MonkeyPatch, name: str, raw: str):
    monkeypatch.setenv("METRICS_DB_URL", "metrics.duckdb")
    monkeypatch.setenv(name, raw)
    with pytest.raises(ValueError, match=name):
        load_config()
