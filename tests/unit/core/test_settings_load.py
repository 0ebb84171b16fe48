from crypto_control_bot.core.settings import Settings
from crypto_control_bot.core.validators.settings import validate_settings


def _env(monkeypatch, **values):
    for k in ("TELEGRAM_TOKEN", "TELEGRAM_TOKEN_FILE", "TELEGRAM_TOKEN_B64", "TELEGRAM_USERS", "PAIRS"):
        monkeypatch.delenv(k, raising=False)
    for k, v in values.items():
        monkeypatch.setenv(k, v)


def test_settings_load_defaults(monkeypatch):
    _env(monkeypatch)
    s = Settings.load()
    assert s.TELEGRAM_USERS == []
    assert s.PAIRS == ["BTCUSDT"]
    assert s.TELEGRAM_LONG_POLL_SEC == 10
    assert s.TELEGRAM_PARSE_MODE == "Markdown"


def test_settings_parse_lists_and_mask_token(monkeypatch):
    _env(monkeypatch, TELEGRAM_TOKEN="123:abc", TELEGRAM_USERS="42, 7", PAIRS="btcusdt,ETHUSDT")
    s = Settings.load()
    assert s.TELEGRAM_USERS == [42, 7]
    assert s.PAIRS == ["BTCUSDT", "ETHUSDT"]
    d = s.as_dict()
    assert d["TELEGRAM_TOKEN"] == "***"
    assert "TELEGRAM_USERS_RAW" not in d
    assert validate_settings(s) == []


def test_token_from_file(monkeypatch, tmp_path):
    p = tmp_path / "token"
    p.write_text("999:file\n", encoding="utf-8")
    _env(monkeypatch, TELEGRAM_TOKEN="999:env", TELEGRAM_TOKEN_FILE=str(p))
    assert Settings.load().TELEGRAM_TOKEN == "999:file"


def test_validation_reports_every_problem(monkeypatch):
    _env(monkeypatch, TELEGRAM_USERS="abc", PAIRS="FOO")
    errors = validate_settings(Settings.load())
    joined = "\n".join(errors)
    assert "TELEGRAM_TOKEN" in joined
    assert "at least one numeric user id" in joined
    assert "non-numeric ids" in joined
    assert "'FOO'" in joined


def test_pairs_are_normalized(monkeypatch):
    _env(monkeypatch, PAIRS="btc/usdt, eth-usdc ,SOLUSDT")
    assert Settings.load().PAIRS == ["BTCUSDT", "ETHUSDC", "SOLUSDT"]
