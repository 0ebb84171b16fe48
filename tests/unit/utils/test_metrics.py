import pytest

from crypto_control_bot.utils import metrics


@pytest.fixture(autouse=True)
def fresh_registry(monkeypatch):
    monkeypatch.setattr(metrics, "_DISABLED", False)
    metrics.reset_registry()
    yield
    metrics.reset_registry()


def _sample(name: str, **labels) -> float | None:
    return metrics._REGISTRY.get_sample_value(name, labels)


def test_counters_with_same_labels_share_one_family():
    metrics.inc("commands_total", command="buy", outcome="ok")
    metrics.inc("commands_total", command="sell", outcome="ok")
    metrics.inc("commands_total", command="buy", outcome="ok")

    assert _sample("commands_total", command="buy", outcome="ok") == 2.0
    assert _sample("commands_total", command="sell", outcome="ok") == 1.0


def test_names_are_sanitized():
    metrics.observe("command.latency.ms", 12.0, {"command": "status"})
    assert _sample("command_latency_ms_count", command="status") == 1.0


@pytest.mark.asyncio
async def test_atimer_records_one_sample():
    async with metrics.atimer("command.latency.ms", command="help"):
        pass
    assert _sample("command_latency_ms_count", command="help") == 1.0


def test_disabled_switch(monkeypatch):
    monkeypatch.setattr(metrics, "_DISABLED", True)
    metrics.inc("commands_total", command="x")
    assert _sample("commands_total", command="x") is None
