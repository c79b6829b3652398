from drainq.settings import MAXEXECTIME, DrainQSettings, get_settings


def test_defaults(monkeypatch):
    for name in ("QMKEY", "MAX_EXECUTION_TIME", "CLAIM_TIMEOUT_SECONDS", "LOG_LEVEL"):
        monkeypatch.delenv(f"DRAINQ_{name}", raising=False)
    settings = DrainQSettings(_env_file=None)
    assert settings.qmkey is None
    assert settings.max_execution_time == 0
    assert settings.default_execution_time == MAXEXECTIME
    assert settings.claim_timeout_seconds == 3600


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("DRAINQ_QMKEY", "abc123")
    monkeypatch.setenv("DRAINQ_MAX_EXECUTION_TIME", "90")
    settings = get_settings()
    assert settings.qmkey == "abc123"
    assert settings.default_execution_time == 90
