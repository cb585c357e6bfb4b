"""Unit tests build settings from the process environment only."""

import pytest

POLICY_ENV_VARS = (
    "MONTHLY_TEST_KEY_QUOTA",
    "REVEAL_TTL_SECONDS",
    "TEST_KEY_TTL_SECONDS",
    "SECUREPAY_BASE_URLS",
    "REDIS_URI",
)


@pytest.fixture(autouse=True)
def isolated_settings_env(monkeypatch):
    # a developer's .env or shell exports must not leak into config assertions
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})
    for name in POLICY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
