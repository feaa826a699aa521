import pytest
from services.api.app.config import load_settings
from services.api.app.errors import ConfigError
from services.api.app.services.availability_db import DatabaseAvailabilitySource
from services.api.app.services.availability_factory import get_availability_source
from services.api.app.services.email_factory import get_notifier
from services.api.app.services.email_log import LogNotifier
from services.api.app.services.payment_factory import get_payment_gateway
from services.api.app.services.payment_paystack import PaystackGateway

_ENV = (
    "SHALEAN_PAYMENT_GATEWAY",
    "PAYSTACK_SECRET_KEY",
    "SHALEAN_AVAILABILITY_SOURCE",
    "SHALEAN_EMAIL_PROVIDER",
    "RESEND_API_KEY",
    "SHALEAN_BOOKING_SCHEMA_VERSION",
    "SHALEAN_LOG_LEVEL",
    "SHALEAN_CURRENCY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults_are_local_fakes() -> None:
    settings = load_settings()

    assert settings.payment_gateway == "mock"
    assert settings.availability_source == "mock"
    assert settings.email_provider == "log"
    assert settings.booking_schema_version == "v2"
    assert settings.currency == "ZAR"

    assert get_payment_gateway(settings).name == "mock"
    assert get_availability_source(settings).name == "mock"
    assert isinstance(get_notifier(settings), LogNotifier)


def test_paystack_requires_secret_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHALEAN_PAYMENT_GATEWAY", "paystack")
    with pytest.raises(ConfigError, match="PAYSTACK_SECRET_KEY"):
        load_settings()

    monkeypatch.setenv("PAYSTACK_SECRET_KEY", "sk_test_123")
    assert isinstance(get_payment_gateway(load_settings()), PaystackGateway)


def test_resend_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHALEAN_EMAIL_PROVIDER", "resend")
    with pytest.raises(ConfigError, match="RESEND_API_KEY"):
        load_settings()


def test_database_availability_source(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SHALEAN_AVAILABILITY_SOURCE", "Database")
    assert isinstance(get_availability_source(load_settings()), DatabaseAvailabilitySource)


@pytest.mark.parametrize(
    "name,value",
    [
        ("SHALEAN_PAYMENT_GATEWAY", "stripe"),
        ("SHALEAN_AVAILABILITY_SOURCE", "calendar"),
        ("SHALEAN_EMAIL_PROVIDER", "smtp"),
        ("SHALEAN_BOOKING_SCHEMA_VERSION", "v3"),
        ("SHALEAN_LOG_LEVEL", "LOUD"),
    ],
)
def test_unknown_values_fail_fast(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError, match=name):
        load_settings()
