import pytest

from userapi.config import Settings


def test_default_secret_refused_outside_dev(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("JWT_SECRET", "change_me_for_prod")
    monkeypatch.delenv("JWT_JWKS_URL", raising=False)
    monkeypatch.delenv("ALLOW_INSECURE_JWT", raising=False)
    with pytest.raises(RuntimeError):
        Settings()


def test_jwks_url_makes_shared_secret_optional(monkeypatch):
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("JWT_SECRET", "change_me_for_prod")
    monkeypatch.setenv("JWT_JWKS_URL", "https://issuer.test/.well-known/jwks.json")
    s = Settings()
    assert s.ENV == "prod"
    assert s.JWT_JWKS_URL.endswith("jwks.json")


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/users")
    monkeypatch.setenv("JWT_EXPIRE_MINUTES", "15")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = Settings()
    assert s.DATABASE_URL == "postgresql://u:p@db/users"
    assert s.JWT_EXPIRE_MINUTES == 15
    assert s.LOG_LEVEL == "DEBUG"


def test_non_positive_token_lifetime_is_refused(monkeypatch):
    monkeypatch.setenv("JWT_EXPIRE_MINUTES", "0")
    with pytest.raises(RuntimeError):
        Settings()
