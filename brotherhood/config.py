import json
import os
from datetime import timedelta
from json import JSONDecodeError
from typing import Any, Mapping, Optional

from brotherhood.utils import parse_bool

_STRING_CFG_PREFIX = "BH_CFG_"
_JSON_CFG_PREFIX = "BH_CFG_JSON_"

DEFAULT_GATED_PREFIX = "/dashboard"


class ConfigParseError(Exception):
    pass


def load_config(env: Optional[Mapping[str, str]] = None) -> Mapping[str, Any]:
    if env is None:
        env = os.environ

    config: dict[str, Any] = {}
    for func in [
        _load_flask,
        _load_sqlalchemy,
        _load_onboarding,
        # load strings and JSON last as overrides
        _load_strings,
        _load_json,
    ]:
        config |= func(env)

    return config


def _load_flask(env: Mapping[str, str]) -> Mapping[str, Any]:
    data = {
        "SESSION_COOKIE_NAME": "__HOST-session",
        "SESSION_COOKIE_SECURE": True,
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "PERMANENT_SESSION_LIFETIME": timedelta(days=7),
    }

    if server_name := env.get("SERVER_NAME"):
        data["SERVER_NAME"] = server_name
    if preferred_scheme := env.get("PREFERRED_URL_SCHEME"):
        preferred_scheme = preferred_scheme.lower()
        if preferred_scheme not in {"http", "https"}:
            raise ConfigParseError(
                "PREFERRED_URL_SCHEME must be 'http' or 'https', " f"got {preferred_scheme!r}"
            )
        data["PREFERRED_URL_SCHEME"] = preferred_scheme
    else:
        data["PREFERRED_URL_SCHEME"] = "https" if server_name else "http"

    for key in ["FLASK_ENV", "SECRET_KEY"]:
        if val := env.get(key):
            data[key] = val

    return data


def _load_sqlalchemy(env: Mapping[str, str]) -> Mapping[str, Any]:
    data: dict[str, Any] = {}

    if db_uri := env.get("SQLALCHEMY_DATABASE_URI"):
        # managed Postgres hands out `postgresql://` URIs, we use the psycopg 3 driver
        if db_uri.startswith("postgresql://"):
            db_uri = db_uri.replace("postgresql://", "postgresql+psycopg://", 1)
        data["SQLALCHEMY_DATABASE_URI"] = db_uri

    data["SQLALCHEMY_TRACK_MODIFICATIONS"] = False

    return data


def _load_onboarding(env: Mapping[str, str]) -> Mapping[str, Any]:
    data: dict[str, Any] = {}

    prefix = env.get("ONBOARDING_GATED_PREFIX") or DEFAULT_GATED_PREFIX
    if not prefix.startswith("/") or not prefix.strip("/"):
        raise ConfigParseError(
            f"ONBOARDING_GATED_PREFIX must be a path below '/', got {prefix!r}"
        )
    data["ONBOARDING_GATED_PREFIX"] = prefix.rstrip("/")

    if value := env.get("ONBOARDING_GATE_ENABLED"):
        try:
            data["ONBOARDING_GATE_ENABLED"] = parse_bool(value)
        except ValueError as e:
            raise ConfigParseError(str(e)) from e
    else:
        data["ONBOARDING_GATE_ENABLED"] = True

    return data


def _load_strings(env: Mapping[str, str]) -> Mapping[str, Any]:
    return {
        k[len(_STRING_CFG_PREFIX) :]: v
        for k, v in env.items()
        if k.startswith(_STRING_CFG_PREFIX) and not k.startswith(_JSON_CFG_PREFIX)
    }


def _load_json(env: Mapping[str, str]) -> Mapping[str, Any]:
    data = {}

    for k, v in env.items():
        if not k.startswith(_JSON_CFG_PREFIX):
            continue

        try:
            data[k[len(_JSON_CFG_PREFIX) :]] = json.loads(v)
        except JSONDecodeError:
            raise ConfigParseError(f"Env var {k!r} could not be parsed as JSON")

    return data
