"""
openplan.configuration

YAML + environment-variable application configuration.

Responsibilities:
- Merge `DEFAULTS`, the `default:` and per-environment sections of
  `config/configuration.yml`, and environment variable overrides.
- Coerce override values as YAML scalars/lists/hashes, falling back to the raw string.
- Convert the legacy `email_delivery` hash and migrate mail settings into the
  settings table.
- (Re)configure the outgoing `Mailer` from configuration or persisted settings.

Environment overrides come in two forms:
- `SOMESETTING=value` replaces an existing top-level key `somesetting`.
- `OPENPLAN_APP_NESTED_DEEPLY__NESTED_KEY=value` (see `ENV_PREFIX`) sets
  `nested.deeply_nested.key`. Single underscores separate path segments and
  double underscores are literal.
"""

from __future__ import annotations

import copy
import os
import re
from collections.abc import Iterator, Mapping, MutableMapping
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml

from openplan.errors import ConfigurationError
from openplan.observability.logging import get_logger
from openplan.services.settings_store import to_bool

if TYPE_CHECKING:
    from openplan.mail.mailer import Mailer
    from openplan.services.settings_store import SettingsStore

log = get_logger(__name__)

DEFAULTS: dict[str, Any] = {
    "attachments_storage": "file",
    "attachments_storage_path": None,
    "direct_uploads": True,
    "fog": {},
    # 'legacy' keeps mail delivery driven by this file instead of the settings table.
    "email_delivery_configuration": "inapp",
    "email_delivery_method": None,
    "smtp_address": None,
    "smtp_port": None,
    "smtp_domain": None,
    "smtp_authentication": None,
    "smtp_user_name": None,
    "smtp_password": None,
    "smtp_enable_starttls_auto": None,
    "smtp_ssl": None,
    "sendmail_location": None,
    "sendmail_arguments": None,
}

_MISSING = object()

# A path segment is a run of alphanumerics where `__` stands for a literal underscore.
_SEGMENT = re.compile(r"(?:[a-zA-Z0-9]|__)+")


class _ConfigLoader(yaml.SafeLoader):
    pass


def _construct_ruby_symbol(loader: yaml.SafeLoader, node: yaml.Node) -> str:
    return loader.construct_scalar(node)  # type: ignore[arg-type]


# Existing deployments carry `!ruby/symbol smtp` style values; read them as plain names.
_ConfigLoader.add_constructor("!ruby/symbol", _construct_ruby_symbol)


def extract_value(raw: str) -> Any:
    if not raw or not raw.strip():
        return raw
    try:
        return yaml.load(raw, Loader=_ConfigLoader)  # noqa: S506 - SafeLoader subclass
    except yaml.YAMLError:
        return raw


def env_path(prefix: str, name: str) -> list[str]:
    rest = name[len(prefix) :]
    return [segment.lower().replace("__", "_") for segment in _SEGMENT.findall(rest)]


def path_to_dict(path: list[str], value: Any) -> dict[str, Any]:
    result: Any = value
    for segment in reversed(path):
        result = {segment: result}
    return result


def deep_merge(target: MutableMapping[str, Any], other: Mapping[str, Any]) -> MutableMapping[str, Any]:
    for key, value in other.items():
        current = target.get(key)
        if isinstance(current, MutableMapping) and isinstance(value, Mapping):
            deep_merge(current, value)
        else:
            target[key] = value
    return target


class Configuration(MutableMapping[str, Any]):
    # Distinct from the `OPENPLAN_` process settings so those never land here.
    ENV_PREFIX = "OPENPLAN_APP"
    DEFAULT_FILE = "config/configuration.yml"

    def __init__(self, defaults: Mapping[str, Any] | None = None) -> None:
        self._defaults: dict[str, Any] = copy.deepcopy(
            dict(DEFAULTS if defaults is None else defaults)
        )
        self._config: dict[str, Any] = copy.deepcopy(self._defaults)
        self.env: str | None = None

    # -- mapping protocol ------------------------------------------------------

    def __getitem__(self, key: str) -> Any:
        return self._config[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._config[key] = value

    def __delitem__(self, key: str) -> None:
        del self._config[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._config)

    def __len__(self) -> int:
        return len(self._config)

    def __getattr__(self, name: str) -> Any:
        config = self.__dict__.get("_config")
        if config is not None and name in config:
            return config[name]
        raise AttributeError(name)

    # -- loading ---------------------------------------------------------------

    def load(
        self,
        *,
        file: str | os.PathLike[str] | None = None,
        env: str | None = None,
        source: Mapping[str, str] | None = None,
    ) -> Configuration:
        """
        Rebuild the configuration from defaults, the YAML file and `source`
        (the process environment unless given).
        """

        self.env = env
        config = copy.deepcopy(self._defaults)
        self.load_config_from_file(file or self.DEFAULT_FILE, env, config)
        self.convert_old_email_settings(config)
        self.override_config(config, os.environ if source is None else source)
        self._config = config
        log.debug("configuration_loaded", env=env, keys=len(config))
        return self

    def load_config_from_file(
        self, filename: str | os.PathLike[str], env: str | None, config: dict[str, Any]
    ) -> None:
        path = Path(filename)
        if not path.is_file():
            return
        try:
            file_config = yaml.load(path.read_text(encoding="utf-8"), Loader=_ConfigLoader)  # noqa: S506
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Unable to parse {path}: {e}") from e

        if not isinstance(file_config, dict):
            log.warning("configuration_file_ignored", file=str(path), reason="not a mapping")
            return
        config.update(self.load_env_from_config(file_config, env))

    @staticmethod
    def load_env_from_config(config: Mapping[str, Any], env: str | None) -> dict[str, Any]:
        # Environment section wins over `default`; empty sections parse as None.
        merged: dict[str, Any] = {}
        for section in ("default", env):
            if section is None:
                continue
            values = config.get(section)
            if isinstance(values, Mapping):
                merged.update(values)
        return merged

    def override_config(
        self,
        config: dict[str, Any],
        source: Mapping[str, str],
        *,
        prefix: str | None = None,
    ) -> dict[str, Any]:
        prefix = prefix or self.ENV_PREFIX
        for key in list(config):
            env_name = str(key).upper()
            if env_name in source:
                config[key] = extract_value(source[env_name])

        deep_merge(config, self.merge_config(source, prefix=prefix))
        return config

    @staticmethod
    def merge_config(source: Mapping[str, str], *, prefix: str) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for name, raw in source.items():
            if not name.upper().startswith(f"{prefix.upper()}_"):
                continue
            path = env_path(prefix, name)
            if not path:
                continue
            deep_merge(merged, path_to_dict(path, extract_value(raw)))
        return merged

    @contextmanager
    def with_overrides(self, overrides: Mapping[str, Any]) -> Iterator[Configuration]:
        previous = {key: self._config.get(key, _MISSING) for key in overrides}
        self._config.update(overrides)
        try:
            yield self
        finally:
            for key, value in previous.items():
                if value is _MISSING:
                    self._config.pop(key, None)
                else:
                    self._config[key] = value

    # -- mail ------------------------------------------------------------------

    @staticmethod
    def convert_old_email_settings(
        config: dict[str, Any], *, disable_deprecation_message: bool = False
    ) -> None:
        legacy = config.get("email_delivery")
        if not legacy:
            return
        if not disable_deprecation_message:
            log.warning(
                "deprecated_mail_delivery_settings",
                hint="move email_delivery.* to flat email_delivery_method/smtp_* keys "
                "or environment variables",
            )

        config["email_delivery_method"] = legacy.get("delivery_method") or "smtp"
        for settings_type in ("sendmail", "smtp"):
            for key, value in (legacy.get(f"{settings_type}_settings") or {}).items():
                config[f"{settings_type}_{key}"] = value
        config.pop("email_delivery", None)

    async def migrate_mailer_configuration(self, store: SettingsStore) -> bool:
        if self.get("email_delivery_configuration") == "legacy":
            return True
        if not self.get("email_delivery_method"):
            return True
        if await store.get("email_delivery_method"):
            return True

        log.info("mailer_configuration_migrating")
        await store.set("email_delivery_method", str(self["email_delivery_method"]))
        for key, value in self._config.items():
            if value is None or not key.startswith(("smtp_", "sendmail_")):
                continue
            if store.is_defined(key):
                await store.set(key, value)
        return True

    def reload_mailer_configuration(self, mailer: Mailer, settings: Mapping[str, Any]) -> None:
        try:
            if self.get("email_delivery_configuration") == "legacy":
                self.configure_legacy_mailer(mailer, self._config)
                return

            method = settings.get("email_delivery_method")
            if method == "smtp":
                # Build first so a bad value leaves the mailer untouched.
                smtp_settings = self.smtp_settings_from(settings)
                mailer.perform_deliveries = True
                mailer.delivery_method = "smtp"
                mailer.smtp_settings = smtp_settings
            elif method == "sendmail":
                mailer.perform_deliveries = True
                mailer.delivery_method = "sendmail"
            log.info("mailer_configured", delivery_method=mailer.delivery_method)
        except (TypeError, ValueError) as e:
            log.warning("mailer_configuration_failed", error=str(e))

    @staticmethod
    def smtp_settings_from(settings: Mapping[str, Any]) -> dict[str, Any]:
        port = settings.get("smtp_port")
        smtp: dict[str, Any] = {
            "address": settings.get("smtp_address"),
            "port": int(port) if port else None,
            "domain": settings.get("smtp_domain"),
            "enable_starttls_auto": to_bool(settings.get("smtp_enable_starttls_auto")),
            "ssl": to_bool(settings.get("smtp_ssl")),
        }
        authentication = settings.get("smtp_authentication") or "plain"
        if authentication != "none":
            smtp["authentication"] = authentication
            smtp["user_name"] = settings.get("smtp_user_name")
            smtp["password"] = settings.get("smtp_password")
        return smtp

    @staticmethod
    def configure_legacy_mailer(mailer: Mailer, config: Mapping[str, Any]) -> None:
        method = config.get("email_delivery_method")
        if not method:
            return
        mailer.perform_deliveries = True
        mailer.delivery_method = str(method)
        for settings_type in ("sendmail", "smtp"):
            prefix = f"{settings_type}_"
            values = {
                key[len(prefix) :]: value
                for key, value in config.items()
                if key.startswith(prefix) and value is not None
            }
            if values:
                setattr(mailer, f"{settings_type}_settings", values)

    # -- helpers ---------------------------------------------------------------

    def remote_storage(self) -> bool:
        return self.get("attachments_storage") == "fog"

    def remote_storage_provider(self) -> str | None:
        credentials = (self.get("fog") or {}).get("credentials") or {}
        return credentials.get("provider")

    def direct_uploads(self) -> bool:
        if not self.remote_storage() or not to_bool(self.get("direct_uploads")):
            return False
        return self.remote_storage_provider() == "AWS"


def load_configuration(*, file: str | os.PathLike[str], env: str) -> Configuration:
    return Configuration().load(file=file, env=env)


# --- Module Notes -----------------------------------------------------------
# The loaded Configuration is stored on `app.state.configuration` at startup;
# tests build their own instances and pass `source={}` to isolate from os.environ.
