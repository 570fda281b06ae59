"""
openplan.services.settings_store

Typed access to the admin-editable `settings` table.

Responsibilities:
- Declare known settings with their default and value format.
- Cast raw stored values (ints as strings, 0/1 booleans, ...) on read and write.
- Provide a snapshot mapping used to (re)configure the mailer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from sqlalchemy.ext.asyncio import AsyncSession

from openplan.db.repositories.settings import SettingRepo
from openplan.errors import ValidationFailed


@dataclass(frozen=True, slots=True)
class SettingDefinition:
    name: str
    default: Any = None
    format: Literal["string", "integer", "boolean"] = "string"


SETTING_DEFINITIONS: dict[str, SettingDefinition] = {
    d.name: d
    for d in (
        SettingDefinition("email_delivery_method"),
        SettingDefinition("mail_from", "openplan@example.net"),
        SettingDefinition("smtp_address", ""),
        SettingDefinition("smtp_port", 587, "integer"),
        SettingDefinition("smtp_domain", "your.domain.com"),
        SettingDefinition("smtp_authentication", "plain"),
        SettingDefinition("smtp_user_name", ""),
        SettingDefinition("smtp_password", ""),
        SettingDefinition("smtp_enable_starttls_auto", False, "boolean"),
        SettingDefinition("smtp_ssl", False, "boolean"),
        SettingDefinition("sendmail_location", "/usr/sbin/sendmail"),
        SettingDefinition("sendmail_arguments", "-i"),
    )
}


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def cast_setting(definition: SettingDefinition, value: Any) -> Any:
    if value is None:
        return definition.default
    if definition.format == "integer":
        return int(value)
    if definition.format == "boolean":
        return to_bool(value)
    return str(value)


class SettingsStore:
    def __init__(self, session: AsyncSession) -> None:
        self._repo = SettingRepo(session)

    @staticmethod
    def is_defined(name: str) -> bool:
        return name in SETTING_DEFINITIONS

    @staticmethod
    def _definition(name: str) -> SettingDefinition:
        try:
            return SETTING_DEFINITIONS[name]
        except KeyError:
            raise ValidationFailed(f"unknown setting: {name}") from None

    async def get(self, name: str) -> Any:
        definition = self._definition(name)
        row = await self._repo.get(name)
        return cast_setting(definition, row.value if row is not None else None)

    async def set(self, name: str, value: Any) -> None:
        definition = self._definition(name)
        try:
            stored = None if value is None else cast_setting(definition, value)
        except (TypeError, ValueError) as e:
            raise ValidationFailed(f"invalid value for {name}: {value!r}") from e
        await self._repo.set(name, stored)

    async def snapshot(self) -> dict[str, Any]:
        values = await self._repo.all_values()
        return {
            name: cast_setting(definition, values.get(name))
            for name, definition in SETTING_DEFINITIONS.items()
        }
