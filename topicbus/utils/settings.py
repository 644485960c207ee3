from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Dict, Optional, Tuple, Type

import yaml  # type: ignore[import-untyped]
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from topicbus.core.errors import ConfigError

ENV_PREFIX = "TOPICBUS_"


def load_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read config file {path!r}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path!r} must contain a mapping")
    return data


class YamlConfigSource(PydanticBaseSettingsSource):
    """
    Settings read from the YAML file named by TOPICBUS_CONFIG_FILE.

    Keys are field names, case-insensitive. Sits below env and .env
    in priority, so an explicit environment variable always wins.
    """

    def __init__(self, settings_cls: Type[BaseSettings], path: Optional[str]) -> None:
        super().__init__(settings_cls)
        raw = load_yaml(path) if path else {}
        self._data = {str(k).upper(): v for k, v in raw.items()}

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        return self._data.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return {name: self._data[name] for name in self.settings_cls.model_fields if name in self._data}


class Settings(BaseSettings):
    SCHEDULER: str = "asyncio"
    ISOLATE_ERRORS: bool = True
    LOG_LEVEL: str = "INFO"
    CONFIG_FILE: Optional[str] = None

    # Pydantic v2 config
    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, env_file=".env", extra="ignore")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        path = os.getenv(ENV_PREFIX + "CONFIG_FILE")
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSource(settings_cls, path),
            file_secret_settings,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
