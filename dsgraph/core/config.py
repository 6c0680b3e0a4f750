"""
설정 관리 모듈
커넥터 옵션(생성 시 검증)과 환경 변수 기반 기본값.
"""
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from dsgraph.shared.error_framework import ConfigError

DEFAULT_LABEL = "DS_SCHEMA"

# 에러 메시지에 쓰는 외부 옵션 이름
_OPTION_NAMES = {
    "connection_string": "connectionString",
    "connectionString": "connectionString",
    "user_name": "user",
    "userName": "user",
    "user": "user",
    "password": "password",
}


class Settings(BaseSettings):
    """Process-level defaults read from the environment / .env"""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"

    NEO4J_URI: str = "bolt://localhost:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASSWORD: str = "password"
    NEO4J_DATABASE: Optional[str] = None

    DS_SPLIT_CHAR: str = "/"
    DS_DEFAULT_LABEL: str = DEFAULT_LABEL
    DS_BACKEND: str = "neo4j"

    def to_options(self) -> Dict[str, Any]:
        """환경 설정을 커넥터 옵션 dict로 변환"""
        return {
            "connectionString": self.NEO4J_URI,
            "userName": self.NEO4J_USER,
            "password": self.NEO4J_PASSWORD,
            "database": self.NEO4J_DATABASE,
            "splitChar": self.DS_SPLIT_CHAR,
            "defaultLabel": self.DS_DEFAULT_LABEL,
            "backend": self.DS_BACKEND,
        }


class ConnectorOptions(BaseModel):
    """
    Options recognized by the connector.

    Accepts both the deepstream camelCase names (connectionString, userName,
    splitChar, defaultLabel) and snake_case names.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    connection_string: str = Field(
        min_length=1,
        validation_alias=AliasChoices("connection_string", "connectionString"),
    )
    user_name: str = Field(
        min_length=1,
        validation_alias=AliasChoices("user_name", "userName", "user"),
    )
    password: str = Field(min_length=1)
    split_char: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("split_char", "splitChar"),
        description="세그먼트 구분자 (없으면 모든 키가 invalid)",
    )
    default_label: str = Field(
        default=DEFAULT_LABEL,
        min_length=1,
        validation_alias=AliasChoices("default_label", "defaultLabel"),
    )
    database: Optional[str] = Field(default=None, description="Neo4j database name")
    backend: str = Field(default="neo4j", pattern="^(neo4j|inmemory)$")

    @classmethod
    def from_mapping(cls, options: Any) -> "ConnectorOptions":
        """
        Validate raw options, failing fast with ConfigError.

        Raises:
            ConfigError: options is not a mapping or a setting is missing/invalid
        """
        if isinstance(options, ConnectorOptions):
            return options
        if not isinstance(options, Mapping):
            raise ConfigError(
                f"Connector options must be a mapping, got {type(options).__name__}"
            )

        # None 값은 "설정 안 됨"과 동일하게 취급
        cleaned = {k: v for k, v in options.items() if v is not None}

        try:
            return cls.model_validate(cleaned)
        except ValidationError as e:
            first = e.errors()[0]
            field_name = str(first["loc"][0]) if first["loc"] else "options"
            option_name = _OPTION_NAMES.get(field_name, field_name)
            if first["type"] in ("missing", "string_too_short"):
                message = f"Missing setting '{option_name}'"
            else:
                message = f"Invalid setting '{option_name}': {first['msg']}"
            raise ConfigError(message, config_key=option_name, cause=e) from e


@lru_cache()
def get_settings() -> Settings:
    """싱글톤 설정 인스턴스 반환"""
    return Settings()
