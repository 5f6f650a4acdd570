"""multiflag 設定（pydantic BaseModel + YAML 読み込み）"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import MultiFlagError, MultiFlagErrorCodes


class FlagDefinition(BaseModel):
    """インメモリソース用のフラグ定義。"""

    variations: list[Any] = Field(default_factory=list)
    enabled: bool = True
    fallthrough: int = Field(default=0, ge=0)
    off_variation: int | None = Field(default=None, ge=0)
    targets: dict[str, int] = Field(default_factory=dict)


class SourceConfig(BaseModel):
    """フラグソース（1 プロジェクト/環境）設定。"""

    label: str = Field(min_length=1)
    project: str = ""
    environment: str = "production"
    sdk_key: str = ""
    flags: dict[str, FlagDefinition] = Field(default_factory=dict)


class LogSection(BaseModel):
    """ログ設定。"""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"


class MultiFlagConfig(BaseModel):
    """multiflag 設定全体。sources の並び順が優先順位となる。"""

    sources: list[SourceConfig] = Field(min_length=1)
    log: LogSection = Field(default_factory=LogSection)

    @field_validator("sources")
    @classmethod
    def _unique_labels(cls, sources: list[SourceConfig]) -> list[SourceConfig]:
        seen: set[str] = set()
        for source in sources:
            if source.label in seen:
                raise ValueError(f"duplicate source label: {source.label}")
            seen.add(source.label)
        return sources


def _read_yaml(path: Path) -> dict[str, Any]:
    """YAML ファイルを読み込む。"""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise MultiFlagError(
            code=MultiFlagErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    try:
        data: dict[str, Any] = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise MultiFlagError(
            code=MultiFlagErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    return data


def load(path: Path) -> MultiFlagConfig:
    """設定ファイルを読み込んで MultiFlagConfig を返す。"""
    data = _read_yaml(path)
    try:
        return MultiFlagConfig.model_validate(data)
    except ValidationError as e:
        raise MultiFlagError(
            code=MultiFlagErrorCodes.VALIDATION,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
