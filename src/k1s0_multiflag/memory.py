"""InMemoryFeatureFlagClient 実装"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import structlog

from .client import ErrorListener
from .exceptions import MultiFlagError, MultiFlagErrorCodes
from .models import EvaluationContext, FeatureFlag

if TYPE_CHECKING:
    from .config import SourceConfig

logger = structlog.get_logger(__name__)


class InMemoryFeatureFlagClient:
    """インメモリフィーチャーフラグクライアント。

    テストやオフライン環境向けに FlagClientProtocol を実装する。
    """

    def __init__(
        self,
        flags: Iterable[FeatureFlag] = (),
        *,
        init_error: Exception | None = None,
        init_delay_seconds: float = 0.0,
    ) -> None:
        self._flags: dict[str, FeatureFlag] = {f.key: f for f in flags}
        self._listeners: list[ErrorListener] = []
        self._init_error = init_error
        self._init_delay = init_delay_seconds
        self._initialized = False
        self._closed = False

    @classmethod
    def from_config(cls, source: SourceConfig) -> InMemoryFeatureFlagClient:
        """SourceConfig の flags セクションからクライアントを生成する。"""
        flags = [
            FeatureFlag(
                key=key,
                variations=list(d.variations),
                enabled=d.enabled,
                fallthrough=d.fallthrough,
                off_variation=d.off_variation,
                targets=dict(d.targets),
            )
            for key, d in source.flags.items()
        ]
        return cls(flags)

    def set_flag(self, flag: FeatureFlag) -> None:
        """フラグを設定する。"""
        self._flags[flag.key] = flag

    def remove_flag(self, flag_key: str) -> None:
        self._flags.pop(flag_key, None)

    def add_error_listener(self, listener: ErrorListener) -> None:
        self._listeners.append(listener)

    @property
    def has_error_listener(self) -> bool:
        return bool(self._listeners)

    def is_initialized(self) -> bool:
        return self._initialized

    async def wait_for_initialization(self) -> None:
        if self._init_delay > 0:
            await asyncio.sleep(self._init_delay)
        if self._init_error is not None:
            raise self._init_error
        self._initialized = True

    async def variation(
        self, flag_key: str, context: EvaluationContext, fallback: Any
    ) -> Any:
        """フラグを評価する。

        評価エラー時、エラーリスナーが登録されていればリスナーへ通知した上で
        例外を送出する。未登録の場合は警告ログを出してフォールバック値を返す。
        """
        try:
            return self._evaluate(flag_key, context, fallback)
        except MultiFlagError as e:
            if not self._listeners:
                logger.warning(
                    "flag evaluation failed, returning fallback",
                    flag_key=flag_key,
                    error=str(e),
                )
                return fallback
            for listener in self._listeners:
                listener(e)
            raise

    async def close(self) -> None:
        self._closed = True

    def _evaluate(
        self, flag_key: str, context: EvaluationContext, fallback: Any
    ) -> Any:
        if self._closed:
            raise MultiFlagError(
                MultiFlagErrorCodes.CLIENT_CLOSED,
                "クライアントはクローズ済みです",
            )
        if not self._initialized:
            raise MultiFlagError(
                MultiFlagErrorCodes.NOT_READY,
                "クライアントが初期化されていません",
            )
        flag = self._flags.get(flag_key)
        if flag is None:
            raise MultiFlagError(
                MultiFlagErrorCodes.FLAG_NOT_FOUND,
                f"フラグが見つかりません: {flag_key}",
            )
        if not flag.enabled:
            if flag.off_variation is None:
                return fallback
            index = flag.off_variation
        else:
            index = flag.targets.get(context.key, flag.fallthrough)
        if not 0 <= index < len(flag.variations):
            raise MultiFlagError(
                MultiFlagErrorCodes.MALFORMED_FLAG,
                f"バリエーション番号が範囲外です: {flag_key}[{index}]",
            )
        return flag.variations[index]
