"""複数フラグクライアントを優先順位付きで束ねる MergedFeatureFlagClient"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from typing import Any

import structlog

from .client import ErrorListener, FlagClientProtocol
from .exceptions import MultiFlagError, MultiFlagErrorCodes
from .models import (
    ClientState,
    EvaluationContext,
    FlagSource,
    ResolutionResult,
    SourceOutcome,
)

logger = structlog.get_logger(__name__)


class MergedFeatureFlagClient:
    """複数のフラグクライアントを 1 つの評価インターフェースにまとめる。

    ソースの登録順がそのまま優先順位となる。同じフラグキーが複数の
    ソースに存在する場合は先に登録されたソースの値が常に採用され、
    衝突の検知は行わない。

    注意: どのソースでもフラグを解決できなかった場合、variation は
    フォールバック値ではなく最後のソースが送出したエラーオブジェクトを
    返す。結果が例外インスタンスかどうかは呼び出し側で判定すること。
    """

    def __init__(self, sources: Iterable[FlagSource] = ()) -> None:
        self._sources: list[FlagSource] = []
        self._state = ClientState.NEW
        for source in sources:
            self._register(source)

    @property
    def sources(self) -> tuple[FlagSource, ...]:
        return tuple(self._sources)

    def add_source(self, label: str, client: FlagClientProtocol) -> None:
        """優先順位の末尾にソースを追加する。"""
        self._register(FlagSource(label=label, client=client))

    def is_ready(self) -> bool:
        return self._state is ClientState.READY

    async def initialize(self) -> None:
        """全ソースを並行に初期化する。

        各ソースにエラーリスナーを登録してから初期化完了を待つ。
        1 つでも失敗した場合は残りの待機をキャンセルし、
        MultiFlagError(INIT_ERROR) を送出する。部分的な稼働は行わない。

        Raises:
            MultiFlagError: ソース未登録、再初期化、またはソースの初期化失敗
        """
        if self._state is not ClientState.NEW:
            raise MultiFlagError(
                MultiFlagErrorCodes.ALREADY_INITIALIZED,
                "初期化は 1 度しか実行できません",
            )
        if not self._sources:
            raise MultiFlagError(
                MultiFlagErrorCodes.NO_SOURCES,
                "フラグソースが登録されていません",
            )
        self._state = ClientState.INITIALIZING

        for source in self._sources:
            try:
                source.client.add_error_listener(_error_sink(source.label))
            except Exception as e:
                self._state = ClientState.FAILED
                logger.error(
                    "failed to register error listener",
                    source=source.label,
                    error=str(e),
                )
                raise MultiFlagError(
                    MultiFlagErrorCodes.INIT_ERROR,
                    f"エラーリスナーを登録できません: {source.label}",
                    cause=e,
                ) from e

        tasks = [asyncio.create_task(self._wait_ready(s)) for s in self._sources]
        try:
            await asyncio.gather(*tasks)
        except MultiFlagError:
            self._state = ClientState.FAILED
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        self._state = ClientState.READY
        logger.info(
            "merged flag client ready",
            sources=[s.label for s in self._sources],
        )

    async def wait_for_initialization(self) -> MergedFeatureFlagClient:
        """初期化して自身を返す。"""
        await self.initialize()
        return self

    async def variation(
        self, flag_key: str, context: EvaluationContext, fallback: Any
    ) -> Any:
        """優先順位順にソースを評価し、最初に解決できた値を返す。

        全ソースが失敗した場合は最後のソースのエラーオブジェクトを返す。

        Raises:
            MultiFlagError: 初期化が完了していない場合 (NOT_READY)
        """
        result = await self.variation_detail(flag_key, context, fallback)
        return result.unwrap()

    async def variation_detail(
        self, flag_key: str, context: EvaluationContext, fallback: Any
    ) -> ResolutionResult:
        """variation と同じ方針で解決し、ソースごとの結果も返す。"""
        if self._state is not ClientState.READY:
            raise MultiFlagError(
                MultiFlagErrorCodes.NOT_READY,
                f"クライアントが利用可能な状態ではありません (state={self._state.value})",
            )

        result = ResolutionResult(flag_key=flag_key)
        for source in self._sources:
            logger.debug("checking flag source", source=source.label, flag_key=flag_key)
            try:
                value = await source.client.variation(flag_key, context, fallback)
            except Exception as e:
                result.attempts.append(_classify(source.label, e))
                result.error = e
                continue
            result.attempts.append(SourceOutcome.found(source.label, value))
            result.value = value
            result.source = source.label
            result.error = None
            return result

        logger.debug(
            "flag not resolved by any source",
            flag_key=flag_key,
            last_error=str(result.error),
        )
        return result

    def _register(self, source: FlagSource) -> None:
        if self._state is not ClientState.NEW:
            raise MultiFlagError(
                MultiFlagErrorCodes.ALREADY_INITIALIZED,
                f"初期化開始後はソースを追加できません: {source.label}",
            )
        if any(s.label == source.label for s in self._sources):
            raise MultiFlagError(
                MultiFlagErrorCodes.DUPLICATE_SOURCE,
                f"ラベルが重複しています: {source.label}",
            )
        self._sources.append(source)

    @staticmethod
    async def _wait_ready(source: FlagSource) -> None:
        try:
            await source.client.wait_for_initialization()
        except Exception as e:
            logger.error(
                "flag source failed to initialize",
                source=source.label,
                error=str(e),
            )
            raise MultiFlagError(
                MultiFlagErrorCodes.INIT_ERROR,
                f"フラグソースの初期化に失敗しました: {source.label}",
                cause=e,
            ) from e
        logger.debug("flag source ready", source=source.label)


def _error_sink(label: str) -> ErrorListener:
    def _sink(error: Exception) -> None:
        logger.debug("flag source reported error", source=label, error=str(error))

    return _sink


def _classify(label: str, error: Exception) -> SourceOutcome:
    if isinstance(error, MultiFlagError) and error.code == MultiFlagErrorCodes.FLAG_NOT_FOUND:
        return SourceOutcome.not_found(label, error)
    return SourceOutcome.failed(label, error)
