"""ラベルでクライアントを指定する NamespacedFeatureFlagClient"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import structlog

from .client import FlagClientProtocol
from .exceptions import MultiFlagError, MultiFlagErrorCodes
from .models import ClientState, EvaluationContext, FlagSource

logger = structlog.get_logger(__name__)


class NamespacedFeatureFlagClient:
    """複数のフラグクライアントをラベル（名前空間）で保持する。

    MergedFeatureFlagClient と異なり、どのプロジェクトにフラグがあるかは
    呼び出し側が指定する。ソース間のフォールバックは行わない。
    いずれかのソースの初期化に失敗した場合はどのソースも評価できない。
    """

    def __init__(self, sources: Iterable[FlagSource] = ()) -> None:
        self._clients: dict[str, FlagClientProtocol] = {}
        self._state = ClientState.NEW
        for source in sources:
            self.add_source(source.label, source.client)

    @property
    def labels(self) -> list[str]:
        return list(self._clients)

    def is_ready(self) -> bool:
        return self._state is ClientState.READY

    def add_source(self, label: str, client: FlagClientProtocol) -> None:
        if self._state is not ClientState.NEW:
            raise MultiFlagError(
                MultiFlagErrorCodes.ALREADY_INITIALIZED,
                f"初期化開始後はソースを追加できません: {label}",
            )
        if label in self._clients:
            raise MultiFlagError(
                MultiFlagErrorCodes.DUPLICATE_SOURCE,
                f"ラベルが重複しています: {label}",
            )
        self._clients[label] = client

    def client(self, label: str) -> FlagClientProtocol:
        """ラベルに対応するクライアントを返す。"""
        try:
            return self._clients[label]
        except KeyError:
            raise MultiFlagError(
                MultiFlagErrorCodes.SOURCE_NOT_FOUND,
                f"フラグソースが見つかりません: {label}",
            ) from None

    async def initialize(self) -> None:
        """登録順に各クライアントの初期化完了を待つ。

        最初に失敗したソースで打ち切り、以降のソースは待機しない。
        失敗後の再初期化はできない。
        """
        if self._state is not ClientState.NEW:
            raise MultiFlagError(
                MultiFlagErrorCodes.ALREADY_INITIALIZED,
                "初期化は 1 度しか実行できません",
            )
        if not self._clients:
            raise MultiFlagError(
                MultiFlagErrorCodes.NO_SOURCES,
                "フラグソースが登録されていません",
            )
        self._state = ClientState.INITIALIZING
        for label, client in self._clients.items():
            try:
                await client.wait_for_initialization()
            except Exception as e:
                self._state = ClientState.FAILED
                logger.error("flag source failed to initialize", source=label, error=str(e))
                raise MultiFlagError(
                    MultiFlagErrorCodes.INIT_ERROR,
                    f"フラグソースの初期化に失敗しました: {label}",
                    cause=e,
                ) from e
        self._state = ClientState.READY

    async def wait_for_initialization(self) -> NamespacedFeatureFlagClient:
        await self.initialize()
        return self

    async def variation(
        self,
        label: str,
        flag_key: str,
        context: EvaluationContext,
        fallback: Any,
    ) -> Any:
        """ラベルで指定したクライアントでフラグを評価する。

        Raises:
            MultiFlagError: 初期化が完了していない場合 (NOT_READY)、
                未登録ラベルの場合 (SOURCE_NOT_FOUND)
        """
        if self._state is not ClientState.READY:
            raise MultiFlagError(
                MultiFlagErrorCodes.NOT_READY,
                f"クライアントが利用可能な状態ではありません (state={self._state.value})",
            )
        return await self.client(label).variation(flag_key, context, fallback)
