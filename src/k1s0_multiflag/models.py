"""multiflag データモデル"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .client import FlagClientProtocol


@dataclass
class EvaluationContext:
    """フラグ評価コンテキスト。

    リゾルバーは中身を参照・変更せず、各ソースへそのまま渡す。
    """

    key: str
    kind: str = "user"
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FlagSource:
    """ラベル付きのフラグクライアント（1 プロジェクト/環境に対応）。"""

    label: str
    client: FlagClientProtocol


@dataclass
class FeatureFlag:
    """インメモリクライアントが保持するフラグ定義。"""

    key: str
    variations: list[Any] = field(default_factory=list)
    enabled: bool = True
    fallthrough: int = 0
    off_variation: int | None = None
    # コンテキストキー -> バリエーション番号
    targets: dict[str, int] = field(default_factory=dict)


class ClientState(str, Enum):
    """複合クライアントの初期化状態。"""

    NEW = "new"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class OutcomeKind(str, Enum):
    """ソース単位の評価結果種別。"""

    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class SourceOutcome:
    """1 ソースに対する評価結果。"""

    source: str
    kind: OutcomeKind
    value: Any = None
    error: Exception | None = None

    @classmethod
    def found(cls, source: str, value: Any) -> SourceOutcome:
        return cls(source=source, kind=OutcomeKind.FOUND, value=value)

    @classmethod
    def not_found(cls, source: str, error: Exception) -> SourceOutcome:
        return cls(source=source, kind=OutcomeKind.NOT_FOUND, error=error)

    @classmethod
    def failed(cls, source: str, error: Exception) -> SourceOutcome:
        return cls(source=source, kind=OutcomeKind.FAILED, error=error)


@dataclass
class ResolutionResult:
    """複数ソースを横断したフラグ解決結果。"""

    flag_key: str
    value: Any = None
    error: Exception | None = None
    source: str | None = None
    attempts: list[SourceOutcome] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.source is not None

    def unwrap(self) -> Any:
        """見つかった値、または最後のソースのエラーオブジェクトを返す。

        全ソースで解決できなかった場合はフォールバック値ではなく
        エラーオブジェクトが返る点に注意。
        """
        if self.found:
            return self.value
        return self.error
