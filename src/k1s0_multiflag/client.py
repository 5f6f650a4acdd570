"""FlagClient プロトコル"""

from __future__ import annotations

from typing import Any, Callable, Protocol

from .models import EvaluationContext

ErrorListener = Callable[[Exception], None]


class FlagClientProtocol(Protocol):
    """1 プロジェクト/環境分のフラグクライアントが満たすべきプロトコル。

    variation はエラーリスナーが 1 つ以上登録されている場合に限り、
    評価エラーを例外として呼び出し元へ送出する。リスナー未登録時は
    ログ出力のみでフォールバック値を返すため、呼び出し側はエラーを
    検知できない。
    """

    async def wait_for_initialization(self) -> None: ...

    async def variation(
        self, flag_key: str, context: EvaluationContext, fallback: Any
    ) -> Any: ...

    def add_error_listener(self, listener: ErrorListener) -> None: ...
