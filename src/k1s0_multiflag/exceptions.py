"""multiflag ライブラリの例外型定義"""

from __future__ import annotations


class MultiFlagError(Exception):
    """multiflag ライブラリのエラー基底クラス。"""

    def __init__(
        self,
        code: str,
        message: str,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return f"{self.code}: {super().__str__()}"


class MultiFlagErrorCodes:
    """MultiFlagError のエラーコード定数。"""

    # ソース登録・初期化
    NO_SOURCES: str = "NO_SOURCES"
    DUPLICATE_SOURCE: str = "DUPLICATE_SOURCE"
    ALREADY_INITIALIZED: str = "ALREADY_INITIALIZED"
    INIT_ERROR: str = "INIT_ERROR"
    NOT_READY: str = "NOT_READY"
    SOURCE_NOT_FOUND: str = "SOURCE_NOT_FOUND"

    # フラグ評価
    FLAG_NOT_FOUND: str = "FLAG_NOT_FOUND"
    MALFORMED_FLAG: str = "MALFORMED_FLAG"
    CLIENT_CLOSED: str = "CLIENT_CLOSED"

    # 設定ファイル
    READ_FILE: str = "READ_FILE_ERROR"
    PARSE_YAML: str = "PARSE_YAML_ERROR"
    VALIDATION: str = "VALIDATION_ERROR"
