"""NamespacedFeatureFlagClient のユニットテスト"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from k1s0_multiflag import (
    EvaluationContext,
    FeatureFlag,
    FlagSource,
    InMemoryFeatureFlagClient,
    MultiFlagError,
    MultiFlagErrorCodes,
    NamespacedFeatureFlagClient,
)

CTX = EvaluationContext(key="123")


def make_namespaced() -> NamespacedFeatureFlagClient:
    return NamespacedFeatureFlagClient(
        [
            FlagSource(
                "project-a",
                InMemoryFeatureFlagClient([FeatureFlag(key="flag-a", variations=[True])]),
            ),
            FlagSource(
                "project-b",
                InMemoryFeatureFlagClient([FeatureFlag(key="flag-b", variations=[True])]),
            ),
        ]
    )


async def test_variation_by_label() -> None:
    """ラベル指定で該当クライアントを評価する。"""
    client = await make_namespaced().wait_for_initialization()
    assert await client.variation("project-a", "flag-a", CTX, False) is True
    assert await client.variation("project-b", "flag-b", CTX, False) is True


async def test_no_fallthrough_between_namespaces() -> None:
    """別プロジェクトのフラグは解決されない（リスナー未登録のためフォールバック）。"""
    client = await make_namespaced().wait_for_initialization()
    assert await client.variation("project-a", "flag-b", CTX, False) is False


async def test_client_lookup() -> None:
    client = make_namespaced()
    assert client.labels == ["project-a", "project-b"]
    assert isinstance(client.client("project-a"), InMemoryFeatureFlagClient)


def test_unknown_label() -> None:
    """未登録ラベルは SOURCE_NOT_FOUND。"""
    client = make_namespaced()
    with pytest.raises(MultiFlagError) as exc_info:
        client.client("project-z")
    assert exc_info.value.code == MultiFlagErrorCodes.SOURCE_NOT_FOUND


def test_duplicate_label() -> None:
    client = make_namespaced()
    with pytest.raises(MultiFlagError) as exc_info:
        client.add_source("project-a", InMemoryFeatureFlagClient())
    assert exc_info.value.code == MultiFlagErrorCodes.DUPLICATE_SOURCE


async def test_initialize_failure() -> None:
    """初期化失敗は INIT_ERROR。"""
    client = NamespacedFeatureFlagClient(
        [FlagSource("broken", InMemoryFeatureFlagClient(init_error=RuntimeError("boom")))]
    )
    with pytest.raises(MultiFlagError) as exc_info:
        await client.initialize()
    assert exc_info.value.code == MultiFlagErrorCodes.INIT_ERROR
    assert isinstance(exc_info.value.__cause__, RuntimeError)


async def test_initialize_without_sources() -> None:
    with pytest.raises(MultiFlagError) as exc_info:
        await NamespacedFeatureFlagClient().initialize()
    assert exc_info.value.code == MultiFlagErrorCodes.NO_SOURCES


async def test_initialize_twice() -> None:
    client = await make_namespaced().wait_for_initialization()
    with pytest.raises(MultiFlagError) as exc_info:
        await client.initialize()
    assert exc_info.value.code == MultiFlagErrorCodes.ALREADY_INITIALIZED


def make_mock_client(**wait_kwargs: object) -> MagicMock:
    client = MagicMock()
    client.wait_for_initialization = AsyncMock(**wait_kwargs)
    client.variation = AsyncMock(return_value="value")
    return client


async def test_initialize_failure_blocks_all_sources() -> None:
    """初期化失敗後は初期化済みのソースも評価できない。"""
    client = NamespacedFeatureFlagClient(
        [
            FlagSource("a", InMemoryFeatureFlagClient([FeatureFlag(key="f", variations=["A"])])),
            FlagSource("b", InMemoryFeatureFlagClient(init_error=RuntimeError("boom"))),
        ]
    )
    with pytest.raises(MultiFlagError):
        await client.initialize()
    assert client.is_ready() is False
    with pytest.raises(MultiFlagError) as exc_info:
        await client.variation("a", "f", CTX, "DEFAULT")
    assert exc_info.value.code == MultiFlagErrorCodes.NOT_READY


async def test_retry_after_failure_is_rejected() -> None:
    """失敗後の再初期化は ALREADY_INITIALIZED。"""
    broken = make_mock_client(side_effect=[RuntimeError("boom"), None])
    client = NamespacedFeatureFlagClient([FlagSource("broken", broken)])
    with pytest.raises(MultiFlagError):
        await client.initialize()
    with pytest.raises(MultiFlagError) as exc_info:
        await client.initialize()
    assert exc_info.value.code == MultiFlagErrorCodes.ALREADY_INITIALIZED
    assert broken.wait_for_initialization.await_count == 1


async def test_variation_before_initialize() -> None:
    """初期化前の variation は NOT_READY（フォールバックは返さない）。"""
    client = make_namespaced()
    with pytest.raises(MultiFlagError) as exc_info:
        await client.variation("project-a", "flag-a", CTX, False)
    assert exc_info.value.code == MultiFlagErrorCodes.NOT_READY


async def test_add_source_after_initialize() -> None:
    """初期化後のソース追加は ALREADY_INITIALIZED。"""
    client = await make_namespaced().wait_for_initialization()
    with pytest.raises(MultiFlagError) as exc_info:
        client.add_source("project-c", InMemoryFeatureFlagClient())
    assert exc_info.value.code == MultiFlagErrorCodes.ALREADY_INITIALIZED
    assert client.labels == ["project-a", "project-b"]


async def test_initialize_waits_sequentially_in_order() -> None:
    """各ソースの初期化待機は登録順に 1 つずつ行われる。"""
    events: list[str] = []

    def make_recording_client(label: str) -> MagicMock:
        async def wait() -> None:
            events.append(f"start:{label}")
            await asyncio.sleep(0)
            events.append(f"end:{label}")

        return make_mock_client(side_effect=wait)

    client = NamespacedFeatureFlagClient(
        [FlagSource(label, make_recording_client(label)) for label in ("a", "b", "c")]
    )
    await client.initialize()
    assert events == ["start:a", "end:a", "start:b", "end:b", "start:c", "end:c"]
    assert client.is_ready() is True


async def test_initialize_stops_at_first_failure() -> None:
    """最初の失敗で打ち切り、後続ソースは待機しない。"""
    first = make_mock_client(side_effect=ConnectionError("unreachable"))
    second = make_mock_client()
    client = NamespacedFeatureFlagClient([FlagSource("first", first), FlagSource("second", second)])
    with pytest.raises(MultiFlagError) as exc_info:
        await client.initialize()
    assert str(exc_info.value).endswith(": first")
    first.wait_for_initialization.assert_awaited_once()
    second.wait_for_initialization.assert_not_awaited()
