"""設定からクライアントを組み立てるファクトリ"""

from __future__ import annotations

from typing import Callable

from .client import FlagClientProtocol
from .config import MultiFlagConfig, SourceConfig
from .memory import InMemoryFeatureFlagClient
from .models import FlagSource
from .namespaced import NamespacedFeatureFlagClient
from .resolver import MergedFeatureFlagClient

ClientFactory = Callable[[SourceConfig], FlagClientProtocol]


def _build_sources(
    config: MultiFlagConfig, client_factory: ClientFactory | None
) -> list[FlagSource]:
    factory = client_factory or InMemoryFeatureFlagClient.from_config
    return [FlagSource(label=s.label, client=factory(s)) for s in config.sources]


def build_merged_client(
    config: MultiFlagConfig, client_factory: ClientFactory | None = None
) -> MergedFeatureFlagClient:
    """設定の sources 順を優先順位とした MergedFeatureFlagClient を生成する。

    client_factory を省略した場合は各ソースの flags 定義から
    InMemoryFeatureFlagClient を生成する。
    """
    return MergedFeatureFlagClient(_build_sources(config, client_factory))


def build_namespaced_client(
    config: MultiFlagConfig, client_factory: ClientFactory | None = None
) -> NamespacedFeatureFlagClient:
    return NamespacedFeatureFlagClient(_build_sources(config, client_factory))
