"""k1s0 multiflag library."""

from .client import ErrorListener, FlagClientProtocol
from .config import FlagDefinition, LogSection, MultiFlagConfig, SourceConfig, load
from .exceptions import MultiFlagError, MultiFlagErrorCodes
from .factory import ClientFactory, build_merged_client, build_namespaced_client
from .logger import configure_logging, new_logger
from .memory import InMemoryFeatureFlagClient
from .models import (
    ClientState,
    EvaluationContext,
    FeatureFlag,
    FlagSource,
    OutcomeKind,
    ResolutionResult,
    SourceOutcome,
)
from .namespaced import NamespacedFeatureFlagClient
from .resolver import MergedFeatureFlagClient

__all__ = [
    "ClientFactory",
    "ClientState",
    "ErrorListener",
    "EvaluationContext",
    "FeatureFlag",
    "FlagClientProtocol",
    "FlagDefinition",
    "FlagSource",
    "InMemoryFeatureFlagClient",
    "LogSection",
    "MergedFeatureFlagClient",
    "MultiFlagConfig",
    "MultiFlagError",
    "MultiFlagErrorCodes",
    "NamespacedFeatureFlagClient",
    "OutcomeKind",
    "ResolutionResult",
    "SourceConfig",
    "SourceOutcome",
    "build_merged_client",
    "build_namespaced_client",
    "configure_logging",
    "load",
    "new_logger",
]
