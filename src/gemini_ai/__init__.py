"""
gemini-ai: Vertex AI / Generative Language API 용 Gemini 비동기 클라이언트
"""

from typing import Any

from ._types import Authentication, ClientConfig, Service, TokenProvider
from .auth import GoogleAuthTokenProvider, StaticTokenProvider
from .client import GeminiClient
from .config import ConnectionOptions, Credentials, Options, resolve_config
from .errors import (
    BlockWithoutStreamError,
    ConflictingCredentialsError,
    GeminiError,
    InvalidConfigurationError,
    MissingModelError,
    MissingProjectIdError,
    MissingRegionError,
    RequestError,
    UnsupportedServiceError,
)
from .logging import setup_logging
from .sse import SSEEvent, SSEParser
from .stream import JSONAccumulator, RawChunk, StreamEvent

__version__ = "1.0.0"


def new(*args: Any, **kwargs: Any) -> GeminiClient:
    """GeminiClient 생성 단축 함수"""
    return GeminiClient(*args, **kwargs)


__all__ = [
    "GeminiClient",
    "new",
    "ClientConfig",
    "Credentials",
    "Options",
    "ConnectionOptions",
    "resolve_config",
    "Service",
    "Authentication",
    "TokenProvider",
    "GoogleAuthTokenProvider",
    "StaticTokenProvider",
    "SSEEvent",
    "SSEParser",
    "StreamEvent",
    "RawChunk",
    "JSONAccumulator",
    "GeminiError",
    "UnsupportedServiceError",
    "InvalidConfigurationError",
    "MissingModelError",
    "MissingProjectIdError",
    "MissingRegionError",
    "ConflictingCredentialsError",
    "BlockWithoutStreamError",
    "RequestError",
    "setup_logging",
    "__version__",
]
