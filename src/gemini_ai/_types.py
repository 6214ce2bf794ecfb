"""Service/인증 enum, TokenProvider 프로토콜, 해석된 ClientConfig 정의."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

import httpx

CLOUD_HOST = "googleapis.com"


class Service(str, enum.Enum):
    """지원하는 백엔드 서비스"""

    VERTEX_AI = "vertex-ai-api"
    GENERATIVE_LANGUAGE = "generative-language-api"

    def base_address(
        self,
        version: str,
        region: str | None = None,
        project_id: str | None = None,
    ) -> str:
        if self is Service.VERTEX_AI:
            host = f"https://{region}-aiplatform.{CLOUD_HOST}/{version}"
            # API key 모드에서는 project_id 없이 호출할 수 있다
            if not project_id:
                return host
            return f"{host}/projects/{project_id}/locations/{region}"
        return f"https://generativelanguage.{CLOUD_HOST}/{version}"

    def model_address(self, model: str) -> str:
        if self is Service.VERTEX_AI:
            return f"publishers/google/models/{model}"
        return f"models/{model}"


class Authentication(str, enum.Enum):
    """인증 방식 — 항상 하나만 활성화된다"""

    API_KEY = "api-key"
    SERVICE_ACCOUNT = "service-account"
    DEFAULT_CREDENTIALS = "default-credentials"


@runtime_checkable
class TokenProvider(Protocol):
    """Bearer 토큰 발급 프로토콜.

    fetch_token()은 호출마다 새 토큰을 돌려준다 (캐싱/갱신은 구현체 책임).
    """

    @property
    def project_id(self) -> str | None: ...

    @property
    def quota_project_id(self) -> str | None: ...

    def fetch_token(self) -> str: ...


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """생성 시 한 번 해석되는 불변 설정."""

    service: Service
    version: str
    authentication: Authentication
    base_address: str
    model: str | None = None
    model_address: str | None = None
    region: str | None = None
    project_id: str | None = None
    api_key: str | None = None
    token_provider: TokenProvider | None = None
    server_sent_events: bool | None = None
    request_options: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    transport: httpx.AsyncBaseTransport | None = None

    @property
    def uses_bearer_token(self) -> bool:
        return self.authentication is not Authentication.API_KEY
