"""
클라이언트 설정 모델 & 엔드포인트/인증 해석기
- Credentials / Options: 사용자 입력 (pydantic)
- resolve_config(): 입력을 검증하고 불변 ClientConfig로 변환
- 잘못된 설정은 호출 시점이 아니라 생성 시점에 실패한다
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ._types import Authentication, ClientConfig, Service, TokenProvider
from .auth import GoogleAuthTokenProvider
from .errors import (
    ConflictingCredentialsError,
    InvalidConfigurationError,
    MissingProjectIdError,
    MissingRegionError,
    UnsupportedServiceError,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_VERSION = "v1"

# transport로 전달 가능한 요청 옵션 (나머지는 버린다)
ALLOWED_REQUEST_OPTIONS = frozenset(
    {"timeout", "open_timeout", "connect_timeout", "read_timeout", "write_timeout"}
)


class Credentials(BaseModel):
    """서비스 선택 + 인증 정보"""

    model_config = ConfigDict(frozen=True)

    service: str
    region: str | None = None
    project_id: str | None = None
    api_key: str | None = None
    file_path: str | None = None
    file_contents: str | None = None
    version: str = DEFAULT_SERVICE_VERSION
    base_address: str | None = None


class ConnectionOptions(BaseModel):
    """HTTP transport 설정"""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    # dict가 아니면 filter_request_options에서 버린다
    request: Any = Field(default_factory=dict)
    transport: httpx.AsyncBaseTransport | None = None


class Options(BaseModel):
    """모델 / 스트리밍 / 연결 옵션"""

    model_config = ConfigDict(frozen=True)

    model: str | None = None
    server_sent_events: bool | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    base_address: str | None = None
    connection: ConnectionOptions = Field(default_factory=ConnectionOptions)


def filter_request_options(request_options: Any) -> dict[str, Any]:
    """허용된 transport 튜닝 키만 남긴다"""
    if not isinstance(request_options, dict):
        return {}
    dropped = set(request_options) - ALLOWED_REQUEST_OPTIONS
    if dropped:
        logger.debug(f"[gemini] ignoring request options: {sorted(dropped)}")
    return {
        key: value
        for key, value in request_options.items()
        if key in ALLOWED_REQUEST_OPTIONS
    }


def build_timeout(request_options: dict[str, Any]) -> httpx.Timeout:
    """허용된 요청 옵션을 httpx.Timeout으로 변환"""
    default = request_options.get("timeout", 120.0)
    connect = request_options.get(
        "connect_timeout", request_options.get("open_timeout", 10.0)
    )
    return httpx.Timeout(
        default,
        connect=connect,
        read=request_options.get("read_timeout", default),
        write=request_options.get("write_timeout", default),
    )


def _validate_credentials(credentials: Credentials | dict[str, Any]) -> Credentials:
    if isinstance(credentials, Credentials):
        return credentials

    try:
        return Credentials.model_validate(credentials)
    except ValidationError as e:
        if any(error["loc"][:1] == ("service",) for error in e.errors()):
            service = (
                credentials.get("service") if isinstance(credentials, dict) else None
            )
            raise UnsupportedServiceError(f"Unsupported service: '{service}'.") from e
        raise InvalidConfigurationError(f"Invalid credentials: {e}") from e


def _check_credential_sources(credentials: Credentials) -> None:
    if credentials.file_path and credentials.file_contents:
        if credentials.api_key:
            raise ConflictingCredentialsError(
                "You must choose either 'api_key', 'file_contents', or 'file_path'."
            )
        raise ConflictingCredentialsError(
            "You must choose either 'file_contents', or 'file_path'."
        )


def _select_authentication(
    credentials: Credentials,
    token_provider: TokenProvider | None,
    load_provider: Callable[[Credentials], TokenProvider],
) -> tuple[Authentication, TokenProvider | None]:
    if credentials.api_key:
        return Authentication.API_KEY, None

    if credentials.file_path or credentials.file_contents:
        authentication = Authentication.SERVICE_ACCOUNT
    else:
        authentication = Authentication.DEFAULT_CREDENTIALS

    return authentication, token_provider or load_provider(credentials)


def load_token_provider(credentials: Credentials) -> TokenProvider:
    """자격 증명 소스에 맞는 google-auth TokenProvider 생성"""
    if credentials.file_path:
        return GoogleAuthTokenProvider.from_file(credentials.file_path)
    if credentials.file_contents:
        return GoogleAuthTokenProvider.from_contents(credentials.file_contents)
    return GoogleAuthTokenProvider.from_default()


def resolve_config(
    credentials: Credentials | dict[str, Any],
    options: Options | dict[str, Any] | None = None,
    token_provider: TokenProvider | None = None,
    load_provider: Callable[[Credentials], TokenProvider] = load_token_provider,
) -> ClientConfig:
    """
    입력 설정을 검증하고 ClientConfig로 해석한다.

    Args:
        credentials: 서비스/인증 정보 (dict 허용)
        options: 모델/스트리밍/연결 옵션 (dict 허용)
        token_provider: 주입할 토큰 발급기 (없으면 google-auth로 로드)
        load_provider: token_provider가 없을 때 사용할 로더

    Raises:
        UnsupportedServiceError, InvalidConfigurationError,
        ConflictingCredentialsError, MissingRegionError, MissingProjectIdError
    """
    credentials = _validate_credentials(credentials)
    if options is None:
        options = Options()
    elif not isinstance(options, Options):
        try:
            options = Options.model_validate(options)
        except ValidationError as e:
            raise InvalidConfigurationError(f"Invalid options: {e}") from e

    try:
        service = Service(credentials.service)
    except ValueError as e:
        raise UnsupportedServiceError(
            f"Unsupported service: '{credentials.service}'."
        ) from e

    _check_credential_sources(credentials)

    if service is Service.VERTEX_AI and not credentials.region:
        raise MissingRegionError("A region is required for 'vertex-ai-api'.")

    authentication, provider = _select_authentication(
        credentials, token_provider, load_provider
    )

    project_id = credentials.project_id
    if authentication is not Authentication.API_KEY:
        project_id = project_id or provider.project_id or provider.quota_project_id
        if not project_id:
            raise MissingProjectIdError(
                "Could not determine project_id, which is required."
            )

    base_address = credentials.base_address or options.base_address
    if not base_address:
        base_address = service.base_address(
            credentials.version, region=credentials.region, project_id=project_id
        )

    config = ClientConfig(
        service=service,
        version=credentials.version,
        authentication=authentication,
        base_address=base_address,
        model=options.model,
        model_address=service.model_address(options.model) if options.model else None,
        region=credentials.region,
        project_id=project_id,
        api_key=credentials.api_key,
        token_provider=provider,
        server_sent_events=options.server_sent_events,
        request_options=filter_request_options(options.connection.request),
        headers=dict(options.headers),
        transport=options.connection.transport,
    )
    logger.debug(
        f"[gemini] resolved config: service={service.value}, "
        f"authentication={authentication.value}, base_address={base_address}"
    )
    return config
