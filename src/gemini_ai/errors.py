"""
Gemini 클라이언트 에러 클래스
- 모든 예외는 GeminiError를 상속 (한 번에 잡을 수 있도록)
- 설정 에러는 생성 시점, 요청 에러는 호출 시점에 발생
"""

from __future__ import annotations

from typing import Any


class GeminiError(Exception):
    """gemini_ai 예외의 베이스 클래스"""


class InvalidConfigurationError(GeminiError):
    """credentials / options 입력 형식 오류"""


class UnsupportedServiceError(GeminiError):
    """지원하지 않는 service 값"""


class MissingProjectIdError(GeminiError):
    """project_id를 어디에서도 찾을 수 없음"""


class MissingRegionError(GeminiError):
    """vertex-ai-api 인데 region이 없음"""


class ConflictingCredentialsError(GeminiError):
    """file_path와 file_contents가 동시에 주어짐"""


class MissingModelError(GeminiError, ValueError):
    """model 경로가 필요한 호출인데 options.model이 없음"""


class BlockWithoutStreamError(GeminiError):
    """SSE가 꺼진 상태에서 callback을 넘김"""


class RequestError(GeminiError):
    """
    HTTP 요청 실패 시 발생하는 예외

    Attributes:
        request: 원인이 된 httpx 예외 (HTTPStatusError, httpx.RequestError 계열)
        payload: 요청에 사용한 원본 payload
        status_code: HTTP 상태 코드 (전송 단계 에러면 None)
    """

    def __init__(
        self,
        message: str | None = None,
        request: Exception | None = None,
        payload: Any = None,
        status_code: int | None = None,
    ):
        self.request = request
        self.payload = payload
        self.status_code = status_code
        super().__init__(message)
