"""
Bearer 토큰 발급기 (TokenProvider 구현체)
- GoogleAuthTokenProvider: google-auth 자격 증명 래퍼 (서비스 계정 / ADC)
- StaticTokenProvider: 고정 토큰 (테스트, 외부에서 발급받은 토큰)
"""

from __future__ import annotations

import json
import logging

import google.auth
import google.auth.transport.requests
from google.auth.credentials import Credentials
from google.oauth2 import service_account

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPES = ["https://www.googleapis.com/auth/cloud-platform"]


class GoogleAuthTokenProvider:
    """
    google-auth Credentials를 TokenProvider로 감싼다.

    fetch_token()은 매번 refresh 하여 새 access token을 받는다.
    블로킹 호출이므로 비동기 코드에서는 asyncio.to_thread로 감싸서 호출한다.
    """

    def __init__(self, credentials: Credentials, project_id: str | None = None):
        self.credentials = credentials
        self._project_id = project_id

    @classmethod
    def from_file(cls, file_path: str) -> GoogleAuthTokenProvider:
        """서비스 계정 키 파일 경로로 생성"""
        credentials = service_account.Credentials.from_service_account_file(
            file_path, scopes=CLOUD_PLATFORM_SCOPES
        )
        return cls(credentials)

    @classmethod
    def from_contents(cls, file_contents: str) -> GoogleAuthTokenProvider:
        """서비스 계정 키 JSON 문자열로 생성"""
        credentials = service_account.Credentials.from_service_account_info(
            json.loads(file_contents), scopes=CLOUD_PLATFORM_SCOPES
        )
        return cls(credentials)

    @classmethod
    def from_default(cls) -> GoogleAuthTokenProvider:
        """Application Default Credentials로 생성"""
        credentials, project_id = google.auth.default(scopes=CLOUD_PLATFORM_SCOPES)
        return cls(credentials, project_id=project_id)

    @property
    def project_id(self) -> str | None:
        return self._project_id or getattr(self.credentials, "project_id", None)

    @property
    def quota_project_id(self) -> str | None:
        return getattr(self.credentials, "quota_project_id", None)

    def fetch_token(self) -> str:
        self.credentials.refresh(google.auth.transport.requests.Request())
        logger.debug("[gemini] access token refreshed")
        return self.credentials.token


class StaticTokenProvider:
    """항상 같은 토큰을 돌려주는 TokenProvider"""

    def __init__(
        self,
        token: str,
        project_id: str | None = None,
        quota_project_id: str | None = None,
    ):
        self.token = token
        self.project_id = project_id
        self.quota_project_id = quota_project_id

    def fetch_token(self) -> str:
        return self.token
