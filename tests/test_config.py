"""
엔드포인트/인증 해석기 테스트
- 잘못된 설정은 생성 시점에 실패하는지 검증
- base address / model address 조합 검증
python -m pytest tests/test_config.py -v
"""

import dataclasses

import httpx
import pytest

from gemini_ai import GeminiClient
from gemini_ai._types import Authentication, Service
from gemini_ai.auth import StaticTokenProvider
from gemini_ai.config import (
    Credentials,
    Options,
    build_timeout,
    filter_request_options,
    resolve_config,
)
from gemini_ai.errors import (
    ConflictingCredentialsError,
    GeminiError,
    InvalidConfigurationError,
    MissingProjectIdError,
    MissingRegionError,
    UnsupportedServiceError,
)


def _fail_loader(credentials):
    raise AssertionError("google-auth loader must not be called")


class TestServiceValidation:
    @pytest.mark.parametrize(
        "service",
        ["unknown-service", "", "vertex-ai", "VERTEX-AI-API", "generative-language"],
    )
    def test_unsupported_service_raises(self, service):
        with pytest.raises(UnsupportedServiceError):
            resolve_config({"service": service, "api_key": "k"})

    def test_unsupported_service_message(self):
        with pytest.raises(
            UnsupportedServiceError, match="Unsupported service: 'unknown-service'."
        ):
            GeminiClient(credentials={"service": "unknown-service"})

    def test_unsupported_service_checked_first(self):
        """자격 증명 충돌보다 service 검증이 먼저"""
        with pytest.raises(UnsupportedServiceError):
            resolve_config(
                {"service": "nope", "file_path": "a.json", "file_contents": "{}"}
            )

    @pytest.mark.parametrize(
        "credentials",
        [{"service": None, "api_key": "k"}, {"service": 123, "api_key": "k"}, {"api_key": "k"}],
    )
    def test_malformed_service_is_unsupported(self, credentials):
        with pytest.raises(UnsupportedServiceError, match="Unsupported service"):
            GeminiClient(credentials=credentials)

    def test_malformed_credentials_field(self):
        with pytest.raises(InvalidConfigurationError):
            resolve_config({"service": "generative-language-api", "api_key": 5})

    def test_malformed_options(self):
        with pytest.raises(InvalidConfigurationError):
            resolve_config(
                {"service": "generative-language-api", "api_key": "k"},
                {"server_sent_events": "sometimes"},
            )

    def test_errors_share_base_class(self):
        with pytest.raises(GeminiError):
            resolve_config({"service": "nope"})


class TestCredentialSelection:
    def test_conflicting_file_sources(self):
        with pytest.raises(
            ConflictingCredentialsError,
            match="You must choose either 'file_contents', or 'file_path'.",
        ):
            resolve_config(
                {
                    "service": "vertex-ai-api",
                    "file_path": "path",
                    "file_contents": "contents",
                },
                load_provider=_fail_loader,
            )

    def test_conflicting_with_api_key(self):
        with pytest.raises(
            ConflictingCredentialsError,
            match="You must choose either 'api_key', 'file_contents', or 'file_path'.",
        ):
            resolve_config(
                {
                    "service": "vertex-ai-api",
                    "api_key": "key",
                    "file_path": "path",
                    "file_contents": "contents",
                },
                load_provider=_fail_loader,
            )

    @pytest.mark.parametrize(
        "extra",
        [
            {},
            {"region": "us-east4"},
            {"project_id": "p"},
            {"region": "us-east4", "project_id": "p", "api_key": "k"},
        ],
    )
    def test_conflict_regardless_of_other_fields(self, extra, token_provider):
        for service in ("vertex-ai-api", "generative-language-api"):
            with pytest.raises(ConflictingCredentialsError):
                resolve_config(
                    {
                        "service": service,
                        "file_path": "path",
                        "file_contents": "contents",
                        **extra,
                    },
                    token_provider=token_provider,
                    load_provider=_fail_loader,
                )

    def test_api_key_mode(self):
        config = resolve_config(
            {"service": "generative-language-api", "api_key": "k"},
            load_provider=_fail_loader,
        )
        assert config.authentication is Authentication.API_KEY
        assert config.api_key == "k"
        assert config.token_provider is None
        assert config.uses_bearer_token is False

    def test_api_key_wins_over_single_file_source(self):
        config = resolve_config(
            {
                "service": "vertex-ai-api",
                "region": "us-east4",
                "api_key": "k",
                "file_path": "sa.json",
            },
            load_provider=_fail_loader,
        )
        assert config.authentication is Authentication.API_KEY

    @pytest.mark.parametrize(
        "source", [{"file_path": "sa.json"}, {"file_contents": '{"type": "x"}'}]
    )
    def test_service_account_mode(self, source):
        loaded = []

        def loader(credentials):
            loaded.append(credentials)
            return StaticTokenProvider("t", project_id="sa-project")

        config = resolve_config(
            {"service": "vertex-ai-api", "region": "us-east4", **source},
            load_provider=loader,
        )
        assert config.authentication is Authentication.SERVICE_ACCOUNT
        assert config.project_id == "sa-project"
        assert len(loaded) == 1
        assert loaded[0].file_path == source.get("file_path")
        assert loaded[0].file_contents == source.get("file_contents")

    def test_default_credentials_mode(self):
        config = resolve_config(
            {"service": "vertex-ai-api", "region": "us-east4"},
            load_provider=lambda credentials: StaticTokenProvider(
                "t", project_id="adc-project"
            ),
        )
        assert config.authentication is Authentication.DEFAULT_CREDENTIALS
        assert config.uses_bearer_token is True
        assert config.project_id == "adc-project"

    def test_injected_provider_skips_loader(self, token_provider):
        config = resolve_config(
            {"service": "vertex-ai-api", "region": "us-east4", "file_path": "sa.json"},
            token_provider=token_provider,
            load_provider=_fail_loader,
        )
        assert config.authentication is Authentication.SERVICE_ACCOUNT
        assert config.token_provider is token_provider


class TestProjectId:
    def test_explicit_project_id_wins(self):
        provider = StaticTokenProvider("t", project_id="p1", quota_project_id="q1")
        config = resolve_config(
            {"service": "vertex-ai-api", "region": "us-east4", "project_id": "explicit"},
            token_provider=provider,
        )
        assert config.project_id == "explicit"

    def test_falls_back_to_quota_project(self):
        provider = StaticTokenProvider("t", quota_project_id="quota")
        config = resolve_config(
            {"service": "vertex-ai-api", "region": "us-east4"},
            token_provider=provider,
        )
        assert config.project_id == "quota"

    @pytest.mark.parametrize(
        "credentials",
        [
            {"service": "vertex-ai-api", "region": "us-east4"},
            {"service": "vertex-ai-api", "region": "us-east4", "file_path": "sa.json"},
            {"service": "generative-language-api"},
            {"service": "generative-language-api", "file_contents": "{}"},
        ],
    )
    def test_missing_project_id_raises(self, credentials):
        with pytest.raises(
            MissingProjectIdError, match="Could not determine project_id"
        ):
            resolve_config(credentials, token_provider=StaticTokenProvider("t"))

    def test_api_key_mode_does_not_need_project(self):
        config = resolve_config(
            {"service": "vertex-ai-api", "region": "us-east4", "api_key": "k"}
        )
        assert config.project_id is None


class TestAddresses:
    def test_custom_base_address(self):
        """override는 그대로 사용"""
        client = GeminiClient(
            credentials={
                "service": "vertex-ai-api",
                "region": "us-east4",
                "api_key": "k",
                "base_address": "https://custom.example.com/v1",
            },
            options={"model": "gemini-pro"},
        )
        assert client.base_address == "https://custom.example.com/v1"

    def test_custom_base_address_from_options(self):
        config = resolve_config(
            {"service": "generative-language-api", "api_key": "k"},
            {"model": "gemini-pro", "base_address": "http://localhost:8080/v1beta"},
        )
        assert config.base_address == "http://localhost:8080/v1beta"

    def test_default_vertex_base_address(self):
        """override가 없으면 aiplatform 주소"""
        client = GeminiClient(
            credentials={"service": "vertex-ai-api", "region": "us-east4", "api_key": "k"},
            options={"model": "gemini-pro"},
        )
        assert "aiplatform.googleapis.com" in client.base_address
        assert client.base_address == "https://us-east4-aiplatform.googleapis.com/v1"
        assert client.model_address == "publishers/google/models/gemini-pro"

    def test_vertex_base_address_with_project(self, token_provider):
        config = resolve_config(
            {"service": "vertex-ai-api", "region": "europe-west1"},
            {"model": "gemini-1.5-flash"},
            token_provider=token_provider,
        )
        assert config.base_address == (
            "https://europe-west1-aiplatform.googleapis.com/v1"
            "/projects/my-project/locations/europe-west1"
        )

    def test_generative_language_addresses(self):
        config = resolve_config(
            {"service": "generative-language-api", "api_key": "k", "version": "v1beta"},
            Options(model="gemini-pro"),
        )
        assert config.service is Service.GENERATIVE_LANGUAGE
        assert config.base_address == "https://generativelanguage.googleapis.com/v1beta"
        assert config.model_address == "models/gemini-pro"

    def test_missing_region_for_vertex(self):
        with pytest.raises(MissingRegionError):
            resolve_config({"service": "vertex-ai-api", "api_key": "k"})

    def test_model_is_optional(self):
        config = resolve_config({"service": "generative-language-api", "api_key": "k"})
        assert config.model is None
        assert config.model_address is None


class TestOptions:
    def test_request_options_allow_list(self):
        config = resolve_config(
            Credentials(service="generative-language-api", api_key="k"),
            {
                "model": "gemini-pro",
                "connection": {
                    "request": {
                        "timeout": 30,
                        "open_timeout": 5,
                        "read_timeout": 20,
                        "proxy": "http://proxy",
                        "verify": False,
                    }
                },
            },
        )
        assert config.request_options == {
            "timeout": 30,
            "open_timeout": 5,
            "read_timeout": 20,
        }

    def test_non_dict_request_options(self):
        assert filter_request_options(None) == {}
        assert filter_request_options(["timeout"]) == {}

    def test_non_dict_request_options_dropped_on_resolve(self):
        config = resolve_config(
            {"service": "generative-language-api", "api_key": "k"},
            {"connection": {"request": ["timeout", 30]}},
        )
        assert config.request_options == {}

    def test_build_timeout(self):
        timeout = build_timeout(
            {"timeout": 30, "open_timeout": 5, "read_timeout": 20, "write_timeout": 7}
        )
        assert timeout.connect == 5
        assert timeout.read == 20
        assert timeout.write == 7
        assert timeout.pool == 30

    def test_connect_timeout_preferred_over_open_timeout(self):
        timeout = build_timeout({"open_timeout": 5, "connect_timeout": 3})
        assert timeout.connect == 3

    def test_transport_and_headers(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        config = resolve_config(
            {"service": "generative-language-api", "api_key": "k"},
            {
                "model": "gemini-pro",
                "server_sent_events": True,
                "headers": {"X-Custom-Header": "CustomValue"},
                "connection": {"transport": transport},
            },
        )
        assert config.transport is transport
        assert config.headers == {"X-Custom-Header": "CustomValue"}
        assert config.server_sent_events is True

    def test_config_is_immutable(self):
        config = resolve_config({"service": "generative-language-api", "api_key": "k"})
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.api_key = "other"
