"""
Gemini API 클라이언트
- httpx.AsyncClient 기반 (google-genai SDK 미사용)
- Vertex AI / Generative Language API 공통 요청 엔진
- SSE 스트림의 JSON 조각을 재조립하여 이벤트 단위로 전달
- 재시도 없음: 실패는 RequestError로 래핑하여 호출자에게 전파
"""

from __future__ import annotations

import asyncio
import codecs
import inspect
import json
import logging
from collections.abc import AsyncIterator
from contextlib import aclosing
from typing import Any, Awaitable, Callable, Union

import httpx

from ._types import Authentication, ClientConfig, TokenProvider
from .config import Credentials, Options, build_timeout, resolve_config
from .errors import BlockWithoutStreamError, MissingModelError, RequestError
from .sse import SSEEvent, SSEParser
from .stream import JSONAccumulator, RawChunk, StreamEvent, safe_parse_json

logger = logging.getLogger(__name__)

EventCallback = Callable[[Any, SSEEvent, RawChunk], Union[None, Awaitable[None]]]


class GeminiClient:
    """
    Gemini API 비동기 클라이언트

    사용법:
        async with GeminiClient(
            credentials={"service": "generative-language-api", "api_key": "..."},
            options={"model": "gemini-pro", "server_sent_events": True},
        ) as client:
            events = await client.stream_generate_content(
                {"contents": {"role": "user", "parts": {"text": "hi!"}}}
            )
    """

    def __init__(
        self,
        credentials: Credentials | dict[str, Any],
        options: Options | dict[str, Any] | None = None,
        token_provider: TokenProvider | None = None,
    ):
        self.config: ClientConfig = resolve_config(
            credentials, options, token_provider=token_provider
        )
        self._http: httpx.AsyncClient | None = None

    @property
    def base_address(self) -> str:
        return self.config.base_address

    @property
    def model_address(self) -> str | None:
        return self.config.model_address

    @property
    def authentication(self) -> Authentication:
        return self.config.authentication

    async def _get_http(self) -> httpx.AsyncClient:
        """httpx 클라이언트 lazy 초기화"""
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                timeout=build_timeout(self.config.request_options),
                transport=self.config.transport,
            )
        return self._http

    # --- API ---

    async def generate_content(
        self,
        payload: Any,
        server_sent_events: bool | None = None,
        callback: EventCallback | None = None,
    ) -> Any:
        result = await self.request(
            self._model_path("generateContent"),
            payload,
            server_sent_events=server_sent_events,
            callback=callback,
        )
        return _unwrap_single(result)

    async def stream_generate_content(
        self,
        payload: Any,
        server_sent_events: bool | None = None,
        callback: EventCallback | None = None,
    ) -> Any:
        return await self.request(
            self._model_path("streamGenerateContent"),
            payload,
            server_sent_events=server_sent_events,
            callback=callback,
        )

    async def predict(
        self,
        payload: Any,
        server_sent_events: bool | None = None,
        callback: EventCallback | None = None,
    ) -> Any:
        result = await self.request(
            self._model_path("predict"),
            payload,
            server_sent_events=server_sent_events,
            callback=callback,
        )
        return _unwrap_single(result)

    async def embed_content(
        self,
        payload: Any,
        server_sent_events: bool | None = None,
        callback: EventCallback | None = None,
    ) -> Any:
        result = await self.request(
            self._model_path("embedContent"),
            payload,
            server_sent_events=server_sent_events,
            callback=callback,
        )
        return _unwrap_single(result)

    async def count_tokens(
        self,
        payload: Any,
        server_sent_events: bool | None = None,
        callback: EventCallback | None = None,
    ) -> Any:
        result = await self.request(
            self._model_path("countTokens"),
            payload,
            server_sent_events=server_sent_events,
            callback=callback,
        )
        return _unwrap_single(result)

    async def list_models(self, callback: EventCallback | None = None) -> Any:
        return await self.request(
            "models",
            None,
            server_sent_events=False,
            method="GET",
            callback=callback,
        )

    def iter_generate_content(self, payload: Any) -> AsyncIterator[StreamEvent]:
        """streamGenerateContent 결과를 StreamEvent 단위로 yield"""
        return self.stream(self._model_path("streamGenerateContent"), payload)

    # --- 요청 엔진 ---

    async def request(
        self,
        path: str,
        payload: Any = None,
        *,
        server_sent_events: bool | None = None,
        method: str = "POST",
        callback: EventCallback | None = None,
    ) -> Any:
        """
        공통 요청 프리미티브

        Args:
            path: base_address 뒤에 붙는 경로 (예: "models/gemini-pro:generateContent")
            payload: JSON 직렬화 가능한 body (None이면 body 없음)
            server_sent_events: 호출 단위 SSE 설정 (None이면 설정 기본값)
            method: "POST" 또는 "GET"
            callback: 이벤트마다 (event, parsed, raw)로 호출 (SSE 전용)

        Returns:
            SSE면 파싱된 이벤트 값 리스트, 아니면 파싱된 응답 body
        """
        sse_enabled = self._resolve_server_sent_events(server_sent_events)

        if callback is not None and not sse_enabled:
            raise BlockWithoutStreamError(
                "You are trying to use a callback without Server Sent Events (SSE) enabled."
            )

        if not sse_enabled:
            return await self._send(path, payload, method)

        results = []
        async with aclosing(self.stream(path, payload, method=method)) as events:
            async for stream_event in events:
                if callback is not None:
                    outcome = callback(
                        stream_event.event, stream_event.parsed, stream_event.raw
                    )
                    if inspect.isawaitable(outcome):
                        await outcome
                results.append(stream_event.event)
        return results

    async def stream(
        self,
        path: str,
        payload: Any = None,
        *,
        method: str = "POST",
    ) -> AsyncIterator[StreamEvent]:
        """
        SSE 응답을 StreamEvent로 재조립하여 yield

        청크 → SSE 토크나이저 → data 누적 → JSON 파싱 성공 시 이벤트 1개.
        하나의 청크에서 여러 이벤트가 나올 수도, 여러 청크가 이벤트 하나가 될 수도 있다.
        """
        http = await self._get_http()
        url = self._build_url(path, server_sent_events=True)
        headers = await self._build_headers()

        accumulator = JSONAccumulator()
        parser = SSEParser()
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        emitted = 0

        logger.debug(f"[gemini] stream request: {method} {path}")

        try:
            async with http.stream(
                method, url, headers=headers, content=_encode(payload)
            ) as response:
                if response.status_code != 200:
                    await response.aread()
                    raise httpx.HTTPStatusError(
                        f"Unexpected status '{response.status_code} "
                        f"{response.reason_phrase}' for '{path}': "
                        f"{response.text}",
                        request=response.request,
                        response=response,
                    )

                chunk = b""
                async for chunk in response.aiter_bytes():
                    text = decoder.decode(chunk)
                    for stream_event in _reassemble(
                        parser, accumulator, text, RawChunk(chunk, response)
                    ):
                        emitted += 1
                        yield stream_event

                # 디코더에 남은 바이트 처리
                text = decoder.decode(b"", final=True)
                for stream_event in _reassemble(
                    parser, accumulator, text, RawChunk(chunk, response)
                ):
                    emitted += 1
                    yield stream_event
        except httpx.HTTPStatusError as e:
            raise RequestError(
                str(e),
                request=e,
                payload=payload,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise RequestError(str(e), request=e, payload=payload) from e

        if accumulator.buffer:
            logger.debug(
                f"[gemini] stream ended with incomplete JSON "
                f"({len(accumulator.buffer)} chars discarded)"
            )
        logger.debug(f"[gemini] stream done: events={emitted}")

    async def _send(self, path: str, payload: Any, method: str) -> Any:
        http = await self._get_http()
        url = self._build_url(path, server_sent_events=False)
        headers = await self._build_headers()

        logger.debug(f"[gemini] request: {method} {path}")

        try:
            response = await http.request(
                method, url, headers=headers, content=_encode(payload)
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RequestError(
                str(e),
                request=e,
                payload=payload,
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            raise RequestError(str(e), request=e, payload=payload) from e

        parsed = safe_parse_json(response.text)
        return parsed if parsed is not None else response.text

    # --- helpers ---

    def _resolve_server_sent_events(self, server_sent_events: bool | None) -> bool:
        if server_sent_events is not None:
            return server_sent_events
        return bool(self.config.server_sent_events)

    def _model_path(self, action: str) -> str:
        if not self.config.model_address:
            raise MissingModelError(
                "model이 필요합니다. options의 model을 설정하세요."
            )
        return f"{self.config.model_address}:{action}"

    def _build_url(self, path: str, server_sent_events: bool) -> str:
        url = f"{self.config.base_address.rstrip('/')}/{path}"

        params = []
        if server_sent_events:
            params.append("alt=sse")
        if self.config.authentication is Authentication.API_KEY:
            params.append(f"key={self.config.api_key}")

        if params:
            url += "?" + "&".join(params)
        return url

    async def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", **self.config.headers}
        if self.config.uses_bearer_token:
            # google-auth refresh는 블로킹 호출
            token = await asyncio.to_thread(self.config.token_provider.fetch_token)
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def close(self) -> None:
        """HTTP 클라이언트 종료"""
        if self._http and not self._http.is_closed:
            await self._http.aclose()

    async def __aenter__(self) -> GeminiClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()


def _encode(payload: Any) -> bytes | None:
    if payload is None:
        return None
    return json.dumps(payload).encode("utf-8")


def _unwrap_single(result: Any) -> Any:
    """원소가 하나인 리스트면 그 값만 반환"""
    if isinstance(result, list) and len(result) == 1:
        return result[0]
    return result


def _reassemble(
    parser: SSEParser, accumulator: JSONAccumulator, text: str, raw: RawChunk
) -> list[StreamEvent]:
    """텍스트 조각에서 완성된 JSON 이벤트를 꺼낸다"""
    events = []
    for sse_event in parser.feed(text):
        parsed_json = accumulator.feed(sse_event.data)
        if parsed_json is None:
            continue

        stream_event = StreamEvent(event=parsed_json, parsed=sse_event, raw=raw)
        if stream_event.finish_reason:
            logger.debug(
                f"[gemini] finish reason received: {stream_event.finish_reason}"
            )
        events.append(stream_event)
    return events
