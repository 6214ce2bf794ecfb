"""
스트리밍 응답 재조립
- SSE data 조각을 누적하여 완성된 JSON이 될 때마다 StreamEvent 생성
- 파싱 실패는 에러가 아니라 "아직 덜 받음" 상태
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, NamedTuple

import httpx

from .sse import SSEEvent


def safe_parse_json(raw: Any) -> Any | None:
    """JSON 객체/배열로 보이면 파싱, 아니거나 불완전하면 None"""
    text = str(raw) if raw is not None else ""
    if not text.lstrip().startswith(("{", "[")):
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


class RawChunk(NamedTuple):
    """이벤트를 완성시킨 원본 청크와 응답 객체"""

    chunk: bytes
    response: httpx.Response


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """스트림에서 재조립된 JSON 값 하나"""

    event: Any
    parsed: SSEEvent
    raw: RawChunk

    @property
    def finish_reason(self) -> str | None:
        """candidates 중 비어있지 않은 첫 finishReason"""
        if not isinstance(self.event, dict):
            return None
        for candidate in self.event.get("candidates") or []:
            reason = candidate.get("finishReason") if isinstance(candidate, dict) else None
            if reason:
                return reason
        return None


class JSONAccumulator:
    """
    호출 하나에 속하는 누적 버퍼

    feed()로 data를 붙이고 파싱을 시도한다.
    성공하면 버퍼를 비우고 값을 반환, 실패하면 버퍼를 유지하고 None 반환.
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def buffer(self) -> str:
        return self._buffer

    def feed(self, data: str) -> Any | None:
        self._buffer += data
        parsed = safe_parse_json(self._buffer)
        if parsed is not None:
            self._buffer = ""
        return parsed
