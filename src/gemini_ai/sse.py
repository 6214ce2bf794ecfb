"""
Server-Sent Events 증분 토크나이저
- 청크 단위로 feed() 하면 완성된 이벤트만 (type, data, id, retry)로 반환
- 청크 경계가 줄/이벤트 중간에 걸려도 다음 feed()에서 이어서 처리
"""

from __future__ import annotations

from typing import NamedTuple

DEFAULT_EVENT_TYPE = "message"


class SSEEvent(NamedTuple):
    """SSE 이벤트 하나 (빈 줄로 구분되는 단위)"""

    type: str
    data: str
    id: str | None
    retry: int | None


class SSEParser:
    """
    SSE 와이어 포맷 파서

    사용법:
        parser = SSEParser()
        for event in parser.feed(chunk):
            ...
    """

    def __init__(self) -> None:
        self._pending = ""
        self._skip_lf = False
        self._event_type = ""
        self._data_lines: list[str] = []
        self.last_event_id: str | None = None
        self.retry: int | None = None

    def feed(self, chunk: str) -> list[SSEEvent]:
        """텍스트 청크를 넣고 이번에 완성된 이벤트 목록을 받는다"""
        if self._skip_lf and chunk:
            # 이전 청크가 \r 로 끝났으면 이어지는 \n 은 같은 줄바꿈
            if chunk.startswith("\n"):
                chunk = chunk[1:]
            self._skip_lf = False

        buffer = self._pending + chunk
        events: list[SSEEvent] = []

        start = 0
        length = len(buffer)
        while start < length:
            cr = buffer.find("\r", start)
            lf = buffer.find("\n", start)
            if cr == -1 and lf == -1:
                break

            if cr != -1 and (lf == -1 or cr < lf):
                end = cr
                if cr + 1 == length:
                    self._skip_lf = True
                    next_start = length
                else:
                    next_start = cr + 2 if buffer[cr + 1] == "\n" else cr + 1
            else:
                end = lf
                next_start = lf + 1

            event = self._process_line(buffer[start:end])
            if event is not None:
                events.append(event)
            start = next_start

        self._pending = buffer[start:]
        return events

    def _process_line(self, line: str) -> SSEEvent | None:
        if not line:
            return self._dispatch()

        if line.startswith(":"):
            return None

        field, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if field == "event":
            self._event_type = value
        elif field == "data":
            self._data_lines.append(value)
        elif field == "id":
            if "\0" not in value:
                self.last_event_id = value
        elif field == "retry":
            if value.isascii() and value.isdigit():
                self.retry = int(value)
        return None

    def _dispatch(self) -> SSEEvent | None:
        event_type = self._event_type or DEFAULT_EVENT_TYPE
        data_lines = self._data_lines
        self._event_type = ""
        self._data_lines = []

        if not data_lines:
            return None

        return SSEEvent(
            type=event_type,
            data="\n".join(data_lines),
            id=self.last_event_id,
            retry=self.retry,
        )
