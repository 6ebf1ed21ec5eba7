"""Subtitle generation: open-parameter builder, source variants, submit and query.

Job parameters travel as query-string pairs, so the builder keeps an open
`str -> str` mapping instead of a fixed schema. Only `appid` is required.
"""

from __future__ import annotations

import asyncio
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field

from volc_speech import logging_utils
from volc_speech.client import JSON_HEADERS, Client
from volc_speech.errors import (
    HttpStatusError,
    IoError,
    NoExtensionError,
    PollAttemptsExceededError,
    RequestBuildError,
)
from volc_speech.types import Boolean, decode_model, parse_json

SUBMIT_PATH = "/api/v1/vc/submit"
QUERY_PATH = "/api/v1/vc/query"

# code reported by a non-blocking query once captions are ready
DONE_CODE = 0


@dataclass(frozen=True)
class UrlSource:
    url: str


@dataclass(frozen=True)
class BinarySource:
    """In-memory audio; `media_type` is the subtype sent as `audio/<media_type>`."""

    media_type: str
    data: bytes = field(repr=False)

    @classmethod
    def from_local_file(cls, path: Union[str, os.PathLike]) -> "BinarySource":
        p = Path(path)
        media_type = p.suffix[1:]
        if not media_type:
            raise NoExtensionError(f"cannot derive media type from {str(p)!r}: no extension")
        try:
            data = p.read_bytes()
        except OSError as e:
            raise IoError(f"failed to read {str(p)!r}: {e}") from e
        return cls(media_type=media_type, data=data)


SubtitleSource = Union[UrlSource, BinarySource]


def _param_value(value: Any) -> str:
    if isinstance(value, (bool, Boolean)):
        return Boolean.coerce(value).encode()
    return str(value)


@dataclass(frozen=True)
class SubtitleRequest:
    params: Mapping[str, str]
    source: SubtitleSource

    @classmethod
    def builder(cls) -> "SubtitleRequestBuilder":
        return SubtitleRequestBuilder()

    @property
    def appid(self) -> str:
        return self.params["appid"]

    def query_params(self) -> list[tuple[str, str]]:
        return sorted(self.params.items())


class SubtitleRequestBuilder:
    """Fluent accumulator; last write wins for each key."""

    def __init__(self) -> None:
        self._params: dict[str, str] = {}
        self._source: SubtitleSource | None = None

    def param(self, key: str, value: Any) -> "SubtitleRequestBuilder":
        """Set any query parameter, known to this builder or not."""
        self._params[key] = _param_value(value)
        return self

    def appid(self, value: str) -> "SubtitleRequestBuilder":
        return self.param("appid", value)

    def words_per_line(self, value: int | str) -> "SubtitleRequestBuilder":
        return self.param("words_per_line", value)

    def max_lines(self, value: int | str) -> "SubtitleRequestBuilder":
        return self.param("max_lines", value)

    def use_itn(self, value: "bool | Boolean | str") -> "SubtitleRequestBuilder":
        return self.param("use_itn", Boolean.coerce(value))

    def language(self, value: str) -> "SubtitleRequestBuilder":
        return self.param("language", value)

    def caption_type(self, value: str) -> "SubtitleRequestBuilder":
        return self.param("caption_type", value)

    def use_punc(self, value: "bool | Boolean | str") -> "SubtitleRequestBuilder":
        return self.param("use_punc", Boolean.coerce(value))

    def use_ddc(self, value: "bool | Boolean | str") -> "SubtitleRequestBuilder":
        return self.param("use_ddc", Boolean.coerce(value))

    def boosting_table_id(self, value: str) -> "SubtitleRequestBuilder":
        return self.param("boosting_table_id", value)

    def boosting_table_name(self, value: str) -> "SubtitleRequestBuilder":
        return self.param("boosting_table_name", value)

    def asr_appid(self, value: str) -> "SubtitleRequestBuilder":
        return self.param("asr_appid", value)

    def with_speaker_info(self, value: "bool | Boolean | str") -> "SubtitleRequestBuilder":
        return self.param("with_speaker_info", Boolean.coerce(value))

    def source(
        self, value: Union[SubtitleSource, str, os.PathLike]
    ) -> "SubtitleRequestBuilder":
        """Set the audio source. Plain strings are URLs; path objects are read from disk."""
        if isinstance(value, (UrlSource, BinarySource)):
            self._source = value
        elif isinstance(value, str):
            self._source = UrlSource(value)
        elif isinstance(value, os.PathLike):
            self._source = BinarySource.from_local_file(value)
        else:
            raise TypeError(f"unsupported subtitle source: {type(value).__name__}")
        return self

    def url(self, url: str) -> "SubtitleRequestBuilder":
        return self.source(UrlSource(url))

    def local_file(self, path: Union[str, os.PathLike]) -> "SubtitleRequestBuilder":
        return self.source(BinarySource.from_local_file(path))

    def build(self) -> SubtitleRequest:
        missing = []
        if "appid" not in self._params:
            missing.append("appid")
        if self._source is None:
            missing.append("source")
        if missing:
            raise RequestBuildError("subtitle", missing)
        return SubtitleRequest(params=MappingProxyType(dict(self._params)), source=self._source)


class SubtitleResponse(BaseModel):
    code: int
    message: str = ""
    id: str


class Extra(BaseModel):
    asr_service: str = ""
    caption_type: str = ""
    is_mandarin: Optional[Boolean] = None
    is_speech: Optional[Boolean] = None
    language: str = ""


class Attribute(BaseModel):
    extra: Optional[Extra] = None
    event: Optional[str] = None
    speaker: Optional[str] = None


class Word(BaseModel):
    attribute: Attribute = Field(default_factory=Attribute)
    start_time: int
    end_time: int
    text: str


class Utterance(BaseModel):
    start_time: int
    end_time: int
    text: str
    words: list[Word] = Field(default_factory=list)
    attribute: Attribute = Field(default_factory=Attribute)


class SubtitleResult(BaseModel):
    code: int
    duration: float = 0.0
    id: str
    message: str = ""
    attribute: Attribute = Field(default_factory=Attribute)
    utterances: list[Utterance] = Field(default_factory=list)


async def submit_subtitle_job(client: Client, request: SubtitleRequest) -> SubtitleResponse:
    """POST the source to the submit endpoint; any non-2xx status raises HttpStatusError."""
    source = request.source
    if isinstance(source, BinarySource):
        headers = {"Content-Type": f"audio/{source.media_type}"}
        body: bytes | str = source.data
        logging_utils.log_payload(
            SUBMIT_PATH, "REQ", {"params": dict(request.params), "bytes": len(source.data)}
        )
    else:
        headers = JSON_HEADERS
        body = json.dumps({"url": source.url})
        logging_utils.log_payload(
            SUBMIT_PATH, "REQ", {"params": dict(request.params), "url": source.url}
        )

    response = await client.call(
        "POST", SUBMIT_PATH, query_params=request.query_params(), headers=headers, body=body
    )
    if not response.is_success:
        logging_utils.log_payload(SUBMIT_PATH, "REP", response.text, error=True)
        raise HttpStatusError(response.status_code, response.text)

    parsed = parse_json(response.content)
    logging_utils.log_payload(SUBMIT_PATH, "REP", parsed)
    return decode_model(SubtitleResponse, parsed)


async def _query(client: Client, appid: str, job_id: str, blocking: bool) -> Any:
    response = await client.call(
        "GET",
        QUERY_PATH,
        query_params=[("appid", appid), ("id", job_id), ("blocking", "1" if blocking else "0")],
    )
    parsed = parse_json(response.content)
    logging_utils.log_payload(QUERY_PATH, "REP", parsed, job_id=job_id)
    return parsed


async def wait_subtitle_result(
    client: Client,
    ack: SubtitleResponse,
    appid: str,
    blocking: bool = True,
    retry: float = 5.0,
    max_attempts: int | None = None,
) -> SubtitleResult:
    """Fetch the captions for `ack.id`.

    By default the service does the waiting: one GET with `blocking=1`, decoded
    as-is. With `blocking=False` the client polls every `retry` seconds until the
    service reports code 0.
    """
    if blocking:
        return decode_model(SubtitleResult, await _query(client, appid, ack.id, True))

    if max_attempts is not None and max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")
    attempts = 0
    while True:
        attempts += 1
        payload = await _query(client, appid, ack.id, False)
        code = payload.get("code") if isinstance(payload, dict) else None
        if code == DONE_CODE and not isinstance(code, bool):
            return decode_model(SubtitleResult, payload)
        if max_attempts is not None and attempts >= max_attempts:
            raise PollAttemptsExceededError(ack.id, attempts, code)
        await asyncio.sleep(retry)


async def generate_subtitles(
    client: Client,
    request: SubtitleRequest,
    blocking: bool = True,
    retry: float = 5.0,
    max_attempts: int | None = None,
) -> SubtitleResult:
    """Submit then query: the full subtitle job lifecycle."""
    ack = await submit_subtitle_job(client, request)
    return await wait_subtitle_result(
        client, ack, request.appid, blocking=blocking, retry=retry, max_attempts=max_attempts
    )
