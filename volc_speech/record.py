"""Record ASR (audio transcription): request builder, submit and poll loop.

Requests travel as a JSON body and every response is wrapped in a `resp`
envelope, on failure statuses too. Polling is a client-side loop that sleeps a
fixed interval until the envelope reports code 1000.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from volc_speech import logging_utils
from volc_speech.client import JSON_HEADERS, Client
from volc_speech.errors import PollAttemptsExceededError, RequestBuildError
from volc_speech.types import Boolean, decode_model, parse_json, unwrap_envelope

SUBMIT_PATH = "/api/v1/auc/submit"
QUERY_PATH = "/api/v1/auc/query"

# sole "ready" sentinel; every other code means "poll again"
READY_CODE = 1000


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class App(_Frozen):
    appid: str
    token: str
    cluster: str


class User(_Frozen):
    uid: str


class Audio(_Frozen):
    url: str
    format: Optional[str] = None
    codec: Optional[str] = None
    rate: Optional[int] = None
    bits: Optional[int] = None
    channel: Optional[int] = None


class RequestSettings(_Frozen):
    """The optional `request` block (callback / boosting table)."""

    callback: Optional[str] = None
    boosting_table_name: Optional[str] = None


class Additions(_Frozen):
    """The optional `additions` block (language and processing flags)."""

    language: Optional[str] = None
    use_itn: Optional[Boolean] = None
    use_punc: Optional[Boolean] = None
    use_ddc: Optional[Boolean] = None
    with_speaker_info: Optional[Boolean] = None
    enable_query: Optional[Boolean] = None
    channel_split: Optional[Boolean] = None


class RecordAsrRequest(_Frozen):
    """Validated submit body. Construct through `RecordAsrRequest.builder()`."""

    app: App
    user: User
    audio: Audio
    request: Optional[RequestSettings] = None
    additions: Optional[Additions] = None

    @classmethod
    def builder(cls) -> "RecordAsrRequestBuilder":
        return RecordAsrRequestBuilder()

    def to_wire(self) -> dict[str, Any]:
        """JSON body with absent optional fields and blocks left out."""
        return self.model_dump(mode="json", exclude_none=True)


_REQUIRED = ("appid", "token", "cluster", "uid", "url")
_AUDIO_OPTIONAL = ("format", "codec", "rate", "bits", "channel")
_REQUEST_GROUP = ("callback", "boosting_table_name")
_ADDITIONS_GROUP = (
    "language",
    "use_itn",
    "use_punc",
    "use_ddc",
    "with_speaker_info",
    "enable_query",
    "channel_split",
)


def _present(fields: dict[str, Any], names: tuple[str, ...]) -> dict[str, Any]:
    return {n: fields[n] for n in names if fields.get(n) is not None}


class RecordAsrRequestBuilder:
    """Fluent accumulator; each setter overwrites the previous value for its field."""

    def __init__(self) -> None:
        self._fields: dict[str, Any] = {}

    def _set(self, name: str, value: Any) -> "RecordAsrRequestBuilder":
        self._fields[name] = value
        return self

    def _set_flag(self, name: str, value: "bool | Boolean | None") -> "RecordAsrRequestBuilder":
        return self._set(name, None if value is None else Boolean.coerce(value))

    def appid(self, appid: str) -> "RecordAsrRequestBuilder":
        return self._set("appid", appid)

    def token(self, token: str) -> "RecordAsrRequestBuilder":
        return self._set("token", token)

    def cluster(self, cluster: str) -> "RecordAsrRequestBuilder":
        return self._set("cluster", cluster)

    def uid(self, uid: str) -> "RecordAsrRequestBuilder":
        return self._set("uid", uid)

    def url(self, url: str) -> "RecordAsrRequestBuilder":
        return self._set("url", url)

    def format(self, format: str) -> "RecordAsrRequestBuilder":
        return self._set("format", format)

    def codec(self, codec: str) -> "RecordAsrRequestBuilder":
        return self._set("codec", codec)

    def rate(self, rate: int) -> "RecordAsrRequestBuilder":
        return self._set("rate", rate)

    def bits(self, bits: int) -> "RecordAsrRequestBuilder":
        return self._set("bits", bits)

    def channel(self, channel: int) -> "RecordAsrRequestBuilder":
        return self._set("channel", channel)

    def callback(self, callback: str) -> "RecordAsrRequestBuilder":
        return self._set("callback", callback)

    def boosting_table_name(self, name: str) -> "RecordAsrRequestBuilder":
        return self._set("boosting_table_name", name)

    def language(self, language: str) -> "RecordAsrRequestBuilder":
        return self._set("language", language)

    def use_itn(self, value: "bool | Boolean") -> "RecordAsrRequestBuilder":
        return self._set_flag("use_itn", value)

    def use_punc(self, value: "bool | Boolean") -> "RecordAsrRequestBuilder":
        return self._set_flag("use_punc", value)

    def use_ddc(self, value: "bool | Boolean") -> "RecordAsrRequestBuilder":
        return self._set_flag("use_ddc", value)

    def with_speaker_info(self, value: "bool | Boolean") -> "RecordAsrRequestBuilder":
        return self._set_flag("with_speaker_info", value)

    def enable_query(self, value: "bool | Boolean") -> "RecordAsrRequestBuilder":
        return self._set_flag("enable_query", value)

    def channel_split(self, value: "bool | Boolean") -> "RecordAsrRequestBuilder":
        return self._set_flag("channel_split", value)

    def build(self) -> RecordAsrRequest:
        """Validate required fields; optional groups with nothing set are omitted."""
        f = self._fields
        missing = [name for name in _REQUIRED if f.get(name) is None]
        if missing:
            raise RequestBuildError("record ASR", missing)

        request_fields = _present(f, _REQUEST_GROUP)
        addition_fields = _present(f, _ADDITIONS_GROUP)
        try:
            return RecordAsrRequest(
                app=App(appid=f["appid"], token=f["token"], cluster=f["cluster"]),
                user=User(uid=f["uid"]),
                audio=Audio(url=f["url"], **_present(f, _AUDIO_OPTIONAL)),
                request=RequestSettings(**request_fields) if request_fields else None,
                additions=Additions(**addition_fields) if addition_fields else None,
            )
        except ValidationError as e:
            fields = ", ".join(str(err["loc"][-1]) for err in e.errors() if err["loc"])
            raise RequestBuildError("record ASR", [], invalid=fields or str(e)) from e


class RecordAsrResponse(BaseModel):
    """Submit acknowledgment, carrying the identity fields the poll step needs."""

    code: int
    message: str = ""
    id: str
    appid: str = ""
    token: str = ""
    cluster: str = ""

    @property
    def accepted(self) -> bool:
        return self.code == READY_CODE


class Word(BaseModel):
    start_time: int
    end_time: int
    text: str


class UtteranceAdditions(BaseModel):
    event: Optional[str] = None
    speaker: Optional[str] = None


class Utterance(BaseModel):
    start_time: int
    end_time: int
    text: str
    words: list[Word] = Field(default_factory=list)
    additions: Optional[UtteranceAdditions] = None


class RecordAsrResult(BaseModel):
    id: str
    code: int
    message: str = ""
    additions: Optional[Additions] = None
    text: Optional[str] = None
    utterances: list[Utterance] = Field(default_factory=list)


def _is_ready(payload: Any) -> bool:
    code = payload.get("code") if isinstance(payload, dict) else None
    return isinstance(code, int) and not isinstance(code, bool) and code == READY_CODE


async def submit_record_job(client: Client, request: RecordAsrRequest) -> RecordAsrResponse:
    """POST the request and return the unwrapped acknowledgment.

    The body is parsed whatever the HTTP status; failures are logged at error
    level before the envelope is unwrapped.
    """
    body = request.to_wire()
    logging_utils.log_payload(SUBMIT_PATH, "REQ", body)
    response = await client.call(
        "POST", SUBMIT_PATH, headers=JSON_HEADERS, body=json.dumps(body)
    )
    parsed = parse_json(response.content)
    logging_utils.log_payload(SUBMIT_PATH, "REP", parsed, error=not response.is_success)

    ack = decode_model(RecordAsrResponse, unwrap_envelope(parsed))
    # the service does not echo these reliably
    return ack.model_copy(
        update={
            "appid": request.app.appid,
            "token": request.app.token,
            "cluster": request.app.cluster,
        }
    )


async def wait_record_result(
    client: Client,
    ack: RecordAsrResponse,
    retry: float,
    max_attempts: int | None = None,
) -> RecordAsrResult:
    """Poll until the job reports code 1000, sleeping `retry` seconds in between.

    Unbounded unless `max_attempts` is given; wrap in `asyncio.wait_for` for a
    deadline. Transport and decoding errors end the loop immediately.
    """
    if max_attempts is not None and max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    body = {
        "appid": ack.appid,
        "token": ack.token,
        "cluster": ack.cluster,
        "id": ack.id,
    }
    logging_utils.log_payload(QUERY_PATH, "REQ", body, job_id=ack.id)
    encoded = json.dumps(body)

    attempts = 0
    while True:
        attempts += 1
        response = await client.call(
            "POST", QUERY_PATH, headers=JSON_HEADERS, body=encoded
        )
        payload = unwrap_envelope(parse_json(response.content))
        logging_utils.log_payload(QUERY_PATH, "REP", payload, job_id=ack.id)
        if _is_ready(payload):
            break
        if max_attempts is not None and attempts >= max_attempts:
            last = payload.get("code") if isinstance(payload, dict) else None
            raise PollAttemptsExceededError(ack.id, attempts, last)
        await asyncio.sleep(retry)

    return decode_model(RecordAsrResult, payload)


async def transcribe(
    client: Client,
    request: RecordAsrRequest,
    retry: float,
    max_attempts: int | None = None,
) -> RecordAsrResult:
    """Submit then poll: the full record ASR job lifecycle."""
    ack = await submit_record_job(client, request)
    return await wait_record_result(client, ack, retry, max_attempts=max_attempts)
