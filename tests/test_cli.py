"""CLI smoke tests; Client.from_env patched to a mock-transport client."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeService
from volc_speech import cli


def test_record_command_prints_result(make_client, capsys) -> None:
    service = FakeService(
        {"resp": {"code": 1000, "message": "Success", "id": "J"}},
        {"resp": {"code": 1000, "id": "J", "text": "hi", "utterances": []}},
    )
    env = {"VOLCENGINE_APP_ID": "A", "VOLCENGINE_CLUSTER": "C"}
    with patch.dict("os.environ", env), patch.object(
        cli.Client, "from_env", return_value=make_client(service)
    ), patch("volc_speech.record.asyncio.sleep", new_callable=AsyncMock):
        code = cli.main(["record", "--url", "http://x/y.mp3", "--uid", "U", "--format", "mp3"])

    assert code == 0
    out = json.loads(capsys.readouterr().out)
    assert out["text"] == "hi"
    submitted = json.loads(service.requests[0].content)
    assert submitted["app"]["appid"] == "A"
    assert submitted["app"]["cluster"] == "C"
    assert submitted["audio"] == {"url": "http://x/y.mp3", "format": "mp3"}
    assert submitted["additions"] == {"use_punc": "True"}


def test_subtitle_command_url_source(make_client, capsys) -> None:
    service = FakeService(
        {"code": 0, "message": "Success", "id": "job-9"},
        {"code": 0, "duration": 1.0, "id": "job-9", "message": "Success", "utterances": []},
    )
    with patch.dict("os.environ", {"VOLCENGINE_APP_ID": "A"}), patch.object(
        cli.Client, "from_env", return_value=make_client(service)
    ):
        code = cli.main(["subtitle", "--url", "http://x/y.mp3", "--speaker-info"])

    assert code == 0
    assert json.loads(capsys.readouterr().out)["id"] == "job-9"
    assert service.requests[0].url.params["with_speaker_info"] == "True"
    assert service.requests[1].url.params["blocking"] == "1"


def test_missing_app_id_exits_with_error(make_client, capsys) -> None:
    with patch.dict("os.environ", {}, clear=True), patch.object(
        cli.Client, "from_env", return_value=make_client(FakeService({}))
    ):
        code = cli.main(["subtitle", "--url", "http://x/y.mp3"])
    assert code == 1
    assert "VOLCENGINE_APP_ID" in capsys.readouterr().err


def test_unknown_log_level_is_usage_error(capsys) -> None:
    with pytest.raises(SystemExit) as exc:
        cli.main(["--log-level", "loud", "subtitle", "--url", "http://x/y.mp3"])
    assert exc.value.code == 2
    assert "--log-level" in capsys.readouterr().err


def test_log_level_is_case_insensitive() -> None:
    args = cli._build_parser().parse_args(["--log-level", "debug", "subtitle", "--url", "http://x"])
    assert args.log_level == "DEBUG"
