import asyncio
import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from core.config import Settings
from core.errors import ConfigurationError, MalformedUpstreamResponse, UpstreamRequestFailed
from schemas.chart import BirthInput
from services.upstream import AstrologyApiClient, build_upstream_payload


def _settings(**overrides):
    values = {"api_user_id": "648970", "api_key": "secret", "timeout_seconds": 15.0}
    values.update(overrides)
    return Settings(**values)


def _birth(**overrides):
    data = {
        "date": "1981-10-17",
        "time": "08:55",
        "latitude": 52.6424,
        "longitude": 5.0597,
        "timezone": "Europe/Amsterdam",
    }
    data.update(overrides)
    return BirthInput(**data)


def test_build_upstream_payload_fields():
    payload = build_upstream_payload(_birth(), 2.0, "placidus")
    assert payload == {
        "day": 17,
        "month": 10,
        "year": 1981,
        "hour": 8,
        "min": 55,
        "lat": 52.6424,
        "lon": 5.0597,
        "tzone": 2.0,
        "house_type": "placidus",
    }


def test_fetch_chart_posts_json_with_basic_auth():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["content_type"] = request.headers["Content-Type"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"planets": []})

    client = AstrologyApiClient(
        _settings(api_base="https://json.astrologyapi.com/v1/", endpoint="western_horoscope"),
        transport=httpx.MockTransport(handler),
    )
    data = asyncio.run(client.fetch_chart({"day": 17, "tzone": 2.0}))

    assert data == {"planets": []}
    assert seen["url"] == "https://json.astrologyapi.com/v1/western_horoscope"
    assert seen["auth"] == "Basic " + base64.b64encode(b"648970:secret").decode()
    assert seen["content_type"] == "application/json"
    assert seen["body"] == {"day": 17, "tzone": 2.0}


def test_fetch_chart_can_form_encode():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["content_type"] = request.headers["Content-Type"]
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={"status": True, "chart_url": "https://example.test/c.svg"})

    client = AstrologyApiClient(_settings(form_encoded=True), transport=httpx.MockTransport(handler))
    asyncio.run(client.fetch_chart({"day": 17, "tzone": 2.0}))

    assert seen["content_type"] == "application/x-www-form-urlencoded"
    assert seen["form"] == {"day": ["17"], "tzone": ["2.0"]}


def test_non_success_status_carries_upstream_details():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(401, json={"status": False, "msg": "not authorized"})

    client = AstrologyApiClient(_settings(), transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamRequestFailed) as excinfo:
        asyncio.run(client.fetch_chart({}))

    assert len(calls) == 1
    assert excinfo.value.upstream_status == 401
    assert excinfo.value.upstream_body == {"status": False, "msg": "not authorized"}
    assert excinfo.value.status_code == 502


def test_in_band_rejection_is_a_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": False, "msg": "Plan does not include this API"})

    client = AstrologyApiClient(_settings(), transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamRequestFailed) as excinfo:
        asyncio.run(client.fetch_chart({}))

    assert excinfo.value.upstream_status == 200
    assert "rejected" in excinfo.value.message


def test_non_json_body_is_malformed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>maintenance</html>")

    client = AstrologyApiClient(_settings(), transport=httpx.MockTransport(handler))
    with pytest.raises(MalformedUpstreamResponse) as excinfo:
        asyncio.run(client.fetch_chart({}))

    assert excinfo.value.upstream_body == "<html>maintenance</html>"


def test_timeout_is_an_upstream_failure_without_retry():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ReadTimeout("timed out", request=request)

    client = AstrologyApiClient(_settings(), transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamRequestFailed) as excinfo:
        asyncio.run(client.fetch_chart({}))

    assert len(calls) == 1
    assert excinfo.value.upstream_status is None
    assert "15s" in excinfo.value.message


def test_missing_credentials_fail_before_any_call():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("upstream must not be called")

    client = AstrologyApiClient(_settings(api_key=None), transport=httpx.MockTransport(handler))
    with pytest.raises(ConfigurationError) as excinfo:
        asyncio.run(client.fetch_chart({}))

    assert excinfo.value.variable == "ASTROLOGY_API_KEY"
    assert excinfo.value.status_code == 500
