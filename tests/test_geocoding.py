import asyncio
import logging

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer as LocalServer

from geocoding.ipstack import (
    HTTPStatusError,
    IPStackClient,
    IPStackConfig,
    MalformedResponseError,
    NoAddressError,
    ProviderError,
    QuotaExceededError,
    TransportError,
    parse_ipstack_result,
)
from geocoding.locator import fresh_locations, resolve_all, resolve_records
from geocoding.models import LocationRecord, pinnable
from sessions.parser import parse_sessions


def test_parse_ipstack_result():
    assert parse_ipstack_result({"ip": "1.2.3.4", "latitude": 12.0, "longitude": 34.5}) == (12.0, 34.5)


def test_parse_ipstack_result_null_coordinates_is_sentinel():
    assert parse_ipstack_result({"latitude": None, "longitude": None}) == (0.0, 0.0)


def test_parse_ipstack_result_errors():
    with pytest.raises(QuotaExceededError):
        parse_ipstack_result({"success": False, "error": {"code": 104, "type": "usage_limit_reached"}})
    with pytest.raises(ProviderError):
        parse_ipstack_result({"success": False, "error": {"code": 101, "type": "invalid_access_key"}})
    with pytest.raises(MalformedResponseError):
        parse_ipstack_result(["not", "an", "object"])
    with pytest.raises(MalformedResponseError):
        parse_ipstack_result({"latitude": "north", "longitude": 1})
    with pytest.raises(MalformedResponseError):
        parse_ipstack_result({"success": False, "error": "invalid key"})


def test_pinnable_drops_sentinel():
    records = [LocationRecord("alice", 12.0, 34.0), LocationRecord("bob")]

    assert pinnable(records) == [LocationRecord("alice", 12.0, 34.0)]


def _locate_against(handler, address, api_key="secret"):
    """在本地测试服务器上运行一次 IPStackClient.locate"""

    async def run():
        app = web.Application()
        app.router.add_get("/{address}", handler)
        async with LocalServer(app) as server:
            client = IPStackClient(IPStackConfig(api_key=api_key, base_url=str(server.make_url("/"))))
            async with aiohttp.ClientSession() as session:
                return await client.locate(session, address)

    return asyncio.run(run())


def test_client_sends_key_and_parses_response():
    seen = {}

    async def handler(request):
        seen["address"] = request.match_info["address"]
        seen["key"] = request.query.get("access_key")
        return web.json_response({"latitude": 12.0, "longitude": 34.0})

    assert _locate_against(handler, "1.2.3.4") == (12.0, 34.0)
    assert seen == {"address": "1.2.3.4", "key": "secret"}


def test_client_quota_status():
    async def handler(request):
        return web.json_response({"error": "quota"}, status=403)

    with pytest.raises(QuotaExceededError) as excinfo:
        _locate_against(handler, "1.2.3.4")
    assert excinfo.value.status == 403


def test_client_other_status():
    async def handler(request):
        return web.Response(status=500, text="boom")

    with pytest.raises(HTTPStatusError) as excinfo:
        _locate_against(handler, "1.2.3.4")
    assert not isinstance(excinfo.value, QuotaExceededError)
    assert excinfo.value.status == 500


def test_client_malformed_body():
    async def handler(request):
        return web.Response(text="<html>not json</html>")

    with pytest.raises(MalformedResponseError):
        _locate_against(handler, "1.2.3.4")


def test_client_empty_address_makes_no_request():
    calls = []

    async def handler(request):
        calls.append(request)
        return web.json_response({"latitude": 1.0, "longitude": 2.0})

    with pytest.raises(NoAddressError):
        _locate_against(handler, "")
    assert calls == []


def test_client_transport_error():
    async def run():
        client = IPStackClient(IPStackConfig(api_key="k", base_url="http://127.0.0.1:1"))
        async with aiohttp.ClientSession() as session:
            return await client.locate(session, "1.2.3.4")

    with pytest.raises(TransportError):
        asyncio.run(run())


class DummyClient:
    """按地址返回预设结果的定位客户端"""

    def __init__(self, answers, delays=None):
        self.answers = answers
        self.delays = delays or {}
        self.calls = []

    async def locate(self, session, address):
        self.calls.append(address)
        if not address:
            raise NoAddressError()
        await asyncio.sleep(self.delays.get(address, 0))
        answer = self.answers[address]
        if isinstance(answer, Exception):
            raise answer
        return answer


def test_resolve_records_aligns_results_with_dispatch_order():
    records = parse_sessions(
        "alice pts/0 - - 1.1.1.1\n"
        "bob pts/1 - - 2.2.2.2\n"
        "carol pts/2 - - 3.3.3.3\n"
    )
    # alice 最后返回
    client = DummyClient(
        {"1.1.1.1": (1.0, 1.0), "2.2.2.2": (2.0, 2.0), "3.3.3.3": (3.0, 3.0)},
        delays={"1.1.1.1": 0.05},
    )

    results = resolve_records(records, client)

    assert [r.index for r in results] == [0, 1, 2]
    assert [r.name for r in results] == ["alice", "bob", "carol"]
    assert fresh_locations(results) == [
        LocationRecord("alice", 1.0, 1.0),
        LocationRecord("bob", 2.0, 2.0),
        LocationRecord("carol", 3.0, 3.0),
    ]


def test_resolve_records_partial_failure():
    records = parse_sessions(
        "alice pts/0 - - 1.1.1.1\n"
        "bob pts/1 - - (mosh [99])\n"
        "carol pts/2 - - 3.3.3.3\n"
        "dave pts/3\n"
    )
    client = DummyClient({"1.1.1.1": (1.0, 1.0), "3.3.3.3": QuotaExceededError(403)})

    results = resolve_records(records, client)

    assert [r.ok for r in results] == [True, False, False, False]
    assert isinstance(results[1].error, NoAddressError)
    assert isinstance(results[2].error, QuotaExceededError)
    assert isinstance(results[3].error, NoAddressError)
    assert fresh_locations(results) == [LocationRecord("alice", 1.0, 1.0)]
    # 没有地址的记录不发请求
    assert sorted(client.calls) == ["1.1.1.1", "3.3.3.3"]


def test_resolve_records_times_out_each_request():
    records = parse_sessions("alice pts/0 - - 1.1.1.1\nbob pts/1 - - 2.2.2.2\n")
    client = DummyClient(
        {"1.1.1.1": (1.0, 1.0), "2.2.2.2": (2.0, 2.0)},
        delays={"2.2.2.2": 5},
    )

    results = resolve_records(records, client, timeout=0.1)

    assert results[0].ok
    assert isinstance(results[1].error, TransportError)


def test_resolve_records_empty():
    assert resolve_records([], DummyClient({})) == []


@pytest.mark.parametrize("status", [403, 500])
def test_client_warns_on_error_status(status, caplog):
    async def handler(request):
        return web.Response(status=status, text="nope")

    with caplog.at_level(logging.WARNING, logger="geocoding.ipstack"):
        with pytest.raises(HTTPStatusError):
            _locate_against(handler, "1.2.3.4")

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert any(str(status) in r.getMessage() and "1.2.3.4" in r.getMessage() for r in warnings)


@pytest.mark.parametrize(
    "bad_body",
    [
        b"\xff\xfe not utf-8",
        b'{"success": false, "error": "invalid access key"}',
    ],
)
def test_bad_body_fails_only_its_own_record(bad_body):
    records = parse_sessions("alice pts/0 - - 1.1.1.1\nbob pts/1 - - 2.2.2.2\n")

    async def handler(request):
        if request.match_info["address"] == "2.2.2.2":
            return web.Response(body=bad_body, content_type="application/json")
        return web.json_response({"latitude": 1.0, "longitude": 2.0})

    async def run():
        app = web.Application()
        app.router.add_get("/{address}", handler)
        async with LocalServer(app) as server:
            client = IPStackClient(IPStackConfig(api_key="k", base_url=str(server.make_url("/"))))
            return await resolve_all(records, client)

    results = asyncio.run(run())

    assert [r.ok for r in results] == [True, False]
    assert isinstance(results[1].error, MalformedResponseError)
    assert fresh_locations(results) == [LocationRecord("alice", 1.0, 2.0)]


def test_unexpected_client_error_fails_only_its_own_record():
    records = parse_sessions("alice pts/0 - - 1.1.1.1\nbob pts/1 - - 2.2.2.2\n")
    client = DummyClient({"1.1.1.1": (1.0, 1.0), "2.2.2.2": AttributeError("boom")})

    results = resolve_records(records, client)

    assert [r.ok for r in results] == [True, False]
    assert isinstance(results[1].error, AttributeError)
