"""
Tests for building and sending tool HTTP requests.
"""

import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from openapi_tool_chat.config import ToolErrorPolicy
from openapi_tool_chat.errors import FunctionNotFoundError, ParseError, TransportError
from openapi_tool_chat.llms.base import Roles
from openapi_tool_chat.tools.function_registry import FunctionRegistry
from openapi_tool_chat.tools.invoker import ToolInvoker, parse_arguments, parse_custom_headers
from tests.helpers import STOCKS_SCHEMA, WEATHER_SCHEMA, EndpointRecorder, make_tool_call

CUSTOM_HEADERS = json.dumps({"X-Api-Key": "secret", "Accept-Language": "de"})


def _invoker(client, request_in_body=False, headers=CUSTOM_HEADERS, policy=ToolErrorPolicy.ABORT) -> ToolInvoker:
    registry = FunctionRegistry.from_schemas([WEATHER_SCHEMA, STOCKS_SCHEMA], headers)
    return ToolInvoker(registry, client, request_in_body=request_in_body, error_policy=policy)


class TestParsing:
    def test_empty_custom_headers(self):
        assert parse_custom_headers("") == {}
        assert parse_custom_headers(None) == {}
        assert parse_custom_headers("   ") == {}

    def test_custom_headers(self):
        assert parse_custom_headers('{"X-Api-Key": "secret", "X-Retry": 3}') == {"X-Api-Key": "secret", "X-Retry": "3"}

    @pytest.mark.parametrize("raw", ["{not json", '["a"]'])
    def test_malformed_custom_headers(self, raw):
        with pytest.raises(ParseError):
            parse_custom_headers(raw)

    def test_arguments(self):
        assert parse_arguments(make_tool_call("c1", "getQuote", {"symbol": "ACME"})) == {"symbol": "ACME"}

    @pytest.mark.parametrize("raw", ['{"symbol": ', "42", "", "   "])
    def test_malformed_arguments(self, raw):
        with pytest.raises(ParseError):
            parse_arguments(make_tool_call("c1", "getQuote", raw))


class TestBodyMode:
    async def test_post_with_json_body(self, http_client, recorder):
        invoker = _invoker(http_client, request_in_body=True)

        await invoker.invoke(make_tool_call("c1", "createAlert", {"city": "Zurich", "severity": "high"}))

        (request,) = recorder.requests
        assert request.method == "POST"
        assert str(request.url) == "https://weather.example.com/alerts"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {"city": "Zurich", "severity": "high"}

    async def test_custom_headers_are_merged(self, http_client, recorder):
        invoker = _invoker(http_client, request_in_body=True)

        await invoker.invoke(make_tool_call("c1", "getQuote", {"symbol": "ACME"}))

        headers = recorder.requests[0].headers
        assert headers["x-api-key"] == "secret"
        assert headers["accept-language"] == "de"
        assert headers["content-type"] == "application/json"

    async def test_custom_content_type_overrides_default(self, http_client, recorder):
        invoker = _invoker(http_client, request_in_body=True, headers='{"Content-Type": "application/vnd.api+json"}')

        await invoker.invoke(make_tool_call("c1", "getQuote", {"symbol": "ACME"}))

        assert recorder.requests[0].headers.get_list("content-type") == ["application/vnd.api+json"]

    async def test_method_follows_mode_not_schema(self, http_client, recorder):
        invoker = _invoker(http_client, request_in_body=True)

        await invoker.invoke(make_tool_call("c1", "getForecast", {"city": "Bern"}))

        assert recorder.requests[0].method == "POST"
        assert recorder.requests[0].url.query == b""

    async def test_round_trip(self, http_client, recorder):
        invoker = _invoker(http_client, request_in_body=True)

        await invoker.invoke(make_tool_call("c1", "getQuote", {"a": 1, "b": "x"}))

        assert json.loads(recorder.requests[0].content) == {"a": 1, "b": "x"}


class TestQueryMode:
    async def test_get_with_query_string(self, http_client, recorder):
        invoker = _invoker(http_client)

        await invoker.invoke(make_tool_call("c1", "getForecast", {"city": "Zurich", "days": 3}))

        (request,) = recorder.requests
        url = urlsplit(str(request.url))
        assert request.method == "GET"
        assert f"{url.scheme}://{url.netloc}{url.path}" == "https://weather.example.com/forecast"
        assert parse_qs(url.query) == {"city": ["Zurich"], "days": ["3"]}
        assert request.content == b""

    async def test_no_custom_headers(self, http_client, recorder):
        invoker = _invoker(http_client)

        await invoker.invoke(make_tool_call("c1", "getQuote", {"symbol": "ACME"}))

        headers = recorder.requests[0].headers
        assert "x-api-key" not in headers
        assert "accept-language" not in headers
        assert "content-type" not in headers

    async def test_malformed_custom_headers_are_ignored(self, http_client, recorder):
        invoker = _invoker(http_client, headers="{not json")

        await invoker.invoke(make_tool_call("c1", "getQuote", {"symbol": "ACME"}))

        assert len(recorder.requests) == 1

    async def test_round_trip(self, http_client, recorder):
        invoker = _invoker(http_client)

        await invoker.invoke(make_tool_call("c1", "getQuote", {"a": 1, "b": "x"}))

        query = parse_qs(recorder.requests[0].url.query.decode())
        assert {key: values[0] for key, values in query.items()} == {"a": "1", "b": "x"}

    async def test_booleans_are_lowercase(self, http_client, recorder):
        invoker = _invoker(http_client)

        await invoker.invoke(make_tool_call("c1", "getQuote", {"live": True}))

        assert recorder.requests[0].url.query == b"live=true"

    async def test_flat_lists_are_comma_separated(self, http_client, recorder):
        invoker = _invoker(http_client)

        await invoker.invoke(make_tool_call("c1", "getQuote", {"symbols": ["ACME", "INIT"], "live": [True, 1]}))

        assert recorder.requests[0].url.query == b"symbols=ACME%2CINIT&live=true%2C1"

    async def test_nested_values_are_json_encoded(self, http_client, recorder):
        invoker = _invoker(http_client)

        await invoker.invoke(make_tool_call("c1", "getQuote", {"filter": {"sector": "tech"}}))

        query = parse_qs(recorder.requests[0].url.query.decode())
        assert json.loads(query["filter"][0]) == {"sector": "tech"}


class TestInvoke:
    async def test_tool_message(self, http_client):
        invoker = _invoker(http_client)

        message = await invoker.invoke(make_tool_call("call_7", "getQuote", {"symbol": "ACME"}))

        assert message.role == Roles.TOOL
        assert message.tool_call_id == "call_7"
        assert message.name == "getQuote"
        assert json.loads(message.content) == {"path": "/v1/quote"}

    async def test_calls_run_in_model_order(self, http_client, recorder):
        invoker = _invoker(http_client)
        calls = [
            make_tool_call("c1", "getQuote", {"symbol": "ACME"}),
            make_tool_call("c2", "getForecast", {"city": "Basel"}),
            make_tool_call("c3", "getQuote", {"symbol": "INIT"}),
        ]

        messages = await invoker.invoke_all(calls)

        assert [m.tool_call_id for m in messages] == ["c1", "c2", "c3"]
        assert [r.url.path for r in recorder.requests] == ["/v1/quote", "/forecast", "/v1/quote"]

    async def test_malformed_arguments_stop_before_any_request(self, http_client, recorder):
        invoker = _invoker(http_client)
        calls = [
            make_tool_call("c1", "getQuote", {"symbol": "ACME"}),
            make_tool_call("c2", "getForecast", '{"city": '),
            make_tool_call("c3", "getQuote", {"symbol": "INIT"}),
        ]

        with pytest.raises(ParseError):
            await invoker.invoke_all(calls)

        assert len(recorder.requests) == 1

    async def test_unknown_function(self, http_client, recorder):
        invoker = _invoker(http_client)

        with pytest.raises(FunctionNotFoundError):
            await invoker.invoke_all([make_tool_call("c1", "deleteEverything", {})])

        assert recorder.requests == []


class TestEndpointFailures:
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(503, json={"error": "down"}),
            httpx.Response(200, text="<html>not json</html>"),
        ],
    )
    async def test_bad_response_aborts(self, response):
        recorder = EndpointRecorder(lambda request: response)
        async with recorder.client() as client:
            with pytest.raises(TransportError):
                await _invoker(client).invoke(make_tool_call("c1", "getQuote", {"symbol": "ACME"}))

    async def test_network_error_aborts(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with EndpointRecorder(refuse).client() as client:
            with pytest.raises(TransportError, match="getQuote"):
                await _invoker(client).invoke(make_tool_call("c1", "getQuote", {"symbol": "ACME"}))

    async def test_report_policy_returns_error_content(self):
        recorder = EndpointRecorder(lambda request: httpx.Response(500, text="boom"))
        async with recorder.client() as client:
            invoker = _invoker(client, policy=ToolErrorPolicy.REPORT)

            messages = await invoker.invoke_all(
                [
                    make_tool_call("c1", "getQuote", {"symbol": "ACME"}),
                    make_tool_call("c2", "getForecast", {"city": "Bern"}),
                ]
            )

        assert [m.tool_call_id for m in messages] == ["c1", "c2"]
        assert json.loads(messages[0].content) == {"error": "getQuote returned HTTP 500"}

    async def test_report_policy_still_aborts_on_resolution_errors(self, http_client):
        invoker = _invoker(http_client, policy=ToolErrorPolicy.REPORT)

        with pytest.raises(FunctionNotFoundError):
            await invoker.invoke(make_tool_call("c1", "missing", {}))
