import json
from urllib.parse import parse_qsl, urlsplit

import httpx
import pytest
from mcp.shared.exceptions import McpError
from mcp.types import INVALID_PARAMS, METHOD_NOT_FOUND

from bear_mcp import dispatch, server


@pytest.mark.anyio
async def test_list_tools():
    tools = await server.list_tools()
    names = [t.name for t in tools]
    assert "bear_get_tags" in names
    assert len(names) == 16


@pytest.mark.anyio
async def test_unknown_tool():
    with pytest.raises(McpError) as excinfo:
        await server.call_tool("bear_nope", {})
    assert excinfo.value.error.code == METHOD_NOT_FOUND


@pytest.mark.anyio
async def test_get_tags_needs_token(monkeypatch):
    monkeypatch.delenv("BEAR_TOKEN", raising=False)
    with pytest.raises(McpError) as excinfo:
        await server.call_tool("bear_get_tags", {})
    assert excinfo.value.error.code == INVALID_PARAMS


@pytest.mark.anyio
async def test_environment_token_round_trip(monkeypatch):
    monkeypatch.setenv("BEAR_TOKEN", "env-token")
    monkeypatch.setenv("BEAR_CALLBACK_HOST", "127.0.0.1")
    opened = []

    async def fake_bear(url, settings):
        opened.append(url)
        params = dict(parse_qsl(urlsplit(url).query))
        async with httpx.AsyncClient(trust_env=False) as client:
            await client.get(params["x-success"], params={"tags": '[{"name": "work"}]'})
        return ""

    monkeypatch.setattr(dispatch, "open_url", fake_bear)
    content = await server.call_tool("bear_get_tags", {})

    assert urlsplit(opened[0]).path == "/tags"
    assert dict(parse_qsl(urlsplit(opened[0]).query))["token"] == "env-token"
    assert json.loads(content[0].text) == {
        "message": "Retrieved all tags from Bear",
        "tags": {"tags": [{"name": "work"}]},
    }
