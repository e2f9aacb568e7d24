import pytest
from aiohttp import web
from aiohttp import test_utils

from livesync.client.errors import TransportError
from livesync.client.rest import DashboardRestClient


async def start_server(handler):
    app = web.Application()
    app.router.add_get("/api/dashboard", handler)
    server = test_utils.TestServer(app)
    await server.start_server()
    return server


@pytest.mark.asyncio
async def test_get_dashboard_parses_snapshot(make_snapshot):
    async def handler(request):
        return web.json_response(
            {
                "success": True,
                "data": make_snapshot(12).to_wire(),
                "timestamp": "2025-01-26T12:00:00.000000Z",
            }
        )

    server = await start_server(handler)
    client = DashboardRestClient(str(server.make_url("")))
    try:
        snapshot = await client.get_dashboard()
    finally:
        await client.close()
        await server.close()

    assert snapshot.total_events == 12
    assert snapshot.bar_chart_data[0].category == "Category A"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, body",
    [
        (500, {"success": False, "error": "Failed to fetch dashboard data"}),
        (200, {"success": False, "error": "maintenance"}),
        (200, {"unexpected": "shape"}),
    ],
)
async def test_failures_raise_transport_error(status, body):
    async def handler(request):
        return web.json_response(body, status=status)

    server = await start_server(handler)
    client = DashboardRestClient(str(server.make_url("")))
    try:
        with pytest.raises(TransportError):
            await client.get_dashboard()
    finally:
        await client.close()
        await server.close()


@pytest.mark.asyncio
async def test_unreachable_server_raises_transport_error():
    client = DashboardRestClient("http://127.0.0.1:9", timeout_seconds=2)
    try:
        with pytest.raises(TransportError):
            await client.get_dashboard()
    finally:
        await client.close()
