import httpx
import pytest

from scoutserver import netinfo


@pytest.fixture
def ipify(monkeypatch):
    """Route the ipify lookup through a mock transport; the test sets `handler`."""
    state = {}
    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(lambda req: state["handler"](req)), **kwargs)

    monkeypatch.setattr(netinfo.httpx, "AsyncClient", client_factory)
    return state


@pytest.mark.asyncio
async def test_public_ip(ipify):
    ipify["handler"] = lambda req: httpx.Response(200, json={"ip": "203.0.113.7"})
    assert await netinfo.get_public_ip() == "203.0.113.7"


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(503),
    httpx.Response(200, text="not json"),
    httpx.Response(200, json=["203.0.113.7"]),
])
async def test_public_ip_degrades_to_none(ipify, response):
    ipify["handler"] = lambda req: response
    assert await netinfo.get_public_ip() is None


@pytest.mark.asyncio
async def test_public_ip_offline(ipify):
    def offline(req):
        raise httpx.ConnectError("no route", request=req)

    ipify["handler"] = offline
    assert await netinfo.get_public_ip() is None


def test_local_ip_falls_back(monkeypatch):
    class NoNetwork:
        def __init__(self, *args):
            pass

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def connect(self, addr):
            raise OSError("Network is unreachable")

    monkeypatch.setattr(netinfo.socket, "socket", NoNetwork)
    assert netinfo.get_local_ip() == "localhost"


def test_banner():
    banner = netinfo.startup_banner(3000, "192.168.1.20", None)
    assert "http://192.168.1.20:3000" in banner
    assert "Public IP" not in banner
    assert "Public IP: http://203.0.113.7:3000" in netinfo.startup_banner(3000, "10.0.0.2", "203.0.113.7")
