import httpx
import pytest
from pydantic import ValidationError

from bizfinder_app.api_client import BackendClient
from bizfinder_app.config import Settings
from bizfinder_app.errors import ApiError


def test_client_settings_require_backend(monkeypatch):
    monkeypatch.delenv("BACKEND_URL", raising=False)
    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_client_backend_url_strips_slash(monkeypatch):
    monkeypatch.setenv("BACKEND_URL", "http://10.0.2.2:8000/")
    assert Settings(_env_file=None).backend_url == "http://10.0.2.2:8000"


@pytest.mark.asyncio
@pytest.mark.parametrize("status, body, message", [
    (400, {"detail": "Invalid amount for plan"}, "Invalid amount for plan"),
    (502, {"error": "MoMo unreachable"}, "MoMo unreachable"),
    (500, None, "HTTP error! status: 500"),
])
async def test_backend_errors_carry_message(status, body, message):
    def handler(request):
        if body is None:
            return httpx.Response(status, text="boom")
        return httpx.Response(status, json=body)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://backend.test")
    async with BackendClient("http://backend.test", http=http) as client:
        with pytest.raises(ApiError) as exc:
            await client.list_plans()

    assert str(exc.value) == message
    assert exc.value.status_code == status


@pytest.mark.asyncio
async def test_backend_unreachable():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://backend.test")
    async with BackendClient("http://backend.test", http=http) as client:
        with pytest.raises(ApiError, match="Backend unreachable"):
            await client.health()
