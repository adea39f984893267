from __future__ import annotations

import httpx
import pytest
from bson import ObjectId

from client import ApiError, LifeTrackClient
from details import AppointmentDetails, HydrationDetails
from main import create_app

from .fakes import FakeDatabase, FakeMailer


@pytest.fixture()
async def api(app):
    async with LifeTrackClient("http://test/api", transport=httpx.ASGITransport(app=app)) as c:
        yield c


def _recording_transport(calls: list, response: httpx.Response | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return response or httpx.Response(200, json={})

    return httpx.MockTransport(handler)


async def test_full_session(api: LifeTrackClient, mailer: FakeMailer):
    reg = await api.register("Sunil", "sunil@example.com", "pa55word", "wife@example.com")
    session = await api.login("sunil@example.com", "pa55word")
    assert session["userId"] == reg["userId"]
    assert session["name"] == "Sunil"

    task = await api.create_task(session["userId"], "Metformin", "medicine", time="09:00", notes="500mg")
    assert task["category"] == "medicine"

    done = await api.complete_task(task["id"])
    assert done["task"]["isCompleted"] is True
    assert [e.to for e in mailer.sent] == ["wife@example.com"]

    await api.delete_task(task["id"])
    assert await api.list_tasks(session["userId"]) == []


async def test_create_task_from_details(api: LifeTrackClient):
    user_id = str(ObjectId())

    glass = await api.create_task(user_id, details=HydrationDetails(), is_completed=True)
    visit = await api.create_task(
        user_id,
        "Cardiology follow-up",
        details=AppointmentDetails(doctor="Dr. Perera", location="Asiri", notes="Bring reports"),
    )

    assert glass["title"] == "Glass of Water"
    assert glass["category"] == "hydration"
    assert glass["isCompleted"] is True
    assert visit["title"] == "Cardiology follow-up"
    assert visit["notes"] == "Doctor: Dr. Perera | Location: Asiri | Notes: Bring reports"


async def test_server_error_field_becomes_message(api: LifeTrackClient):
    await api.register("Sunil", "sunil@example.com", "pa55word", "wife@example.com")

    with pytest.raises(ApiError) as exc:
        await api.register("Sunil", "sunil@example.com", "pa55word", "wife@example.com")

    assert exc.value.message == "Email is already registered"
    assert exc.value.status_code == 400


async def test_server_message_field_becomes_message(api: LifeTrackClient):
    with pytest.raises(ApiError) as exc:
        await api.login("ghost@example.com", "whatever")

    assert exc.value.message == "Invalid email or password"
    assert exc.value.status_code == 401


async def test_list_failure_is_an_error_not_empty(settings):
    app = create_app(settings, db=FakeDatabase(fail=True), mailer=FakeMailer())
    async with LifeTrackClient("http://test/api", transport=httpx.ASGITransport(app=app)) as api:
        with pytest.raises(ApiError) as exc:
            await api.list_tasks(str(ObjectId()))

    assert exc.value.status_code == 500
    assert exc.value.message == "store down"


async def test_register_is_validated_before_sending():
    calls: list = []
    async with LifeTrackClient("http://test/api", transport=_recording_transport(calls)) as api:
        with pytest.raises(ApiError, match="at least 6"):
            await api.register("Sunil", "sunil@example.com", "12345", "wife@example.com")
        with pytest.raises(ApiError, match="Invalid email format"):
            await api.register("Sunil", "sunil-at-example", "123456", "wife@example.com")
        with pytest.raises(ApiError, match="required"):
            await api.login("", "123456")

    assert calls == []


async def test_fallback_message_when_body_is_not_json():
    calls: list = []
    transport = _recording_transport(calls, httpx.Response(502, text="Bad Gateway"))
    async with LifeTrackClient("http://test/api", transport=transport) as api:
        with pytest.raises(ApiError) as exc:
            await api.delete_task("abc")

    assert exc.value.message == "Failed to delete task"
    assert exc.value.status_code == 502
    assert calls[0].url.path == "/api/tasks/abc"


async def test_transport_error_uses_fallback():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with LifeTrackClient("http://test/api", transport=httpx.MockTransport(handler)) as api:
        with pytest.raises(ApiError) as exc:
            await api.list_tasks("abc")

    assert exc.value.message == "Failed to fetch tasks"
    assert exc.value.status_code is None
