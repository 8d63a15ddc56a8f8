"""End-to-end tests for app.py: session, storage credential and file service wired together."""
import asyncio

import httpx
import pytest

from gdrive_appdata.app import AppData
from gdrive_appdata.errors import NotSignedInError
from gdrive_appdata.models.auth import SessionState


def _drive(seen):
    def handler(request):
        seen.append(request)
        url = str(request.url)
        if "openid-configuration" in url:
            return httpx.Response(200, json={"revocation_endpoint": "https://idp.example.test/revoke"})
        if "discovery" in url:
            return httpx.Response(200, json={"rootUrl": "https://drive.example.test/"})
        return httpx.Response(200, json={"files": [{"id": "1", "name": "a.txt"}]})

    return handler


def test_sign_in_then_list_uses_session_token(fake_settings, make_identity):
    seen = []
    identity = make_identity([{"access_token": "T1", "expires_in": 3600}])
    http = httpx.AsyncClient(transport=httpx.MockTransport(_drive(seen)))

    async def scenario():
        async with AppData(fake_settings, identity=identity, http=http) as gd:
            await gd.sign_in()
            files = await gd.files.list_files()
            return gd, files

    gd, files = asyncio.run(scenario())
    assert [f.name for f in files] == ["a.txt"]
    api_call = seen[-1]
    assert str(api_call.url).startswith("https://drive.example.test/drive/v3/files")
    assert api_call.headers["Authorization"] == "Bearer T1"
    assert gd.session.scheduler.armed is False  # closed on exit


def test_sign_out_clears_storage_credential(fake_settings, make_identity):
    identity = make_identity([{"access_token": "T1"}])
    http = httpx.AsyncClient(transport=httpx.MockTransport(_drive([])))

    async def scenario():
        async with AppData(fake_settings, identity=identity, http=http) as gd:
            await gd.sign_in()
            assert gd.client.has_credential
            gd.session.sign_out()
            assert gd.session.state == SessionState.SIGNED_OUT
            with pytest.raises(NotSignedInError):
                await gd.files.list_files()

    asyncio.run(scenario())
    assert identity.revoked == ["T1"]


def test_settings_flow_into_components(fake_settings, make_identity):
    gd = AppData(fake_settings, identity=make_identity(), http=httpx.AsyncClient())
    assert gd.gate._timeout == fake_settings.token_timeout
    assert gd.credentials.get().signed_in is False
