import json
from unittest.mock import MagicMock

import pytest

from onedrive_client.config import GRAPH, LEGACY
from onedrive_client.dispatcher import RequestDispatcher
from onedrive_client.models import AccessToken, Item, ParentReference, RemoteItem, UploadSession
from onedrive_client.upload_session import UploadSessionManager

SESSION_BODY = {
    "uploadUrl": "https://upload.example.com/s/1",
    "expirationDateTime": "2026-10-17T10:00:00Z",
    "nextExpectedRanges": ["0-"],
}


def _resp(status, body=None):
    r = MagicMock()
    r.status_code = status
    r.text = json.dumps(body) if body is not None else ""
    return r


def _make(profile=GRAPH, own_drive_id=None):
    session = MagicMock()
    tokens = MagicMock()
    tokens.acquire_token.return_value = AccessToken("tok", 3600)
    mgr = UploadSessionManager(RequestDispatcher(session, tokens, profile), profile, own_drive_id)
    return mgr, session


def _posted(session):
    call = session.request.call_args
    return call.args[0], call.args[1], json.loads(call.kwargs["data"])


FOLDER = Item(id="F1", name="docs", is_folder=True)


def test_new_file_session_on_graph():
    mgr, session = _make()
    session.request.return_value = _resp(200, SESSION_BODY)

    s = mgr.create_session("report.pdf", FOLDER)

    assert isinstance(s, UploadSession)
    assert s.upload_url == "https://upload.example.com/s/1"
    assert s.next_expected_ranges == ("0-",)
    method, url, body = _posted(session)
    assert method == "POST"
    assert url == "https://graph.microsoft.com/v1.0/me/drive/items/F1:/report.pdf:/createUploadSession"
    assert body == {"item": {"@microsoft.graph.conflictBehavior": "replace", "name": "report.pdf"}}


def test_new_file_session_on_legacy_uses_legacy_suffix():
    mgr, session = _make(profile=LEGACY)
    session.request.return_value = _resp(200, SESSION_BODY)

    mgr.create_session("report.pdf", FOLDER)

    _, url, _ = _posted(session)
    assert url == "https://api.onedrive.com/v1.0/drive/items/F1:/report.pdf:/upload.createSession"


def test_overwrite_of_shared_item_targets_its_own_drive():
    mgr, session = _make()
    session.request.return_value = _resp(200, SESSION_BODY)
    shared = Item(
        id="local-id",
        name="shared.xlsx",
        remote_item=RemoteItem(id="R1", parent_reference=ParentReference(drive_id="D2")),
    )

    mgr.create_session(shared)

    _, url, body = _posted(session)
    assert url == "https://graph.microsoft.com/v1.0/drives/D2/items/R1/createUploadSession"
    assert body == {"item": {"@microsoft.graph.conflictBehavior": "replace"}}


def test_conflict_behavior_is_sent():
    mgr, session = _make()
    session.request.return_value = _resp(200, SESSION_BODY)

    mgr.create_session("a.txt", FOLDER, conflict_behavior="rename")

    assert _posted(session)[2]["item"]["@microsoft.graph.conflictBehavior"] == "rename"


def test_name_is_percent_encoded_in_url():
    mgr, session = _make()
    session.request.return_value = _resp(200, SESSION_BODY)

    mgr.create_session("my report.pdf", FOLDER)

    _, url, body = _posted(session)
    assert ":/my%20report.pdf:/" in url
    assert body["item"]["name"] == "my report.pdf"


def test_refused_session_is_none():
    mgr, session = _make()
    session.request.return_value = _resp(507, {"error": {"code": "quotaLimitReached"}})

    assert mgr.create_session("a.txt", FOLDER) is None


@pytest.mark.parametrize("name", ["", "a/b", "what?.txt", 'quote".txt', "pipe|.txt"])
def test_invalid_filename_raises_before_request(name):
    mgr, session = _make()

    with pytest.raises(ValueError):
        mgr.create_session(name, FOLDER)
    session.request.assert_not_called()


def test_new_file_without_destination_raises():
    mgr, _ = _make()
    with pytest.raises(ValueError, match="destination"):
        mgr.create_session("a.txt")


def test_app_folder_session():
    mgr, session = _make()
    session.request.return_value = _resp(200, SESSION_BODY)

    s = mgr.create_app_folder_session("backup.zip")

    assert s is not None
    _, url, body = _posted(session)
    assert url == "https://graph.microsoft.com/v1.0/me/drive/special/approot:/backup.zip:/createUploadSession"
    assert body["item"]["name"] == "backup.zip"
