from __future__ import annotations

import logging

from .common import _enc, ensure_valid_filename
from .locator import resolve, item_path
from .dispatcher import RequestDispatcher
from .models import CONFLICT_BEHAVIOR_KEY, Item, NameConflictBehavior, UploadSession

logger = logging.getLogger(__name__)


class UploadSessionManager:
    """Opens resumable upload sessions.

    A ``None`` result means the service refused the session; the caller may
    simply try again, nothing has been transferred yet.
    """

    def __init__(self, dispatcher: RequestDispatcher, profile, own_drive_id=None):
        self.D = dispatcher
        self.profile = profile
        self.own_drive_id = own_drive_id

    def session_url(self, target, destination: Item | None = None) -> str:
        if isinstance(target, Item):
            # overwrite: address the existing item
            loc = resolve(target, self.own_drive_id)
            return item_path(loc, self.profile.session_suffix)
        if destination is None:
            raise ValueError("A destination folder is required when uploading a new file by name")
        name = ensure_valid_filename(target)
        loc = resolve(destination, self.own_drive_id)
        return item_path(loc, f":/{_enc(name)}:{self.profile.session_suffix}")

    def app_folder_session_url(self, name: str) -> str:
        ensure_valid_filename(name)
        return f"drive/special/approot:/{_enc(name)}:{self.profile.session_suffix}"

    def create_session(self, target, destination: Item | None = None,
                       conflict_behavior=NameConflictBehavior.REPLACE):
        """
        target: an Item to overwrite, or the filename of a new item placed
        under `destination`.
        """
        url = self.session_url(target, destination)
        item = {CONFLICT_BEHAVIOR_KEY: NameConflictBehavior(conflict_behavior).value}
        if not isinstance(target, Item):
            item["name"] = target
        return self._open(url, item)

    def create_app_folder_session(self, name: str, conflict_behavior=NameConflictBehavior.REPLACE):
        item = {CONFLICT_BEHAVIOR_KEY: NameConflictBehavior(conflict_behavior).value, "name": name}
        return self._open(self.app_folder_session_url(name), item)

    def _open(self, url, item):
        s = self.D.send_item(UploadSession, {"item": item}, "POST", url, expected_status=200)
        if s is None:
            logger.warning("[create_session] service refused an upload session for %s", url)
        else:
            logger.info("[create_session] upload session opened for %s", url)
        return s
