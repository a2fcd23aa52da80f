from __future__ import annotations

import logging
from urllib.parse import quote

from .common import _enc, ensure_valid_filename
from .errors import InvalidResponse
from .locator import item_path, resolve
from .models import CONFLICT_BEHAVIOR_KEY, Item, NameConflictBehavior

logger = logging.getLogger(__name__)


def _root_path(path: str) -> str:
    path = path.replace("\\", "/").strip("/")
    return "drive/root" if not path else f"drive/root:/{quote(path, safe='/')}"


class DriveClient:
    """Item lookups the upload and download paths need to find their targets."""

    def __init__(self, dispatcher, own_drive_id=None):
        self.D = dispatcher
        self.own_drive_id = own_drive_id

    def get_drive(self) -> dict | None:
        r = self.D.send(None, "GET", "drive", expected_status=200)
        if r is None:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise InvalidResponse(r.text, e) from e

    def get_item(self, path: str) -> Item | None:
        return self.D.send_item(Item, None, "GET", _root_path(path), expected_status=200)

    def get_item_by_id(self, item_id: str, drive_id: str | None = None) -> Item | None:
        url = f"drives/{drive_id}/items/{item_id}" if drive_id else f"drive/items/{item_id}"
        return self.D.send_item(Item, None, "GET", url, expected_status=200)

    def get_item_in_folder(self, folder: Item, name: str) -> Item | None:
        loc = resolve(folder, self.own_drive_id)
        return self.D.send_item(Item, None, "GET", item_path(loc, f":/{_enc(name)}"), expected_status=200)

    def create_folder(self, parent: Item, name: str) -> Item | None:
        ensure_valid_filename(name)
        body = {"name": name, "folder": {}, CONFLICT_BEHAVIOR_KEY: NameConflictBehavior.FAIL.value}
        loc = resolve(parent, self.own_drive_id)
        return self.D.send_item(Item, body, "POST", item_path(loc, "/children"), expected_status=201)

    def get_folder_or_create(self, path: str) -> Item | None:
        """Walk `path` from the drive root, creating each missing folder."""
        parent = self.get_item("")
        if parent is None:
            return None
        walked = []
        for part in [p for p in path.replace("\\", "/").split("/") if p]:
            walked.append(part)
            found = self.get_item("/".join(walked))
            if found is not None:
                if not found.is_folder:
                    raise RuntimeError(f"Path collision: a file named '{part}' exists at '/{'/'.join(walked)}'.")
                parent = found
                continue
            parent = self.create_folder(parent, part)
            if parent is None:
                # lost a race with another creator
                parent = self.get_item("/".join(walked))
                if parent is None:
                    return None
            logger.info("[get_folder_or_create] created folder /%s", "/".join(walked))
        return parent
