"""Work out which drive physically holds an item."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .models import Item

SHARED_LINK_DRIVE_MARKER = "cid="


@dataclass(frozen=True)
class RemoteDrive:
    """Shared item whose canonical copy lives on another drive."""

    drive_id: str
    item_id: str
    is_remote = True


@dataclass(frozen=True)
class ExplicitDrive:
    drive_id: str
    item_id: str
    is_remote = True


@dataclass(frozen=True)
class SharedLinkDrive:
    """Drive id recovered from a personal OneDrive share link (``...?cid=<drive>``)."""

    drive_id: str
    item_id: str
    is_remote = True


@dataclass(frozen=True)
class OwnDrive:
    item_id: str
    drive_id = None
    is_remote = False


ItemLocation = Union[RemoteDrive, ExplicitDrive, SharedLinkDrive, OwnDrive]


def resolve(item: Item, own_drive_id: str | None = None) -> ItemLocation:
    # order matters: a shared item carries both remote_item and parent_reference
    remote = item.remote_item
    # a remote item without a drive id cannot be addressed on its own drive
    if remote is not None and remote.drive_id:
        return RemoteDrive(drive_id=remote.drive_id, item_id=remote.id)

    parent = item.parent_reference
    if parent is not None and parent.drive_id and parent.drive_id != own_drive_id:
        return ExplicitDrive(drive_id=parent.drive_id, item_id=item.id)

    web_url = item.web_url or ""
    if SHARED_LINK_DRIVE_MARKER in web_url:
        drive_id = web_url.split(SHARED_LINK_DRIVE_MARKER, 1)[1].split("&", 1)[0]
        return SharedLinkDrive(drive_id=drive_id, item_id=item.id)

    return OwnDrive(item_id=item.id)


def item_path(location: ItemLocation, suffix: str = "") -> str:
    """Relative command URL for a location, e.g. ``drives/{d}/items/{i}/content``."""
    if isinstance(location, OwnDrive):
        return f"drive/items/{location.item_id}{suffix}"
    return f"drives/{location.drive_id}/items/{location.item_id}{suffix}"
