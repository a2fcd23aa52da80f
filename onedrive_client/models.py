"""Entities exchanged with the OneDrive / Graph API."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Graph API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_SIZE = "size"
FIELD_WEB_URL = "webUrl"
FIELD_FOLDER = "folder"
FIELD_FILE = "file"
FIELD_DRIVE_ID = "driveId"
FIELD_PATH = "path"
FIELD_PARENT_REFERENCE = "parentReference"
FIELD_REMOTE_ITEM = "remoteItem"
FIELD_UPLOAD_URL = "uploadUrl"
FIELD_EXPIRATION = "expirationDateTime"
FIELD_NEXT_RANGES = "nextExpectedRanges"

CONFLICT_BEHAVIOR_KEY = "@microsoft.graph.conflictBehavior"


class NameConflictBehavior(str, Enum):
    FAIL = "fail"
    REPLACE = "replace"
    RENAME = "rename"


@dataclass(frozen=True)
class AccessToken:
    """Token payload returned by the token endpoint.

    ``expires_at`` is an absolute epoch timestamp computed when the payload
    was received; a refresh always produces a new instance.
    """

    access_token: str
    expires_in: int
    refresh_token: str | None = None
    token_type: str = "Bearer"
    scope: str | None = None
    issued_at: float = field(default_factory=time.time)

    @property
    def expires_at(self) -> float:
        return self.issued_at + self.expires_in

    def is_valid(self, now: float | None = None) -> bool:
        return self.expires_at > (time.time() if now is None else now)

    @classmethod
    def from_json(cls, data: dict[str, Any], issued_at: float | None = None) -> AccessToken:
        return cls(
            access_token=data["access_token"],
            expires_in=int(data.get("expires_in", 0)),
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type", "Bearer"),
            scope=data.get("scope"),
            issued_at=time.time() if issued_at is None else issued_at,
        )


@dataclass(frozen=True)
class ParentReference:
    id: str | None = None
    drive_id: str | None = None
    path: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> ParentReference | None:
        if not data:
            return None
        return cls(
            id=data.get(FIELD_ID),
            drive_id=data.get(FIELD_DRIVE_ID),
            path=data.get(FIELD_PATH),
        )


@dataclass(frozen=True)
class RemoteItem:
    """Pointer to the canonical copy of a shared item living on another drive."""

    id: str
    parent_reference: ParentReference | None = None

    @property
    def drive_id(self) -> str | None:
        return self.parent_reference.drive_id if self.parent_reference else None

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> RemoteItem | None:
        if not data:
            return None
        return cls(
            id=data[FIELD_ID],
            parent_reference=ParentReference.from_json(data.get(FIELD_PARENT_REFERENCE)),
        )


@dataclass(frozen=True)
class Item:
    """A drive item (file or folder).

    ``raw`` keeps the JSON text the item was decoded from, when there was one.
    """

    id: str
    name: str | None = None
    size: int | None = None
    parent_reference: ParentReference | None = None
    remote_item: RemoteItem | None = None
    web_url: str | None = None
    is_folder: bool = False
    is_file: bool = False
    raw: str | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: dict[str, Any], raw: str | None = None):
        return cls(
            id=data[FIELD_ID],
            name=data.get(FIELD_NAME),
            size=data.get(FIELD_SIZE),
            parent_reference=ParentReference.from_json(data.get(FIELD_PARENT_REFERENCE)),
            remote_item=RemoteItem.from_json(data.get(FIELD_REMOTE_ITEM)),
            web_url=data.get(FIELD_WEB_URL),
            is_folder=FIELD_FOLDER in data,
            is_file=FIELD_FILE in data,
            raw=raw,
        )


@dataclass(frozen=True)
class CompletedItem(Item):
    """The item the service stored once the last fragment was accepted."""


@dataclass(frozen=True)
class UploadSession:
    upload_url: str
    expiration_date_time: str | None = None
    next_expected_ranges: tuple[str, ...] = ()
    raw: str | None = field(default=None, repr=False, compare=False)

    @classmethod
    def from_json(cls, data: dict[str, Any], raw: str | None = None) -> UploadSession:
        return cls(
            upload_url=data[FIELD_UPLOAD_URL],
            expiration_date_time=data.get(FIELD_EXPIRATION),
            next_expected_ranges=tuple(data.get(FIELD_NEXT_RANGES) or ()),
            raw=raw,
        )


@dataclass(frozen=True)
class TransferProgress:
    bytes_sent: int
    total_bytes: int

    @property
    def percentage(self) -> float:
        if not self.total_bytes:
            return 100.0
        return self.bytes_sent * 100.0 / self.total_bytes
