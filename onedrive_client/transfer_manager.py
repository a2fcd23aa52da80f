from __future__ import annotations

import logging
import os

import requests

from http_utils.http_utils import is_auth, is_complete, is_more, is_success, sleep_before_attempt
from .common import _enc, ensure_valid_filename, stream_length
from .config import TransferConfig
from .dispatcher import decode_item
from .errors import InvalidResponse, TransferCancelled, Unauthorized
from .locator import item_path, resolve
from .models import CONFLICT_BEHAVIOR_KEY, CompletedItem, NameConflictBehavior, TransferProgress

logger = logging.getLogger(__name__)


class TransferManager:
    """Moves file content to and from the service.

    Large uploads go through an upload session in fragments, strictly in
    order; small ones are a single PUT. One instance can serve several
    threads: all per-transfer state lives in the call.
    """

    def __init__(self, dispatcher, sessions, profile, *,
                 config: TransferConfig | None = None, on_progress=None):
        config = config or TransferConfig()
        self.D = dispatcher
        self.S = dispatcher.S
        self.sessions = sessions
        self.profile = profile
        self.CHUNK = int(profile.chunk_size)
        self.ALIGN = profile.chunk_alignment
        self.MAX_SINGLE = int(profile.max_simple_upload_size)
        self.MAX_ATTEMPTS = int(config.max_attempts)
        self.BACKOFF = float(config.retry_backoff)
        self.MAX_WAIT = float(config.max_retry_wait)
        self.BLOCK = int(config.download_block_size)

        # progress hook
        self.on_progress = on_progress or (lambda progress: None)

    # ---------- helpers ----------
    def fragment_size(self, requested=None) -> int:
        size = self.CHUNK if requested is None else int(requested)
        if size <= 0:
            raise ValueError("Fragment size must be positive")
        if self.ALIGN and size % self.ALIGN:
            raise ValueError(f"Fragment size must be a multiple of {self.ALIGN} bytes for the {self.profile.name} API")
        return size

    @staticmethod
    def _check_cancel(cancel_event):
        if cancel_event is not None and cancel_event.is_set():
            raise TransferCancelled("Transfer cancelled")

    def _emit(self, hook, progress):
        try:
            hook(progress)
        except Exception:
            logger.exception("[transfer] progress hook failed")

    @staticmethod
    def _completed(resp):
        if not resp.text:
            raise InvalidResponse(resp.text, ValueError("empty body on a completed upload"))
        return decode_item(CompletedItem, resp.text)

    def _upload_session_put(self, url, chunk, start, total):
        hdr = self.D.auth_header()
        hdr.update({
            "Content-Type": "application/octet-stream",
            "Content-Length": str(len(chunk)),
            "Content-Range": f"bytes {start}-{start+len(chunk)-1}/{total}",
        })
        return self.S.put(url, headers=hdr, data=chunk, timeout=self.D.timeout)

    # ---------- resumable upload ----------
    def transfer(self, source, session, fragment_size=None, *, cancel_event=None, on_progress=None):
        """
        Drive `session` to completion with the bytes of `source`, starting at
        its current position.

        Returns the CompletedItem, or None once every attempt was rejected.
        A rejected fragment restarts the whole upload from the first byte.
        Raises Unauthorized on a 401 and TransferCancelled when
        `cancel_event` is set.
        """
        size = self.fragment_size(fragment_size)
        hook = on_progress or self.on_progress
        origin = source.tell()
        total = stream_length(source)
        if total == 0:
            raise ValueError("A resumable upload needs a non-empty source")

        attempt = 0
        resp = None
        while attempt < self.MAX_ATTEMPTS:
            attempt += 1
            if attempt > 1:
                self._check_cancel(cancel_event)
                if sleep_before_attempt(attempt - 1, self.BACKOFF, resp,
                                        max_delay=self.MAX_WAIT, cancel_event=cancel_event):
                    raise TransferCancelled("Transfer cancelled")
            self._check_cancel(cancel_event)

            source.seek(origin)
            sent = 0
            logger.debug("[transfer] attempt %s/%s, %s bytes in fragments of %s",
                         attempt, self.MAX_ATTEMPTS, total, size)

            while sent < total:
                self._check_cancel(cancel_event)
                want = min(size, total - sent)
                chunk = source.read(want)
                if len(chunk) != want:
                    raise OSError(f"Source ended after {sent + len(chunk)} of {total} bytes")

                try:
                    resp = self._upload_session_put(session.upload_url, chunk, sent, total)
                except requests.RequestException as e:
                    logger.warning("[transfer] fragment at %s failed: %s", sent, e)
                    resp = None
                    break

                code = resp.status_code
                if is_more(code):
                    sent += len(chunk)
                    self._emit(hook, TransferProgress(sent, total))
                    continue
                if is_complete(code):
                    sent += len(chunk)
                    self._emit(hook, TransferProgress(sent, total))
                    logger.info("[transfer] upload complete after %s attempt(s)", attempt)
                    return self._completed(resp)
                if is_auth(code):
                    raise Unauthorized(code, session.upload_url)

                logger.warning("[transfer] fragment bytes %s-%s rejected with %s; restarting upload",
                               sent, sent + len(chunk) - 1, code)
                break

        logger.warning("[transfer] giving up after %s attempts", self.MAX_ATTEMPTS)
        return None

    # ---------- simple upload ----------
    def _upload_small(self, source, url):
        hdr = self.D.auth_header()
        hdr["Content-Type"] = "application/octet-stream"
        r = self.S.put(self.profile.complete_url(url), headers=hdr, data=source.read(), timeout=self.D.timeout)
        if is_auth(r.status_code):
            raise Unauthorized(r.status_code, url)
        if not is_success(r.status_code):
            logger.warning("[upload] simple upload to %s failed with %s", url, r.status_code)
            return None
        return self._completed(r)

    def upload(self, source, name, folder, *, conflict_behavior=NameConflictBehavior.REPLACE,
               fragment_size=None, cancel_event=None, on_progress=None):
        """Store `source` as a new file `name` inside `folder`."""
        ensure_valid_filename(name)
        if stream_length(source) <= self.MAX_SINGLE:
            url = item_path(resolve(folder, self.sessions.own_drive_id), f":/{_enc(name)}:/content")
            behavior = NameConflictBehavior(conflict_behavior)
            if behavior is not NameConflictBehavior.REPLACE:
                url += f"?{CONFLICT_BEHAVIOR_KEY}={behavior.value}"
            return self._upload_small(source, url)

        session = self.sessions.create_session(name, folder, conflict_behavior)
        if session is None:
            return None
        return self.transfer(source, session, fragment_size, cancel_event=cancel_event, on_progress=on_progress)

    def update(self, source, item, *, fragment_size=None, cancel_event=None, on_progress=None):
        """Replace the content of an existing file."""
        if stream_length(source) <= self.MAX_SINGLE:
            url = item_path(resolve(item, self.sessions.own_drive_id), "/content")
            return self._upload_small(source, url)

        session = self.sessions.create_session(item)
        if session is None:
            return None
        return self.transfer(source, session, fragment_size, cancel_event=cancel_event, on_progress=on_progress)

    # ---------- downloads ----------
    def download(self, item):
        """Open a streamed response for the item content, or None if the service refused."""
        url = item_path(resolve(item, self.sessions.own_drive_id), "/content")
        r = self.D.send(None, "GET", url, stream=True)
        if not is_success(r.status_code):
            logger.warning("[download] %s returned %s", url, r.status_code)
            r.close()
            return None
        return r

    def download_to(self, item, save_as, *, cancel_event=None) -> bool:
        r = self.download(item)
        if r is None:
            return False
        tmp = f"{save_as}.part"
        try:
            with r, open(tmp, "wb") as f:
                for block in r.iter_content(chunk_size=self.BLOCK):
                    self._check_cancel(cancel_event)
                    f.write(block)
            os.replace(tmp, save_as)
        except BaseException:
            if os.path.exists(tmp):
                os.remove(tmp)
            raise
        logger.info("[download] saved %s", save_as)
        return True
