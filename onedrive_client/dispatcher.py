"""Single authenticated request / response round trips."""

from __future__ import annotations

import json
import logging

import requests

from http_utils.http_utils import bearer
from .errors import InvalidResponse, NoCredentials

logger = logging.getLogger(__name__)


def decode_item(model, text: str):
    """Decode a JSON body into ``model``; keeps the raw text on the result."""
    if not text:
        return None
    try:
        return model.from_json(json.loads(text), raw=text)
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise InvalidResponse(text, e) from e


class RequestDispatcher:
    def __init__(self, session: requests.Session, token_store, profile, timeout=(10, 300)):
        self.S = session
        self.tokens = token_store
        self.profile = profile
        self.timeout = timeout

    def auth_header(self) -> dict:
        tok = self.tokens.acquire_token()
        if tok is None:
            raise NoCredentials("No access token available; authorize interactively first")
        return bearer(tok.access_token)

    def send(self, body, method, url, expected_status=None, *,
             prefer_respond_async=False, stream=False):
        """
        Issue one request. With expected_status set, any other status returns
        None; without it the raw response is handed back to the caller.
        """
        url = self.profile.complete_url(url)
        headers = self.auth_header()
        data = None
        if body is not None and method.upper() != "GET":
            data = body if isinstance(body, str) else json.dumps(body)
            headers["Content-Type"] = "application/json"
        if prefer_respond_async:
            headers["Prefer"] = "respond-async"

        r = self.S.request(method, url, headers=headers, data=data,
                           timeout=self.timeout, stream=stream)
        logger.debug("[send] %s %s -> %s", method, url, r.status_code)
        if expected_status is not None and r.status_code != expected_status:
            logger.debug("[send] expected %s, got %s; returning None", expected_status, r.status_code)
            return None
        return r

    def send_item(self, model, body, method, url, expected_status=None):
        r = self.send(body, method, url, expected_status)
        if r is None:
            return None
        return decode_item(model, r.text)

    def send_bool(self, body, method, url, expected_status, *, prefer_respond_async=False) -> bool:
        return self.send(body, method, url, expected_status,
                         prefer_respond_async=prefer_respond_async) is not None
