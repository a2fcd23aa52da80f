"""Access-token lifecycle: cache, refresh, authorization-code exchange."""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Callable
from urllib.parse import parse_qs, urlencode

import msal
import requests

from .config import BackendProfile, GRAPH
from .errors import TokenRetrievalFailed
from .models import AccessToken

logger = logging.getLogger(__name__)


class TokenStore:
    """Holds the single current access token of a client.

    ``acquire_token`` is safe to call from several threads. Reading a valid
    token takes no lock; refreshes and code exchanges are serialized so
    concurrent callers holding an expired token share one refresh.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str | None = None,
        *,
        profile: BackendProfile = GRAPH,
        session: requests.Session | None = None,
        timeout=(10, 300),
        refresh_token: str | None = None,
        redirect_url: str | None = None,
        on_token_changed: Callable[[AccessToken], None] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.profile = profile
        self.redirect_url = redirect_url or profile.redirect_url
        self.S = session or requests.Session()
        self.timeout = timeout
        self.on_token_changed = on_token_changed
        self._clock = clock
        self._lock = threading.Lock()
        self._token: AccessToken | None = None
        self._refresh_token = refresh_token
        self._authorization_code: str | None = None

    @property
    def token(self) -> AccessToken | None:
        return self._token

    @property
    def authorization_code(self) -> str | None:
        return self._authorization_code

    def _cached(self) -> AccessToken | None:
        tok = self._token
        if tok is not None and tok.expires_at > self._clock():
            return tok
        return None

    def acquire_token(self) -> AccessToken | None:
        """Return a usable access token.

        Returns:
            The cached token while it has not expired, otherwise a token from
            a refresh or authorization-code exchange. ``None`` when there is
            nothing to exchange and the user has to authorize interactively.

        Raises:
            TokenRetrievalFailed: The token endpoint rejected the exchange.
        """
        tok = self._cached()
        if tok is not None:
            return tok

        with self._lock:
            # another thread may have refreshed while we waited
            tok = self._cached()
            if tok is not None:
                return tok

            refresh_token = (self._token.refresh_token if self._token else None) or self._refresh_token
            if refresh_token:
                logger.info("[acquire_token] access token expired or missing; refreshing")
                return self._exchange({"grant_type": "refresh_token", "refresh_token": refresh_token})

            if self._authorization_code:
                logger.info("[acquire_token] exchanging authorization code for an access token")
                tok = self._exchange({"grant_type": "authorization_code", "code": self._authorization_code})
                self._authorization_code = None
                return tok

        logger.debug("[acquire_token] no credentials available; interactive authorization required")
        return None

    def authenticate_using_refresh_token(self, refresh_token: str) -> AccessToken:
        with self._lock:
            self._refresh_token = refresh_token
            return self._exchange({"grant_type": "refresh_token", "refresh_token": refresh_token})

    def set_authorization_code(self, code: str) -> None:
        self._authorization_code = code

    def invalidate(self) -> None:
        """Drop the cached access token; the next call refreshes."""
        with self._lock:
            if self._token is not None:
                self._refresh_token = self._token.refresh_token or self._refresh_token
            self._token = None

    # ---------- interactive sign-in helpers ----------
    def get_authentication_uri(self) -> str:
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_url,
            "scope": " ".join(self.profile.scopes),
        }
        if self.profile is GRAPH:
            params["response_mode"] = "query"
        return f"{self.profile.authorize_url}?{urlencode(params)}"

    def get_sign_out_uri(self) -> str:
        return f"{self.profile.sign_out_url}?{urlencode({'client_id': self.client_id})}"

    def authorization_code_from_url(self, url: str | None) -> str | None:
        """Pick the ``code`` out of the URL the sign-in page redirected to.

        Also remembers it for the next ``acquire_token`` call.
        """
        if not url:
            return None
        base = self.redirect_url
        if url.startswith(f"{base}/?"):
            query = url[len(base) + 2:]
        elif url.startswith(f"{base}?"):
            query = url[len(base) + 1:]
        else:
            return None
        code = (parse_qs(query).get("code") or [None])[0]
        self._authorization_code = code
        return code

    # ---------- token endpoint ----------
    def _exchange(self, grant: dict) -> AccessToken:
        form = {"client_id": self.client_id, **grant, "redirect_uri": self.redirect_url}
        if self.client_secret:
            form["client_secret"] = self.client_secret
        if self.profile.scope_in_token_request and self.profile.scopes:
            form["scope"] = " ".join(self.profile.scopes)

        r = self.S.post(
            self.profile.token_url,
            data=form,
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=self.timeout,
        )
        issued_at = self._clock()

        if not 200 <= r.status_code < 300:
            try:
                err = json.loads(r.text)
                description, error = err.get("error_description"), err.get("error")
            except (ValueError, AttributeError) as exc:
                logger.error("[_exchange] token endpoint returned %s with an unreadable body", r.status_code)
                raise TokenRetrievalFailed() from exc
            logger.error("[_exchange] token endpoint rejected %s; error:%s", grant["grant_type"], error)
            raise TokenRetrievalFailed(description, error=error)

        try:
            tok = AccessToken.from_json(json.loads(r.text), issued_at=issued_at)
        except (ValueError, KeyError, TypeError) as exc:
            raise TokenRetrievalFailed("Token endpoint returned an unreadable token payload") from exc

        self._token = tok
        if tok.refresh_token:
            self._refresh_token = tok.refresh_token
        logger.info("[_exchange] access token obtained; expires in %ss", tok.expires_in)
        if self.on_token_changed:
            try:
                self.on_token_changed(tok)
            except Exception:
                logger.exception("[_exchange] on_token_changed callback failed")
        return tok


class ClientCredentialsTokenStore:
    """App-only tokens for daemons, obtained through MSAL.

    Same ``acquire_token`` contract as TokenStore; there is no refresh token,
    an expired token is simply requested again.
    """

    AUTHORITY_BASE_URL = "https://login.microsoftonline.com"
    SCOPES = ["https://graph.microsoft.com/.default"]

    def __init__(self, client_id: str, client_secret: str, tenant_id: str, *,
                 clock: Callable[[], float] = time.time) -> None:
        self._app = msal.ConfidentialClientApplication(
            client_id,
            authority=f"{self.AUTHORITY_BASE_URL}/{tenant_id}",
            client_credential=client_secret,
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._token: AccessToken | None = None

    def acquire_token(self) -> AccessToken:
        tok = self._token
        if tok is not None and tok.expires_at > self._clock():
            return tok
        with self._lock:
            tok = self._token
            if tok is not None and tok.expires_at > self._clock():
                return tok
            r = self._app.acquire_token_for_client(scopes=self.SCOPES) or {}
            if "access_token" not in r:
                error = r.get("error", "unknown_error")
                logger.error("[acquire_token] MSAL token acquisition failed; error:%s", error)
                raise TokenRetrievalFailed(r.get("error_description"), error=error)
            self._token = AccessToken.from_json(r, issued_at=self._clock())
            return self._token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
