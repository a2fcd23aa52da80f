from __future__ import annotations

import os

from http_utils.http_utils import new_session
from .config import ClientConfig, GRAPH, TransferConfig
from .dispatcher import RequestDispatcher
from .drive_client import DriveClient
from .token_cache import TokenCache
from .token_store import ClientCredentialsTokenStore, TokenStore
from .transfer_manager import TransferManager
from .upload_session import UploadSessionManager


class OneDriveClient:
    def __init__(
        self, *,
        client_id, client_secret=None, refresh_token=None,
        profile=GRAPH, timeout=(10, 300), transfer_config=None,
        own_drive_id=None, session=None, token_store=None,
        on_progress=None, on_token_changed=None,
    ):
        self.S = session or new_session()
        self.profile = profile
        self.TIMEOUT = timeout

        self.tokens = token_store or TokenStore(
            client_id, client_secret,
            profile=profile, session=self.S, timeout=timeout,
            refresh_token=refresh_token, on_token_changed=on_token_changed,
        )
        self.dispatcher = RequestDispatcher(self.S, self.tokens, profile, timeout)
        self.drive    = DriveClient(self.dispatcher, own_drive_id)
        self.sessions = UploadSessionManager(self.dispatcher, profile, own_drive_id)
        self.xfer     = TransferManager(
            self.dispatcher, self.sessions, profile,
            config=transfer_config or TransferConfig(),
            on_progress=on_progress,
        )

    #Authentication passthrough
    def acquire_token(self, *a, **k):             return self.tokens.acquire_token(*a, **k)
    def get_authentication_uri(self, *a, **k):    return self.tokens.get_authentication_uri(*a, **k)
    def get_sign_out_uri(self, *a, **k):          return self.tokens.get_sign_out_uri(*a, **k)
    def authorization_code_from_url(self, *a, **k): return self.tokens.authorization_code_from_url(*a, **k)
    def authenticate_using_refresh_token(self, *a, **k): return self.tokens.authenticate_using_refresh_token(*a, **k)

    #Drive lookups passthrough
    def get_drive(self, *a, **k):             return self.drive.get_drive(*a, **k)
    def get_item(self, *a, **k):              return self.drive.get_item(*a, **k)
    def get_item_by_id(self, *a, **k):        return self.drive.get_item_by_id(*a, **k)
    def get_item_in_folder(self, *a, **k):    return self.drive.get_item_in_folder(*a, **k)
    def create_folder(self, *a, **k):         return self.drive.create_folder(*a, **k)
    def get_folder_or_create(self, *a, **k):  return self.drive.get_folder_or_create(*a, **k)

    #Sessions passthrough
    def create_upload_session(self, *a, **k):            return self.sessions.create_session(*a, **k)
    def create_app_folder_upload_session(self, *a, **k): return self.sessions.create_app_folder_session(*a, **k)

    #transfer passthrough
    def transfer(self, *a, **k):     return self.xfer.transfer(*a, **k)
    def upload(self, *a, **k):       return self.xfer.upload(*a, **k)
    def update(self, *a, **k):       return self.xfer.update(*a, **k)
    def download(self, *a, **k):     return self.xfer.download(*a, **k)
    def download_to(self, *a, **k):  return self.xfer.download_to(*a, **k)

    def upload_file(self, local_path, folder, name=None, **k):
        """Upload a local file into `folder`, under its own name unless `name` is given."""
        with open(local_path, "rb") as f:
            return self.xfer.upload(f, name or os.path.basename(local_path), folder, **k)


def client_from_config(config: ClientConfig, *, persist_tokens: bool = True, **k) -> OneDriveClient:
    """
    Build a client from configuration. With a tenant id and a secret the
    client uses app-only tokens; otherwise delegated tokens, seeded from the
    configured or previously cached refresh token.
    """
    session = k.pop("session", None) or new_session()
    if config.tenant_id and config.client_secret:
        k.setdefault("token_store", ClientCredentialsTokenStore(
            config.client_id, config.client_secret, config.tenant_id))

    refresh_token = config.refresh_token
    on_token_changed = None
    if persist_tokens and "token_store" not in k:
        cache = TokenCache(config.client_id, config.state_dir)
        refresh_token = refresh_token or cache.load()
        on_token_changed = cache.save

    return OneDriveClient(
        client_id=config.client_id,
        client_secret=config.client_secret,
        refresh_token=refresh_token,
        profile=config.backend,
        timeout=config.timeout,
        transfer_config=config.transfer,
        session=session,
        on_token_changed=on_token_changed,
        **k,
    )
