"""Backend profiles and client configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

GRAPH_ROOT = "https://graph.microsoft.com/v1.0/"

# Graph upload fragments must be a multiple of 320 KiB
GRAPH_CHUNK_ALIGNMENT = 327680


@dataclass(frozen=True)
class BackendProfile:
    """Everything that differs between the Graph API and the legacy OneDrive API.

    The transfer engine and session manager receive one of these instead of
    being specialised per backend.
    """

    name: str
    api_base_url: str
    drive_base_url: str
    authorize_url: str
    token_url: str
    sign_out_url: str
    redirect_url: str
    scopes: tuple[str, ...]
    chunk_size: int
    max_simple_upload_size: int
    session_suffix: str
    chunk_alignment: int | None = None
    scope_in_token_request: bool = True

    def complete_url(self, command_url: str) -> str:
        """Prefix a relative command URL with the base it belongs to."""
        if command_url.lower().startswith("http"):
            return command_url
        if command_url.lower().startswith("drives/"):
            return f"{self.api_base_url}{command_url}"
        return f"{self.drive_base_url}{command_url}"


GRAPH = BackendProfile(
    name="graph",
    api_base_url=GRAPH_ROOT,
    drive_base_url=f"{GRAPH_ROOT}me/",
    authorize_url="https://login.microsoftonline.com/common/oauth2/v2.0/authorize",
    token_url="https://login.microsoftonline.com/common/oauth2/v2.0/token",
    sign_out_url="https://login.microsoftonline.com/common/oauth2/v2.0/logout",
    redirect_url="https://login.microsoftonline.com/common/oauth2/nativeclient",
    scopes=("offline_access", "files.readwrite.all"),
    chunk_size=10485760,
    max_simple_upload_size=4 * 1024 * 1024,
    session_suffix="/createUploadSession",
    chunk_alignment=GRAPH_CHUNK_ALIGNMENT,
)

LEGACY = BackendProfile(
    name="legacy",
    api_base_url="https://api.onedrive.com/v1.0/",
    drive_base_url="https://api.onedrive.com/v1.0/",
    authorize_url="https://login.live.com/oauth20_authorize.srf",
    token_url="https://login.live.com/oauth20_token.srf",
    sign_out_url="https://login.live.com/oauth20_logout.srf",
    redirect_url="https://login.live.com/oauth20_desktop.srf",
    scopes=("wl.signin", "wl.offline_access", "onedrive.readwrite"),
    chunk_size=5000000,
    max_simple_upload_size=4 * 1024000,
    session_suffix="/upload.createSession",
    scope_in_token_request=False,
)

PROFILES = {GRAPH.name: GRAPH, LEGACY.name: LEGACY}


@dataclass(frozen=True)
class TransferConfig:
    max_attempts: int = 3
    # seconds per attempt number; 0 disables the pause between attempts
    retry_backoff: float = 0.8
    # upper bound on any single pause, whatever Retry-After asks for
    max_retry_wait: float = 60.0
    download_block_size: int = 1024 * 1024


@dataclass(frozen=True)
class ClientConfig:
    """Centralized client configuration.

    ``client_id`` is required; everything else has a default.
    """

    client_id: str
    client_secret: str | None = None
    refresh_token: str | None = None
    tenant_id: str | None = None
    backend: BackendProfile = GRAPH
    timeout: tuple[float, float] = (10, 300)
    state_dir: str | None = None
    transfer: TransferConfig = field(default_factory=TransferConfig)


def get_profile(name: str) -> BackendProfile:
    try:
        return PROFILES[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown backend {name!r}; expected one of {sorted(PROFILES)}") from None


def load_config() -> ClientConfig:
    """Construct a ClientConfig from environment variables.

    Required environment variables:
        ODC_CLIENT_ID: Application (client) ID registered with Microsoft.

    Optional environment variables (with defaults):
        ODC_CLIENT_SECRET: Client secret for confidential applications.
        ODC_REFRESH_TOKEN: Refresh token from an earlier interactive sign-in.
        ODC_TENANT_ID: Tenant for app-only (client credentials) tokens.
        ODC_BACKEND: ``graph`` (default) or ``legacy``.
        ODC_TIMEOUT_CONNECT: Connect timeout in seconds (default: 10).
        ODC_TIMEOUT_READ: Read timeout in seconds (default: 300).
        ODC_MAX_ATTEMPTS: Whole-transfer attempts per upload (default: 3).
        ODC_RETRY_BACKOFF: Seconds per attempt number between attempts (default: 0.8).
        ODC_MAX_RETRY_WAIT: Longest pause between attempts in seconds (default: 60).
        ODC_STATE_DIR: Directory for the persisted token cache.

    Returns:
        Configured ClientConfig instance.
    """
    return ClientConfig(
        client_id=os.environ["ODC_CLIENT_ID"],
        client_secret=os.environ.get("ODC_CLIENT_SECRET") or None,
        refresh_token=os.environ.get("ODC_REFRESH_TOKEN") or None,
        tenant_id=os.environ.get("ODC_TENANT_ID") or None,
        backend=get_profile(os.environ.get("ODC_BACKEND", "graph")),
        timeout=(
            float(os.environ.get("ODC_TIMEOUT_CONNECT", "10")),
            float(os.environ.get("ODC_TIMEOUT_READ", "300")),
        ),
        state_dir=os.environ.get("ODC_STATE_DIR") or None,
        transfer=TransferConfig(
            max_attempts=int(os.environ.get("ODC_MAX_ATTEMPTS", "3")),
            retry_backoff=float(os.environ.get("ODC_RETRY_BACKOFF", "0.8")),
            max_retry_wait=float(os.environ.get("ODC_MAX_RETRY_WAIT", "60")),
        ),
    )
