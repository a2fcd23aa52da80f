from __future__ import annotations
import os, sys, json, hashlib, logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from .models import AccessToken

__all__ = ["TokenCache", "default_state_dir"]

logger = logging.getLogger(__name__)

def default_state_dir(app_name: str = "onedrive-client") -> str:
    """Return a per-OS state directory (override with ODC_STATE_DIR)."""
    override = os.environ.get("ODC_STATE_DIR")
    if override:
        return override

    home = Path.home()

    if os.name == "nt":  # Windows
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA") or (home / "AppData" / "Local")
        return str(Path(base) / app_name / "state")

    if sys.platform == "darwin":  # macOS
        return str(home / "Library" / "Application Support" / app_name / "state")

    # Linux / others
    xdg = os.environ.get("XDG_STATE_HOME")
    if xdg:
        return str(Path(xdg) / app_name)
    return str(home / ".local" / "state" / app_name)


class TokenCache:
    """Persists the refresh token of one client id between processes.

    Only the refresh token is written; access tokens are short-lived and are
    always re-obtained. Pass ``save`` as a TokenStore ``on_token_changed``.
    """
    VERSION = 1

    def __init__(self, client_id: str, base_dir: Optional[str] = None):
        self.client_id = client_id
        self.base_dir = Path(base_dir or default_state_dir())
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        h = hashlib.sha1(self.client_id.encode("utf-8")).hexdigest()[:12]  # filename id is fine with sha1
        return self.base_dir / f"token-{h}.json"

    def load(self) -> Optional[str]:
        """Return the stored refresh token, or None if absent or unreadable."""
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data: Dict[str, Any] = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as e:
            logger.warning("[load] ignoring unreadable token cache %s: %s", self.path, e)
            return None
        if data.get("version") != self.VERSION or data.get("client_id") != self.client_id:
            return None
        return data.get("refresh_token")

    def save(self, token: AccessToken) -> None:
        """Atomic write: write tmp then replace."""
        if not token.refresh_token:
            return
        p = self.path
        tmp = p.with_suffix(".json.tmp")
        payload = {
            "version": self.VERSION,
            "client_id": self.client_id,
            "refresh_token": token.refresh_token,
            "updated_utc": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        }
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, p)
        logger.debug("[save] refresh token written to %s", p)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
