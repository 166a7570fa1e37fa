import json
import logging
import os
import platform
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from settings import CREDENTIALS_FILE

logger = logging.getLogger(__name__)

# Section of the credentials file owned by this application
OAUTH_SECTION = "claudeAiOauth"


class CredentialStoreError(Exception):
    """Raised when the credential record cannot be read

    Attributes:
        kind: One of credentials_not_found, parse_error, no_oauth_data
        message: Human readable detail
    """

    def __init__(self, kind: str, message: str = ""):
        super().__init__(message or kind)
        self.kind = kind
        self.message = message or kind


@dataclass
class CredentialRecord:
    """OAuth credential record stored under the claudeAiOauth section"""
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None  # epoch millis
    scopes: List[str] = field(default_factory=list)
    subscription_type: Optional[str] = None
    rate_limit_tier: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CredentialRecord":
        return cls(
            access_token=data.get("accessToken"),
            refresh_token=data.get("refreshToken"),
            expires_at=data.get("expiresAt"),
            scopes=list(data.get("scopes") or []),
            subscription_type=data.get("subscriptionType"),
            rate_limit_tier=data.get("rateLimitTier"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the on-disk camelCase shape, omitting unset fields"""
        data = {
            "accessToken": self.access_token,
            "refreshToken": self.refresh_token,
            "expiresAt": self.expires_at,
            "scopes": list(self.scopes),
            "subscriptionType": self.subscription_type,
            "rateLimitTier": self.rate_limit_tier,
        }
        return {key: value for key, value in data.items() if value is not None}

    def is_expired(self, now_ms: Optional[int] = None) -> bool:
        if not self.expires_at:
            return False
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return now_ms > self.expires_at


class CredentialStore:
    """Credential file access; preserves every key it does not own"""

    def __init__(self, credentials_file: Optional[str] = None):
        self.credentials_path = Path(credentials_file if credentials_file else CREDENTIALS_FILE)

    def _ensure_secure_directory(self):
        """Create parent directory with secure permissions"""
        parent_dir = self.credentials_path.parent
        if not parent_dir.exists():
            parent_dir.mkdir(parents=True, exist_ok=True)
            # Set directory permissions to 700 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(parent_dir, 0o700)

    def _load_raw(self) -> Dict[str, Any]:
        """Load the whole credentials document

        Raises:
            CredentialStoreError: credentials_not_found or parse_error
        """
        if not self.credentials_path.exists():
            raise CredentialStoreError("credentials_not_found", f"No credentials file at {self.credentials_path}")

        try:
            data = json.loads(self.credentials_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            raise CredentialStoreError("parse_error", str(e)) from e

        if not isinstance(data, dict):
            raise CredentialStoreError("parse_error", "Credentials file is not a JSON object")
        return data

    def _write_raw(self, data: Dict[str, Any]):
        """Replace the credentials document via a temp file in the same directory"""
        self._ensure_secure_directory()

        fd, tmp_name = tempfile.mkstemp(
            dir=str(self.credentials_path.parent),
            prefix=".credentials-",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(json.dumps(data, indent=2))
            # Set file permissions to 600 on Unix-like systems
            if platform.system() != "Windows":
                os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, self.credentials_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _load_for_update(self) -> Dict[str, Any]:
        """Existing document for a merge; a missing or corrupt file starts empty"""
        try:
            return self._load_raw()
        except CredentialStoreError as e:
            if e.kind == "parse_error":
                logger.warning(f"Credentials file is unreadable, rewriting it: {e.message}")
            return {}

    def read(self) -> CredentialRecord:
        """Read the stored credential record

        Raises:
            CredentialStoreError: credentials_not_found, parse_error or no_oauth_data
        """
        data = self._load_raw()
        section = data.get(OAUTH_SECTION)
        if not isinstance(section, dict):
            raise CredentialStoreError("no_oauth_data", f"No {OAUTH_SECTION} section in credentials file")
        return CredentialRecord.from_dict(section)

    def write(self, record: CredentialRecord):
        """Merge a credential record into the credentials file"""
        data = self._load_for_update()
        section = data.get(OAUTH_SECTION)
        if not isinstance(section, dict):
            section = {}
        section.update(record.to_dict())
        data[OAUTH_SECTION] = section

        self._write_raw(data)
        logger.debug(f"Saved credentials to {self.credentials_path}")

    def update_tokens(
        self,
        access_token: str,
        refresh_token: Optional[str] = None,
        expires_at: Optional[int] = None,
    ):
        """Rewrite only the token fields of the stored record"""
        data = self._load_raw()
        section = data.get(OAUTH_SECTION)
        if not isinstance(section, dict):
            raise CredentialStoreError("no_oauth_data", f"No {OAUTH_SECTION} section in credentials file")

        section["accessToken"] = access_token
        if refresh_token:
            section["refreshToken"] = refresh_token
        if expires_at is not None:
            section["expiresAt"] = expires_at

        self._write_raw(data)
        logger.debug("Updated stored access token")

    def clear(self):
        """Remove the OAuth section, keeping the rest of the file"""
        try:
            data = self._load_raw()
        except CredentialStoreError as e:
            if e.kind == "parse_error":
                logger.warning(f"Credentials file is unreadable, leaving it untouched: {e.message}")
            return

        if OAUTH_SECTION not in data:
            return

        del data[OAUTH_SECTION]
        self._write_raw(data)
        logger.info("Cleared stored OAuth credentials")

    def get_status(self) -> Dict[str, Any]:
        """Get credential status without exposing secrets"""
        try:
            record = self.read()
        except CredentialStoreError:
            record = None

        if record is None or not record.access_token:
            return {
                "has_tokens": False,
                "is_expired": True,
                "expires_at": None,
                "time_until_expiry": "No tokens",
                "subscription_type": None,
                "rate_limit_tier": None,
            }

        status = {
            "has_tokens": True,
            "is_expired": False,
            "expires_at": None,
            "time_until_expiry": "Unknown",
            "subscription_type": record.subscription_type or "unknown",
            "rate_limit_tier": record.rate_limit_tier or "unknown",
        }
        if not record.expires_at:
            return status

        expires_at = record.expires_at // 1000
        current_time = int(time.time())
        status["expires_at"] = datetime.fromtimestamp(expires_at).isoformat()

        if current_time >= expires_at:
            time_since = current_time - expires_at
            hours_since = time_since // 3600
            mins_since = (time_since % 3600) // 60
            status["is_expired"] = True
            if hours_since > 0:
                status["time_until_expiry"] = f"{hours_since}h {mins_since}m ago"
            else:
                status["time_until_expiry"] = f"{mins_since}m ago"
            return status

        time_remaining = expires_at - current_time
        hours = time_remaining // 3600
        minutes = (time_remaining % 3600) // 60
        if hours > 0:
            status["time_until_expiry"] = f"{hours}h {minutes}m"
        else:
            status["time_until_expiry"] = f"{minutes}m"
        status["expires_in_seconds"] = time_remaining
        return status

    @property
    def credentials_file(self) -> Path:
        """Get the credentials file path"""
        return self.credentials_path
