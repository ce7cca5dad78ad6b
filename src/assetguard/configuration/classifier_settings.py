import os
from typing import Any, Dict, List

DEFAULT_DENY_LIST = ["explicit", "sexual", "harassment", "abuse"]


class ModerationSettings:
    """Typed accessors for the ``moderation`` section of the app config.

    Values are coerced on read so a hand-edited YAML with quoted numbers still
    behaves; missing keys fall back to the documented defaults.
    """

    def __init__(self, data: Dict[str, Any] | None = None) -> None:
        self.data: Dict[str, Any] = data or {}

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value for `key` or `default` if missing."""
        return self.data.get(key, default)

    @property
    def image_confidence_threshold(self) -> float:
        return float(self.data.get("image_confidence_threshold", 0.65))

    @property
    def warning_ban_threshold(self) -> int:
        return int(self.data.get("warning_ban_threshold", 3))

    @property
    def ban_duration_days(self) -> int:
        return int(self.data.get("ban_duration_days", 7))

    @property
    def text_deny_list(self) -> List[str]:
        value = self.data.get("text_deny_list")
        if not isinstance(value, list) or not value:
            return list(DEFAULT_DENY_LIST)
        return [str(item).lower() for item in value if str(item).strip()]

    @property
    def stale_upload_seconds(self) -> float:
        return float(self.data.get("stale_upload_seconds", 900))


class ClassifierSettings:
    """Connection settings for one external classifier.

    The bearer token is never stored in the YAML: ``api_key_env`` names the
    environment variable that holds it, and :attr:`api_key` resolves it at
    call time so a rotated key is picked up without a restart.
    """

    def __init__(
        self,
        data: Dict[str, Any] | None = None,
        *,
        default_base_url: str = "",
        default_api_key_env: str = "",
        default_timeout: float = 10.0,
    ) -> None:
        self.data: Dict[str, Any] = data or {}
        self._default_base_url = default_base_url
        self._default_api_key_env = default_api_key_env
        self._default_timeout = default_timeout

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def as_dict(self) -> Dict[str, Any]:
        return self.data

    @property
    def base_url(self) -> str:
        return str(self.data.get("base_url") or self._default_base_url)

    @property
    def model_name(self) -> str | None:
        val = self.data.get("model_name")
        return str(val) if val else None

    @property
    def api_key_env(self) -> str:
        return str(self.data.get("api_key_env") or self._default_api_key_env)

    @property
    def api_key(self) -> str | None:
        if not self.api_key_env:
            return None
        return os.getenv(self.api_key_env) or None

    @property
    def timeout_seconds(self) -> float:
        return float(self.data.get("timeout_seconds", self._default_timeout))
