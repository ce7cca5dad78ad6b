from __future__ import annotations
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from assetguard.configuration.classifier_settings import ClassifierSettings, ModerationSettings
from assetguard.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_IMAGE_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_TEXT_BASE_URL = "https://api.apilayer.com/text_to_emotion"


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml``, exposes
    dictionary-like access helpers and wraps each section in a typed settings
    helper. Uses fcntl file locks for safe concurrent access across processes.
    """

    def __init__(self, config_path: Path = CONFIG_PATH) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
                if not isinstance(data, dict):
                    logger.error("[APP CONFIGURATION] Config %s is not a mapping; using defaults.", self.config_path)
                    return {}
                return data
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
        except Exception as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
        return {}

    def _section(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key, {})
        return value if isinstance(value, dict) else {}

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Reload configuration from disk and return the loaded mapping.

        Returns the raw mapping that was loaded (an empty dict on error).
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """Return the current cached configuration mapping.

        The returned dict is the internal cache; callers should not mutate it.
        """
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def moderation(self) -> ModerationSettings:
        return ModerationSettings(self._section("moderation"))

    @property
    def image_classifier(self) -> ClassifierSettings:
        classifiers = self._section("classifiers")
        section = classifiers.get("image", {})
        return ClassifierSettings(
            section if isinstance(section, dict) else {},
            default_base_url=DEFAULT_IMAGE_BASE_URL,
            default_api_key_env="OPENROUTER_API_KEY",
            default_timeout=15.0,
        )

    @property
    def text_classifier(self) -> ClassifierSettings:
        classifiers = self._section("classifiers")
        section = classifiers.get("text", {})
        return ClassifierSettings(
            section if isinstance(section, dict) else {},
            default_base_url=DEFAULT_TEXT_BASE_URL,
            default_api_key_env="TEXT_CLASSIFIER_API_KEY",
            default_timeout=5.0,
        )

    @property
    def database_path(self) -> Path:
        value = self._section("database").get("path") or "./data/assetguard.db"
        return Path(str(value)).resolve()

    @property
    def expiry_sweep_interval(self) -> float:
        """Seconds between ban expiry sweeps. Default is one day."""
        return float(self._section("scheduler").get("expiry_sweep_interval_seconds", 86400.0))

    @property
    def stale_upload_interval(self) -> float:
        """Seconds between stale upload checks. Default is five minutes."""
        return float(self._section("scheduler").get("stale_upload_interval_seconds", 300.0))

    @property
    def console_operator_id(self) -> str:
        return str(self._section("console").get("operator_id") or "console-operator")

    @property
    def console_operator_role(self) -> str:
        return str(self._section("console").get("operator_role") or "admin")
