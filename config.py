import os
import yaml
import keyring

from settings_schema import SettingsSchema, validate_settings


class YamlConfig:
    """Load and save settings to a YAML file with optional encryption."""

    SENSITIVE_KEYS = {
        "api_key",
    }

    def __init__(self, path: str = "settings.yaml") -> None:
        self.path = path
        self.encrypt = os.environ.get("ENCRYPT_SETTINGS") == "1"
        self.service = "weekly-checklist"

    def load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if self.encrypt:
            for key in list(data.keys()):
                if key in self.SENSITIVE_KEYS:
                    secret = keyring.get_password(self.service, key)
                    if secret is not None:
                        data[key] = secret
                    else:
                        data.pop(key, None)
        return data

    def save(self, data: dict) -> None:
        out = dict(data)
        if self.encrypt:
            for key in self.SENSITIVE_KEYS:
                if key in out and out[key] is not None:
                    keyring.set_password(self.service, key, str(out[key]))
                    out[key] = True
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(out, f)


def load_settings(path: str | None = None) -> SettingsSchema:
    """Return validated settings from ``path`` (or ``YAML_PATH``) merged with defaults.

    ``DB_PATH`` overrides the configured database path.
    """
    yaml_path = path or os.environ.get("YAML_PATH", "settings.yaml")
    data = YamlConfig(yaml_path).load()
    if os.environ.get("DB_PATH"):
        data["db_path"] = os.environ["DB_PATH"]
    return validate_settings(data)
