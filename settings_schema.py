from typing import Optional

from pydantic import BaseModel, ValidationError

class SettingsSchema(BaseModel):
    db_path: str = "workout.db"
    backend_url: Optional[str] = None
    api_key: Optional[str] = None
    language: str = "en"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    scheduled_icon: str = "✅"
    unscheduled_icon: str = "⚪"

def validate_settings(data: dict) -> SettingsSchema:
    try:
        return SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
