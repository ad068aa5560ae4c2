"""Service configuration, env-first."""
import os
from dataclasses import dataclass
from typing import List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""
    pass


def _mask_secret(value: str, visible_chars: int = 4) -> str:
    """Mask a secret value for logging, showing only first few chars."""
    if not value:
        return "<empty>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def _flag(name: str, default: str) -> bool:
    # 0 = off, 1 = on
    return int(os.environ.get(name, default)) == 1


@dataclass
class AppConfig:
    """Everything the webhook needs to reach its two spreadsheets."""
    pin_spreadsheet_id: str = ""
    access_spreadsheet_id: str = ""

    # Preferred tab names; empty means "find it heuristically"
    pin_sheet_name: str = ""
    access_sheet_name: str = ""

    timezone: str = "America/Los_Angeles"
    cooldown_minutes: int = 5

    # Overwriting a mismatched header row can destroy data, so it is opt-in
    repair_headers: bool = False
    repair_timestamps: bool = True
    create_access_sheet: bool = True

    google_creds_json: str = ""
    service_account_file: str = "service_account.json"

    log_level: str = "INFO"

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []
        if not self.pin_spreadsheet_id:
            errors.append("PIN_SPREADSHEET_ID is required")
        if not self.access_spreadsheet_id:
            errors.append("ACCESS_SPREADSHEET_ID is required")
        if self.cooldown_minutes < 0:
            errors.append("COOLDOWN_MINUTES must not be negative")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            errors.append(f"Unknown LOCAL_TZ: {self.timezone}")
        return errors

    def __repr__(self) -> str:
        return (f"AppConfig(pin_spreadsheet_id={self.pin_spreadsheet_id}, "
                f"access_spreadsheet_id={self.access_spreadsheet_id}, "
                f"timezone={self.timezone}, cooldown_minutes={self.cooldown_minutes}, "
                f"google_creds_json={_mask_secret(self.google_creds_json)})")


def load_config_from_env() -> AppConfig:
    """
    Build an AppConfig from environment variables.

    Raises ConfigurationError if a value cannot be parsed or the
    resulting config does not validate.
    """
    try:
        config = AppConfig(
            pin_spreadsheet_id=os.environ.get("PIN_SPREADSHEET_ID", "").strip(),
            access_spreadsheet_id=os.environ.get("ACCESS_SPREADSHEET_ID", "").strip(),
            pin_sheet_name=os.environ.get("PIN_SHEET_NAME", "").strip(),
            access_sheet_name=os.environ.get("ACCESS_SHEET_NAME", "").strip(),
            timezone=os.environ.get("LOCAL_TZ", "America/Los_Angeles"),
            cooldown_minutes=int(os.environ.get("COOLDOWN_MINUTES", 5)),
            repair_headers=_flag("REPAIR_HEADERS", "0"),
            repair_timestamps=_flag("REPAIR_TIMESTAMPS", "1"),
            create_access_sheet=_flag("CREATE_ACCESS_SHEET", "1"),
            google_creds_json=os.environ.get("GOOGLE_CREDS_JSON", ""),
            service_account_file=os.environ.get("SERVICE_ACCOUNT_FILE", "service_account.json"),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration value: {e}") from e

    errors = config.validate()
    if errors:
        raise ConfigurationError("; ".join(errors))
    return config
