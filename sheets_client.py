import json
import logging

import gspread

from config import AppConfig, ConfigurationError

logger = logging.getLogger(__name__)


def load_google_creds(config: AppConfig) -> dict:
    """Service-account info from GOOGLE_CREDS_JSON, else the local key file."""
    if config.google_creds_json:
        try:
            return json.loads(config.google_creds_json)
        except json.JSONDecodeError as e:
            raise ConfigurationError("GOOGLE_CREDS_JSON is set but contains invalid JSON.") from e

    # Local development - keep the key file out of git
    try:
        with open(config.service_account_file) as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"No GOOGLE_CREDS_JSON env var and {config.service_account_file} not found. "
            "Set GOOGLE_CREDS_JSON (paste full JSON) or add the key file locally."
        ) from e


def build_client(config: AppConfig) -> gspread.Client:
    creds = load_google_creds(config)
    logger.info("Authorizing Sheets client for %s", creds.get("client_email", "<unknown>"))
    return gspread.service_account_from_dict(creds)
