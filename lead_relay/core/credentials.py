import json
import logging
from functools import lru_cache

from google.auth import crypt
from google.oauth2.service_account import Credentials

from lead_relay.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

SPREADSHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
DEFAULT_TOKEN_URI = "https://oauth2.googleapis.com/token"


def load_service_account_credentials(raw: str | None) -> Credentials:
    """
    Build spreadsheet-scoped credentials from a JSON service account descriptor.

    Only client_email and private_key are required; private_key_id and
    token_uri are used when present, every other field is ignored.

    Args:
        raw: JSON text of the service account descriptor

    Returns:
        Credentials: Google OAuth2 credentials limited to spreadsheet access

    Raises:
        ConfigurationError: the value is missing, not JSON, or lacks the key material
    """
    if raw is None or not raw.strip():
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON environment variable not set.")
    return _credentials_from_json(raw)


@lru_cache(maxsize=4)
def _credentials_from_json(raw: str) -> Credentials:
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON.") from e

    if not isinstance(info, dict):
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON must be a JSON object.")

    email = info.get("client_email")
    private_key = info.get("private_key")
    missing = [name for name, value in (("client_email", email), ("private_key", private_key)) if not value]
    if missing:
        raise ConfigurationError(f"GOOGLE_SERVICE_ACCOUNT_JSON is missing: {', '.join(missing)}")

    try:
        signer = crypt.RSASigner.from_string(private_key, info.get("private_key_id"))
    except (ValueError, TypeError) as e:
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON private_key could not be parsed.") from e

    logger.info("Loaded service account credentials for %s", email)
    return Credentials(
        signer,
        email,
        info.get("token_uri") or DEFAULT_TOKEN_URI,
        scopes=[SPREADSHEETS_SCOPE],
        project_id=info.get("project_id"),
    )
