"""
API credential configuration loader.

Reads bearer credentials from a YAML file of the form:

    credentials:
      dispatch-console:
        key: sk_live_...
        scopes: ["orders:*", "drivers:read"]
"""

import yaml
from pathlib import Path
from typing import TypedDict

from lsos_gateway.models import ApiCredential


class CredentialConfigDict(TypedDict, total=False):
    """Type definition for a credential entry"""
    key: str
    scopes: list[str]


def load_credentials_config(config_path: str | Path | None = None) -> list[ApiCredential]:
    """
    Load API credentials from YAML file.

    Args:
        config_path: Path to credentials.yaml. If None, uses default location.

    Returns:
        List of credentials, one per named entry
    """
    if config_path is None:
        config_path = Path(__file__).parent / "credentials.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Credentials file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    entries: dict[str, CredentialConfigDict] = config.get('credentials') or {}
    credentials = []
    for name, entry in entries.items():
        if not entry or not entry.get('key'):
            raise ValueError(f"Credential '{name}' has no key")
        credentials.append(ApiCredential(name=name, key=str(entry['key']), scopes=list(entry.get('scopes', ['*']))))
    return credentials
