"""
Application settings and relay configuration.

Settings is the raw, env-backed view (strings and numbers, never raises).
RelayConfig is the validated form the handlers use: parsed mint/recipient
addresses and the server keypair. It is built once at startup and passed into
the builder and verifier; a ConfigurationError is kept and re-raised on every
presale request while the required values are missing.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from presale_relay.config.env import env_float, env_int, env_str, get_solana_rpc_url, load_relay_env
from presale_relay.core.exceptions import ConfigurationError

DEFAULT_MINT_DECIMALS = 6
DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS = 1_000_000
DEFAULT_VALIDITY_WINDOW = 150
DEFAULT_CONFIRM_MAX_ATTEMPTS = 5
DEFAULT_CONFIRM_BASE_DELAY_SEC = 1.0
DEFAULT_SEND_MAX_RETRIES = 3
DEFAULT_PRESALE_AMOUNT = 5
DEFAULT_API_PORT = 3000

REQUIRED_ENV_VARS = ("HASH_PRIVATE_KEY", "PRESALE_MINT_ADDRESS", "PRESALE_RECIPIENT_KEY")


@dataclass
class Settings:
    """Process settings from environment variables (.env loaded by get_settings)."""

    hash_private_key: str = field(default_factory=lambda: env_str("HASH_PRIVATE_KEY"))
    presale_mint_address: str = field(default_factory=lambda: env_str("PRESALE_MINT_ADDRESS"))
    presale_recipient_key: str = field(default_factory=lambda: env_str("PRESALE_RECIPIENT_KEY"))
    solana_rpc_url: str = field(default_factory=get_solana_rpc_url)
    mint_decimals: int = field(default_factory=lambda: env_int("PRESALE_MINT_DECIMALS", DEFAULT_MINT_DECIMALS))
    priority_fee_micro_lamports: int = field(
        default_factory=lambda: env_int("PRIORITY_FEE_MICRO_LAMPORTS", DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS)
    )
    validity_window: int = field(default_factory=lambda: env_int("BLOCKHASH_VALIDITY_WINDOW", DEFAULT_VALIDITY_WINDOW))
    confirm_max_attempts: int = field(
        default_factory=lambda: env_int("CONFIRM_MAX_ATTEMPTS", DEFAULT_CONFIRM_MAX_ATTEMPTS)
    )
    confirm_base_delay_sec: float = field(
        default_factory=lambda: env_float("CONFIRM_BASE_DELAY_SEC", DEFAULT_CONFIRM_BASE_DELAY_SEC)
    )
    send_max_retries: int = field(default_factory=lambda: env_int("SEND_MAX_RETRIES", DEFAULT_SEND_MAX_RETRIES))
    app_env: str = field(default_factory=lambda: env_str("NODE_ENV", "development").lower())
    allowed_origins: list[str] = field(
        default_factory=lambda: [o.strip() for o in env_str("ALLOWED_ORIGINS").split(",") if o.strip()]
    )
    api_host: str = field(default_factory=lambda: env_str("API_HOST", "0.0.0.0"))
    api_port: int = field(default_factory=lambda: env_int("PORT", DEFAULT_API_PORT))

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    def missing_required(self) -> list[str]:
        present = {
            "HASH_PRIVATE_KEY": bool(self.hash_private_key),
            "PRESALE_MINT_ADDRESS": bool(self.presale_mint_address),
            "PRESALE_RECIPIENT_KEY": bool(self.presale_recipient_key),
        }
        return [name for name in REQUIRED_ENV_VARS if not present[name]]


def get_settings() -> Settings:
    """Load .env and return settings read from the environment."""
    load_relay_env()
    return Settings()


@dataclass(frozen=True)
class RelayConfig:
    """Validated presale configuration shared read-only by all requests."""

    mint: Pubkey
    recipient: Pubkey
    server_keypair: Keypair
    mint_decimals: int = DEFAULT_MINT_DECIMALS
    priority_fee_micro_lamports: int = DEFAULT_PRIORITY_FEE_MICRO_LAMPORTS
    validity_window: int = DEFAULT_VALIDITY_WINDOW
    confirm_max_attempts: int = DEFAULT_CONFIRM_MAX_ATTEMPTS
    confirm_base_delay_sec: float = DEFAULT_CONFIRM_BASE_DELAY_SEC
    send_max_retries: int = DEFAULT_SEND_MAX_RETRIES

    @property
    def server_pubkey(self) -> Pubkey:
        return self.server_keypair.pubkey()


def parse_server_keypair(raw: str) -> Keypair:
    """Load Keypair from a JSON array of 64 secret-key bytes (solana-keygen format)."""
    try:
        arr = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ConfigurationError("Server configuration error: HASH_PRIVATE_KEY is not valid JSON") from e
    if not isinstance(arr, list) or len(arr) != 64:
        raise ConfigurationError("Server configuration error: HASH_PRIVATE_KEY must be a JSON array of 64 bytes")
    try:
        return Keypair.from_bytes(bytes(arr))
    except Exception as e:
        raise ConfigurationError(f"Server configuration error: invalid HASH_PRIVATE_KEY ({e})") from e


def _parse_pubkey(name: str, raw: str) -> Pubkey:
    try:
        return Pubkey.from_string(raw)
    except Exception as e:
        raise ConfigurationError(f"Server configuration error: {name} is not a valid address") from e


def load_relay_config(settings: Settings) -> RelayConfig:
    """Validate settings into a RelayConfig. Raises ConfigurationError; makes no network calls."""
    missing = settings.missing_required()
    if missing:
        raise ConfigurationError()
    if settings.mint_decimals < 0 or settings.mint_decimals > 18:
        raise ConfigurationError("Server configuration error: PRESALE_MINT_DECIMALS out of range")
    if settings.validity_window < 0:
        raise ConfigurationError("Server configuration error: BLOCKHASH_VALIDITY_WINDOW must be >= 0")
    if settings.confirm_max_attempts < 1:
        raise ConfigurationError("Server configuration error: CONFIRM_MAX_ATTEMPTS must be >= 1")

    return RelayConfig(
        mint=_parse_pubkey("PRESALE_MINT_ADDRESS", settings.presale_mint_address),
        recipient=_parse_pubkey("PRESALE_RECIPIENT_KEY", settings.presale_recipient_key),
        server_keypair=parse_server_keypair(settings.hash_private_key),
        mint_decimals=settings.mint_decimals,
        priority_fee_micro_lamports=settings.priority_fee_micro_lamports,
        validity_window=settings.validity_window,
        confirm_max_attempts=settings.confirm_max_attempts,
        confirm_base_delay_sec=settings.confirm_base_delay_sec,
        send_max_retries=settings.send_max_retries,
    )
