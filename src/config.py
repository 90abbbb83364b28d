"""Configuration module for the Placement Access Engine.

This module provides centralized configuration management, including the
database location, API server settings, credential settings, and workflow
defaults. All configuration values can be overridden via environment
variables. ``load_settings()`` snapshots them into a single ``Settings``
object which the application builds once at startup and hands to every
component.
"""

import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.resolve()

# Data directory name
DATA_DIR_NAME = "data"
DATA_DIR = ROOT_DIR / DATA_DIR_NAME

# --- Database Configuration ---

DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR}/placement_access.db"
)

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "8000"))

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    "http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173",
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# --- Logging Configuration ---

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# --- Authentication Configuration ---

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24 * 7))
)

# Admin token for platform admin registration
ADMIN_TOKEN: Optional[str] = os.getenv("ADMIN_TOKEN")

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# --- Workflow Configuration ---

# Days after which an unaccepted invitation expires
INVITATION_EXPIRY_DAYS: int = int(os.getenv("INVITATION_EXPIRY_DAYS", "7"))

# "permissive": any verification status may be set from any other.
# "strict": only the transitions in VERIFICATION_TRANSITIONS are allowed.
VERIFICATION_TRANSITION_MODE: str = os.getenv(
    "VERIFICATION_TRANSITION_MODE", "permissive"
).lower()

# Attempts for a contract compare-and-set before giving up with a conflict
CONTRACT_CAS_MAX_ATTEMPTS: int = int(os.getenv("CONTRACT_CAS_MAX_ATTEMPTS", "5"))

# Default page size for notification listings
DEFAULT_NOTIFICATION_LIMIT: int = 20


class Settings(BaseModel):
    """Runtime configuration shared by the application and its managers."""

    database_url: str = Field(default=DATABASE_URL)
    cors_allowed_origins: List[str] = Field(
        default_factory=lambda: list(CORS_ALLOWED_ORIGINS)
    )
    log_level: str = Field(default=LOG_LEVEL)
    jwt_secret_key: str = Field(default=JWT_SECRET_KEY)
    jwt_algorithm: str = Field(default=JWT_ALGORITHM)
    access_token_expire_minutes: int = Field(default=ACCESS_TOKEN_EXPIRE_MINUTES)
    admin_token: Optional[str] = Field(default=ADMIN_TOKEN)
    bcrypt_rounds: int = Field(default=BCRYPT_ROUNDS, ge=4, le=31)
    invitation_expiry_days: int = Field(default=INVITATION_EXPIRY_DAYS, ge=1)
    verification_transition_mode: str = Field(
        default=VERIFICATION_TRANSITION_MODE, pattern="^(permissive|strict)$"
    )
    contract_cas_max_attempts: int = Field(default=CONTRACT_CAS_MAX_ATTEMPTS, ge=1)

    @property
    def strict_verification(self) -> bool:
        return self.verification_transition_mode == "strict"


def load_settings(**overrides) -> Settings:
    """Build a Settings object from the environment.

    Args:
        **overrides: Field values that take precedence over the environment.

    Returns:
        A validated Settings instance.
    """
    return Settings(**overrides)
