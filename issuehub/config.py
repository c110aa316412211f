import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load params from .env file
load_dotenv()

# Role capability table
ACCESS_CONFIG_PATH = os.getenv(
    "ISSUEHUB_ACCESS_CONFIG",
    str(Path(__file__).with_name("access_config.json")),
)
DEFAULT_ROLE = os.getenv("ISSUEHUB_DEFAULT_ROLE", "user")

# Reference behavior: anyone reaching delete-issue may delete.
# Set to true to require reporter or manager tier instead.
RESTRICT_ISSUE_DELETE = os.getenv("ISSUEHUB_RESTRICT_ISSUE_DELETE", "false").strip().lower() in {
    "1", "true", "yes", "on",
}

# Server
HOST = os.getenv("ISSUEHUB_HOST", "0.0.0.0")
PORT = int(os.getenv("ISSUEHUB_PORT", "3001"))

LOG_LEVEL = os.getenv("ISSUEHUB_LOG_LEVEL", "INFO").upper()

# Roles an admin may hand out through the user management endpoint
ASSIGNABLE_ROLES = ["user", "team_member", "team_leader", "client", "admin", "superadmin"]


def configure_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
