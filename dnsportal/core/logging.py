import logging
import os
import re
from logging.handlers import TimedRotatingFileHandler

from dnsportal.core.config import settings

# -------------- CONFIGURATION -------------------

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_FILE = os.path.join(LOG_DIR, "dnsportal.log")
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Settings whose values must never reach a log line
SECRET_SETTINGS = ("RAZORPAY_KEY_SECRET", "SUPABASE_JWT_SECRET", "SUPABASE_SERVICE_ROLE_KEY")
BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9._\-]+")

# -------------- FORMATTING / FILTERS -------------

class ConsoleFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[41m\033[97m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        message = super().format(record)
        return f"{color}{message}{self.RESET}"


class RedactSecretsFilter(logging.Filter):
    """
    Masks configured secrets and Bearer tokens (Supabase access tokens,
    Cloudflare API tokens) in the rendered message.
    """

    def __init__(self, secrets=None):
        super().__init__()
        if secrets is None:
            secrets = [getattr(settings, name, None) or "" for name in SECRET_SETTINGS]
        self.secrets = [s for s in secrets if s and len(s) >= 6]

    def filter(self, record):
        message = record.getMessage()
        redacted = BEARER_PATTERN.sub(r"\1[REDACTED]", message)
        for secret in self.secrets:
            redacted = redacted.replace(secret, "[REDACTED]")
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True

# -------------- LOGGER INITIALIZATION ------------

def init_logging(log_file: str = LOG_FILE, level: str = LOG_LEVEL):
    os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)

    logger = logging.getLogger()
    logger.setLevel(level)
    redact = RedactSecretsFilter()

    # File handler: daily rotation, keep 7 days
    file_handler = TimedRotatingFileHandler(log_file, when="midnight", backupCount=7, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    file_handler.setLevel(level)
    file_handler.addFilter(redact)

    # Console handler: colored output
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(ConsoleFormatter(LOG_FORMAT, DATE_FORMAT))
    console_handler.setLevel(level)
    console_handler.addFilter(redact)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    # Uvicorn access/error lines go through the same handlers
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uv_logger = logging.getLogger(name)
        uv_logger.handlers = []
        uv_logger.propagate = True

    # httpx logs every Cloudflare/Razorpay request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

# -------------- USAGE -------------------

# main.py calls init_logging() once, before the routers are imported.
# Everywhere else:
# import logging
# logger = logging.getLogger(__name__)
