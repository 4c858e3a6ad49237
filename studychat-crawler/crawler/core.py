"""
FILE DESCRIPTION: Foundational module for global configuration and logging.
KEY FUNCTIONS/CLASSES: env_list, setup_logger, CrawlLogFormatter, logger
"""

import logging
import sys
import os
from datetime import datetime, timezone
from pathlib import Path
from dotenv import load_dotenv

# === CONFIGURATION SECTION ===

# Load .env from the repository root before reading any setting
load_dotenv(Path(__file__).resolve().parents[2] / '.env')


def env_list(name, default):
    """Comma separated environment value -> list of stripped, non-empty items."""
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# Initial URLs to start crawling from
SEED_URLS = env_list("SEED_URLS", ["https://www.hs-heilbronn.de/de"])

# Domains allowed to crawl (suffix match on the host)
# Empty = restrict to the registrable domains of the seeds
ALLOWED_DOMAINS = env_list("ALLOWED_DOMAINS", ["hs-heilbronn.de", "heilbronn-university.com"])

# Crawl depth ceiling and retry budget per URL
MAX_DEPTH = int(os.getenv("MAX_DEPTH", 5))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", 3))

# Network timeout for HTTP requests (seconds)
REQUEST_TIMEOUT = int(os.getenv("REQUEST_TIMEOUT", 30))

# Worker scaling parameters
MIN_WORKERS = int(os.getenv("MIN_WORKERS", 2))
MAX_WORKERS = int(os.getenv("MAX_WORKERS", 16))
MAX_PARALLEL_JOBS = int(os.getenv("MAX_PARALLEL_JOBS", 2))
CRAWL_DELAY = float(os.getenv("CRAWL_DELAY", 2.0))  # Seconds between requests per worker
USER_AGENT = os.getenv("USER_AGENT", "StudyChat-Bot/1.0 (+https://www.hs-heilbronn.de)")

# Output location for content records and the crawl index
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", "./collected-content"))
INDEX_FILE_NAME = "crawl_index.json"

# Frontier statistics are logged every N admissions
STATS_LOG_INTERVAL = int(os.getenv("STATS_LOG_INTERVAL", 50))


# === LOGGING SECTION ===

class CrawlLogFormatter(logging.Formatter):
    """
    One line per record: [ Tue Jan 06 05:32:41 AM UTC 2026 ] : LEVEL : context : message
    `context` comes from extra={'context': ...}; tracebacks are appended on the following lines.
    """
    def format(self, record):
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        line = (f"[ {created.strftime('%a %b %d %I:%M:%S %p UTC %Y')} ] : {record.levelname} : "
                f"{getattr(record, 'context', 'root')} : {record.getMessage()}")
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line

def setup_logger(name="crawler", log_file=None, level=logging.INFO):
    """
    FLOW: Child loggers propagate to the "crawler" root logger, which owns the handlers ->
    stdout handler attached once -> optional file handler attached once per path.
    """
    log = logging.getLogger(name)
    log.setLevel(level)

    if name != "crawler":
        log.propagate = True
        setup_logger("crawler", log_file=log_file, level=level)
        return log

    formatter = CrawlLogFormatter()
    if not log.handlers:
        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setFormatter(formatter)
        log.addHandler(stdout_handler)

    if log_file:
        target = os.path.abspath(log_file)
        if target not in {getattr(h, "baseFilename", None) for h in log.handlers}:
            file_handler = logging.FileHandler(target, encoding="utf-8")
            file_handler.setFormatter(formatter)
            log.addHandler(file_handler)

    return log

# Shared by every module of the crawler and frontier packages
logger = setup_logger()
