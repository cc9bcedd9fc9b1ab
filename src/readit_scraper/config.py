import os

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


# Page loading (old.reddit layout is what the extractors understand)
REDDIT_BASE_URL = os.getenv("REDDIT_BASE_URL", "https://old.reddit.com")
REDDIT_DOMAIN = os.getenv("REDDIT_DOMAIN", "reddit.com")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30.0"))

# Rate limiting (dispatch interval seconds)
MIN_REQUEST_INTERVAL = float(os.getenv("MIN_REQUEST_INTERVAL", "1.0"))

# Markup parsing
MARKUP_PARSER = os.getenv("MARKUP_PARSER", "html.parser")

# Link rewriting inside comment/post bodies
INTERNAL_SCHEME = os.getenv("INTERNAL_SCHEME", "readIt")
SHOW_ORIGINAL_URL = _env_flag("SHOW_ORIGINAL_URL")

# Enrichment (title/author lookups for comment cards)
ENRICH_CONCURRENCY = int(os.getenv("ENRICH_CONCURRENCY", "10"))
ENRICH_TIMEOUT = float(os.getenv("ENRICH_TIMEOUT", "30.0"))
ENRICH_MAX_ATTEMPTS = int(os.getenv("ENRICH_MAX_ATTEMPTS", "3"))
ENRICH_INITIAL_DELAY = float(os.getenv("ENRICH_INITIAL_DELAY", "1.0"))
ENRICH_MAX_DELAY = float(os.getenv("ENRICH_MAX_DELAY", "10.0"))
