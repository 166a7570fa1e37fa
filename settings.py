from pathlib import Path
from config.loader import get_config_loader

# Get the config loader instance
config = get_config_loader()

# Local bridge server configuration
PORT = config.get("PORT", 8765)
LOG_LEVEL = config.get("LOG_LEVEL", "info")
BIND_ADDRESS = config.get("BIND_ADDRESS", "127.0.0.1")

# Claude Code data directory (credentials, stats cache, session logs)
CLAUDE_DIR = config.get("CLAUDE_DIR", "~/.claude")
CREDENTIALS_FILE = config.get("CREDENTIALS_FILE", str(Path(CLAUDE_DIR) / ".credentials.json"))
STATS_CACHE_FILE = config.get("STATS_CACHE_FILE", str(Path(CLAUDE_DIR) / "stats-cache.json"))
PROJECTS_DIR = config.get("PROJECTS_DIR", str(Path(CLAUDE_DIR) / "projects"))

# Polling and timeouts (seconds)
REFRESH_INTERVAL = config.get("REFRESH_INTERVAL", 120)
LOGIN_TIMEOUT = config.get("LOGIN_TIMEOUT", 300.0)
LIVE_STATS_TTL = config.get("LIVE_STATS_TTL", 300)
REQUEST_TIMEOUT = config.get("REQUEST_TIMEOUT", 30.0)

# Anthropic API configuration (hardcoded - not user configurable)
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_BETA = "oauth-2025-04-20"
USAGE_API_URL = "https://api.anthropic.com/api/oauth/usage"

# OAuth configuration (hardcoded - not user configurable)
# claude.ai for authorization, console.anthropic.com for the code exchange,
# platform.claude.com for refresh
CLIENT_ID = "9d1c250a-e61b-44d9-88ed-5944d1962f5e"
AUTHORIZE_URL = "https://claude.ai/oauth/authorize"
TOKEN_URL = "https://console.anthropic.com/v1/oauth/token"
REFRESH_TOKEN_URL = "https://platform.claude.com/v1/oauth/token"
REDIRECT_URI = "https://console.anthropic.com/oauth/code/callback"
SCOPES = "org:create_api_key user:profile user:inference"

# Expiry assumed when the token endpoint omits expires_in (seconds)
DEFAULT_TOKEN_LIFETIME = 86400

USER_AGENT = "Claude Pulse/1.0"
