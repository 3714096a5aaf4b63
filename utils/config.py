import copy
import os
from dataclasses import dataclass, field
from typing import Dict, Any, List, Mapping, Optional, Tuple

import yaml

from utils.logger import get_logger

DEFAULT_BASE_URL = "https://www-dev.loopmaas.com"
DEFAULT_CONFIG_PATH = "config/config.yaml"

REQUIRED_AUTH_ENV_VARS = [
    "AUTH0_DOMAIN",
    "AUTH0_USERNAME",
    "AUTH0_PASSWORD",
    "AUTH0_CLIENT_ID",
    "AUTH0_AUDIENCE",
]

DEFAULT_CONFIG = {
    "auth": {
        "scope": "openid profile email read:customer write:customer offline_access",
        "storage_prefix": "@@auth0spajs@@",
        "cookie_suffix": ".is.authenticated",
        "state_path": "auth/user.json",
        "token_request_timeout": 30,  # seconds
    },
    "selectors": {
        "logout_button": "登出",
        "search_button": "搜尋",
        "list_price": "search_carList_originPrice",
        "list_item": "search_carList_wrapper",
        "detail_price": "carDetail_originalPrice",
        "detail_url_pattern": "cars",
    },
    "timeouts": {  # milliseconds
        "short": 3000,
        "medium": 10000,
        "long": 30000,
        "login": 15000,
        "app_init": 3000,
        "network_idle": 10000,
    },
    "prices": {
        "unavailable_text": ["--元"],
        "expected_count": 5,
        "retry": {"max_attempts": 2, "delay_ms": 2000},
    },
    "browser": {
        "headless": True,
        "slow_mo": 0,
        "viewport": {"width": 1280, "height": 720},
        "locale": "zh-TW",
    },
    "reports": {
        "reports_dir": "test-reports",
        "keep_on_run": 10,
        "keep_on_clean": 5,
        "assets_dir": "assets",
        "asset_projects": ["setup", "member-tests", "guest-tests"],
        "keep_assets": 5,
    },
}


class ConfigurationError(Exception):
    """Raised when the suite cannot be configured (missing env vars, bad YAML)."""


@dataclass(frozen=True)
class AuthConfig:
    domain: str
    client_id: str
    audience: str
    username: str
    password: str = field(repr=False)
    scope: str = DEFAULT_CONFIG["auth"]["scope"]
    cookie_app_id: Optional[str] = None
    storage_prefix: str = DEFAULT_CONFIG["auth"]["storage_prefix"]
    cookie_suffix: str = DEFAULT_CONFIG["auth"]["cookie_suffix"]

    @property
    def token_url(self) -> str:
        domain = self.domain.strip().rstrip("/")
        if not domain.startswith(("http://", "https://")):
            domain = f"https://{domain}"
        return f"{domain}/oauth/token"


@dataclass(frozen=True)
class SuiteConfig:
    base_url: str
    state_path: str
    settings: Dict[str, Any]
    auth: Optional[AuthConfig] = None
    missing_auth_vars: Tuple[str, ...] = ()

    def timeout(self, name: str) -> int:
        return int(self.settings["timeouts"][name])

    def selector(self, name: str) -> str:
        return self.settings["selectors"][name]

    @property
    def unavailable_texts(self) -> List[str]:
        return list(self.settings["prices"]["unavailable_text"])

    @property
    def expected_price_count(self) -> int:
        return int(self.settings["prices"]["expected_count"])

    def require_auth(self) -> AuthConfig:
        if self.auth is None:
            missing = self.missing_auth_vars or REQUIRED_AUTH_ENV_VARS
            raise ConfigurationError(
                "Authentication is not configured; set: " + ", ".join(missing)
            )
        return self.auth


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Load YAML settings merged over the defaults.

    A missing file means defaults; a file that cannot be parsed is fatal.
    """
    logger = get_logger()
    config_path = config_path or os.environ.get("E2E_CONFIG_PATH") or DEFAULT_CONFIG_PATH
    merged_config = copy.deepcopy(DEFAULT_CONFIG)

    if not os.path.exists(config_path):
        logger.debug(f"Configuration file {config_path} not found, using default configuration")
        return merged_config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Error loading configuration {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigurationError(f"Configuration {config_path} must be a mapping")

    logger.info(f"Loaded configuration from {config_path}")
    return _deep_merge(merged_config, config)


def validate_environment(env: Optional[Mapping[str, str]] = None) -> List[str]:
    """Return the required auth variables that are missing or blank."""
    env = os.environ if env is None else env
    return [name for name in REQUIRED_AUTH_ENV_VARS if not (env.get(name) or "").strip()]


def load_suite_config(
    env: Optional[Mapping[str, str]] = None,
    require_auth: bool = True,
    config_path: Optional[str] = None,
) -> SuiteConfig:
    """Build the suite configuration once, before any browser or network use.

    With ``require_auth`` every AUTH0_* variable must be present, otherwise a
    ConfigurationError names all of the missing ones.
    """
    env = os.environ if env is None else env
    settings = load_config(config_path or env.get("E2E_CONFIG_PATH"))

    auth = None
    missing = validate_environment(env)
    if require_auth and missing:
        raise ConfigurationError(f"Missing environment variables: {', '.join(missing)}")

    if not missing:
        auth_settings = settings["auth"]
        auth = AuthConfig(
            domain=env["AUTH0_DOMAIN"].strip(),
            client_id=env["AUTH0_CLIENT_ID"].strip(),
            audience=env["AUTH0_AUDIENCE"].strip(),
            username=env["AUTH0_USERNAME"],
            password=env["AUTH0_PASSWORD"],
            scope=auth_settings["scope"],
            cookie_app_id=(env.get("AUTH0_COOKIE_CLIENT_ID") or "").strip() or None,
            storage_prefix=auth_settings["storage_prefix"],
            cookie_suffix=auth_settings["cookie_suffix"],
        )

    base_url = (env.get("BASE_URL") or "").strip() or DEFAULT_BASE_URL
    state_path = (env.get("AUTH_STATE_PATH") or "").strip() or settings["auth"]["state_path"]

    return SuiteConfig(
        base_url=base_url.rstrip("/"),
        state_path=state_path,
        settings=settings,
        auth=auth,
        missing_auth_vars=tuple(missing),
    )


def _deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries, updating target with values from source."""
    for key, value in source.items():
        if key in target and isinstance(target[key], dict) and isinstance(value, dict):
            _deep_merge(target[key], value)
        else:
            target[key] = value
    return target
