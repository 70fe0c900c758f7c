"""
Configuration management and loading.

Handles gateway settings from YAML and provider secrets from the environment.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml


DEFAULT_CHANGELOG = """New Features:
• AI Command Buttons
• Smart Translation
• Enhanced Refine
• Better UI/UX

Bug fixes and performance improvements"""

DEFAULT_UPDATE_URL = "https://play.google.com/store/apps/details?id=rkr.simplekeyboard.inputmethod"


class ProviderKind(Enum):
    """Upstream backends the gateway knows how to talk to."""
    GEMINI = "gemini"
    GROQ = "groq"


@dataclass(frozen=True)
class QuotaConfig:
    """Free-tier request allowance per device per day."""
    daily_limit: int = 3

    def __post_init__(self):
        if self.daily_limit <= 0:
            raise ValueError("daily_limit must be > 0")


@dataclass(frozen=True)
class ProviderConfig:
    """One entry of the ordered provider list."""
    name: str
    kind: ProviderKind
    model: str
    api_key_env: str
    timeout_seconds: float = 15.0

    def __post_init__(self):
        """Validate provider values."""
        if not self.name or not self.name.strip():
            raise ValueError("provider name cannot be empty")
        if not self.model or not self.model.strip():
            raise ValueError(f"provider '{self.name}' model cannot be empty")
        if not self.api_key_env or not self.api_key_env.strip():
            raise ValueError(f"provider '{self.name}' api_key_env cannot be empty")
        if self.timeout_seconds <= 0:
            raise ValueError(f"provider '{self.name}' timeout_seconds must be > 0")

    def shared_key(self, environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
        """Server-held key for this provider, or None when not configured."""
        env = os.environ if environ is None else environ
        value = str(env.get(self.api_key_env) or "").strip()
        return value or None


@dataclass(frozen=True)
class FallbackConfig:
    """Whether credentialed callers may fall back onto the operator's shared keys."""
    shared_keys_for_credentialed: bool = True


@dataclass(frozen=True)
class UpdateConfig:
    """What /app-update advertises."""
    latest_version: str = "2.0.0"
    update_url: str = DEFAULT_UPDATE_URL
    changelog: str = DEFAULT_CHANGELOG
    force_update: bool = False

    def __post_init__(self):
        if not self.latest_version or not self.latest_version.strip():
            raise ValueError("latest_version cannot be empty")


DEFAULT_PROVIDERS: Tuple[ProviderConfig, ...] = (
    ProviderConfig(
        name="gemini",
        kind=ProviderKind.GEMINI,
        model="gemini-2.0-flash-lite",
        api_key_env="GEMINI_API_KEY",
        timeout_seconds=15.0,
    ),
    ProviderConfig(
        name="groq",
        kind=ProviderKind.GROQ,
        model="llama-3.1-8b-instant",
        api_key_env="GROQ_API_KEY",
        timeout_seconds=15.0,
    ),
)


@dataclass(frozen=True)
class GatewayConfig:
    """Complete gateway configuration."""
    quota: QuotaConfig = field(default_factory=QuotaConfig)
    providers: Tuple[ProviderConfig, ...] = DEFAULT_PROVIDERS
    fallback: FallbackConfig = field(default_factory=FallbackConfig)
    update: UpdateConfig = field(default_factory=UpdateConfig)
    log_level: str = "INFO"

    def __post_init__(self):
        if not self.providers:
            raise ValueError("at least one provider must be configured")
        names = [p.name for p in self.providers]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate provider names: {names}")

    @property
    def primary(self) -> ProviderConfig:
        return self.providers[0]


def default_gateway_config() -> GatewayConfig:
    """Built-in configuration used when no YAML file is given."""
    return GatewayConfig()


def load_gateway_config(path: str) -> GatewayConfig:
    """Load and validate gateway configuration from a YAML file.

    Unknown keys are rejected so that a typo never silently falls back to a
    default quota or provider order.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated GatewayConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Gateway config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration root must be a dictionary")

    allowed_top_keys = {'quota', 'providers', 'fallback', 'update', 'log'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    quota = _parse_quota(raw_config.get('quota', {}))

    if 'providers' in raw_config:
        providers = _parse_providers(raw_config['providers'])
    else:
        providers = DEFAULT_PROVIDERS

    fallback = _parse_fallback(raw_config.get('fallback', {}))
    update = _parse_update(raw_config.get('update', {}))
    log_level = _parse_log_level(raw_config.get('log', {}))

    return GatewayConfig(
        quota=quota,
        providers=providers,
        fallback=fallback,
        update=update,
        log_level=log_level,
    )


def _require_dict(data, path: str) -> Dict:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")
    return data


def _reject_unknown(data: Dict, allowed: set, path: str) -> None:
    unknown_keys = set(data.keys()) - allowed
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")


def _parse_quota(data) -> QuotaConfig:
    data = _require_dict(data, 'quota')
    _reject_unknown(data, {'daily_limit'}, 'quota')
    if 'daily_limit' not in data:
        return QuotaConfig()

    limit = data['daily_limit']
    # bool is an int subclass; `daily_limit: yes` is a typo, not 1
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValueError("'daily_limit' in quota must be an integer > 0")
    return QuotaConfig(daily_limit=limit)


def _parse_providers(data) -> Tuple[ProviderConfig, ...]:
    if not isinstance(data, list) or not data:
        raise ValueError("'providers' must be a non-empty list")

    providers = []
    for index, item in enumerate(data):
        path = f"providers[{index}]"
        item = _require_dict(item, path)
        _reject_unknown(item, {'name', 'kind', 'model', 'api_key_env', 'timeout_seconds'}, path)

        for required in ('name', 'kind', 'model', 'api_key_env'):
            if required not in item:
                raise ValueError(f"Missing required '{required}' in {path}")
            if not isinstance(item[required], str):
                raise ValueError(f"'{required}' in {path} must be a string")

        try:
            kind = ProviderKind(item['kind'].lower())
        except ValueError:
            valid_kinds = [kind.value for kind in ProviderKind]
            raise ValueError(f"'kind' in {path} must be one of: {valid_kinds}")

        timeout = item.get('timeout_seconds', 15.0)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"'timeout_seconds' in {path} must be > 0")

        providers.append(ProviderConfig(
            name=item['name'],
            kind=kind,
            model=item['model'],
            api_key_env=item['api_key_env'],
            timeout_seconds=float(timeout),
        ))

    return tuple(providers)


def _parse_fallback(data) -> FallbackConfig:
    data = _require_dict(data, 'fallback')
    _reject_unknown(data, {'shared_keys_for_credentialed'}, 'fallback')
    value = data.get('shared_keys_for_credentialed', True)
    if not isinstance(value, bool):
        raise ValueError("'shared_keys_for_credentialed' in fallback must be a boolean")
    return FallbackConfig(shared_keys_for_credentialed=value)


def _parse_update(data) -> UpdateConfig:
    data = _require_dict(data, 'update')
    _reject_unknown(data, {'latest_version', 'update_url', 'changelog', 'force_update'}, 'update')

    defaults = UpdateConfig()
    latest = data.get('latest_version', defaults.latest_version)
    # Unquoted 2.10 loads as the float 2.1; only a quoted string keeps every digit
    if not isinstance(latest, str):
        raise ValueError("'latest_version' in update must be a quoted string")

    update_url = data.get('update_url', defaults.update_url)
    changelog = data.get('changelog', defaults.changelog)
    for key, value in (('update_url', update_url), ('changelog', changelog)):
        if not isinstance(value, str):
            raise ValueError(f"'{key}' in update must be a string")

    force_update = data.get('force_update', defaults.force_update)
    if not isinstance(force_update, bool):
        raise ValueError("'force_update' in update must be a boolean")

    return UpdateConfig(
        latest_version=latest.strip(),
        update_url=update_url,
        changelog=changelog,
        force_update=force_update,
    )


def _parse_log_level(data) -> str:
    data = _require_dict(data, 'log')
    _reject_unknown(data, {'level'}, 'log')
    level = data.get('level', 'INFO')
    valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if not isinstance(level, str) or level.upper() not in valid_levels:
        raise ValueError(f"'level' in log must be one of: {valid_levels}")
    return level.upper()
