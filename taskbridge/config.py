"""
Task Feed Configuration

Settings come from the environment, optionally overridden by launch
parameters (query string of the page that embeds the feed).

ENVIRONMENT:
============
BITRIX_WEBHOOK_URL      incoming webhook base, e.g. https://x.bitrix24.kz/rest/13/abc/
BITRIX_PROXY_URL        relay endpoint, e.g. https://app.example.com/server/bitrix
BITRIX_SUPPORTS_PROXY   force proxy availability on/off (default: proxy url set)
BITRIX_TIMEOUT_SECONDS  per-request timeout handed to the HTTP client
BITRIX_DEMO_MODE        serve DEMO_TASKS instead of calling the remote
BITRIX_USER_MAPPING     telegram_id:bitrix_id pairs, comma separated
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional, Tuple
from urllib.parse import parse_qs
import os

from .errors import ConfigurationError


DEFAULT_TIMEOUT_SECONDS = 30.0

_FALSE_VALUES = frozenset({'0', 'false', 'no', 'off'})

DEMO_TASKS: Tuple[dict, ...] = (
    {
        'ID': '101',
        'TITLE': 'Approve the weekly content plan',
        'DESCRIPTION': 'Prepare and approve post topics for Instagram and TikTok.',
        'STATUS': '3',
        'DEADLINE': '2024-06-05T18:00:00+03:00',
        'PRIORITY': '2',
        'CREATED_BY': '13',
        'CREATED_DATE': '2024-05-30T09:00:00+03:00',
    },
    {
        'ID': '102',
        'TITLE': 'Launch the Meta ad campaign',
        'DESCRIPTION': 'Set up audiences and verify the pixel. Report first results.',
        'STATUS': '2',
        'DEADLINE': '2024-06-03T12:00:00+03:00',
        'PRIORITY': '1',
        'CREATED_BY': '13',
        'CREATED_DATE': '2024-05-29T11:30:00+03:00',
    },
    {
        'ID': '103',
        'TITLE': 'Monthly lead report',
        'DESCRIPTION': 'Collect CRM statistics and export a deck for the client.',
        'STATUS': '5',
        'DEADLINE': '2024-05-31T19:00:00+03:00',
        'CLOSED_DATE': '2024-05-31T17:45:00+03:00',
        'PRIORITY': '0',
        'CREATED_BY': '13',
        'CREATED_DATE': '2024-05-27T10:15:00+03:00',
    },
)


def ensure_trailing_slash(value: Optional[str]) -> str:
    if not value:
        return ''
    trimmed = value.strip()
    if not trimmed:
        return ''
    return trimmed if trimmed.endswith('/') else f"{trimmed}/"


def parse_bool(value: Optional[str]) -> Optional[bool]:
    """None for unset; a bare flag ("?demo") counts as True."""
    if value is None:
        return None
    normalized = value.strip().lower()
    if not normalized:
        return True
    return normalized not in _FALSE_VALUES


def parse_user_mapping(value: Optional[str]) -> Dict[str, str]:
    """'721249582:13, 555:14' -> {'721249582': '13', '555': '14'}"""
    mapping: Dict[str, str] = {}
    for pair in (value or '').split(','):
        if ':' not in pair:
            continue
        telegram_id, bitrix_id = (part.strip() for part in pair.split(':', 1))
        if telegram_id and bitrix_id:
            mapping[telegram_id] = bitrix_id
    return mapping


def _sanitize_id(value: Optional[str]) -> str:
    if not value:
        return ''
    return ''.join(value.split()).lstrip('@')


@dataclass(frozen=True)
class LaunchOverrides:
    """Manual overrides passed as launch parameters."""
    telegram_id: str = ''
    bitrix_user_id: str = ''
    webhook: str = ''
    demo_mode: Optional[bool] = None

    @classmethod
    def parse(cls, query_string: str = '') -> 'LaunchOverrides':
        params = parse_qs((query_string or '').lstrip('?'), keep_blank_values=True)

        def first(*names: str) -> Optional[str]:
            for name in names:
                values = params.get(name)
                if values:
                    return values[0]
            return None

        return cls(
            telegram_id=_sanitize_id(first('telegram_id', 'tg')),
            bitrix_user_id=_sanitize_id(first('bitrix_user_id', 'bx')),
            webhook=(first('webhook', 'hook') or '').strip(),
            demo_mode=parse_bool(first('demo')),
        )


@dataclass(frozen=True)
class BitrixConfig:
    """Settings for one task feed session."""
    webhook_url: str = ''
    proxy_url: str = ''
    supports_proxy: Optional[bool] = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    demo_mode: bool = False
    user_mapping: Mapping[str, str] = field(default_factory=dict)
    demo_tasks: Tuple[dict, ...] = DEMO_TASKS

    def __post_init__(self):
        object.__setattr__(self, 'webhook_url', ensure_trailing_slash(self.webhook_url))
        object.__setattr__(self, 'proxy_url', (self.proxy_url or '').strip())
        if self.supports_proxy is None:
            object.__setattr__(self, 'supports_proxy', bool(self.proxy_url))
        if self.supports_proxy and not self.proxy_url:
            raise ConfigurationError("BITRIX_SUPPORTS_PROXY is on but BITRIX_PROXY_URL is not set")
        if self.timeout_seconds <= 0:
            raise ConfigurationError("BITRIX_TIMEOUT_SECONDS must be > 0")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'BitrixConfig':
        env = os.environ if environ is None else environ

        timeout_raw = env.get('BITRIX_TIMEOUT_SECONDS', '')
        try:
            timeout = float(timeout_raw) if timeout_raw.strip() else DEFAULT_TIMEOUT_SECONDS
        except ValueError:
            raise ConfigurationError(
                f"BITRIX_TIMEOUT_SECONDS must be a number, got {timeout_raw!r}"
            ) from None

        return cls(
            webhook_url=env.get('BITRIX_WEBHOOK_URL', ''),
            proxy_url=env.get('BITRIX_PROXY_URL', ''),
            supports_proxy=parse_bool(env.get('BITRIX_SUPPORTS_PROXY')),
            timeout_seconds=timeout,
            demo_mode=bool(parse_bool(env.get('BITRIX_DEMO_MODE'))),
            user_mapping=parse_user_mapping(env.get('BITRIX_USER_MAPPING')),
        )

    def with_overrides(self, overrides: LaunchOverrides) -> 'BitrixConfig':
        changes = {}
        if overrides.webhook:
            changes['webhook_url'] = overrides.webhook
        if overrides.demo_mode is not None:
            changes['demo_mode'] = overrides.demo_mode
        return replace(self, **changes) if changes else self

    def require_webhook(self) -> str:
        if not self.webhook_url:
            raise ConfigurationError("BITRIX_WEBHOOK_URL is not set")
        return self.webhook_url

    def resolve_user_id(
        self,
        telegram_id: Optional[str] = None,
        overrides: Optional[LaunchOverrides] = None
    ) -> Optional[str]:
        """Bitrix user id for the current user; explicit override wins."""
        if overrides and overrides.bitrix_user_id:
            return overrides.bitrix_user_id
        key = telegram_id or (overrides.telegram_id if overrides else '')
        if not key:
            return None
        return self.user_mapping.get(str(key))
