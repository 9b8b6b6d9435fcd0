"""
Trial metering and access codes.

The free tier allows `free_trial_limit` dataset ingestions. Past that, the
user needs a valid session, obtained by entering an access code. Codes come
from a fixed built-in set (including one admin code) and from a registry of
codes minted by the admin, each with its own session duration.
"""
from __future__ import annotations

import json
import logging
import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Mapping, Optional

from .config import Settings
from .errors import ValidationError
from .models import Session
from .store import CODE_METADATA_KEY, CODES_KEY, SessionStore
from .utils import MS_PER_DAY, clean_upper, now_ms

logger = logging.getLogger(__name__)

_FALLBACK_CODE_PREFIX = "USER"


def is_locked(session: Optional[Session], usage_count: int, free_limit: int, now: Optional[int] = None) -> bool:
    """
    True when the user must pass the access gate before uploading.

    A live session always unlocks; otherwise the free trial unlocks while
    usage_count < free_limit.
    """
    current = now_ms() if now is None else now
    if session is not None and session.expiry > current:
        return False
    if usage_count < free_limit:
        return False
    return True


@dataclass(frozen=True)
class CodeCheck:
    valid: bool
    is_admin: bool = False


def validate_code(code: str, builtins: Iterable[str], issued_codes: Iterable[str], admin_code: str) -> CodeCheck:
    trimmed = (code or "").strip()
    if not trimmed:
        return CodeCheck(valid=False)
    valid = trimmed in set(builtins) or trimmed in set(issued_codes)
    if not valid:
        return CodeCheck(valid=False)
    return CodeCheck(valid=True, is_admin=trimmed == admin_code)


def resolve_duration(code: str, duration_map: Mapping[str, int], default_duration: int) -> int:
    value = duration_map.get(code)
    if value is None:
        return default_duration
    return int(value)


def login(code: str, is_admin: bool, duration: int, now: Optional[int] = None) -> Session:
    current = now_ms() if now is None else now
    return Session(access_code=code, expiry=current + int(duration), is_admin=is_admin)


class CodeRegistry:
    """
    Append-only registry of issued codes, persisted in a SessionStore.

    Built-in codes are never stored; they are only used to avoid collisions.
    """

    def __init__(self, store: SessionStore, builtins: Iterable[str] = (), rng: Optional[random.Random] = None):
        self.store = store
        self.builtins = tuple(builtins)
        self._rng = rng or random.SystemRandom()

    def issued_codes(self) -> list[str]:
        return _load_list(self.store.get(CODES_KEY))

    def durations(self) -> dict[str, int]:
        return _load_map(self.store.get(CODE_METADATA_KEY))

    def issue_code(self, user_name: str, duration_days: float = 1) -> str:
        """
        Mint `{CLEANEDNAME}-{4 digits}` and record it with its session duration.

        Raises ValidationError on an empty name or a non-positive duration.
        """
        if not (user_name or "").strip():
            raise ValidationError("User name is required to generate a code.")
        try:
            days = float(duration_days)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid duration: {duration_days!r}") from e
        if days <= 0:
            raise ValidationError("Duration must be at least one day.")

        prefix = clean_upper(user_name) or _FALLBACK_CODE_PREFIX
        duration_ms = int(days * MS_PER_DAY)
        taken = set(self.builtins)
        minted: dict[str, str] = {}

        # A code and its duration are written together.
        def _mint(current: dict[str, Optional[str]]) -> dict[str, str]:
            codes = _load_list(current[CODES_KEY])
            meta = _load_map(current[CODE_METADATA_KEY])
            used = taken | set(codes) | set(meta)
            candidates = [d for d in range(1000, 10000) if f"{prefix}-{d}" not in used]
            if not candidates:
                raise ValidationError(f"No codes left for name '{prefix}'.")
            code = f"{prefix}-{self._rng.choice(candidates)}"
            minted["code"] = code
            codes.append(code)
            # Metadata of an existing code is never overwritten.
            meta.setdefault(code, duration_ms)
            return {CODES_KEY: json.dumps(codes), CODE_METADATA_KEY: json.dumps(meta)}

        self.store.update_many((CODES_KEY, CODE_METADATA_KEY), _mint)
        code = minted["code"]
        logger.info("Issued access code %s (duration_ms=%d)", code, duration_ms)
        return code


def _load_list(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    try:
        obj = json.loads(raw)
    except ValueError:
        return []
    return [str(x) for x in obj] if isinstance(obj, list) else []


def _load_map(raw: Optional[str]) -> dict[str, int]:
    if not raw:
        return {}
    try:
        obj = json.loads(raw)
    except ValueError:
        return {}
    if not isinstance(obj, dict):
        return {}
    out: dict[str, int] = {}
    for k, v in obj.items():
        try:
            out[str(k)] = int(v)
        except (TypeError, ValueError):
            continue
    return out


class GateState(str, Enum):
    IDLE = "idle"
    VERIFYING = "verifying"
    SUCCESS = "success"
    ADMIN_UNLOCKED = "admin_unlocked"
    FAILURE = "failure"


class AccessGate:
    """
    One login form's state machine.

    Idle -> Verifying -> Success | AdminUnlocked | Failure. AdminUnlocked can
    mint codes any number of times, and `enter_as_admin` moves it to Success.
    A failed attempt can be retried from Failure.
    """

    def __init__(
        self,
        registry: CodeRegistry,
        settings: Settings,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], int] = now_ms,
    ):
        self.registry = registry
        self.settings = settings
        self._sleep = sleep
        self._clock = clock
        self.state = GateState.IDLE
        self.session: Optional[Session] = None
        self.error: Optional[str] = None
        self.generated_code: Optional[str] = None
        self._admin_code_entered: Optional[str] = None

    def submit(self, code: str) -> GateState:
        if self.state not in (GateState.IDLE, GateState.FAILURE):
            return self.state
        self.error = None
        self.state = GateState.VERIFYING
        if self.settings.verify_delay_s > 0:
            self._sleep(self.settings.verify_delay_s)

        trimmed = (code or "").strip()
        check = validate_code(
            trimmed,
            self.settings.builtin_codes,
            self.registry.issued_codes(),
            self.settings.admin_code,
        )
        if not check.valid:
            logger.info("Rejected access code attempt")
            self.error = "Invalid access code."
            self.state = GateState.FAILURE
            return self.state

        if check.is_admin:
            logger.info("Admin code accepted")
            self._admin_code_entered = trimmed
            self.state = GateState.ADMIN_UNLOCKED
            return self.state

        duration = resolve_duration(trimmed, self.registry.durations(), self.settings.session_duration_ms)
        self.session = login(trimmed, False, duration, now=self._clock())
        self.state = GateState.SUCCESS
        logger.info("Access granted for code %s until %d", trimmed, self.session.expiry)
        return self.state

    def mint_code(self, user_name: str, duration_days: float = 1) -> str:
        if self.state != GateState.ADMIN_UNLOCKED:
            raise ValidationError("Only an unlocked admin can generate codes.")
        self.generated_code = self.registry.issue_code(user_name, duration_days)
        return self.generated_code

    def enter_as_admin(self) -> Session:
        if self.state != GateState.ADMIN_UNLOCKED or self._admin_code_entered is None:
            raise ValidationError("Admin access has not been verified.")
        duration = resolve_duration(
            self._admin_code_entered, self.registry.durations(), self.settings.session_duration_ms
        )
        self.session = login(self._admin_code_entered, True, duration, now=self._clock())
        self.state = GateState.SUCCESS
        return self.session
