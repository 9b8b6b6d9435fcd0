from __future__ import annotations

import json
import random
import threading

import pytest

from hypertune.access import (
    AccessGate,
    CodeRegistry,
    GateState,
    is_locked,
    login,
    resolve_duration,
    validate_code,
)
from hypertune.config import ADMIN_CODE, BUILTIN_ACCESS_CODES, SESSION_DURATION_MS
from hypertune.errors import ValidationError
from hypertune.models import Session
from hypertune.store import CODE_METADATA_KEY, CODES_KEY, MemorySessionStore
from hypertune.utils import MS_PER_DAY

NOW = 1_700_000_000_000


def test_unlocked_below_free_limit_without_session() -> None:
    for usage in range(0, 2):
        assert is_locked(None, usage, 2, now=NOW) is False


def test_locked_at_or_above_free_limit_without_session() -> None:
    for usage in (2, 3, 50):
        assert is_locked(None, usage, 2, now=NOW) is True


def test_live_session_unlocks_regardless_of_usage() -> None:
    session = Session(access_code="DEMO-123", expiry=NOW + 1)
    for usage in (0, 2, 1000):
        assert is_locked(session, usage, 2, now=NOW) is False


def test_expired_session_falls_back_to_usage() -> None:
    session = Session(access_code="DEMO-123", expiry=NOW)
    assert is_locked(session, 5, 2, now=NOW) is True
    assert is_locked(session, 1, 2, now=NOW) is False


def test_validate_code_trims_and_flags_admin() -> None:
    check = validate_code(f"  {ADMIN_CODE} ", BUILTIN_ACCESS_CODES, [], ADMIN_CODE)
    assert check.valid and check.is_admin

    check = validate_code("ALICE-1234", BUILTIN_ACCESS_CODES, ["ALICE-1234"], ADMIN_CODE)
    assert check.valid and not check.is_admin

    assert not validate_code("nope", BUILTIN_ACCESS_CODES, ["ALICE-1234"], ADMIN_CODE).valid
    assert not validate_code("   ", BUILTIN_ACCESS_CODES, [], ADMIN_CODE).valid


def test_resolve_duration_defaults_to_24h() -> None:
    assert resolve_duration("DEMO-123", {}, SESSION_DURATION_MS) == 86_400_000
    assert resolve_duration("BOB-1000", {"BOB-1000": 3 * MS_PER_DAY}, SESSION_DURATION_MS) == 3 * MS_PER_DAY


def test_login_sets_absolute_expiry() -> None:
    session = login("DEMO-123", False, 1000, now=NOW)
    assert session.expiry == NOW + 1000
    assert session.is_valid(NOW + 999)
    assert not session.is_valid(NOW + 1000)


def test_issue_code_format_and_persistence() -> None:
    store = MemorySessionStore()
    registry = CodeRegistry(store, builtins=BUILTIN_ACCESS_CODES, rng=random.Random(7))

    code = registry.issue_code("  jane doe!", 3)

    prefix, digits = code.rsplit("-", 1)
    assert prefix == "JANEDOE"
    assert len(digits) == 4 and 1000 <= int(digits) <= 9999
    assert json.loads(store.get(CODES_KEY)) == [code]
    assert json.loads(store.get(CODE_METADATA_KEY)) == {code: 3 * MS_PER_DAY}


def test_issue_code_grows_registry_by_one_and_never_repeats() -> None:
    registry = CodeRegistry(MemorySessionStore(), rng=random.Random(1))
    seen = []
    for i in range(20):
        seen.append(registry.issue_code("sam"))
        assert len(registry.issued_codes()) == i + 1
    assert len(set(seen)) == len(seen)


def test_issue_code_does_not_overwrite_existing_metadata() -> None:
    store = MemorySessionStore({CODE_METADATA_KEY: json.dumps({"OLD-1111": 42})})
    registry = CodeRegistry(store)
    registry.issue_code("new", 2)
    assert registry.durations()["OLD-1111"] == 42


class RecordingStore(MemorySessionStore):
    def __init__(self) -> None:
        super().__init__()
        self.writes: list[tuple[str, ...]] = []

    def update(self, key, fn):
        self.writes.append((key,))
        return super().update(key, fn)

    def update_many(self, keys, fn):
        keys = tuple(keys)
        self.writes.append(keys)
        return super().update_many(keys, fn)


def test_issue_code_writes_code_and_duration_together() -> None:
    store = RecordingStore()
    CodeRegistry(store).issue_code("ann", 5)
    assert store.writes == [(CODES_KEY, CODE_METADATA_KEY)]


def test_issued_code_is_never_visible_without_its_duration() -> None:
    registry = CodeRegistry(MemorySessionStore(), rng=random.Random(3))
    missing: list[str] = []
    done = threading.Event()

    def mint() -> None:
        for _ in range(200):
            registry.issue_code("load", 2)
        done.set()

    worker = threading.Thread(target=mint)
    worker.start()
    while not done.is_set():
        codes = registry.issued_codes()
        durations = registry.durations()
        missing.extend(c for c in codes if c not in durations)
    worker.join()

    assert missing == []
    assert len(registry.durations()) == 200


def test_issue_code_falls_back_to_user_prefix() -> None:
    code = CodeRegistry(MemorySessionStore()).issue_code("***")
    assert code.startswith("USER-")


@pytest.mark.parametrize("name,days", [("", 1), ("   ", 1), ("ann", 0), ("ann", -2), ("ann", "x")])
def test_issue_code_rejects_bad_input(name, days) -> None:
    store = MemorySessionStore()
    with pytest.raises(ValidationError):
        CodeRegistry(store).issue_code(name, days)
    assert store.get(CODES_KEY) is None


def _gate(settings, store=None) -> AccessGate:
    registry = CodeRegistry(store or MemorySessionStore(), builtins=settings.builtin_codes)
    return AccessGate(registry, settings, sleep=lambda _: None, clock=lambda: NOW)


def test_gate_invalid_code_fails_without_side_effects(settings) -> None:
    store = MemorySessionStore()
    gate = _gate(settings, store)
    assert gate.submit("WRONG") == GateState.FAILURE
    assert gate.error
    assert gate.session is None
    assert store.snapshot() == {}


def test_gate_builtin_code_succeeds_with_default_duration(settings) -> None:
    gate = _gate(settings)
    assert gate.submit(" DEMO-123 ") == GateState.SUCCESS
    assert gate.session == Session(access_code="DEMO-123", expiry=NOW + SESSION_DURATION_MS, is_admin=False)


def test_gate_issued_code_uses_its_own_duration(settings) -> None:
    store = MemorySessionStore()
    code = CodeRegistry(store).issue_code("kim", 7)
    gate = _gate(settings, store)
    assert gate.submit(code) == GateState.SUCCESS
    assert gate.session.expiry == NOW + 7 * MS_PER_DAY


def test_gate_admin_can_mint_repeatedly_then_enter(settings) -> None:
    gate = _gate(settings)
    assert gate.submit(ADMIN_CODE) == GateState.ADMIN_UNLOCKED
    assert gate.session is None

    first = gate.mint_code("ops", 1)
    second = gate.mint_code("ops", 1)
    assert first != second
    assert gate.state == GateState.ADMIN_UNLOCKED

    session = gate.enter_as_admin()
    assert session.is_admin
    assert gate.state == GateState.SUCCESS


def test_gate_retry_after_failure(settings) -> None:
    gate = _gate(settings)
    gate.submit("bad")
    assert gate.submit("HYPER-2025") == GateState.SUCCESS
    assert gate.error is None


def test_mint_requires_admin(settings) -> None:
    gate = _gate(settings)
    with pytest.raises(ValidationError):
        gate.mint_code("x", 1)


def test_gate_applies_verify_delay() -> None:
    from hypertune.config import Settings

    slept = []
    settings = Settings(verify_delay_s=0.8)
    gate = AccessGate(CodeRegistry(MemorySessionStore()), settings, sleep=slept.append, clock=lambda: NOW)
    gate.submit("DEMO-123")
    assert slept == [0.8]
