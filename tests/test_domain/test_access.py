"""Tests for Actor and the work record capability policy."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from homeledger.domain.access import Actor, resolve_capabilities
from homeledger.domain.enums import Capability, UserRole


@dataclass
class FakeWorkRecord:
    contractor_id: uuid.UUID
    home_id: uuid.UUID


def _actor(role: UserRole, email: str = "someone@example.com") -> Actor:
    return Actor(user_id=uuid.uuid4(), role=role, email=email)


class TestResolveCapabilities:
    def test_contractor_edits_and_archives_own_work(self) -> None:
        pro = _actor(UserRole.PRO)
        work = FakeWorkRecord(contractor_id=pro.user_id, home_id=uuid.uuid4())
        caps = resolve_capabilities(pro, work, has_home_access=False)
        assert caps == {Capability.VIEW, Capability.EDIT_EVIDENCE, Capability.ARCHIVE}

    def test_contractor_never_reviews_own_work(self) -> None:
        pro = _actor(UserRole.PRO)
        work = FakeWorkRecord(contractor_id=pro.user_id, home_id=uuid.uuid4())
        caps = resolve_capabilities(pro, work, has_home_access=True)
        assert Capability.VERIFY not in caps

    def test_homeowner_with_access_reviews(self) -> None:
        owner = _actor(UserRole.HOMEOWNER)
        work = FakeWorkRecord(contractor_id=uuid.uuid4(), home_id=uuid.uuid4())
        caps = resolve_capabilities(owner, work, has_home_access=True)
        assert {Capability.VERIFY, Capability.DISPUTE, Capability.REJECT} <= caps
        assert Capability.EDIT_EVIDENCE not in caps

    def test_homeowner_without_access_gets_nothing(self) -> None:
        owner = _actor(UserRole.HOMEOWNER)
        work = FakeWorkRecord(contractor_id=uuid.uuid4(), home_id=uuid.uuid4())
        assert resolve_capabilities(owner, work, has_home_access=False) == frozenset()

    def test_other_contractor_gets_nothing(self) -> None:
        pro = _actor(UserRole.PRO)
        work = FakeWorkRecord(contractor_id=uuid.uuid4(), home_id=uuid.uuid4())
        assert resolve_capabilities(pro, work, has_home_access=True) == frozenset()


class TestActor:
    def test_email_match_is_trimmed_and_case_insensitive(self) -> None:
        actor = _actor(UserRole.HOMEOWNER, "Olivia@Example.com")
        assert actor.email_matches("  olivia@example.COM ")
        assert not actor.email_matches("olivia@example.org")

    def test_label_falls_back_to_email(self) -> None:
        actor = _actor(UserRole.PRO, "pat@example.com")
        assert actor.label == "pat@example.com"
