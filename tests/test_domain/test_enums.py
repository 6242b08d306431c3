"""Tests for domain enumerations."""

from __future__ import annotations

from homeledger.domain.enums import (
    PENDING_WORK_STATUSES,
    REVIEWABLE_WORK_STATUSES,
    TERMINAL_WORK_STATUSES,
    InvitationStatus,
    NotificationType,
    WorkRecordStatus,
)


class TestWorkRecordStatus:
    def test_all_statuses_exist(self) -> None:
        expected = {"DOCUMENTED_UNVERIFIED", "DOCUMENTED", "DISPUTED", "REJECTED", "APPROVED"}
        assert {s.value for s in WorkRecordStatus} == expected

    def test_status_is_str_enum(self) -> None:
        assert isinstance(WorkRecordStatus.APPROVED, str)
        assert WorkRecordStatus.APPROVED == "APPROVED"

    def test_both_initial_states_are_pending(self) -> None:
        assert WorkRecordStatus.DOCUMENTED_UNVERIFIED.is_pending
        assert WorkRecordStatus.DOCUMENTED.is_pending
        assert not WorkRecordStatus.DISPUTED.is_pending

    def test_only_approved_is_verified(self) -> None:
        assert [s for s in WorkRecordStatus if s.is_verified] == [WorkRecordStatus.APPROVED]

    def test_terminal_statuses(self) -> None:
        assert TERMINAL_WORK_STATUSES == {WorkRecordStatus.APPROVED, WorkRecordStatus.REJECTED}
        assert not WorkRecordStatus.DISPUTED.is_terminal

    def test_reviewable_includes_disputed(self) -> None:
        assert REVIEWABLE_WORK_STATUSES == PENDING_WORK_STATUSES | {WorkRecordStatus.DISPUTED}


class TestInvitationStatus:
    def test_all_statuses_exist(self) -> None:
        assert {s.value for s in InvitationStatus} == {"PENDING", "ACCEPTED", "CANCELLED", "EXPIRED"}


class TestNotificationType:
    def test_work_and_invitation_events(self) -> None:
        # 5 work record + 4 invitation
        assert len(NotificationType) == 9
        assert NotificationType.WORK_VERIFIED == "WORK_VERIFIED"
