"""Unit tests for the shipment lifecycle state machine."""

from datetime import datetime, timedelta, timezone

import pytest

from cargo_core.core.lifecycle import (
    MILESTONES,
    apply_scan,
    can_transition,
    check_transition,
    normalize_scan_status,
    recompute_from_history,
)
from cargo_core.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    MissingStatusError,
    StaleScanTimestampError,
)
from cargo_core.models.shipment import Actor, ScanEvent, ScanInput, ShipmentStatus as S


T0 = datetime(2025, 10, 1, 9, 0, tzinfo=timezone.utc)


def scan(status, actor_role="driver"):
    return ScanInput(status=status, actor=Actor(user_id="u1", role=actor_role))


class TestCanTransition:
    """Test the transition table."""

    @pytest.mark.parametrize("current,proposed,allowed", [
        # forward moves, including skips
        (S.BOOKED, S.PICKED_UP, True),
        (S.BOOKED, S.DELIVERED, True),
        (S.PICKED_UP, S.AT_HUB, True),
        (S.OUT_FOR_DELIVERY, S.DELIVERED, True),
        # backward and repeated milestones
        (S.IN_TRANSIT, S.PICKED_UP, False),
        (S.AT_HUB, S.AT_HUB, False),
        (S.PICKED_UP, S.BOOKED, False),
        # EXCEPTION
        (S.BOOKED, S.EXCEPTION, True),
        (S.OUT_FOR_DELIVERY, S.EXCEPTION, True),
        (S.EXCEPTION, S.EXCEPTION, True),
        (S.DELIVERED, S.EXCEPTION, False),
        # leaving EXCEPTION needs an override
        (S.EXCEPTION, S.IN_TRANSIT, False),
        (S.EXCEPTION, S.DELIVERED, False),
        # CANCELED
        (S.BOOKED, S.CANCELED, False),
        (S.CANCELED, S.PICKED_UP, False),
        (S.CANCELED, S.EXCEPTION, True),
        # DELIVERED is final
        (S.DELIVERED, S.DELIVERED, False),
        (S.DELIVERED, S.BOOKED, False),
        # no status yet
        (None, S.BOOKED, True),
        (None, S.CANCELED, False),
    ])
    def test_rules(self, current, proposed, allowed):
        """Test the rule for a pair of statuses."""
        result, reason = can_transition(current, proposed)
        assert result is allowed
        assert (reason == "") is allowed

    def test_forward_only_between_milestones(self):
        """Test every milestone pair is allowed iff it moves forward."""
        for i, current in enumerate(MILESTONES[:-1]):
            for j, proposed in enumerate(MILESTONES):
                assert can_transition(current, proposed)[0] is (j > i)

    def test_delivered_final_without_override(self):
        """Test nothing leaves DELIVERED without an override."""
        for proposed in S:
            assert can_transition(S.DELIVERED, proposed, admin_override=False)[0] is False
            assert can_transition(S.DELIVERED, proposed, admin_override=True)[0] is True

    def test_override_allows_everything(self):
        """Test admin override allows any change."""
        for current in S:
            for proposed in S:
                assert can_transition(current, proposed, admin_override=True) == (True, "")

    def test_check_transition_raises(self):
        """Test the error names the current and attempted status."""
        with pytest.raises(InvalidTransitionError) as exc_info:
            check_transition(S.DELIVERED, S.EXCEPTION)
        error = exc_info.value
        assert error.current == "DELIVERED"
        assert error.proposed == "EXCEPTION"
        assert "DELIVERED" in str(error) and "EXCEPTION" in str(error)
        assert error.status_code == 400

    def test_check_transition_passes(self):
        """Test allowed transitions do not raise."""
        check_transition(S.BOOKED, S.IN_TRANSIT)


class TestNormalizeScanStatus:
    """Test normalize_scan_status."""

    @pytest.mark.parametrize("raw,expected", [
        ("INTAKE", S.PICKED_UP),
        ("bagged", S.IN_TRANSIT),
        ("LOADED", S.IN_TRANSIT),
        ("customs_in", S.IN_TRANSIT),
        ("CUSTOMS_OUT", S.IN_TRANSIT),
        ("UNLOADED", S.AT_HUB),
        ("ARRIVED_HUB", S.AT_HUB),
        ("RETURNED", S.EXCEPTION),
        ("DAMAGED", S.EXCEPTION),
        ("LOST", S.EXCEPTION),
        ("hold", S.EXCEPTION),
        ("Delivered", S.DELIVERED),
        (" out_for_delivery ", S.OUT_FOR_DELIVERY),
        ("CANCELED", S.CANCELED),
        (S.AT_HUB, S.AT_HUB),
    ])
    def test_known(self, raw, expected):
        """Test canonical names and legacy types."""
        assert normalize_scan_status(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "   "])
    def test_missing(self, raw):
        """Test an empty status raises MissingStatusError."""
        with pytest.raises(MissingStatusError):
            normalize_scan_status(raw)

    def test_unsupported(self):
        """Test an unknown status raises InvalidInputError."""
        with pytest.raises(InvalidInputError) as exc_info:
            normalize_scan_status("TELEPORTED")
        assert not isinstance(exc_info.value, MissingStatusError)
        assert "TELEPORTED" in str(exc_info.value)


class TestApplyScan:
    """Test apply_scan."""

    def test_skip_to_delivered(self, booked_shipment):
        """Test BOOKED -> DELIVERED is allowed and sets the delivered time."""
        updated = apply_scan(booked_shipment, scan(S.DELIVERED), now=T0)

        assert updated.status == S.DELIVERED
        assert updated.delivered_at == T0
        assert updated.last_scan_at == T0
        assert len(updated.scans) == 1
        assert updated.scans[0].status == S.DELIVERED
        assert updated.scans[0].created_at == T0
        assert updated.scans[0].actor.role == "driver"

    def test_input_not_modified(self, booked_shipment):
        """Test the original shipment is left untouched."""
        apply_scan(booked_shipment, scan(S.PICKED_UP), now=T0)
        assert booked_shipment.status == S.BOOKED
        assert booked_shipment.scans == []

    def test_delivered_then_exception_rejected(self, booked_shipment):
        """Test DELIVERED -> EXCEPTION is rejected."""
        delivered = apply_scan(booked_shipment, scan(S.DELIVERED), now=T0)
        with pytest.raises(InvalidTransitionError):
            apply_scan(delivered, scan(S.EXCEPTION), now=T0 + timedelta(minutes=5))

    def test_missing_status(self, booked_shipment):
        """Test a scan without status raises MissingStatusError."""
        with pytest.raises(MissingStatusError):
            apply_scan(booked_shipment, ScanInput(status=None), now=T0)

    def test_backward_rejected(self, booked_shipment):
        """Test backward moves are rejected without override."""
        moved = apply_scan(booked_shipment, scan(S.IN_TRANSIT), now=T0)
        with pytest.raises(InvalidTransitionError):
            apply_scan(moved, scan(S.PICKED_UP), now=T0 + timedelta(minutes=1))

    def test_admin_override(self, booked_shipment):
        """Test admin override allows backward moves."""
        moved = apply_scan(booked_shipment, scan(S.IN_TRANSIT), now=T0)
        back = apply_scan(moved, scan(S.BOOKED, "admin"), admin_override=True, now=T0 + timedelta(minutes=1))
        assert back.status == S.BOOKED
        assert len(back.scans) == 2

    @pytest.mark.parametrize("delta", [timedelta(0), timedelta(seconds=-1)])
    def test_stale_timestamp(self, booked_shipment, delta):
        """Test a scan time not after the last scan raises StaleScanTimestampError."""
        first = apply_scan(booked_shipment, scan(S.PICKED_UP), now=T0)
        with pytest.raises(StaleScanTimestampError) as exc_info:
            apply_scan(first, scan(S.IN_TRANSIT), now=T0 + delta)
        assert exc_info.value.status_code == 409

    def test_stale_timestamp_not_bypassed_by_override(self, booked_shipment):
        """Test admin override does not bypass the timestamp check."""
        first = apply_scan(booked_shipment, scan(S.PICKED_UP), now=T0)
        with pytest.raises(StaleScanTimestampError):
            apply_scan(first, scan(S.IN_TRANSIT, "admin"), admin_override=True, now=T0)

    def test_rejected_scan_leaves_no_state(self, booked_shipment):
        """Test failed checks do not append scans."""
        first = apply_scan(booked_shipment, scan(S.PICKED_UP), now=T0)
        with pytest.raises(StaleScanTimestampError):
            apply_scan(first, scan(S.IN_TRANSIT), now=T0)
        assert len(first.scans) == 1
        assert first.status == S.PICKED_UP

    def test_delivered_at_set_once(self, booked_shipment):
        """Test a second DELIVERED scan keeps the first delivered time."""
        delivered = apply_scan(booked_shipment, scan(S.DELIVERED), now=T0)
        exception = apply_scan(delivered, scan(S.EXCEPTION, "admin"), admin_override=True, now=T0 + timedelta(hours=1))
        again = apply_scan(exception, scan(S.DELIVERED, "admin"), admin_override=True, now=T0 + timedelta(hours=2))

        assert again.status == S.DELIVERED
        assert again.delivered_at == T0

    def test_default_now(self, booked_shipment):
        """Test the scan time defaults to the current time."""
        before = datetime.now(timezone.utc)
        updated = apply_scan(booked_shipment, scan(S.PICKED_UP))
        assert updated.last_scan_at >= before


class TestRecomputeFromHistory:
    """Test recompute_from_history."""

    def test_empty_history(self, booked_shipment):
        """Test no scans means BOOKED with no timestamps."""
        delivered = apply_scan(booked_shipment, scan(S.DELIVERED), now=T0)
        emptied = delivered.model_copy(update={"scans": []})

        result = recompute_from_history(emptied)
        assert result.status == S.BOOKED
        assert result.last_scan_at is None
        assert result.delivered_at is None

    def test_sorted_by_time(self, booked_shipment):
        """Test status comes from the latest scan regardless of order."""
        scans = [
            ScanEvent(status=S.AT_HUB, created_at=T0 + timedelta(hours=2)),
            ScanEvent(status=S.PICKED_UP, created_at=T0),
            ScanEvent(status=S.IN_TRANSIT, created_at=T0 + timedelta(hours=1)),
        ]
        result = recompute_from_history(booked_shipment.model_copy(update={"scans": scans}))

        assert [s.status for s in result.scans] == [S.PICKED_UP, S.IN_TRANSIT, S.AT_HUB]
        assert result.status == S.AT_HUB
        assert result.last_scan_at == T0 + timedelta(hours=2)
        assert result.delivered_at is None

    def test_earliest_delivered(self, booked_shipment):
        """Test the delivered time is the earliest DELIVERED scan."""
        scans = [
            ScanEvent(status=S.DELIVERED, created_at=T0 + timedelta(hours=3)),
            ScanEvent(status=S.DELIVERED, created_at=T0 + timedelta(hours=1)),
            ScanEvent(status=S.EXCEPTION, created_at=T0 + timedelta(hours=2)),
        ]
        result = recompute_from_history(booked_shipment.model_copy(update={"scans": scans}))
        assert result.status == S.DELIVERED
        assert result.delivered_at == T0 + timedelta(hours=1)

    def test_transition_rules_not_rerun(self, booked_shipment):
        """Test an edited history is accepted as-is."""
        scans = [
            ScanEvent(status=S.DELIVERED, created_at=T0),
            ScanEvent(status=S.PICKED_UP, created_at=T0 + timedelta(hours=1)),
        ]
        result = recompute_from_history(booked_shipment.model_copy(update={"scans": scans}))
        assert result.status == S.PICKED_UP
        assert result.delivered_at == T0
