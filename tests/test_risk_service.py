from datetime import datetime, timedelta

from app.schemas.fraud import FlagKind, RiskLevel, SuspiciousFlag
from app.services.risk_service import RiskService

NOW = datetime(2026, 3, 10, 9, 0, 0)

HIGH = SuspiciousFlag.of(FlagKind.MISSING_TIMESTAMP, "sin timestamp")
HIGH_2 = SuspiciousFlag.of(FlagKind.PERFECT_COORDINATES, "ceros")
MEDIUM = SuspiciousFlag.of(FlagKind.LOW_GPS_VARIATION, "variación baja")
MEDIUM_2 = SuspiciousFlag.of(FlagKind.SUSPICIOUS_ACCURACY, "precisión exacta")
LOW = SuspiciousFlag.of(FlagKind.ABNORMAL_ACCURACY, "fuera de rango")


def test_classify():
    risk = RiskService()
    assert risk.classify([]) == RiskLevel.LOW
    assert risk.classify([LOW, MEDIUM]) == RiskLevel.LOW
    assert risk.classify([MEDIUM, MEDIUM_2]) == RiskLevel.MEDIUM
    assert risk.classify([HIGH]) == RiskLevel.MEDIUM
    assert risk.classify([HIGH, HIGH_2]) == RiskLevel.HIGH


def test_fifth_warning_blocks_for_thirty_minutes(risk_service):
    for _ in range(4):
        status = risk_service.register("u1", [HIGH], NOW)
        assert not status.blocked

    status = risk_service.register("u1", [HIGH], NOW)

    assert status.blocked
    assert status.warning_count == 5
    assert status.remaining_minutes == 30
    assert risk_service.get_record("u1").blocked_until == NOW + timedelta(minutes=30)


def test_blocked_user_sees_remaining_minutes(risk_service):
    for _ in range(5):
        risk_service.register("u1", [HIGH], NOW)

    assessment = risk_service.evaluate("u1", [], NOW + timedelta(minutes=10, seconds=30))

    assert assessment.level == RiskLevel.BLOCKED
    assert assessment.remaining_minutes == 20
    assert "20 minutos" in assessment.message


def test_expired_block_resets_warnings(risk_service):
    for _ in range(5):
        risk_service.register("u1", [HIGH], NOW)

    status = risk_service.check_block("u1", NOW + timedelta(minutes=31))

    assert not status.blocked
    assert status.warning_count == 0
    record = risk_service.get_record("u1")
    assert record.blocked is False
    assert record.blocked_until is None


def test_only_high_flags_count(risk_service):
    status = risk_service.register("u1", [MEDIUM, LOW], NOW)
    assert status.warning_count == 0
    assert risk_service.get_record("u1").incidents == []

    status = risk_service.register("u1", [HIGH, HIGH_2, MEDIUM], NOW)
    assert status.warning_count == 2
    assert len(risk_service.get_record("u1").incidents[0].flags) == 3


def test_single_high_flag_is_reported_but_not_counted(risk_service):
    assessment = risk_service.evaluate("u1", [HIGH], NOW)

    assert assessment.level == RiskLevel.MEDIUM
    assert assessment.warning_count == 0


def test_high_evaluations_accumulate_into_block(risk_service):
    levels = [risk_service.evaluate("u1", [HIGH, HIGH_2], NOW).level for _ in range(3)]

    assert levels == [RiskLevel.HIGH, RiskLevel.HIGH, RiskLevel.BLOCKED]
    assert risk_service.get_record("u1").warning_count == 6


def test_incident_log_is_bounded(risk_service):
    for i in range(25):
        risk_service.clear_warnings("u1")
        risk_service.register("u1", [HIGH], NOW + timedelta(minutes=i))

    incidents = risk_service.get_record("u1").incidents
    assert len(incidents) == 20
    assert incidents[-1].occurred_at == NOW + timedelta(minutes=24)


def test_is_accepted():
    assert RiskService.is_accepted(True, RiskLevel.MEDIUM)
    assert not RiskService.is_accepted(True, RiskLevel.HIGH)
    assert not RiskService.is_accepted(True, RiskLevel.BLOCKED)
    assert not RiskService.is_accepted(False, RiskLevel.LOW)


def test_clear_warnings_lifts_block(risk_service):
    assert risk_service.clear_warnings("unknown") is False

    for _ in range(5):
        risk_service.register("u1", [HIGH], NOW)
    assert risk_service.clear_warnings("u1") is True

    assert not risk_service.check_block("u1", NOW).blocked
