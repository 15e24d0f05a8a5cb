from datetime import datetime, timedelta, timezone

import pytest

from app.models import OvertimeRequest, TrainingRecord
from conftest import FIXED_NOW, fixed_now
from domain.errors import NotFoundError
from service.data_store import SqlAlchemyHRDataStore
from service.features import (
    FeatureExtractor,
    aggregate_attendance,
    aggregate_performance,
    age_from_birth_date,
    position_level,
    round_half_up,
    tenure_months,
)


def make_extractor(db):
    return FeatureExtractor(SqlAlchemyHRDataStore(db), now=fixed_now)


# Sans historique de performance : moyenne, tendance et variance à 0
def test_aggregate_performance_without_records_is_neutral():
    stats = aggregate_performance([])
    assert stats.avg_score == 0
    assert stats.trend == 0
    assert stats.variance == 0
    assert stats.recent_score == 0


# Variance de population (division par n) et tendance dernier - premier
def test_aggregate_performance_population_variance_and_trend():
    stats = aggregate_performance([90, 80, 70])
    assert stats.avg_score == 80
    assert stats.variance == pytest.approx(200 / 3)
    assert stats.trend == -20
    assert stats.recent_score == 70


def test_aggregate_performance_single_record_has_no_trend():
    stats = aggregate_performance([75])
    assert stats.trend == 0
    assert stats.variance == 0
    assert stats.avg_score == 75


# Pas de pointage : 100 % de présence (l'absence de données n'est pas une pénalité)
def test_aggregate_attendance_without_records_is_full_attendance():
    stats = aggregate_attendance([])
    assert stats.rate == 100
    assert (stats.late_count, stats.early_leave_count, stats.leave_count) == (0, 0, 0)


def test_aggregate_attendance_counts_statuses():
    stats = aggregate_attendance(["present"] * 5 + ["late", "late", "early_leave", "leave"])
    # 5 / 9 = 55.55...%
    assert stats.rate == 56
    assert stats.late_count == 2
    assert stats.early_leave_count == 1
    assert stats.leave_count == 1


@pytest.mark.parametrize(
    "title, level",
    [
        ("研发总监", 4),
        ("VP Engineering", 4),
        ("销售经理", 3),
        ("Product Manager", 3),
        ("客服主管", 2),
        ("测试组长", 2),
        ("软件工程师", 1),
        ("", 1),
        (None, 1),
    ],
)
def test_position_level_from_title_keywords(title, level):
    assert position_level(title) == level


def test_tenure_months_uses_30_day_months():
    assert tenure_months(FIXED_NOW - timedelta(days=59), FIXED_NOW) == 1
    assert tenure_months(FIXED_NOW - timedelta(days=60), FIXED_NOW) == 2
    # date d'embauche inconnue : ancienneté nulle
    assert tenure_months(None, FIXED_NOW) == 0


def test_age_defaults_to_30_without_birth_date():
    assert age_from_birth_date(None, FIXED_NOW) == 30
    assert age_from_birth_date(datetime(1990, 5, 1), FIXED_NOW) == 36


def test_round_half_up():
    assert round_half_up(4.5) == 5
    assert round_half_up(4.4999) == 4
    assert round_half_up(33.333) == 33


# Un employé d'une autre organisation est introuvable
def test_extract_raises_not_found_for_other_organization(db, add_employee):
    add_employee("e-1", "org-1")
    with pytest.raises(NotFoundError):
        make_extractor(db).extract("e-1", "org-2")


def test_extract_employee_without_history_uses_neutral_values(db, add_employee):
    add_employee("e-1", hire_date=None, birth_date=None, position=None, department="研发部")

    f = make_extractor(db).extract("e-1", "org-1")

    assert f.avg_performance_score == 0
    assert f.performance_trend == 0
    assert f.performance_variance == 0
    assert f.attendance_rate == 100
    assert f.tenure_months == 0
    assert f.age == 30
    assert f.position_level == 1
    assert f.department == "研发部"
    # composites : 0*0.6 + 100*0.4 ; 100*0.3 ; 0*0.7 + 80*0.3
    assert f.engagement_score == 40
    assert f.stress_level == 30
    assert f.satisfaction_score == 24
    # placeholders signalés comme non mesurés
    assert f.training_completion_rate == 80
    assert f.overtime_hours == 0
    assert f.availability.performance_history is False
    assert f.availability.attendance_history is False
    assert f.availability.overtime_hours is False
    assert f.availability.training_completion_rate is False


def test_extract_full_feature_record(db, add_employee):
    add_employee(
        "e-1",
        position="销售经理",
        department="销售部",
        hire_date=FIXED_NOW - timedelta(days=730),
        birth_date=datetime(1990, 5, 1, tzinfo=timezone.utc),
        scores=[90, 80, 70],
        statuses=["present"] * 8 + ["late", "leave"],
        interviews=4,
    )

    f = make_extractor(db).extract("e-1", "org-1")

    assert f.tenure_months == 24
    assert f.age == 36
    assert f.position_level == 3
    assert f.avg_performance_score == 80
    assert f.performance_trend == -20
    assert f.performance_variance == pytest.approx(200 / 3)
    assert f.recent_performance_score == 70
    assert f.attendance_rate == 80
    assert f.late_count == 1
    assert f.leave_count == 1
    assert f.interview_count == 4
    assert f.engagement_score == 80
    # 6 + 13.33 + 6 + 5 + 3
    assert f.stress_level == 33
    assert f.satisfaction_score == 80
    assert f.availability.performance_history is True
    assert f.availability.attendance_history is True


# Le stress est plafonné à 100
def test_stress_level_is_capped(db, add_employee):
    add_employee("e-1", scores=[10, 90, 10, 90], statuses=["late"] * 20)
    f = make_extractor(db).extract("e-1", "org-1")
    assert f.stress_level == 100


def test_extract_uses_recorded_overtime_and_training(db, add_employee):
    add_employee("e-1")
    db.add_all(
        [
            OvertimeRequest(employee_id="e-1", duration_minutes=600, status="approved",
                            overtime_date=FIXED_NOW - timedelta(days=2)),
            OvertimeRequest(employee_id="e-1", duration_minutes=900, status="approved",
                            overtime_date=FIXED_NOW - timedelta(days=10)),
            # non approuvée : ignorée
            OvertimeRequest(employee_id="e-1", duration_minutes=300, status="pending",
                            overtime_date=FIXED_NOW - timedelta(days=3)),
            # hors fenêtre de 30 jours : ignorée
            OvertimeRequest(employee_id="e-1", duration_minutes=600, status="approved",
                            overtime_date=FIXED_NOW - timedelta(days=40)),
            TrainingRecord(employee_id="e-1", course_title="A", status="completed"),
            TrainingRecord(employee_id="e-1", course_title="B", status="completed"),
            TrainingRecord(employee_id="e-1", course_title="C", status="completed"),
            TrainingRecord(employee_id="e-1", course_title="D", status="in_progress"),
            TrainingRecord(employee_id="e-1", course_title="E", status="cancelled"),
        ]
    )
    db.commit()

    f = make_extractor(db).extract("e-1", "org-1")

    assert f.overtime_hours == 25
    assert f.training_completion_rate == 75
    assert f.availability.overtime_hours is True
    assert f.availability.training_completion_rate is True


# Des demandes existent mais aucune n'est approuvée : zéro confirmé, pas un placeholder
def test_overtime_confirmed_zero_is_marked_available(db, add_employee):
    add_employee("e-1")
    db.add(OvertimeRequest(employee_id="e-1", duration_minutes=120, status="rejected",
                           overtime_date=FIXED_NOW - timedelta(days=1)))
    db.commit()

    f = make_extractor(db).extract("e-1", "org-1")

    assert f.overtime_hours == 0
    assert f.availability.overtime_hours is True
