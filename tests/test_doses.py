import logging
from datetime import date, datetime, timedelta, timezone

import pytz

from medstatus.doses import (
    ExpandedDose,
    Medicine,
    expand_medicine_doses,
    group_doses_by_time,
    next_dose_time,
    sort_doses,
    today_status,
)
from medstatus.status import StatusConfig

NOW = datetime(2026, 3, 10, 8, 0)

MEDICINES = [
    {"id": "1", "name": "Vitamin D", "dosage": "1000 IU", "time": "08:00 AM", "times": ["08:00 AM"]},
    {"id": "2", "name": "Aspirin", "dosage": "75mg", "time": "As needed", "times": ["As needed"], "asNeeded": True},
    {"id": "3", "name": "Blood Pressure", "dosage": "10mg", "time": "12:00 PM", "times": ["12:00 PM", "08:00 PM"]},
    {"id": "4", "name": "Calcium", "dosage": "500mg", "time": "02:00 PM", "times": ["02:00 PM", "06:00 PM"]},
    {"id": "5", "name": "Sleep Aid", "dosage": "5mg", "time": "10:00 PM", "times": ["10:00 PM"]},
]


def test_as_needed_expands_to_one_entry():
    med = {"id": "2", "name": "Aspirin", "asNeeded": True, "times": ["As needed"]}
    out = expand_medicine_doses([med], NOW)
    assert len(out) == 1
    assert out[0].status == "as-needed"
    assert (out[0].dose_index, out[0].total_doses) == (0, 1)
    assert out[0].original_id == "2"

    taken = dict(med, takenAt="2026-03-10T07:00:00")
    out = expand_medicine_doses([taken], NOW)
    assert len(out) == 1
    assert out[0].status == "taken"
    assert out[0].taken_at == datetime(2026, 3, 10, 7, 0)


def test_as_needed_never_classified_even_in_the_past():
    med = Medicine(id="x", as_needed=True, times=["08:00 AM"])
    out = expand_medicine_doses([med], NOW, target_date=date(2026, 3, 1))
    assert out[0].status == "as-needed"


def test_multi_dose_fan_out():
    med = {"id": "m", "name": "BP", "times": ["08:00 AM", "08:00 PM"]}
    out = expand_medicine_doses([med], NOW)
    assert len(out) == 2
    assert [d.status for d in out] == ["pending", "upcoming"]
    assert [d.dose_index for d in out] == [0, 1]
    assert all(d.total_doses == 2 for d in out)
    assert [d.id for d in out] == ["m-dose-0", "m-dose-1"]
    assert all(d.original_id == "m" for d in out)
    assert [d.time for d in out] == ["08:00 AM", "08:00 PM"]


def test_shared_taken_at_marks_every_dose_taken():
    med = {"id": "m", "times": ["08:00 AM", "08:00 PM"], "takenAt": "2026-03-10T08:05:00"}
    out = expand_medicine_doses([med], NOW)
    assert [d.status for d in out] == ["taken", "taken"]


def test_per_dose_taken_tracking_is_opt_in():
    med = Medicine(
        id="m",
        times=["06:00 AM", "08:00 AM", "08:00 PM"],
        taken_at=datetime(2026, 3, 10, 6, 10),
        taken_at_by_dose={0: datetime(2026, 3, 10, 6, 10)},
    )
    out = expand_medicine_doses([med], NOW)
    assert [d.status for d in out] == ["taken", "pending", "upcoming"]
    assert out[1].taken_at is None


def test_per_dose_taken_from_record_keys():
    med = Medicine.from_record(
        {"id": "m", "times": ["05:00 AM", "07:00 AM"], "takenAtByDose": {"1": "2026-03-10T07:02:00"}}
    )
    assert med.taken_at_by_dose == {1: datetime(2026, 3, 10, 7, 2)}
    out = expand_medicine_doses([med], NOW)
    assert [d.status for d in out] == ["overdue", "taken"]


def test_single_dose_resolves_time_from_times_then_time():
    out = expand_medicine_doses(
        [
            {"id": "a", "times": ["08:15 AM"], "time": "11:00 PM"},
            {"id": "b", "time": "07:45 AM"},
            {"id": "c", "times": [], "time": "09:00 PM"},
        ],
        NOW,
    )
    assert [d.time for d in out] == ["08:15 AM", "07:45 AM", "09:00 PM"]
    assert [d.status for d in out] == ["pending", "pending", "upcoming"]
    assert all((d.dose_index, d.total_doses) == (0, 1) for d in out)
    assert [d.id for d in out] == ["a", "b", "c"]


def test_missed_is_relabelled_overdue_by_default():
    med = {"id": "a", "times": ["05:00 AM"]}
    assert expand_medicine_doses([med], NOW)[0].status == "overdue"
    assert expand_medicine_doses([med], NOW, missed_label="missed")[0].status == "missed"


def test_target_date_and_config_are_passed_through():
    med = {"id": "a", "times": ["08:00 AM"]}
    assert expand_medicine_doses([med], NOW, target_date=NOW + timedelta(days=1))[0].status == "upcoming"
    assert expand_medicine_doses([med], NOW, target_date=date(2026, 3, 9))[0].status == "overdue"
    late = NOW + timedelta(minutes=20)
    assert expand_medicine_doses([med], late, StatusConfig(0, 10))[0].status == "overdue"


def test_unparseable_time_is_logged_and_treated_as_midnight(caplog):
    med = {"id": "odd", "times": ["breakfast"]}
    with caplog.at_level(logging.DEBUG, logger="medstatus.doses"):
        out = expand_medicine_doses([med], NOW)
    assert out[0].status == "overdue"
    assert "unparseable dose time medicine=odd" in caplog.text


def test_output_preserves_input_order():
    out = expand_medicine_doses(MEDICINES, NOW)
    assert [d.original_id for d in out] == ["1", "2", "3", "3", "4", "4", "5"]
    assert [d.status for d in out] == [
        "pending",
        "as-needed",
        "upcoming",
        "upcoming",
        "upcoming",
        "upcoming",
        "upcoming",
    ]


def test_sort_doses_puts_as_needed_first():
    out = sort_doses(expand_medicine_doses(MEDICINES, NOW))
    assert [d.id for d in out] == ["2", "1", "3-dose-0", "4-dose-0", "4-dose-1", "3-dose-1", "5"]


def test_group_doses_by_time():
    now = datetime(2026, 3, 10, 14, 0)
    meds = MEDICINES + [{"id": "6", "name": "Iron", "times": ["02:00 PM"]}]
    groups = group_doses_by_time(expand_medicine_doses(meds, now))
    assert [g.time for g in groups] == ["overdue", "as-needed", "12:00", "14:00", "18:00", "20:00", "22:00"]
    assert [d.id for d in groups[0].doses] == ["1"]
    assert [d.id for d in groups[3].doses] == ["4-dose-0", "6"]
    assert groups[3].label == "02:00 PM"
    assert groups[0].label == "Overdue"


def test_group_labels_in_korean():
    groups = group_doses_by_time(
        [ExpandedDose("a", "a", "A", "", "09:00 PM", "upcoming")], language="ko"
    )
    assert groups[0].label == "오후 09:00"


def test_today_status_counts():
    now = datetime(2026, 3, 10, 14, 0)
    meds = list(MEDICINES)
    meds[4] = dict(meds[4], takenAt="2026-03-10T13:00:00")
    counts = today_status(expand_medicine_doses(meds, now))
    assert counts.total == 7
    assert counts.taken == 1
    assert counts.overdue == 1
    assert counts.pending == 2
    assert counts.upcoming == 2
    assert counts.as_needed == 1


def test_next_dose_time():
    med = Medicine(id="a", times=["08:00", "20:00"])
    assert next_dose_time(med, datetime(2026, 3, 10, 7, 0)) == "08:00 AM"
    assert next_dose_time(med, datetime(2026, 3, 10, 9, 0)) == "08:00 PM"
    assert next_dose_time(med, datetime(2026, 3, 10, 21, 0)) == "Tomorrow 08:00 AM"
    assert next_dose_time(med, datetime(2026, 3, 10, 21, 0), "ko") == "내일 오전 08:00"
    assert next_dose_time(Medicine(id="b"), NOW) == "As needed"
    assert next_dose_time(Medicine(id="c", times=["08:00"], status="paused"), NOW) == "Paused"
    assert next_dose_time(Medicine(id="d", times=["08:00"], status="completed"), NOW, "ko") == "완료됨"


def test_next_dose_time_reads_now_in_tz():
    med = Medicine(id="a", times=["09:00 AM", "09:00 PM"])
    now = datetime(2026, 3, 10, 23, 30, tzinfo=timezone.utc)
    seoul = pytz.timezone("Asia/Seoul")
    assert next_dose_time(med, now, tz=seoul) == "09:00 AM"
    assert next_dose_time(med, now) == "Tomorrow 09:00 AM"
    assert next_dose_time(med, seoul.localize(datetime(2026, 3, 11, 10, 0))) == "09:00 PM"


def test_unparseable_scheduled_time_is_not_grouped_as_needed():
    doses = [
        ExpandedDose("a", "a", "A", "", "As needed", "as-needed", as_needed=True),
        ExpandedDose("b", "b", "B", "", "breakfast", "upcoming"),
        ExpandedDose("c", "c", "C", "", "08:00 AM", "pending"),
    ]
    groups = group_doses_by_time(doses)
    assert [g.time for g in groups] == ["as-needed", "00:00", "08:00"]
    assert [d.id for d in groups[0].doses] == ["a"]
    assert [d.id for d in groups[1].doses] == ["b"]
    assert groups[1].label == "12:00 AM"


def test_24_hour_times_expand_and_group():
    med = {"id": "a", "times": ["08:00", "20:00"]}
    out = expand_medicine_doses([med], NOW)
    assert [d.status for d in out] == ["pending", "upcoming"]
    assert [g.time for g in group_doses_by_time(out)] == ["08:00", "20:00"]
