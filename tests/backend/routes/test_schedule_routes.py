from datetime import date, time

import pytest
from pydantic import ValidationError

from backend.core.errors import InvalidTemplate, NotPermitted, ValidationFailure
from backend.models.enums import Weekday
from backend.routes.schedule_routes import (
    CreateScheduleTemplateRequest,
    GenerateSlotsRequest,
    UpdateScheduleTemplateRequest,
    create_schedule,
    delete_schedule,
    generate_appointment_slots,
    get_schedule,
    list_schedules,
    list_schedules_for_doctor,
    update_schedule,
)
from backend.services.availability import find_available


def _monday_request(**overrides) -> CreateScheduleTemplateRequest:
    payload = {
        'Day_Of_The_Week': 'Monday',
        'Start_Time': '09:00',
        'End_Time': '10:00',
        'Slot_Duration': 30,
        'Is_Active': True,
    }
    payload.update(overrides)
    return CreateScheduleTemplateRequest.model_validate(payload)


def test_create_request_accepts_wire_names_and_normalizes_weekday() -> None:
    request = _monday_request(Day_Of_The_Week=' monday ', Doctor_id=1)

    assert request.weekday == Weekday.MONDAY
    assert request.provider_id == 1
    assert request.start_time == time(9, 0)


def test_create_request_rejects_unknown_weekday() -> None:
    with pytest.raises(ValidationError):
        _monday_request(Day_Of_The_Week='Funday')


def test_update_request_rejects_unknown_fields() -> None:
    with pytest.raises(ValidationError):
        UpdateScheduleTemplateRequest.model_validate({'Doctor_id': 3})


def test_provider_creates_template_for_themselves(db, frozen_clock, provider) -> None:
    response = create_schedule(_monday_request(), actor=provider, db=db)

    assert response.provider_id == provider.user_id
    body = response.model_dump(by_alias=True)
    assert body['Doctor_id'] == provider.user_id
    assert body['Day_Of_The_Week'] == Weekday.MONDAY
    assert body['Slot_Duration'] == 30


def test_provider_cannot_create_template_for_another_provider(db, frozen_clock, provider) -> None:
    with pytest.raises(NotPermitted):
        create_schedule(_monday_request(Doctor_id=2), actor=provider, db=db)


def test_admin_must_name_the_provider(db, frozen_clock, admin) -> None:
    with pytest.raises(ValidationFailure):
        create_schedule(_monday_request(), actor=admin, db=db)

    response = create_schedule(_monday_request(Doctor_id=5), actor=admin, db=db)
    assert response.provider_id == 5


def test_patient_cannot_create_templates(db, frozen_clock, patient) -> None:
    with pytest.raises(NotPermitted):
        create_schedule(_monday_request(), actor=patient, db=db)


def test_create_with_inverted_times_is_invalid_template(db, frozen_clock, provider) -> None:
    with pytest.raises(InvalidTemplate):
        create_schedule(_monday_request(Start_Time='11:00'), actor=provider, db=db)


def test_list_and_fetch_templates(db, frozen_clock, provider, other_provider, patient) -> None:
    created = create_schedule(_monday_request(), actor=provider, db=db)
    create_schedule(_monday_request(), actor=other_provider, db=db)

    assert len(list_schedules(doctor_id=None, actor=patient, db=db)) == 2
    assert [item.id for item in list_schedules_for_doctor(provider.user_id, actor=patient, db=db)] == [created.id]
    assert get_schedule(created.id, actor=patient, db=db).id == created.id


def test_update_schedule_checks_ownership(db, frozen_clock, provider, other_provider) -> None:
    created = create_schedule(_monday_request(), actor=provider, db=db)
    patch = UpdateScheduleTemplateRequest.model_validate({'Is_Active': False})

    with pytest.raises(NotPermitted):
        update_schedule(created.id, patch, actor=other_provider, db=db)

    updated = update_schedule(created.id, patch, actor=provider, db=db)
    assert updated.is_active is False


def test_delete_schedule(db, frozen_clock, provider, admin) -> None:
    created = create_schedule(_monday_request(), actor=provider, db=db)

    response = delete_schedule(created.id, actor=admin, db=db)

    assert response == {'message': 'Doctor schedule deleted successfully.'}
    assert list_schedules(doctor_id=None, actor=admin, db=db) == []


def test_generate_slots_endpoint_reports_new_slot_count(db, frozen_clock, provider) -> None:
    create_schedule(_monday_request(), actor=provider, db=db)
    request = GenerateSlotsRequest.model_validate({'startDate': '2026-01-04', 'endDate': '2026-01-10'})

    first = generate_appointment_slots(request, actor=provider, db=db)
    second = generate_appointment_slots(request, actor=provider, db=db)

    assert first.model_dump(by_alias=True)['slotsGenerated'] == 2
    assert second.slots_generated == 0
    assert [slot.time for slot in find_available(db, provider.user_id, date(2026, 1, 5))] == [
        time(9, 0),
        time(9, 30),
    ]
