from datetime import timedelta

import pytest

from legalpro.services.case_work import CaseWorkService, estimate_timeline_days, timeline_accuracy
from legalpro.services.notifications import NotificationService
from legalpro_lib.database import utc_now
from legalpro_lib.error_handler import AppError


@pytest.fixture
def service(database):
    return CaseWorkService(database, NotificationService(database))


@pytest.fixture
def paid_case(fake_db):
    fake_db.seed('cases', {
        'id': 'case-1', 'case_number': 'C-100', 'user_id': 'client-1', 'assigned_lawyer_id': 'lawyer-1',
        'status': 'proposal_accepted', 'consultation_paid': True, 'remaining_fee': 1500
    })
    fake_db.seed('proposals', {
        'id': 'p1', 'case_id': 'case-1', 'lawyer_id': 'lawyer-1', 'client_id': 'client-1', 'timeline': '14 days'
    })
    return fake_db


def test_estimate_timeline_days():
    assert estimate_timeline_days('About 3-4 weeks') == 3
    assert estimate_timeline_days('To be agreed') is None
    assert estimate_timeline_days(None) is None


def test_timeline_accuracy():
    assert timeline_accuracy(10, 10) == 100
    assert timeline_accuracy(15, 10) == 50
    assert timeline_accuracy(40, 10) == 0
    assert timeline_accuracy(5, None) is None


async def test_start_case_work(service, paid_case):
    result = await service.start_case_work('case-1')

    work = paid_case.rows('case_work_sessions')[0]
    assert work['status'] == 'active'
    assert work['estimated_timeline_days'] == 14
    assert result['estimatedCompletion'] == work['estimated_completion_date']
    assert paid_case.rows('cases')[0]['status'] == 'work_in_progress'

    notifications = paid_case.rows('notifications')
    assert {n['user_id'] for n in notifications} == {'client-1', 'lawyer-1'}
    assert all(n['type'] == 'case_work_started' for n in notifications)


async def test_start_case_work_without_proposal(service, fake_db):
    fake_db.seed('cases', {'id': 'case-1'})
    with pytest.raises(AppError) as exc:
        await service.start_case_work('case-1')
    assert exc.value.status_code == 400


async def test_start_case_work_notification_failure_is_not_fatal(service, paid_case):
    paid_case.fail('notifications', 'insert')
    result = await service.start_case_work('case-1')
    assert result['success'] is True


async def test_client_cannot_confirm_before_lawyer(service, paid_case):
    await service.start_case_work('case-1')
    with pytest.raises(AppError) as exc:
        await service.complete_case_work('client-1', 'case-1', 'client_confirm')
    assert exc.value.status_code == 400


async def test_two_step_completion(service, paid_case):
    await service.start_case_work('case-1')
    work = paid_case.rows('case_work_sessions')[0]
    work['work_started_at'] = (utc_now() - timedelta(days=14) + timedelta(hours=1)).isoformat()

    result = await service.complete_case_work('lawyer-1', 'case-1', 'lawyer_complete')
    assert result['status'] == 'pending_client_confirmation'
    assert paid_case.rows('cases')[0]['status'] == 'pending_client_confirmation'
    assert work['lawyer_completed_at']

    result = await service.complete_case_work('client-1', 'case-1', 'client_confirm')
    assert result['status'] == 'completed'
    assert result['timelineAccuracy'] == 100
    assert work['status'] == 'completed'
    assert work['timeline_accuracy_score'] == 100
    assert paid_case.rows('cases')[0]['status'] == 'completed'


async def test_complete_case_work_rejects_outsider(service, paid_case):
    await service.start_case_work('case-1')
    with pytest.raises(AppError) as exc:
        await service.complete_case_work('stranger', 'case-1', 'lawyer_complete')
    assert exc.value.status_code == 403


async def test_complete_case_work_invalid_type(service, paid_case):
    await service.start_case_work('case-1')
    with pytest.raises(AppError) as exc:
        await service.complete_case_work('lawyer-1', 'case-1', 'halfway')
    assert exc.value.status_code == 400


async def test_complete_consultation(service, paid_case):
    paid_case.seed('communication_sessions', {'case_id': 'case-1', 'status': 'active'})

    result = await service.complete_consultation('lawyer-1', 'case-1')

    case = paid_case.rows('cases')[0]
    assert case['status'] == 'consultation_completed'
    assert case['grace_period_expires_at'] == result['grace_period_expires_at']
    assert case['communication_modes'] == {'text': True, 'voice': False, 'video': False}
    assert paid_case.rows('communication_sessions')[0]['status'] == 'ended'

    notification = paid_case.rows('notifications')[0]
    assert notification['user_id'] == 'client-1'
    assert '$1500' in notification['message']
    assert notification['action_url'] == '/payment?caseId=case-1&type=remaining'


async def test_complete_consultation_wrong_lawyer(service, paid_case):
    with pytest.raises(AppError) as exc:
        await service.complete_consultation('lawyer-2', 'case-1')
    assert exc.value.status_code == 404


async def test_complete_consultation_requires_payment(service, paid_case):
    paid_case.rows('cases')[0]['consultation_paid'] = False
    with pytest.raises(AppError) as exc:
        await service.complete_consultation('lawyer-1', 'case-1')
    assert exc.value.status_code == 400


async def test_appointment_notification(service, fake_db):
    fake_db.seed('cases', {'id': 'case-1', 'user_id': 'client-1', 'case_number': 'C-1', 'title': 'Lease'})
    fake_db.seed('appointments', {
        'id': 'a1', 'case_id': 'case-1', 'appointment_type': 'consultation',
        'scheduled_date': '2024-03-05T14:30:00+00:00'
    })

    assert await service.create_appointment_notification('a1') == {'success': True}

    notification = fake_db.rows('notifications')[0]
    assert notification['type'] == 'appointment_scheduled'
    assert 'Tuesday, March 05, 2024 at 02:30 PM' in notification['message']


async def test_appointment_notification_missing(service, fake_db):
    with pytest.raises(AppError) as exc:
        await service.create_appointment_notification('nope')
    assert exc.value.status_code == 404
