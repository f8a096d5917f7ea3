import logging
import math
import re
from datetime import timedelta
from typing import Any, Dict, Optional

from legalpro.services.notifications import NotificationService
from legalpro_lib.database import Database, parse_timestamp, utc_now
from legalpro_lib.error_handler import AppError, ErrorHandler

logger = logging.getLogger(__name__)

CONSULTATION_COMPLETABLE = ('proposal_accepted', 'consultation_paid')
GRACE_PERIOD = timedelta(hours=24)


def estimate_timeline_days(timeline: Optional[str]) -> Optional[int]:
    match = re.search(r'\d+', timeline or '')
    return int(match.group()) if match else None


def timeline_accuracy(actual_days: int, estimated_days: Optional[int]) -> Optional[float]:
    """100 when delivered on the estimate, dropping with relative deviation, floored at 0"""
    if not estimated_days:
        return None
    return max(0.0, 100 - abs(actual_days - estimated_days) / estimated_days * 100)


class CaseWorkService:
    """Drives a case from paid proposal through lawyer completion and client sign-off."""

    def __init__(self, database: Database, notifications: NotificationService):
        self.db = database
        self.notifications = notifications

    async def start_case_work(self, case_id: str) -> Dict[str, Any]:
        if not case_id:
            raise AppError("Case ID is required", status_code=400)

        case = self.db.fetch_one('cases', {'id': case_id})
        if not case:
            raise AppError("Case not found", status_code=404)

        proposal = self.db.fetch_one(
            'proposals',
            {'case_id': case_id},
            columns='id, timeline, lawyer_id, client_id',
            order_by='created_at'
        )
        if not proposal:
            raise AppError("No proposal found for case", status_code=400)

        estimated_days = estimate_timeline_days(proposal.get('timeline'))
        started = utc_now()
        estimated_completion = (
            (started + timedelta(days=estimated_days)).isoformat() if estimated_days else None
        )

        self.db.insert('case_work_sessions', {
            'case_id': case_id,
            'lawyer_id': proposal.get('lawyer_id'),
            'client_id': proposal.get('client_id'),
            'work_started_at': started.isoformat(),
            'estimated_completion_date': estimated_completion,
            'estimated_timeline_days': estimated_days,
            'status': 'active'
        })

        try:
            self.db.update('cases', {'status': 'work_in_progress', 'updated_at': started.isoformat()}, {'id': case_id})
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"mark case {case_id} in progress", e)

        metadata = {'case_number': case.get('case_number'), 'estimated_completion': estimated_completion}
        self.notifications.notify([
            {
                'user_id': proposal.get('lawyer_id'),
                'type': 'case_work_started',
                'title': 'Case Work Started',
                'message': f"Payment received! Case work has begun for case {case.get('case_number')}.",
                'case_id': case_id,
                'metadata': metadata
            },
            {
                'user_id': proposal.get('client_id'),
                'type': 'case_work_started',
                'title': 'Case Work Started',
                'message': (
                    f"Your payment has been processed and case work has begun "
                    f"for case {case.get('case_number')}."
                ),
                'case_id': case_id,
                'metadata': metadata
            }
        ])

        logger.info(f"Case work started for case {case_id}")
        return {
            'success': True,
            'message': 'Case work started successfully',
            'estimatedCompletion': estimated_completion
        }

    async def complete_case_work(self, user_id: str, case_id: str, completion_type: str) -> Dict[str, Any]:
        if not case_id or not completion_type:
            raise AppError("Case ID and completion type are required", status_code=400)

        work_session = self.db.fetch_one('case_work_sessions', {'case_id': case_id, 'status': 'active'})
        if not work_session:
            raise AppError("Active case work session not found", status_code=404)
        if user_id not in (work_session.get('lawyer_id'), work_session.get('client_id')):
            raise AppError("Unauthorized to complete this case", status_code=403)

        now = utc_now()
        accuracy = None

        if completion_type == 'lawyer_complete':
            updates = {'lawyer_completed_at': now.isoformat(), 'updated_at': now.isoformat()}
            new_status = 'pending_client_confirmation'
            notifications = [{
                'user_id': work_session.get('client_id'),
                'type': 'lawyer_marked_complete',
                'title': 'Case Marked Complete by Lawyer',
                'message': 'Your lawyer has marked the case as complete. Please review and confirm completion.',
                'case_id': case_id,
                'action_required': True,
                'metadata': {'lawyer_id': work_session.get('lawyer_id'), 'completed_at': now.isoformat()}
            }]
        elif completion_type == 'client_confirm':
            if not work_session.get('lawyer_completed_at'):
                raise AppError("Lawyer must complete case first", status_code=400)

            started = parse_timestamp(work_session.get('work_started_at'))
            if started and work_session.get('estimated_timeline_days'):
                actual_days = math.ceil((now - started).total_seconds() / 86400)
                accuracy = timeline_accuracy(actual_days, work_session['estimated_timeline_days'])

            updates = {
                'client_confirmed_at': now.isoformat(),
                'actual_completion_date': now.isoformat(),
                'timeline_accuracy_score': accuracy,
                'status': 'completed',
                'updated_at': now.isoformat()
            }
            new_status = 'completed'
            notifications = [
                {
                    'user_id': work_session.get('lawyer_id'),
                    'type': 'case_fully_completed',
                    'title': 'Case Fully Completed',
                    'message': 'The client has confirmed case completion. Great work!',
                    'case_id': case_id,
                    'metadata': {'timeline_accuracy': accuracy, 'completed_at': now.isoformat()}
                },
                {
                    'user_id': work_session.get('client_id'),
                    'type': 'case_fully_completed',
                    'title': 'Case Completed',
                    'message': 'Case has been successfully completed. Thank you for using our service!',
                    'case_id': case_id,
                    'metadata': {'completed_at': now.isoformat()}
                }
            ]
        else:
            raise AppError(f"Invalid completion type: {completion_type}", status_code=400)

        self.db.update('case_work_sessions', updates, {'id': work_session['id']})
        try:
            self.db.update('cases', {'status': new_status, 'updated_at': now.isoformat()}, {'id': case_id})
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"update status of case {case_id}", e)
        self.notifications.notify(notifications)

        logger.info(f"Case work completion step {completion_type} done for case {case_id}")
        return {
            'success': True,
            'message': 'Case fully completed' if completion_type == 'client_confirm' else 'Waiting for client confirmation',
            'status': new_status,
            'timelineAccuracy': accuracy
        }

    async def complete_consultation(self, user_id: str, case_id: str) -> Dict[str, Any]:
        if not case_id:
            raise AppError("Case ID is required", status_code=400)

        case = self.db.fetch_one(
            'cases',
            {'id': case_id, 'assigned_lawyer_id': user_id},
            columns='id, assigned_lawyer_id, user_id, status, consultation_paid, remaining_fee'
        )
        if not case:
            raise AppError("Case not found or unauthorized", status_code=404)
        if not case.get('consultation_paid') or case.get('status') not in CONSULTATION_COMPLETABLE:
            raise AppError("Case is not in the correct status for consultation completion", status_code=400)

        now = utc_now()
        grace_expires = (now + GRACE_PERIOD).isoformat()
        self.db.update('cases', {
            'status': 'consultation_completed',
            'consultation_completed_at': now.isoformat(),
            'grace_period_expires_at': grace_expires,
            'communication_modes': {'text': True, 'voice': False, 'video': False},
            'updated_at': now.isoformat()
        }, {'id': case_id})

        remaining_fee = case.get('remaining_fee') or 0
        self.notifications.notify({
            'user_id': case.get('user_id'),
            'case_id': case_id,
            'type': 'consultation_completed',
            'title': 'Consultation Completed - Payment Required',
            'message': (
                f"Your consultation has been completed. You have 24 hours to complete the remaining "
                f"payment of ${remaining_fee}. After this period, communication will be limited."
            ),
            'action_required': True,
            'action_url': f"/payment?caseId={case_id}&type=remaining",
            'metadata': {'remaining_fee': case.get('remaining_fee'), 'grace_period_expires_at': grace_expires}
        })

        try:
            self.db.update(
                'communication_sessions',
                {'status': 'ended', 'ended_at': now.isoformat(), 'updated_at': now.isoformat()},
                {'case_id': case_id, 'status': 'active'}
            )
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"end sessions for case {case_id}", e)

        return {
            'success': True,
            'message': 'Consultation completed successfully',
            'grace_period_expires_at': grace_expires
        }

    async def create_appointment_notification(self, appointment_id: str) -> Dict[str, Any]:
        if not appointment_id:
            raise AppError("appointmentId is required", status_code=400)

        appointment = self.db.fetch_one('appointments', {'id': appointment_id})
        if not appointment:
            raise AppError("Appointment not found", status_code=404)
        case = self.db.fetch_one('cases', {'id': appointment.get('case_id')}, columns='title, case_number, user_id')
        if not case:
            raise AppError("Case not found", status_code=404)

        scheduled = parse_timestamp(appointment.get('scheduled_date'))
        when = scheduled.strftime('%A, %B %d, %Y at %I:%M %p') if scheduled else 'a date to be confirmed'

        created = self.notifications.notify({
            'user_id': case.get('user_id'),
            'case_id': appointment.get('case_id'),
            'type': 'appointment_scheduled',
            'category': 'appointment',
            'title': 'New Appointment Scheduled',
            'message': f"Your lawyer has scheduled a {appointment.get('appointment_type')} for {when}",
            'action_required': False,
            'metadata': {
                'appointment_id': appointment_id,
                'appointment_type': appointment.get('appointment_type'),
                'scheduled_date': appointment.get('scheduled_date'),
                'case_number': case.get('case_number')
            }
        })
        if not created:
            raise AppError("Failed to create appointment notification")
        return {'success': True}
