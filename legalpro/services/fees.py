import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from legalpro.services.notifications import NotificationService
from legalpro_lib.database import Database, now_iso, utc_now
from legalpro_lib.error_handler import AppError, ErrorHandler

logger = logging.getLogger(__name__)

PAYMENT_DUE = timedelta(days=7)
FEE_RESPONSES = ('accepted', 'rejected')


class FeeRequestService:
    def __init__(self, database: Database, notifications: NotificationService):
        self.db = database
        self.notifications = notifications
        self.table = 'additional_fee_requests'

    async def create_fee_request(self, user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        case_id = data.get('case_id')
        if not case_id or data.get('additional_fee_amount') is None or not data.get('request_title'):
            raise AppError("case_id, request_title and additional_fee_amount are required", status_code=400)

        case = self.db.fetch_one(
            'cases',
            {'id': case_id, 'assigned_lawyer_id': user_id},
            columns='id, user_id, assigned_lawyer_id'
        )
        if not case:
            raise AppError("Case not found or not assigned to you", status_code=404)

        proposal = self.db.fetch_one(
            'proposals',
            {'case_id': case_id, 'lawyer_id': user_id, 'status': 'accepted'},
            columns='id'
        )
        if not proposal:
            raise AppError("No accepted proposal found for this case", status_code=404)

        fee_request = self.db.insert_one(self.table, {
            'case_id': case_id,
            'lawyer_id': user_id,
            'client_id': case.get('user_id'),
            'original_proposal_id': proposal['id'],
            'request_title': data.get('request_title'),
            'request_description': data.get('request_description'),
            'additional_fee_amount': data.get('additional_fee_amount'),
            'timeline_extension_days': data.get('timeline_extension_days') or 0,
            'justification': data.get('justification'),
            'status': 'pending',
            'payment_due_date': (utc_now() + PAYMENT_DUE).isoformat()
        })

        try:
            self.db.update('cases', {'status': 'additional_fee_requested'}, {'id': case_id})
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"flag case {case_id} for additional fees", e)

        self.notifications.notify({
            'user_id': case.get('user_id'),
            'case_id': case_id,
            'type': 'additional_fee_request',
            'title': 'Additional Fee Request',
            'message': (
                f"Your lawyer has requested additional fees for \"{data.get('request_title')}\". "
                f"Amount: ${data.get('additional_fee_amount')}"
            ),
            'action_required': True,
            'metadata': {'request_id': fee_request.get('id'), 'amount': data.get('additional_fee_amount')}
        })

        logger.info(f"Additional fee request {fee_request.get('id')} created for case {case_id}")
        return {'success': True, 'request': fee_request}

    async def respond_fee_request(
        self,
        user_id: str,
        request_id: str,
        response: str,
        client_response: Optional[str] = None
    ) -> Dict[str, Any]:
        if response not in FEE_RESPONSES:
            raise AppError(f"Invalid response: {response}", status_code=400)

        fee_request = self.db.fetch_one(
            self.table,
            {'id': request_id, 'client_id': user_id, 'status': 'pending'}
        )
        if not fee_request:
            raise AppError("Fee request not found or not authorized", status_code=404)

        now = now_iso()
        self.db.update(self.table, {
            'status': response,
            'client_response': client_response,
            'client_responded_at': now,
            'reviewed_at': now
        }, {'id': request_id})

        accepted = response == 'accepted'
        new_status = 'awaiting_additional_payment' if accepted else 'active'
        try:
            self.db.update('cases', {'status': new_status}, {'id': fee_request.get('case_id')})
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"update case {fee_request.get('case_id')}", e)

        self.notifications.notify({
            'user_id': fee_request.get('lawyer_id'),
            'case_id': fee_request.get('case_id'),
            'type': 'additional_fee_response',
            'title': f"Additional Fee Request {'Accepted' if accepted else 'Rejected'}",
            'message': (
                f"Client has {response} your additional fee request for \"{fee_request.get('request_title')}\""
            ),
            'action_required': False,
            'metadata': {
                'request_id': request_id,
                'response': response,
                'amount': fee_request.get('additional_fee_amount')
            }
        })

        logger.info(f"Fee request {request_id} {response} by client {user_id}")
        return {'success': True, 'status': response}
