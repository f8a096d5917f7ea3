import logging
import uuid
from typing import Any, Dict, Optional
from urllib.parse import quote

from legalpro.services import email_templates
from legalpro_lib.config import get_settings
from legalpro_lib.database import Database
from legalpro_lib.email_client import EmailClient
from legalpro_lib.error_handler import AppError, ErrorHandler

logger = logging.getLogger(__name__)


class EmailService:
    """Signup, lawyer onboarding and pro bono emails."""

    def __init__(self, supabase_client, database: Database, email_client: EmailClient):
        self.supabase = supabase_client
        self.db = database
        self.email = email_client
        self.settings = get_settings()

    async def notify_new_signup(self, signup: Dict[str, Any]) -> Dict[str, Any]:
        if not signup.get('email'):
            raise AppError("email is required", status_code=400)

        support = self.email.send(
            self.settings.support_email,
            'New Waitlist Signup - Egypt Legal Pro',
            email_templates.signup_support_email(signup)
        )
        confirmation = self.email.send(
            signup['email'],
            "Welcome to Egypt Legal Pro - You're on the List!",
            email_templates.signup_welcome_email(self.settings.site_url, self.settings.support_email)
        )
        return {'success': True, 'supportEmail': support, 'confirmationEmail': confirmation}

    async def invite_lawyer(self, email: str, invited_by: Optional[str], origin: Optional[str]) -> Dict[str, Any]:
        if not email:
            raise AppError("email is required", status_code=400)

        token = str(uuid.uuid4())
        try:
            self.db.insert('lawyer_invitations', {
                'email': email,
                'invited_by': invited_by,
                'invitation_token': token,
                'status': 'pending'
            })
        except AppError as e:
            raise AppError(f"Failed to create invitation record: {e.message}")

        signup_link = f"{origin or self.settings.site_url}/auth?invitation={token}&email={quote(email, safe='')}"
        self.email.send(
            email,
            "You've been invited to join Egypt Legal Pro as a lawyer",
            email_templates.lawyer_invitation_email(signup_link)
        )

        logger.info(f"Lawyer invitation sent to {email}")
        return {'success': True, 'message': 'Invitation sent successfully', 'invitationToken': token}

    def _create_lawyer_account(self, email: str, lawyer_name: str) -> None:
        try:
            response = self.supabase.auth.admin.create_user({
                'email': email,
                'email_confirm': True,
                'user_metadata': {'full_name': lawyer_name, 'role': 'lawyer'}
            })
        except Exception as e:
            ErrorHandler.handle_side_effect_error(f"create user account for {email}", e)
            return

        user = getattr(response, 'user', None)
        if user is None:
            return

        first_name, _, last_name = lawyer_name.partition(' ')
        try:
            self.db.insert('profiles', {
                'user_id': user.id,
                'email': email,
                'first_name': first_name,
                'last_name': last_name,
                'role': 'lawyer',
                'is_verified': True,
                'is_active': True
            })
            logger.info(f"Created lawyer profile for {email}")
        except AppError as e:
            ErrorHandler.handle_side_effect_error(f"create profile for {email}", e)

    async def send_lawyer_approval(
        self,
        email: str,
        lawyer_name: str,
        approved: bool,
        review_notes: Optional[str] = None,
        origin: Optional[str] = None
    ) -> Dict[str, Any]:
        if not email or not lawyer_name:
            raise AppError("email and lawyerName are required", status_code=400)

        if approved:
            self._create_lawyer_account(email, lawyer_name)
            self.email.send(
                email,
                'Your lawyer account has been approved!',
                email_templates.lawyer_approved_email(
                    lawyer_name, f"{origin or self.settings.site_url}/auth", review_notes
                )
            )
        else:
            self.email.send(
                email,
                'Update on your lawyer account application',
                email_templates.lawyer_rejected_email(lawyer_name, review_notes)
            )

        return {
            'success': True,
            'message': f"{'Approval' if approved else 'Rejection'} notification sent successfully"
        }

    async def send_probono_confirmation(self, email: str, full_name: str, case_title: str) -> Dict[str, Any]:
        if not email:
            raise AppError("email is required", status_code=400)
        response = self.email.send(
            email,
            'Pro Bono Application Received - Egypt Legal Pro',
            email_templates.probono_confirmation_email(full_name or '', case_title or '')
        )
        return {'success': True, 'emailResponse': response}

    async def send_probono_response(
        self,
        email: str,
        full_name: str,
        case_title: str,
        status: str,
        admin_response: Optional[str] = None
    ) -> Dict[str, Any]:
        if not email:
            raise AppError("email is required", status_code=400)
        approved = status == 'approved'
        response = self.email.send(
            email,
            f"Pro Bono Application {'Approved' if approved else 'Application Update'} - Egypt Legal Pro",
            email_templates.probono_response_email(full_name or '', case_title or '', approved, admin_response)
        )
        return {'success': True, 'emailResponse': response}
