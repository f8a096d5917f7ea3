"""HTML bodies for the transactional emails."""
from datetime import datetime
from html import escape
from typing import Any, Dict, Optional

from legalpro_lib.database import parse_timestamp

WRAPPER = '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">{body}</div>'
FOOTER = '<hr style="border: none; border-top: 1px solid #e2e8f0; margin: 32px 0;" /><p style="color: #a0aec0; font-size: 12px; text-align: center;">{text}</p>'


def _wrap(body: str) -> str:
    return WRAPPER.format(body=body)


def _format_date(value: Optional[str]) -> str:
    try:
        parsed = parse_timestamp(value)
    except ValueError:
        return escape(value or '')
    if parsed is None:
        return ''
    return parsed.strftime('%A, %B %d, %Y at %I:%M %p %Z')


def signup_support_email(signup: Dict[str, Any]) -> str:
    details = [
        f"<p><strong>Email:</strong> {escape(signup.get('email') or '')}</p>",
        f"<p><strong>Source:</strong> {escape(signup.get('source') or '')}</p>",
        f"<p><strong>Date:</strong> {_format_date(signup.get('created_at'))}</p>",
    ]
    if signup.get('user_agent'):
        details.append(f"<p><strong>Device/Browser:</strong> {escape(signup['user_agent'])}</p>")
    if signup.get('ip_address'):
        details.append(f"<p><strong>IP Address:</strong> {escape(signup['ip_address'])}</p>")

    return _wrap(
        '<h2 style="color: #1a365d;">New Waitlist Signup</h2>'
        '<div style="background: #f7fafc; padding: 20px; border-radius: 8px;">'
        '<h3 style="margin-top: 0;">Signup Details:</h3>'
        + ''.join(details) +
        '</div>'
        '<p><strong>Action Required:</strong> Consider reaching out to this potential client '
        'or adding them to your marketing campaigns.</p>'
        + FOOTER.format(text='This is an automated notification from your Egypt Legal Pro platform.')
    )


def signup_welcome_email(site_url: str, support_email: str) -> str:
    return _wrap(
        '<h1 style="color: #1a365d; text-align: center;">Egypt Legal Pro</h1>'
        '<h2 style="text-align: center;">Welcome to Our Waitlist!</h2>'
        "<p style=\"text-align: center;\">You're among the first to know when we launch</p>"
        '<h3>What happens next?</h3>'
        '<ul>'
        "<li>You'll be the first to know when Egypt Legal Pro launches</li>"
        '<li>Get exclusive early access to our platform</li>'
        '<li>Receive special launch offers and promotions</li>'
        '<li>Access to our legal expertise and AI-powered tools</li>'
        '</ul>'
        '<h4>Need Legal Help Right Now?</h4>'
        "<p>While we're preparing our full platform, our team is available for urgent legal consultations. "
        f'Contact us at {support_email} for immediate assistance.</p>'
        f'<p style="text-align: center;"><a href="{site_url}">Visit Our Website</a></p>'
        + FOOTER.format(text='Thank you for your interest in Egypt Legal Pro<br>Professional Legal Services Made Simple')
    )


def lawyer_invitation_email(signup_link: str) -> str:
    return _wrap(
        '<h1 style="color: #1a365d;">Welcome to Egypt Legal Pro</h1>'
        "<p>You've been invited to join Egypt Legal Pro as a lawyer. Our platform connects legal "
        'professionals with clients who need expert legal assistance.</p>'
        "<h2>What's next?</h2>"
        '<ol>'
        '<li>Click the link below to create your account</li>'
        '<li>Complete your professional profile</li>'
        '<li>Wait for admin approval</li>'
        '<li>Start receiving and handling cases!</li>'
        '</ol>'
        f'<p style="text-align: center;"><a href="{escape(signup_link)}">Create Your Lawyer Account</a></p>'
        '<p style="color: #718096;">This invitation will expire in 7 days. If you have any questions, '
        'please contact our support team.</p>'
        + FOOTER.format(text=f'© {datetime.now().year} Egypt Legal Pro. All rights reserved.')
    )


def _review_notes(review_notes: Optional[str]) -> str:
    if not review_notes:
        return ''
    return f'<div style="background: #f7fafc; padding: 16px;"><h3>Review Notes:</h3><p>{escape(review_notes)}</p></div>'


def lawyer_approved_email(lawyer_name: str, signin_link: str, review_notes: Optional[str]) -> str:
    return _wrap(
        '<h1 style="color: #38a169;">Congratulations!</h1>'
        f'<p>Dear {escape(lawyer_name)},</p>'
        '<p>Your lawyer account has been approved and your user account has been created! You can now '
        'access the platform to start receiving and handling cases.</p>'
        '<h2>Next steps</h2>'
        '<ol>'
        '<li>Sign in with this email address</li>'
        '<li>Create your password and access your lawyer dashboard</li>'
        '</ol>'
        + _review_notes(review_notes) +
        f'<p style="text-align: center;"><a href="{escape(signin_link)}">Sign In to Your Dashboard</a></p>'
        "<p>Welcome to the community! If you have any questions, please don't hesitate to reach out.</p>"
        + FOOTER.format(text=f'© {datetime.now().year} Egypt Legal Pro. All rights reserved.')
    )


def lawyer_rejected_email(lawyer_name: str, review_notes: Optional[str]) -> str:
    return _wrap(
        '<h1 style="color: #1a365d;">Application Update</h1>'
        f'<p>Dear {escape(lawyer_name)},</p>'
        '<p>We have carefully reviewed your lawyer account application.</p>'
        '<p>Unfortunately, we are unable to approve your application at this time.</p>'
        + _review_notes(review_notes) +
        '<p>If you believe this decision was made in error or if you have additional qualifications to '
        'submit, please feel free to reapply or contact our support team.</p>'
        + FOOTER.format(text=f'© {datetime.now().year} Egypt Legal Pro. All rights reserved.')
    )


def probono_confirmation_email(full_name: str, case_title: str) -> str:
    return _wrap(
        '<h1 style="color: #1a365d;">Pro Bono Application Received</h1>'
        f'<p>Dear {escape(full_name)},</p>'
        f'<p>Thank you for submitting your pro bono application for "<strong>{escape(case_title)}</strong>". '
        'We have received your request and our team will review it carefully.</p>'
        '<h3>What happens next?</h3>'
        '<ul>'
        '<li>Our team will review your application within 5-7 business days</li>'
        '<li>We will evaluate your case based on our acceptance criteria</li>'
        '<li>You will receive an email notification with our decision</li>'
        '<li>If approved, we will connect you with a qualified pro bono lawyer</li>'
        '</ul>'
        '<p><strong>Important:</strong> Due to limited resources, not all applications can be accepted. '
        'We prioritize cases based on urgency, merit, and available capacity.</p>'
        "<p>If you have any questions, please don't hesitate to contact us.</p>"
        '<p>Best regards,<br>The Egypt Legal Pro Pro Bono Team</p>'
    )


def probono_response_email(full_name: str, case_title: str, approved: bool, admin_response: Optional[str]) -> str:
    color = '#059669' if approved else '#dc2626'
    heading = 'Application Approved!' if approved else 'Application Status Update'
    response = (
        f'<div style="background: #f7fafc; padding: 16px;"><h3>Message from our team:</h3>'
        f'<p style="font-style: italic;">"{escape(admin_response)}"</p></div>'
        if admin_response else ''
    )
    if approved:
        next_steps = (
            '<h3>Next Steps:</h3><ul>'
            '<li>A qualified pro bono lawyer will be assigned to your case</li>'
            '<li>You will receive contact information within 2-3 business days</li>'
            '<li>Your lawyer will reach out to schedule an initial consultation</li>'
            '<li>All services will be provided completely free of charge</li>'
            '</ul>'
        )
    else:
        next_steps = (
            '<h3>Alternative Options:</h3>'
            '<p>While we cannot provide pro bono assistance for this case, you may still use our platform '
            'to connect with qualified lawyers. We also have payment plans available to make legal services '
            'more accessible.</p>'
        )
    return _wrap(
        f'<h2 style="color: {color};">{heading}</h2>'
        f'<p>Dear {escape(full_name)},</p>'
        f'<p>We have reviewed your pro bono application for "<strong>{escape(case_title)}</strong>".</p>'
        + response + next_steps +
        "<p>If you have any questions about this decision, please don't hesitate to contact us.</p>"
        '<p>Best regards,<br>The Egypt Legal Pro Pro Bono Team</p>'
    )
