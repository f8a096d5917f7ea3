from flask import Flask, request, Response, jsonify
from flask_cors import CORS
import logging
import sys

from legalpro.services.admin import AdminService
from legalpro.services.auth import AuthService
from legalpro.services.case_work import CaseWorkService
from legalpro.services.chatbot import LegalChatService
from legalpro.services.drafting import DraftingService
from legalpro.services.emails import EmailService
from legalpro.services.fees import FeeRequestService
from legalpro.services.notifications import NotificationService
from legalpro.services.recordings import RecordingService
from legalpro.services.reports import ReportService, rows_to_csv
from legalpro.services.sessions import SessionService
from legalpro.services.visitors import VisitorService, client_ip_from_headers
from legalpro_lib.config import get_settings
from legalpro_lib.database import Database, create_supabase_client, now_iso
from legalpro_lib.email_client import EmailClient
from legalpro_lib.error_handler import AppError, ErrorHandler
from legalpro_lib.openai_client import OpenAIClient
from legalpro_lib.rate_limiter import RateLimiter
from legalpro_lib.twilio_client import TwilioClient

# Configure detailed logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stdout,
    force=True
)

logger = logging.getLogger(__name__)

settings = get_settings()

app = Flask(__name__)
CORS(app, allow_headers=['authorization', 'x-client-info', 'apikey', 'content-type'])

# Initialize clients
logger.info("Initializing Supabase client...")
try:
    supabase = create_supabase_client()
    logger.info("Supabase client initialized successfully")
except Exception as e:
    logger.error(f"Error initializing Supabase client: {str(e)}")
    raise

logger.info("Initializing OpenAI client...")
openai_client = OpenAIClient()
logger.info("OpenAI client initialized successfully")

logger.info("Initializing Twilio client...")
twilio_client = TwilioClient()
logger.info("Twilio client initialized successfully")

email_client = EmailClient()

# Initialize services
logger.info("Initializing services...")
database = Database(supabase)
notifications = NotificationService(database)
auth_service = AuthService(supabase, database)
session_service = SessionService(database, twilio_client)
recording_service = RecordingService(database, twilio_client)
case_work_service = CaseWorkService(database, notifications)
fee_service = FeeRequestService(database, notifications)
chat_service = LegalChatService(database, openai_client)
drafting_service = DraftingService(database, openai_client, settings)
visitor_service = VisitorService(database)
email_service = EmailService(supabase, database, email_client)
admin_service = AdminService(supabase, database, auth_service)
report_service = ReportService(database, auth_service)
logger.info("All services initialized successfully")

rate_limiter = RateLimiter(max_requests=settings.rate_limit_per_hour)


def error_response(error: Exception):
    if isinstance(error, AppError):
        body, status = ErrorHandler.handle_app_error(error)
    else:
        body, status = ErrorHandler.handle_unexpected_error(error)
    return jsonify(body), status


def current_user_id() -> str:
    return auth_service.get_user_id(request.headers.get('Authorization'))


def request_json() -> dict:
    return request.get_json(silent=True) or {}


def check_rate_limit() -> None:
    client_ip = client_ip_from_headers(request.headers)
    if client_ip == 'unknown':
        client_ip = request.remote_addr or 'unknown'
    if not rate_limiter.check_limit(client_ip):
        raise AppError(f"Rate limit exceeded for {client_ip}", status_code=429, user_message="Too many requests")


@app.route('/', methods=['GET'])
def home():
    return {'status': 'ok', 'service': 'legalpro', 'timestamp': now_iso()}


@app.route('/health', methods=['GET'])
def health():
    return {'status': 'healthy', 'timestamp': now_iso()}


# Communication sessions

@app.route('/twilio-webhooks', methods=['POST'])
async def twilio_webhooks():
    form_data = request.form.to_dict()
    logger.info(f"Twilio webhook received: {form_data}")

    if settings.twilio_validate_signatures:
        url = f"{settings.public_base_url.rstrip('/')}{request.path}" if settings.public_base_url else request.url
        if not twilio_client.validate_request(url, form_data, request.headers.get('X-Twilio-Signature')):
            logger.warning("Rejected Twilio webhook with invalid signature")
            return Response('Forbidden', status=403)

    try:
        await session_service.handle_webhook(form_data)
        return Response('OK', status=200)
    except Exception as e:
        logger.error(f"Error processing Twilio webhook: {str(e)}", exc_info=True)
        return Response('Error', status=500)


@app.route('/twilio-access-token', methods=['POST'])
async def twilio_access_token():
    try:
        user_id = current_user_id()
        data = request_json()
        result = await session_service.create_access_token(
            user_id,
            data.get('caseId'),
            data.get('sessionType'),
            data.get('participantRole'),
            session_id=data.get('sessionId')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/manage-twilio-recording', methods=['POST'])
async def manage_twilio_recording():
    try:
        user_id = current_user_id()
        data = request_json()
        result = await recording_service.manage_recording(user_id, data.get('sessionId'), data.get('action'))
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/session-recordings', methods=['GET'])
async def session_recordings():
    try:
        user_id = current_user_id()
        result = await recording_service.get_recordings(
            user_id,
            recording_id=request.args.get('recordingId'),
            session_id=request.args.get('sessionId'),
            case_id=request.args.get('caseId')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/session-cleanup', methods=['GET', 'POST'])
async def session_cleanup():
    try:
        session_id = request_json().get('sessionId') if request.method == 'POST' else None
        if session_id:
            result = await session_service.end_session(session_id)
        else:
            result = await session_service.cleanup_stale_sessions()
        return jsonify({**result, 'timestamp': now_iso()})
    except Exception as e:
        return error_response(e)


@app.route('/scheduled-session-cleanup', methods=['GET', 'POST'])
async def scheduled_session_cleanup():
    try:
        return jsonify(await session_service.scheduled_cleanup())
    except Exception as e:
        return error_response(e)


@app.route('/log-chat-message', methods=['POST'])
async def log_chat_message():
    try:
        user_id = current_user_id()
        data = request_json()
        result = await session_service.log_chat_message(
            user_id,
            data.get('sessionId'),
            data.get('caseId'),
            data.get('role'),
            data.get('content'),
            message_type=data.get('messageType') or 'text'
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


# Case workflow

@app.route('/start-case-work', methods=['POST'])
async def start_case_work():
    try:
        return jsonify(await case_work_service.start_case_work(request_json().get('caseId')))
    except Exception as e:
        return error_response(e)


@app.route('/complete-case-work', methods=['POST'])
async def complete_case_work():
    try:
        user_id = current_user_id()
        data = request_json()
        result = await case_work_service.complete_case_work(user_id, data.get('caseId'), data.get('completionType'))
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/complete-consultation', methods=['POST'])
async def complete_consultation():
    try:
        user_id = current_user_id()
        return jsonify(await case_work_service.complete_consultation(user_id, request_json().get('caseId')))
    except Exception as e:
        return error_response(e)


@app.route('/appointment-notification', methods=['POST'])
async def appointment_notification():
    try:
        appointment_id = request_json().get('appointmentId')
        return jsonify(await case_work_service.create_appointment_notification(appointment_id))
    except Exception as e:
        return error_response(e)


@app.route('/additional-fee-requests', methods=['POST'])
async def create_fee_request():
    try:
        user_id = current_user_id()
        return jsonify(await fee_service.create_fee_request(user_id, request_json()))
    except Exception as e:
        return error_response(e)


@app.route('/additional-fee-requests/respond', methods=['POST'])
async def respond_fee_request():
    try:
        user_id = current_user_id()
        data = request_json()
        result = await fee_service.respond_fee_request(
            user_id,
            data.get('requestId'),
            data.get('response'),
            client_response=data.get('clientResponse')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


# AI intake and drafting

@app.route('/legal-chatbot', methods=['POST'])
async def legal_chatbot():
    try:
        check_rate_limit()
        data = request_json()
        result = await chat_service.chat(
            data.get('message'),
            conversation_id=data.get('conversation_id'),
            mode=data.get('mode') or 'intake',
            language=data.get('language') or 'en'
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/conversation-summary', methods=['POST'])
async def conversation_summary():
    try:
        data = request_json()
        return jsonify(await drafting_service.summarize_conversation(data.get('caseId'), data.get('clientName')))
    except Exception as e:
        return error_response(e)


@app.route('/legal-analysis', methods=['POST'])
async def legal_analysis():
    try:
        data = request_json()
        result = await drafting_service.analyze_case(
            data.get('messages') or [],
            category=data.get('category') or 'General',
            language=data.get('language') or 'en',
            case_id=data.get('caseId')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/generate-proposal', methods=['POST'])
async def generate_proposal():
    try:
        data = request_json()
        return jsonify(await drafting_service.generate_proposal(data.get('caseId'), data.get('proposalInput')))
    except Exception as e:
        return error_response(e)


@app.route('/generate-contract', methods=['POST'])
async def generate_contract():
    try:
        current_user_id()
        data = request_json()
        result = await drafting_service.generate_contract(
            data.get('proposalId'),
            overrides=data,
            language=data.get('language') or 'both',
            consultation_notes=data.get('consultationNotes')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/translate-case-content', methods=['POST'])
async def translate_case_content():
    try:
        data = request_json()
        result = await drafting_service.translate(
            data.get('content'),
            data.get('toLanguage'),
            content_type=data.get('contentType'),
            from_language=data.get('fromLanguage'),
            cache_key=data.get('cacheKey')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


# Visitor analytics

@app.route('/track-visitor', methods=['POST'])
async def track_visitor():
    try:
        check_rate_limit()
        return jsonify(await visitor_service.track(request_json(), request.headers))
    except Exception as e:
        return error_response(e)


# Email

@app.route('/notify-new-signup', methods=['POST'])
async def notify_new_signup():
    try:
        return jsonify(await email_service.notify_new_signup(request_json()))
    except Exception as e:
        return error_response(e)


@app.route('/lawyer-invitations', methods=['POST'])
async def lawyer_invitations():
    try:
        user_id = current_user_id()
        auth_service.require_admin(user_id)
        data = request_json()
        result = await email_service.invite_lawyer(
            data.get('email'),
            data.get('invitedBy') or user_id,
            request.headers.get('Origin')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/lawyer-approval', methods=['POST'])
async def lawyer_approval():
    try:
        auth_service.require_admin(current_user_id())
        data = request_json()
        result = await email_service.send_lawyer_approval(
            data.get('email'),
            data.get('lawyerName'),
            bool(data.get('approved')),
            review_notes=data.get('reviewNotes'),
            origin=request.headers.get('Origin')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/probono/confirmation', methods=['POST'])
async def probono_confirmation():
    try:
        data = request_json()
        result = await email_service.send_probono_confirmation(
            data.get('email'), data.get('fullName'), data.get('caseTitle')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


@app.route('/probono/response', methods=['POST'])
async def probono_response():
    try:
        data = request_json()
        result = await email_service.send_probono_response(
            data.get('email'),
            data.get('fullName'),
            data.get('caseTitle'),
            data.get('status'),
            admin_response=data.get('adminResponse')
        )
        return jsonify(result)
    except Exception as e:
        return error_response(e)


# Admin

@app.route('/admin/delete-lawyer', methods=['POST'])
async def delete_lawyer():
    try:
        user_id = current_user_id()
        data = request_json()
        return jsonify(await admin_service.delete_lawyer(user_id, data.get('lawyerId'), data.get('email')))
    except Exception as e:
        return error_response(e)


@app.route('/admin/reports/<report>', methods=['GET'])
async def admin_report(report):
    try:
        user_id = current_user_id()
        rows = await report_service.run(
            user_id,
            report,
            request.args.get('from'),
            request.args.get('to'),
            lawyer_id=request.args.get('lawyerId')
        )
        if request.args.get('format') == 'csv':
            return Response(
                rows_to_csv(rows),
                mimetype='text/csv',
                headers={'Content-Disposition': f'attachment; filename={report}-report.csv'}
            )
        return jsonify({'report': report, 'rows': rows})
    except Exception as e:
        return error_response(e)
