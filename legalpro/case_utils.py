import re
from typing import Any, Dict, Optional

PLACEHOLDER_TITLES = {'New Legal Inquiry', 'Legal Case'}

STATUS_LABELS = {
    'submitted': 'Under Review',
    'lawyer_assigned': 'Awaiting Proposal',
    'intake': 'In Progress',
    'in_progress': 'In Progress',
    'completed': 'Completed',
    'closed': 'Closed',
}


def generate_case_title(case_data: Optional[Dict[str, Any]]) -> str:
    """Build a readable case title from the intake category and summary"""
    if not case_data:
        return 'New Case'

    title = case_data.get('title')
    if title and title not in PLACEHOLDER_TITLES:
        return title

    category = case_data.get('category') or 'Legal Matter'

    summary = (case_data.get('summary') or '').strip()
    if summary:
        short_summary = summary[:37] + '...' if len(summary) > 40 else summary
        return f"{category}: {short_summary}"

    entities = case_data.get('entities') or {}
    if entities.get('incident_type'):
        return f"{category}: {entities['incident_type']}"
    if entities.get('subject') or entities.get('topic'):
        return f"{category}: {entities.get('subject') or entities.get('topic')}"

    return category


def format_case_status(status: str) -> str:
    if status in STATUS_LABELS:
        return STATUS_LABELS[status]
    return re.sub(r'\b\w', lambda m: m.group().upper(), status.replace('_', ' ', 1))


def mask_client_name(full_name: Optional[str]) -> str:
    """Show a client as first name plus last initial, e.g. "Mona S." """
    if not full_name or not isinstance(full_name, str) or not full_name.strip():
        return 'Unknown Client'

    parts = full_name.strip().split()
    if len(parts) == 1:
        return parts[0]
    return f"{parts[0]} {parts[-1][0].upper()}."


def client_name_for_role(full_name: Optional[str], user_role: Optional[str]) -> str:
    if user_role == 'admin':
        return full_name or 'Unknown Client'
    return mask_client_name(full_name)


def is_case_party(case: Dict[str, Any], user_id: str) -> bool:
    return user_id in (case.get('user_id'), case.get('assigned_lawyer_id'))
