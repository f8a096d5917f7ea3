import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

from legalpro.case_utils import generate_case_title
from legalpro.services.chatbot_prompts import (
    EGYPT_KEYWORDS,
    EMPTY_REPLIES,
    EXTRACT_CASE_DATA_TOOL,
    FALLBACK_REPLIES,
    INTAKE_PROMPTS,
    JURISDICTION_DECLINE,
    NON_EGYPT_KEYWORDS,
    QA_PROMPTS,
    localized,
)
from legalpro_lib.database import Database, now_iso
from legalpro_lib.error_handler import AppError, ErrorHandler
from legalpro_lib.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

CHAT_MODEL = 'gpt-4o-mini'
MAX_SAVE_ATTEMPTS = 3


def is_egypt_jurisdiction(extracted: Dict[str, Any]) -> bool:
    """Accept only locations naming Egypt and no other country"""
    location = ((extracted.get('entities') or {}).get('location') or '').lower()
    if not location:
        return False
    if any(keyword in location for keyword in NON_EGYPT_KEYWORDS):
        return False
    return any(keyword in location for keyword in EGYPT_KEYWORDS)


def extract_tool_arguments(message) -> Optional[Dict[str, Any]]:
    for tool_call in getattr(message, 'tool_calls', None) or []:
        if tool_call.function.name != 'extract_case_data':
            continue
        try:
            return json.loads(tool_call.function.arguments)
        except (TypeError, ValueError) as e:
            logger.error(f"Error parsing extract_case_data arguments: {str(e)}")
    return None


class LegalChatService:
    def __init__(self, database: Database, openai_client: OpenAIClient):
        self.db = database
        self.openai = openai_client

    def _history(self, conversation_id: Optional[str]) -> List[Dict[str, str]]:
        if not conversation_id:
            return []
        rows = self.db.fetch_all(
            'messages',
            {'conversation_id': conversation_id},
            columns='role, content',
            order_by='created_at'
        )
        logger.info(f"Loaded chat history with {len(rows)} messages for {conversation_id}")
        return [{'role': row['role'], 'content': row['content']} for row in rows]

    def _upsert_draft_case(self, conversation_id: str, extracted: Dict[str, Any], language: str) -> None:
        conversation = self.db.fetch_one('conversations', {'id': conversation_id}, columns='case_id, user_id')
        if not conversation:
            return

        case_id = conversation.get('case_id')
        if case_id:
            self.db.update('cases', {
                'category': extracted.get('category') or 'General',
                'urgency': extracted.get('urgency') or 'medium',
                'extracted_entities': extracted.get('entities') or {},
                'description': extracted.get('summary') or 'Updated from AI conversation'
            }, {'id': case_id})
            logger.info(f"Updated draft case {case_id} from conversation {conversation_id}")
        elif conversation.get('user_id'):
            case = self.db.insert_one('cases', {
                'user_id': conversation['user_id'],
                'title': generate_case_title(extracted),
                'description': extracted.get('summary') or 'Case created from AI intake conversation',
                'category': extracted.get('category') or 'General',
                'urgency': extracted.get('urgency') or 'medium',
                'status': 'draft',
                'step': 1,
                'language': language,
                'jurisdiction': 'egypt',
                'extracted_entities': extracted.get('entities') or {}
            })
            if case.get('id'):
                self.db.update('conversations', {'case_id': case['id']}, {'id': conversation_id})
                logger.info(f"Created draft case {case['id']} for conversation {conversation_id}")

    def _message_rows(self, key: str, value: str, message: str, reply: str,
                      mode: str, extracted: Optional[Dict[str, Any]], **extra) -> List[Dict[str, Any]]:
        timestamp = now_iso()
        assistant_metadata = {'timestamp': timestamp, 'mode': mode}
        if mode == 'intake':
            assistant_metadata['extractedData'] = extracted
        return [
            {key: value, 'role': 'user', 'content': message, 'metadata': {'timestamp': timestamp}, **extra},
            {key: value, 'role': 'assistant', 'content': reply, 'metadata': assistant_metadata, **extra}
        ]

    async def _save_messages(self, conversation_id: str, message: str, reply: str,
                             mode: str, extracted: Optional[Dict[str, Any]]) -> None:
        conversation = self.db.fetch_one('conversations', {'id': conversation_id}, columns='id, user_id, case_id')
        if not conversation:
            raise AppError("Conversation not found or not accessible", status_code=404)

        rows = self._message_rows('conversation_id', conversation_id, message, reply, mode, extracted)
        for attempt in range(1, MAX_SAVE_ATTEMPTS + 1):
            try:
                self.db.insert('messages', rows)
                break
            except AppError as e:
                logger.error(f"Message insert attempt {attempt} failed: {str(e)}")
                if attempt == MAX_SAVE_ATTEMPTS:
                    raise
                await asyncio.sleep(0.1 * attempt)

        if conversation.get('case_id'):
            try:
                self.db.insert('case_messages', self._message_rows(
                    'case_id', conversation['case_id'], message, reply, mode, extracted, message_type='text'
                ))
            except AppError as e:
                ErrorHandler.handle_side_effect_error(f"copy messages to case {conversation['case_id']}", e)

        logger.info(f"Messages saved to conversation {conversation_id}")

    async def chat(
        self,
        message: str,
        conversation_id: Optional[str] = None,
        mode: str = 'intake',
        language: str = 'en'
    ) -> Dict[str, Any]:
        if not message:
            raise AppError("message is required", status_code=400)

        logger.info(f"Legal chatbot request: mode={mode}, language={language}, conversation={conversation_id}")
        intake = mode != 'qa'
        system_prompt = localized(INTAKE_PROMPTS if intake else QA_PROMPTS, language)
        messages = [
            {'role': 'system', 'content': system_prompt},
            *self._history(conversation_id),
            {'role': 'user', 'content': message}
        ]

        try:
            completion = await self.openai.create_completion(
                messages,
                model=CHAT_MODEL,
                temperature=0.9,
                max_tokens=300,
                tools=[EXTRACT_CASE_DATA_TOOL] if intake else None
            )
        except AppError as e:
            logger.error(f"Chatbot completion failed, sending fallback: {str(e)}")
            return {
                'response': localized(FALLBACK_REPLIES, language),
                'extractedData': None,
                'conversation_id': conversation_id
            }

        reply = completion.content or localized(EMPTY_REPLIES, language)
        extracted: Dict[str, Any] = {}

        if intake:
            arguments = extract_tool_arguments(completion)
            if arguments is not None:
                extracted = arguments
                logger.info(f"Extracted case data: {extracted}")
                if not is_egypt_jurisdiction(extracted):
                    location = (extracted.get('entities') or {}).get('location')
                    logger.info(f"Case rejected outside Egypt jurisdiction: {location}")
                    return {
                        'response': localized(JURISDICTION_DECLINE, language),
                        'extractedData': None,
                        'conversation_id': conversation_id,
                        'jurisdictionRejected': True
                    }
                if conversation_id:
                    try:
                        self._upsert_draft_case(conversation_id, extracted, language)
                    except AppError as e:
                        ErrorHandler.handle_side_effect_error("create or update draft case", e)

        if conversation_id:
            await self._save_messages(conversation_id, message, reply, mode, extracted if intake else None)

        return {
            'response': reply,
            'extractedData': extracted if intake else None,
            'needsPersonalDetails': bool(extracted.get('personalDetailsNeeded')) if intake else False,
            'conversation_id': conversation_id,
            'conversationId': conversation_id
        }
