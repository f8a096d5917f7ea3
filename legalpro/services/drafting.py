import asyncio
import json
import logging
import re
from typing import Any, Dict, List, Optional

from legalpro.case_utils import client_name_for_role
from legalpro.services.drafting_prompts import (
    ANALYSIS_PROMPT_AR,
    ANALYSIS_PROMPT_EN,
    ANALYSIS_REQUEST,
    CONTRACT_LANGUAGE,
    CONTRACT_PROMPT,
    CONTRACT_REQUEST,
    PROPOSAL_PROMPT,
    PROPOSAL_REQUEST,
    SUMMARY_PROMPT,
    TRANSLATION_PROMPT,
    TRANSLATION_TARGETS,
)
from legalpro_lib.config import Settings, get_settings
from legalpro_lib.database import Database, now_iso
from legalpro_lib.error_handler import AppError, ErrorHandler
from legalpro_lib.openai_client import OpenAIClient

logger = logging.getLogger(__name__)

PLATFORM_FEE_PERCENTAGE = 6.0
MIN_PROPOSAL_LENGTH = 100
JSON_BLOCK = re.compile(r'\{.*\}', re.DOTALL)

CONTRACT_OVERRIDES = {
    'paymentStructure': 'payment_structure',
    'consultationFee': 'consultation_fee',
    'remainingFee': 'remaining_fee',
    'contingencyPercentage': 'contingency_percentage',
    'hybridFixedFee': 'hybrid_fixed_fee',
    'hybridContingencyPercentage': 'hybrid_contingency_percentage',
    'timeline': 'timeline',
    'strategy': 'strategy',
}


def parse_analysis(content: Optional[str]) -> Dict[str, Any]:
    """Parse the first JSON object in a model reply, raising ValueError when there is none"""
    match = JSON_BLOCK.search(content or '')
    if not match:
        raise ValueError('No JSON found in response')
    return json.loads(match.group())


def default_analysis_en(messages: List[Dict[str, Any]], category: str) -> Dict[str, Any]:
    user_text = ' '.join(m.get('content', '') for m in messages if m.get('role') == 'user')
    return {
        'caseSummary': user_text[:500] if messages else 'Legal matter requiring professional consultation',
        'applicableLaws': [],
        'recommendedSpecialization': {
            'primaryArea': category or 'General Legal',
            'secondaryAreas': [],
            'reasoning': 'Based on case category and initial assessment'
        },
        'legalStrategy': {
            'immediateSteps': ['Consult with qualified lawyer', 'Gather relevant documents'],
            'documentation': [],
            'timeline': 'To be determined upon legal consultation',
            'risks': [],
            'opportunities': []
        },
        'caseComplexity': {'level': 'medium', 'factors': ['Requires professional legal assessment']},
        'jurisdiction': 'egypt',
        'urgency': 'medium'
    }


def default_analysis_ar(category: str) -> Dict[str, Any]:
    return {
        'caseSummary': 'مسألة قانونية تتطلب استشارة مهنية',
        'applicableLaws': [],
        'recommendedSpecialization': {
            'primaryArea': category or 'قانوني عام',
            'secondaryAreas': [],
            'reasoning': 'بناءً على فئة القضية والتقييم الأولي'
        },
        'legalStrategy': {
            'immediateSteps': ['استشارة محامي مؤهل', 'جمع المستندات ذات الصلة'],
            'documentation': [],
            'timeline': 'يتم تحديدها عند الاستشارة القانونية',
            'risks': [],
            'opportunities': []
        },
        'caseComplexity': {'level': 'متوسط', 'factors': ['يتطلب تقييم قانوني مهني']},
        'jurisdiction': 'مصر',
        'urgency': 'متوسط'
    }


def proposal_fees(consultation_fee: float, remaining_fee: float) -> Dict[str, float]:
    base_total = consultation_fee + remaining_fee
    platform_fee = base_total * (PLATFORM_FEE_PERCENTAGE / 100)
    return {
        'consultation_fee': consultation_fee,
        'remaining_fee': remaining_fee,
        'platform_fee_percentage': PLATFORM_FEE_PERCENTAGE,
        'platform_fee_amount': platform_fee,
        'base_total_fee': base_total,
        'total_additional_fees': platform_fee,
        'final_total_fee': base_total + platform_fee
    }


def contract_base_fee(terms: Dict[str, Any]) -> float:
    structure = terms.get('payment_structure')
    if structure == 'fixed_fee':
        return terms.get('remaining_fee') or 0
    if structure == 'hybrid':
        return terms.get('hybrid_fixed_fee') or 0
    return 0


def payment_structure_text(terms: Dict[str, Any]) -> str:
    structure = terms.get('payment_structure')
    if structure == 'fixed_fee':
        return f"Fixed Fee: {terms.get('remaining_fee')} EGP"
    if structure == 'contingency':
        return f"Contingency Fee: {terms.get('contingency_percentage')}% of the outcome"
    return (
        f"Hybrid: {terms.get('hybrid_fixed_fee')} EGP fixed + "
        f"{terms.get('hybrid_contingency_percentage')}% contingency"
    )


def _full_name(profile: Optional[Dict[str, Any]], default: str) -> str:
    if not profile:
        return default
    return f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip() or default


class DraftingService:
    """Summaries, analyses, proposals, contracts and translations produced with OpenAI."""

    def __init__(self, database: Database, openai_client: OpenAIClient, settings: Optional[Settings] = None):
        self.db = database
        self.openai = openai_client
        self.settings = settings or get_settings()

    def _conversation_for_case(self, case_id: str) -> Optional[Dict[str, Any]]:
        conversation = self.db.fetch_one('conversations', {'case_id': case_id}, columns='id')
        if conversation:
            return conversation

        case = self.db.fetch_one('cases', {'id': case_id}, columns='user_id')
        if not case or not case.get('user_id'):
            raise AppError("No case found", status_code=404)

        conversation = self.db.fetch_one(
            'conversations',
            {'user_id': case['user_id'], 'mode': 'intake'},
            columns='id',
            order_by='created_at',
            desc=True
        )
        if conversation:
            self.db.update('conversations', {'case_id': case_id}, {'id': conversation['id']})
            logger.info(f"Linked intake conversation {conversation['id']} to case {case_id}")
        return conversation

    async def summarize_conversation(self, case_id: str, client_name: Optional[str] = None) -> Dict[str, Any]:
        if not case_id:
            raise AppError("Case ID is required", status_code=400)

        conversation = self._conversation_for_case(case_id)
        if not conversation:
            raise AppError("No conversation found for case", status_code=404)

        messages = self.db.fetch_all(
            'messages',
            {'conversation_id': conversation['id']},
            columns='role, content, created_at'
        )
        if not messages:
            raise AppError("No conversation found for this case", status_code=404)

        messages.sort(key=lambda m: m.get('created_at') or '')
        conversation_text = '\n\n'.join(f"{m['role'].upper()}: {m['content']}" for m in messages)
        client_reference = f'Refer to the client as "{client_name}"' if client_name else 'Use "the client"'

        summary = await self.openai.generate_text(
            SUMMARY_PROMPT.format(client_reference=client_reference),
            f"Please summarize the following legal intake conversation:\n\n{conversation_text}",
            model=self.settings.openai_model,
            temperature=0.3,
            max_tokens=500
        )

        self.db.update('cases', {'ai_summary': summary}, {'id': case_id})
        logger.info(f"Stored conversation summary for case {case_id}")
        return {'summary': summary}

    async def analyze_case(
        self,
        messages: List[Dict[str, Any]],
        category: str = 'General',
        language: str = 'en',
        case_id: Optional[str] = None
    ) -> Dict[str, Any]:
        case_language = language
        if case_id:
            case = self.db.fetch_one('cases', {'id': case_id}, columns='language')
            if case and case.get('language'):
                case_language = case['language']
            try:
                self.db.insert('case_analysis', {
                    'case_id': case_id,
                    'analysis_data': {},
                    'analysis_type': 'comprehensive',
                    'status': 'pending'
                })
            except AppError as e:
                ErrorHandler.handle_side_effect_error(f"create pending analysis for case {case_id}", e)

        conversation = '\n\n'.join(f"{m.get('role')}: {m.get('content')}" for m in messages)
        request = ANALYSIS_REQUEST.format(conversation=conversation)

        try:
            english_reply, arabic_reply = await asyncio.gather(
                self.openai.generate_text(
                    ANALYSIS_PROMPT_EN.format(category=category), request,
                    model=self.settings.openai_model, temperature=0.3, max_tokens=2000
                ),
                self.openai.generate_text(
                    ANALYSIS_PROMPT_AR.format(category=category), request,
                    model=self.settings.openai_model, temperature=0.3, max_tokens=2000
                )
            )
        except AppError as e:
            raise AppError(f"Failed to generate legal analysis: {e.message}")

        try:
            analysis_en = parse_analysis(english_reply)
        except ValueError as e:
            logger.error(f"Error parsing English analysis: {str(e)}")
            analysis_en = default_analysis_en(messages, category)
        try:
            analysis_ar = parse_analysis(arabic_reply)
        except ValueError as e:
            logger.error(f"Error parsing Arabic analysis: {str(e)}")
            analysis_ar = default_analysis_ar(category)

        if case_id:
            try:
                self.db.update(
                    'case_analysis',
                    {'analysis_data': {'en': analysis_en, 'ar': analysis_ar}, 'status': 'completed', 'updated_at': now_iso()},
                    {'case_id': case_id, 'status': 'pending'}
                )
            except AppError as e:
                ErrorHandler.handle_side_effect_error(f"complete analysis for case {case_id}", e)

        return {
            'success': True,
            'legalAnalysis': analysis_ar if case_language == 'ar' else analysis_en,
            'analysisEn': analysis_en,
            'analysisAr': analysis_ar
        }

    def _proposal_context(self, case: Dict[str, Any]) -> Dict[str, Any]:
        case_id = case['id']
        documents = self.db.fetch_all('documents', {'case_id': case_id}, columns='file_name, document_category, ocr_text')
        analyses = self.db.fetch_all('case_analysis', {'case_id': case_id}, columns='analysis_data, analysis_type')
        messages = self.db.fetch_all(
            'case_messages',
            {'case_id': case_id},
            columns='content, role, created_at',
            order_by='created_at',
            desc=True,
            limit=10
        )
        lawyer = None
        if case.get('assigned_lawyer_id'):
            lawyer = self.db.fetch_one(
                'profiles',
                {'user_id': case['assigned_lawyer_id']},
                columns='first_name, last_name, law_firm, specializations, years_experience'
            )
        return {
            'documents': [
                {
                    'name': doc.get('file_name'),
                    'category': doc.get('document_category'),
                    'summary': (doc.get('ocr_text') or '')[:500]
                }
                for doc in documents
            ],
            'legal_analysis': [analysis.get('analysis_data') for analysis in analyses],
            'conversation_history': messages,
            'lawyer': lawyer
        }

    def _client_name_for_lawyer(self, case: Dict[str, Any]) -> str:
        full_name = case.get('client_name')
        if case.get('user_id'):
            client = self.db.fetch_one('profiles', {'user_id': case['user_id']}, columns='first_name, last_name')
            full_name = _full_name(client, '') or full_name
        # Proposals are read by the assigned lawyer
        return client_name_for_role(full_name, 'lawyer')

    async def generate_proposal(self, case_id: str, proposal_input: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not case_id or not proposal_input:
            raise AppError("Missing required parameters: caseId and proposalInput are required", status_code=400)

        fees = proposal_fees(proposal_input.get('consultation_fee') or 0, proposal_input.get('remaining_fee') or 0)

        case = self.db.fetch_one('cases', {'id': case_id})
        if not case:
            raise AppError("Failed to fetch case data: Case not found", status_code=404)

        context = self._proposal_context(case)
        lawyer = context['lawyer']
        if lawyer:
            attorney = _full_name(lawyer, 'TBD')
            if lawyer.get('law_firm'):
                attorney = f"{attorney}, {lawyer['law_firm']}"
        else:
            attorney = 'TBD'

        system_prompt = PROPOSAL_PROMPT.format(
            attorney=attorney,
            title=case.get('title'),
            category=case.get('category'),
            description=case.get('description'),
            document_count=len(context['documents']),
            analysis=json.dumps(context['legal_analysis'], ensure_ascii=False),
            message_count=len(context['conversation_history']),
            consultation_fee=proposal_input.get('consultation_fee'),
            remaining_fee=proposal_input.get('remaining_fee'),
            platform_fee=fees['platform_fee_amount'],
            final_total=fees['final_total_fee'],
            timeline=proposal_input.get('timeline'),
            strategy=proposal_input.get('strategy')
        )

        proposal = None
        last_error = 'All AI models failed'
        for model in self.settings.openai_proposal_models:
            try:
                content = await self.openai.generate_text(system_prompt, PROPOSAL_REQUEST, model=model, max_tokens=3500)
            except AppError as e:
                logger.error(f"Proposal generation with {model} failed: {e.message}")
                last_error = e.message
                continue

            content = content.strip()
            if len(content) < MIN_PROPOSAL_LENGTH:
                logger.error(f"Generated proposal too short from {model}: {len(content)} characters")
                last_error = f"Generated proposal is too short ({len(content)} characters)"
                continue

            logger.info(f"Proposal for case {case_id} generated with {model}")
            proposal = content
            break

        if not proposal:
            raise AppError(f"Failed to generate proposal: {last_error}")

        return {
            'generatedProposal': proposal,
            'feeStructure': fees,
            'caseContext': {
                'case_number': case.get('case_number'),
                'title': case.get('title'),
                'client_name': self._client_name_for_lawyer(case)
            }
        }

    async def generate_contract(
        self,
        proposal_id: str,
        overrides: Optional[Dict[str, Any]] = None,
        language: str = 'both',
        consultation_notes: Optional[str] = None
    ) -> Dict[str, Any]:
        if not proposal_id:
            raise AppError("proposalId is required", status_code=400)
        if language not in ('en', 'ar', 'both'):
            raise AppError(f"Invalid language: {language}", status_code=400)

        proposal = self.db.fetch_one('proposals', {'id': proposal_id})
        if not proposal:
            raise AppError("Proposal not found", status_code=404)
        case = self.db.fetch_one(
            'cases',
            {'id': proposal.get('case_id')},
            columns='id, case_number, title, description, category, user_id'
        ) or {}

        lawyer = self.db.fetch_one(
            'profiles',
            {'user_id': proposal.get('lawyer_id')},
            columns='first_name, last_name, license_number, national_id_passport, law_firm_name'
        )
        client = self.db.fetch_one(
            'profiles',
            {'user_id': proposal.get('client_id')},
            columns='first_name, last_name, national_id_passport'
        )
        documents = self.db.fetch_all('documents', {'case_id': proposal.get('case_id')}, columns='file_name, document_category')

        terms = {column: proposal.get(column) for column in CONTRACT_OVERRIDES.values()}
        for key, column in CONTRACT_OVERRIDES.items():
            value = (overrides or {}).get(key)
            if value is not None and value != '':
                terms[column] = value

        base_fee = contract_base_fee(terms)
        platform_fee = round(base_fee * 0.06)
        contingency = terms.get('payment_structure') == 'contingency'
        lawyer_name = _full_name(lawyer, 'Lawyer')

        system_prompt = CONTRACT_PROMPT.format(
            client_name=_full_name(client, 'Client'),
            client_id=(client or {}).get('national_id_passport') or '[National ID/Passport No.]',
            law_firm=(lawyer or {}).get('law_firm_name') or lawyer_name,
            bar_number=(lawyer or {}).get('license_number') or '[Bar Registration No.]',
            title=case.get('title'),
            category=case.get('category'),
            description=case.get('description') or 'Not provided',
            timeline=terms.get('timeline') or 'To be determined',
            strategy=terms.get('strategy') or 'As discussed',
            notes=f"- Consultation Notes: {consultation_notes}\n" if consultation_notes else '',
            payment_text=payment_structure_text(terms),
            platform_fee=platform_fee,
            total_text=(
                'Contingency-based (applicable upon settlement)' if contingency
                else f"{base_fee + platform_fee} EGP"
            )
        )
        request = CONTRACT_REQUEST.format(
            title=case.get('title'),
            category=case.get('category'),
            description=case.get('description') or 'Not provided',
            documents=', '.join(doc.get('file_name') or '' for doc in documents) or 'None'
        )

        async def generate(lang: str) -> str:
            try:
                return await self.openai.generate_text(
                    f"{system_prompt}\n\n{CONTRACT_LANGUAGE[lang]}",
                    request,
                    model=self.settings.openai_model,
                    temperature=0.7,
                    max_tokens=3000,
                    timeout=self.settings.openai_contract_timeout
                )
            except AppError as e:
                raise AppError(f"Failed to generate contract in {lang}: {e.message}")

        content_en = content_ar = None
        if language == 'both':
            content_en, content_ar = await asyncio.gather(generate('en'), generate('ar'))
        elif language == 'en':
            content_en = await generate('en')
        else:
            content_ar = await generate('ar')

        logger.info(f"Contract generated for proposal {proposal_id} ({language})")
        return {
            'success': True,
            'content_en': content_en,
            'content_ar': content_ar,
            'proposal_id': proposal_id,
            'case_id': proposal.get('case_id')
        }

    async def translate(
        self,
        content: str,
        to_language: str,
        content_type: Optional[str] = None,
        from_language: Optional[str] = None,
        cache_key: Optional[str] = None
    ) -> Dict[str, Any]:
        if not content or not to_language:
            raise AppError("Content and target language are required", status_code=400)

        if cache_key:
            cached = self.db.fetch_one(
                'content_translations',
                {'cache_key': cache_key, 'target_language': to_language},
                columns='translated_content'
            )
            if cached:
                return {'translatedContent': cached['translated_content'], 'cached': True}

        content_type = content_type or 'general'
        system_prompt = TRANSLATION_PROMPT.format(
            content_type=content_type,
            audience='Arabic-speaking legal professionals' if to_language == 'ar' else 'the target language',
            structure_rule=(
                'IMPORTANT: If the content is a JSON object, maintain the exact JSON structure and only translate the string values.'
                if content_type == 'legal_analysis' else 'Maintain the original formatting and structure.'
            )
        )
        if to_language in TRANSLATION_TARGETS:
            system_prompt = f"{system_prompt}\n\n{TRANSLATION_TARGETS[to_language]}"

        translated = await self.openai.generate_text(
            system_prompt,
            f"Please translate the following content:\n\n{content}",
            model=self.settings.openai_model,
            temperature=0.2,
            max_tokens=2000
        )

        if cache_key:
            self.db.upsert('content_translations', {
                'cache_key': cache_key,
                'original_content': content,
                'translated_content': translated,
                'source_language': from_language or 'auto',
                'target_language': to_language,
                'content_type': content_type,
                'created_at': now_iso()
            }, on_conflict='cache_key,target_language')

        return {'translatedContent': translated, 'cached': False}
