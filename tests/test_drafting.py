import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from legalpro.services.drafting import (
    DraftingService,
    contract_base_fee,
    parse_analysis,
    payment_structure_text,
    proposal_fees,
)
from legalpro_lib.config import Settings
from legalpro_lib.error_handler import AppError

PROPOSAL_TEXT = 'Dear Client,\n\n' + 'We propose to represent you in this matter. ' * 5

ANALYSIS = {'caseSummary': 'Tenant dispute', 'urgency': 'high'}


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.generate_text = AsyncMock(return_value='generated text')
    return client


@pytest.fixture
def service(database, openai_client):
    settings = Settings(openai_model='gpt-4o-mini', openai_proposal_models=['model-a', 'model-b'])
    return DraftingService(database, openai_client, settings)


def test_proposal_fees():
    fees = proposal_fees(500, 1500)
    assert fees['base_total_fee'] == 2000
    assert fees['platform_fee_amount'] == pytest.approx(120)
    assert fees['final_total_fee'] == pytest.approx(2120)
    assert fees['platform_fee_percentage'] == 6.0


@pytest.mark.parametrize('terms,expected', [
    ({'payment_structure': 'fixed_fee', 'remaining_fee': 10000}, 10000),
    ({'payment_structure': 'hybrid', 'hybrid_fixed_fee': 4000}, 4000),
    ({'payment_structure': 'contingency', 'remaining_fee': 10000}, 0),
    ({'payment_structure': 'fixed_fee'}, 0),
])
def test_contract_base_fee(terms, expected):
    assert contract_base_fee(terms) == expected


def test_payment_structure_text():
    assert payment_structure_text({'payment_structure': 'fixed_fee', 'remaining_fee': 900}) == 'Fixed Fee: 900 EGP'
    assert payment_structure_text({
        'payment_structure': 'hybrid', 'hybrid_fixed_fee': 300, 'hybrid_contingency_percentage': 10
    }) == 'Hybrid: 300 EGP fixed + 10% contingency'


def test_parse_analysis_extracts_embedded_json():
    assert parse_analysis(f"Here you go:\n```json\n{json.dumps(ANALYSIS)}\n```") == ANALYSIS
    with pytest.raises(ValueError):
        parse_analysis('no json here')


async def test_summarize_conversation(service, openai_client, fake_db):
    fake_db.seed('cases', {'id': 'case-1', 'user_id': 'client-1'})
    fake_db.seed('conversations', {'id': 'conv-1', 'user_id': 'client-1', 'mode': 'intake'})
    fake_db.seed('messages',
                 {'conversation_id': 'conv-1', 'role': 'assistant', 'content': 'How can I help?',
                  'created_at': '2024-01-01T10:00:01+00:00'},
                 {'conversation_id': 'conv-1', 'role': 'user', 'content': 'Hi',
                  'created_at': '2024-01-01T10:00:00+00:00'})
    openai_client.generate_text.return_value = 'Mona needs help with a lease.'

    result = await service.summarize_conversation('case-1', client_name='Mona')

    assert result == {'summary': 'Mona needs help with a lease.'}
    system_prompt, user_prompt = openai_client.generate_text.call_args.args
    assert 'Refer to the client as "Mona"' in system_prompt
    assert user_prompt.index('USER: Hi') < user_prompt.index('ASSISTANT: How can I help?')
    assert fake_db.rows('cases')[0]['ai_summary'] == 'Mona needs help with a lease.'
    assert fake_db.rows('conversations')[0]['case_id'] == 'case-1'


async def test_summarize_without_messages(service, fake_db):
    fake_db.seed('conversations', {'id': 'conv-1', 'case_id': 'case-1'})
    with pytest.raises(AppError) as exc:
        await service.summarize_conversation('case-1')
    assert exc.value.status_code == 404


async def test_summarize_unknown_case(service):
    with pytest.raises(AppError) as exc:
        await service.summarize_conversation('missing')
    assert exc.value.status_code == 404


async def test_analyze_case_uses_case_language(service, openai_client, fake_db):
    fake_db.seed('cases', {'id': 'case-1', 'language': 'ar'})
    arabic = {'caseSummary': 'نزاع إيجار'}
    openai_client.generate_text.side_effect = [json.dumps(ANALYSIS), json.dumps(arabic, ensure_ascii=False)]

    result = await service.analyze_case([{'role': 'user', 'content': 'My landlord'}], 'Property', 'en', 'case-1')

    assert result['analysisEn'] == ANALYSIS
    assert result['analysisAr'] == arabic
    assert result['legalAnalysis'] == arabic
    row = fake_db.rows('case_analysis')[0]
    assert row['status'] == 'completed'
    assert row['analysis_data'] == {'en': ANALYSIS, 'ar': arabic}


async def test_analyze_case_falls_back_on_unparseable_reply(service, openai_client):
    openai_client.generate_text.side_effect = ['I cannot help with that', 'لا']

    result = await service.analyze_case([{'role': 'user', 'content': 'Landlord kept my deposit'}], 'Property')

    assert result['legalAnalysis']['caseSummary'] == 'Landlord kept my deposit'
    assert result['analysisEn']['recommendedSpecialization']['primaryArea'] == 'Property'
    assert result['analysisAr']['jurisdiction'] == 'مصر'


async def test_analyze_case_openai_failure(service, openai_client):
    openai_client.generate_text.side_effect = AppError('OpenAI request failed: boom')
    with pytest.raises(AppError) as exc:
        await service.analyze_case([], 'General')
    assert exc.value.message.startswith('Failed to generate legal analysis')


@pytest.fixture
def proposal_case(fake_db):
    fake_db.seed('cases', {
        'id': 'case-1', 'case_number': 'C-7', 'title': 'Lease dispute', 'category': 'Property',
        'description': 'Deposit withheld', 'assigned_lawyer_id': 'lawyer-1', 'client_name': 'Mona S.'
    })
    fake_db.seed('profiles', {'user_id': 'lawyer-1', 'first_name': 'Omar', 'last_name': 'Hassan', 'law_firm': 'Hassan & Co'})
    fake_db.seed('documents', {'case_id': 'case-1', 'file_name': 'lease.pdf', 'ocr_text': 'Lease agreement'})
    return fake_db


async def test_generate_proposal_falls_back_to_next_model(service, openai_client, proposal_case):
    openai_client.generate_text.side_effect = [AppError('rate limited'), PROPOSAL_TEXT]

    result = await service.generate_proposal('case-1', {
        'consultation_fee': 500, 'remaining_fee': 1500, 'timeline': '4 weeks', 'strategy': 'Negotiate'
    })

    assert result['generatedProposal'] == PROPOSAL_TEXT.strip()
    assert result['feeStructure']['final_total_fee'] == pytest.approx(2120)
    assert result['caseContext'] == {'case_number': 'C-7', 'title': 'Lease dispute', 'client_name': 'Mona S.'}
    assert [c.kwargs['model'] for c in openai_client.generate_text.call_args_list] == ['model-a', 'model-b']
    system_prompt = openai_client.generate_text.call_args.args[0]
    assert 'Omar Hassan, Hassan & Co' in system_prompt


async def test_generate_proposal_masks_client_profile_name(service, openai_client, proposal_case):
    proposal_case.rows('cases')[0]['user_id'] = 'client-1'
    proposal_case.seed('profiles', {'user_id': 'client-1', 'first_name': 'Mona', 'last_name': 'Saleh'})
    openai_client.generate_text.side_effect = [PROPOSAL_TEXT]

    result = await service.generate_proposal('case-1', {'consultation_fee': 500, 'remaining_fee': 1500})

    assert result['caseContext']['client_name'] == 'Mona S.'


async def test_generate_proposal_rejects_short_output(service, openai_client, proposal_case):
    openai_client.generate_text.side_effect = ['too short', 'also short']

    with pytest.raises(AppError) as exc:
        await service.generate_proposal('case-1', {'consultation_fee': 500, 'remaining_fee': 1500})

    assert exc.value.status_code == 500
    assert 'too short' in exc.value.message


async def test_generate_proposal_requires_input(service):
    with pytest.raises(AppError) as exc:
        await service.generate_proposal('case-1', None)
    assert exc.value.status_code == 400


@pytest.fixture
def proposal(fake_db):
    fake_db.seed('cases', {'id': 'case-1', 'title': 'Lease dispute', 'category': 'Property', 'user_id': 'client-1'})
    fake_db.seed('profiles',
                 {'user_id': 'lawyer-1', 'first_name': 'Omar', 'last_name': 'Hassan', 'license_number': 'BAR-9'},
                 {'user_id': 'client-1', 'first_name': 'Mona', 'last_name': 'Saleh'})
    fake_db.seed('proposals', {
        'id': 'prop-1', 'case_id': 'case-1', 'lawyer_id': 'lawyer-1', 'client_id': 'client-1',
        'payment_structure': 'fixed_fee', 'remaining_fee': 10000, 'timeline': '6 weeks'
    })
    return fake_db


async def test_generate_contract_both_languages(service, openai_client, proposal):
    openai_client.generate_text.side_effect = ['EN contract', 'AR contract']

    result = await service.generate_contract('prop-1', consultation_notes='Client prefers settlement')

    assert result == {
        'success': True, 'content_en': 'EN contract', 'content_ar': 'AR contract',
        'proposal_id': 'prop-1', 'case_id': 'case-1'
    }
    system_prompt = openai_client.generate_text.call_args_list[0].args[0]
    assert 'Mona Saleh' in system_prompt
    assert 'BAR-9' in system_prompt
    assert '600 EGP' in system_prompt
    assert '10600 EGP' in system_prompt
    assert 'Client prefers settlement' in system_prompt
    assert openai_client.generate_text.call_args.kwargs['timeout'] == service.settings.openai_contract_timeout


async def test_generate_contract_overrides_win(service, openai_client, proposal):
    await service.generate_contract('prop-1', overrides={
        'paymentStructure': 'hybrid', 'hybridFixedFee': 5000, 'hybridContingencyPercentage': 15,
        'timeline': ''
    }, language='en')

    system_prompt = openai_client.generate_text.call_args.args[0]
    assert 'Hybrid: 5000 EGP fixed + 15% contingency' in system_prompt
    assert '5300 EGP' in system_prompt
    assert '6 weeks' in system_prompt
    assert openai_client.generate_text.call_count == 1


async def test_generate_contract_validation(service, proposal):
    with pytest.raises(AppError) as exc:
        await service.generate_contract('prop-1', language='fr')
    assert exc.value.status_code == 400

    with pytest.raises(AppError) as exc:
        await service.generate_contract('missing')
    assert exc.value.status_code == 404


async def test_translate_uses_and_fills_cache(service, openai_client, fake_db):
    openai_client.generate_text.return_value = 'مرحبا'

    first = await service.translate('Hello', 'ar', cache_key='greeting')
    second = await service.translate('Hello', 'ar', cache_key='greeting')

    assert first == {'translatedContent': 'مرحبا', 'cached': False}
    assert second == {'translatedContent': 'مرحبا', 'cached': True}
    assert openai_client.generate_text.call_count == 1
    row = fake_db.rows('content_translations')[0]
    assert row['source_language'] == 'auto'
    assert row['content_type'] == 'general'


async def test_translate_legal_analysis_keeps_json(service, openai_client):
    await service.translate('{"a": "b"}', 'en', content_type='legal_analysis')
    system_prompt = openai_client.generate_text.call_args.args[0]
    assert 'maintain the exact JSON structure' in system_prompt


async def test_translate_requires_target(service):
    with pytest.raises(AppError) as exc:
        await service.translate('Hello', '')
    assert exc.value.status_code == 400
