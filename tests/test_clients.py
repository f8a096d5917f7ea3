from unittest.mock import MagicMock

import pytest
from twilio.base.exceptions import TwilioRestException

from legalpro_lib.error_handler import AppError
from legalpro_lib.openai_client import OpenAIClient
from legalpro_lib.twilio_client import RECORD_ALL, RECORD_NONE, TwilioClient


@pytest.fixture
def sdk():
    client = MagicMock()
    client.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=MagicMock(content='Hi there'))])
    return client


async def test_generate_text(sdk):
    openai = OpenAIClient(client=sdk)

    assert await openai.generate_text('system', 'user', model='gpt-4o', temperature=0.3, max_tokens=50) == 'Hi there'

    request = sdk.chat.completions.create.call_args.kwargs
    assert request['model'] == 'gpt-4o'
    assert request['temperature'] == 0.3
    assert request['max_tokens'] == 50
    assert request['messages'] == [{'role': 'system', 'content': 'system'}, {'role': 'user', 'content': 'user'}]
    assert 'tools' not in request


async def test_reasoning_models_use_completion_tokens(sdk):
    await OpenAIClient(client=sdk).create_completion([], model='gpt-5', temperature=0.7, max_tokens=100)

    request = sdk.chat.completions.create.call_args.kwargs
    assert request['max_completion_tokens'] == 100
    assert 'temperature' not in request


async def test_tools_are_offered_with_auto_choice(sdk):
    tool = {'type': 'function', 'function': {'name': 'extract_case_data'}}
    await OpenAIClient(client=sdk).create_completion([], tools=[tool], timeout=30)

    request = sdk.chat.completions.create.call_args.kwargs
    assert request['tools'] == [tool]
    assert request['tool_choice'] == 'auto'
    assert request['timeout'] == 30


async def test_sdk_errors_become_app_errors(sdk):
    sdk.chat.completions.create.side_effect = RuntimeError('connection reset')
    with pytest.raises(AppError) as exc:
        await OpenAIClient(client=sdk).create_completion([])
    assert 'connection reset' in exc.value.message


async def test_empty_choices(sdk):
    sdk.chat.completions.create.return_value = MagicMock(choices=[])
    with pytest.raises(AppError):
        await OpenAIClient(client=sdk).create_completion([])


def test_recording_rules():
    rest = MagicMock()
    twilio = TwilioClient(client=rest)

    twilio.start_recording('RM1')
    rest.video.v1.rooms.assert_called_with('RM1')
    rest.video.v1.rooms.return_value.recording_rules.update.assert_called_with(rules=RECORD_ALL)

    twilio.stop_recording('RM1')
    rest.video.v1.rooms.return_value.recording_rules.update.assert_called_with(rules=RECORD_NONE)


def test_missing_room_is_404():
    rest = MagicMock()
    rest.video.v1.rooms.return_value.recording_rules.update.side_effect = TwilioRestException(404, '/Rooms/RM1', 'not found')

    with pytest.raises(AppError) as exc:
        TwilioClient(client=rest).start_recording('RM1')
    assert exc.value.status_code == 404


def test_access_token_is_jwt():
    token = TwilioClient(client=MagicMock()).create_access_token('client-u1', 'chat', conversation_sid='case-1-chat')
    assert isinstance(token, str)
    assert token.count('.') == 2


def test_unsigned_request_is_rejected():
    assert TwilioClient(client=MagicMock()).validate_request('https://example.com/twilio-webhooks', {}, None) is False
