import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

# Add project root to Python path
project_root = str(Path(__file__).parent.parent)
sys.path.append(project_root)
sys.path.append(str(Path(__file__).parent))

os.environ.update({
    'SUPABASE_URL': 'https://test.supabase.co',
    'SUPABASE_SERVICE_ROLE_KEY': 'test-service-key',
    'OPENAI_API_KEY': 'test-openai-key',
    'TWILIO_ACCOUNT_SID': 'AC' + '0' * 32,
    'TWILIO_AUTH_TOKEN': 'test-auth-token',
    'TWILIO_API_KEY': 'SK' + '0' * 32,
    'TWILIO_API_SECRET': 'test-api-secret',
    'RESEND_API_KEY': 'test-resend-key',
})

from fake_supabase import FakeSupabase

# Mock Supabase before importing app
fake_supabase = FakeSupabase()

import supabase
supabase.create_client = lambda *args, **kwargs: fake_supabase

# Now we can safely import the app
from legalpro import routes
from legalpro.routes import app
from legalpro_lib.database import Database


@pytest.fixture
def fake_db():
    fake_supabase.reset()
    routes.rate_limiter.reset()
    return fake_supabase


@pytest.fixture
def database(fake_db):
    return Database(fake_db)


@pytest.fixture
def test_client(fake_db):
    app.config['TESTING'] = True
    return app.test_client()


@pytest.fixture
def mock_twilio():
    """TwilioClient double that records recording-rule calls"""
    twilio = MagicMock()
    twilio.create_access_token.return_value = 'jwt-token'
    return twilio


def completion(content=None, tool_arguments=None):
    """Build an OpenAI chat message the way the SDK returns it"""
    tool_calls = None
    if tool_arguments is not None:
        tool_calls = [MagicMock()]
        tool_calls[0].function.name = 'extract_case_data'
        tool_calls[0].function.arguments = tool_arguments
    return MagicMock(content=content, tool_calls=tool_calls)
