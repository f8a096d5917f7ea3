from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    # Supabase settings
    supabase_url: str = ''
    supabase_service_role_key: str = ''
    recordings_bucket: str = 'session-recordings'

    # OpenAI settings
    openai_api_key: str = ''
    openai_model: str = 'gpt-4o-mini'
    openai_proposal_models: List[str] = ['gpt-4.1-2025-04-14', 'gpt-4o', 'gpt-4o-mini']
    openai_contract_timeout: float = 90.0

    # Twilio settings
    twilio_account_sid: str = ''
    twilio_auth_token: str = ''
    twilio_api_key: str = ''
    twilio_api_secret: str = ''
    twilio_chat_service_sid: str = ''
    twilio_validate_signatures: bool = False
    public_base_url: str = ''

    # Email settings
    resend_api_key: str = ''
    resend_api_url: str = 'https://api.resend.com/emails'
    email_from: str = 'Egypt Legal Pro <noreply@egyptlegalpro.com>'
    support_email: str = 'support@egyptlegalpro.com'
    site_url: str = 'https://egyptlegalpro.com'

    # Visitor analytics settings
    visitor_hash_salt: str = 'visitor_salt_2024'
    excluded_visitor_ips: List[str] = ['127.0.0.1', '::1', '178.165.179.221']
    ipinfo_url: str = 'https://ipinfo.io'

    # Public endpoint throttling
    rate_limit_per_hour: int = 100


@lru_cache()
def get_settings() -> Settings:
    return Settings()
