from typing import Any, Dict, List, Optional
import asyncio
import logging

from openai import OpenAI

from legalpro_lib.config import get_settings
from legalpro_lib.error_handler import AppError

logger = logging.getLogger(__name__)


def _uses_reasoning_params(model: str) -> bool:
    # Reasoning models reject temperature and take max_completion_tokens
    return model.startswith(('gpt-5', 'o1', 'o3', 'o4'))


class OpenAIClient:
    def __init__(self, client: Optional[OpenAI] = None):
        settings = get_settings()
        self.client = client or OpenAI(api_key=settings.openai_api_key)
        self.default_model = settings.openai_model

    def _build_request(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str],
        temperature: Optional[float],
        max_tokens: Optional[int],
        tools: Optional[List[Dict[str, Any]]],
        timeout: Optional[float]
    ) -> Dict[str, Any]:
        model = model or self.default_model
        request: Dict[str, Any] = {'model': model, 'messages': messages}
        if _uses_reasoning_params(model):
            if max_tokens:
                request['max_completion_tokens'] = max_tokens
        else:
            if temperature is not None:
                request['temperature'] = temperature
            if max_tokens:
                request['max_tokens'] = max_tokens
        if tools:
            request['tools'] = tools
            request['tool_choice'] = 'auto'
        if timeout:
            request['timeout'] = timeout
        return request

    async def create_completion(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        tools: Optional[List[Dict[str, Any]]] = None,
        timeout: Optional[float] = None
    ):
        """
        Run a chat completion and return the first choice's message
        """
        request = self._build_request(messages, model, temperature, max_tokens, tools, timeout)
        try:
            # The SDK call blocks, so run it off the event loop to allow parallel requests
            response = await asyncio.to_thread(self.client.chat.completions.create, **request)
        except Exception as e:
            logger.error(f"OpenAI request with {request['model']} failed: {str(e)}")
            raise AppError(f"OpenAI request failed: {str(e)}")

        if not response.choices:
            raise AppError(f"Invalid response from {request['model']}")
        return response.choices[0].message

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None
    ) -> str:
        message = await self.create_completion(
            [
                {'role': 'system', 'content': system_prompt},
                {'role': 'user', 'content': user_prompt}
            ],
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout
        )
        return message.content or ''
