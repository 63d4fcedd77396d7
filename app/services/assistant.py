from typing import List, Optional
import logging
import httpx

from ..schemas.chat import ChatMessage
from .errors import AssistantUnavailableError

logger = logging.getLogger(__name__)

DISCLAIMER = (
    "Please remember to consult with healthcare professionals for proper "
    "medical diagnosis and treatment."
)

FALLBACK_RESPONSE = (
    "I'm here to help with your health questions. Could you please provide more "
    "details about your concern? Remember to consult with healthcare professionals "
    "for serious medical issues."
)

UNCLEAR_RESPONSE = (
    "I understand you have a health concern. Could you provide more specific "
    "details so I can better assist you? Please remember that I provide general "
    "information only, and you should consult healthcare professionals for proper "
    "medical advice."
)

UNAVAILABLE_RESPONSE = (
    "I'm experiencing technical difficulties. Please try again later, and remember "
    "to consult healthcare professionals for urgent medical concerns."
)

def with_disclaimer(text: str) -> str:
    """Append the consultation disclaimer unless the text already carries one."""
    if "consult" in text or "healthcare professional" in text:
        return text
    return f"{text}\n\n{DISCLAIMER}"

def build_prompt(message: str, conversation: List[ChatMessage]) -> str:
    context = "\n".join(
        f"{'Patient' if msg.role == 'user' else 'AI Doctor'}: {msg.content}"
        for msg in conversation
    )
    return (
        "You are a helpful medical AI assistant. You provide general health "
        "information and guidance, but always remind users to consult healthcare "
        "professionals for serious concerns.\n\n"
        f"Previous conversation:\n{context}\n\n"
        f"Patient: {message}\n\n"
        "AI Doctor:"
    )

class ChatAssistant:
    def __init__(
        self,
        model_url: str,
        access_token: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.model_url = model_url
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    async def chat(self, message: str, conversation: List[ChatMessage]) -> str:
        if not self.access_token:
            logger.error("Hugging Face access token not configured")
            raise AssistantUnavailableError()

        prompt = build_prompt(message, conversation)
        logger.info(f"Received chat request (conversation length {len(conversation)})")

        payload = {
            "inputs": prompt,
            "parameters": {
                "max_new_tokens": 150,
                "temperature": 0.7,
                "do_sample": True,
                "pad_token_id": 50256,
            },
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.model_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Chat model request failed: {e}")
            raise AssistantUnavailableError() from e

        if response.status_code != 200:
            logger.error(f"Chat model error: {response.status_code} {response.reason_phrase}")
            return FALLBACK_RESPONSE

        return with_disclaimer(self._extract_text(response, prompt))

    def _extract_text(self, response: httpx.Response, prompt: str) -> str:
        try:
            data = response.json()
        except ValueError:
            return UNCLEAR_RESPONSE

        if isinstance(data, list) and data and isinstance(data[0], dict) and data[0].get("generated_text"):
            text = data[0]["generated_text"].replace(prompt, "").strip()
            if text:
                return text
        return UNCLEAR_RESPONSE
