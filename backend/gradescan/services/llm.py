"""
Gemini chat wrapper and the LLM-backed semantic parser for OCR text.
Uses the official google-generativeai SDK directly.
"""

import asyncio
import json
from typing import Optional

import google.generativeai as genai

from gradescan.config import logger, get_llm_api_key
from gradescan.errors import ConfigurationError
from gradescan.models import SemanticParse

DEFAULT_MODEL = "gemini-2.5-flash"

# OCR text beyond this is not sent to the parser
MAX_PARSE_CHARS = 2000

PARSE_SYSTEM_PROMPT = """You extract structure from OCR text of scanned student test pages.

Return ONLY a JSON object in this exact format:
{
  "exam_id": "the exam/test ID printed on the page, or null",
  "student_name": "the student's full name, or null",
  "questions": [
    {"question_number": 1, "question_text": "text or null", "selected_answer": "A-E or null"}
  ]
}

Important:
- Look for labels like "Exam ID", "Test #", "Quiz ID", "Name", "Student"
- Only include questions that are actually visible in the text
- If you cannot find a field, use null
- Do NOT include any explanation, ONLY return the JSON"""


class UserMessage:
    """A plain text message for the chat session."""

    def __init__(self, text: str = ""):
        self.text = text

    def to_genai_parts(self) -> list:
        return [self.text] if self.text else []


class LlmChat:
    """
    Thin chat session over google-generativeai.

    Supports the chaining API:
        chat = LlmChat(api_key=..., system_message=...).with_model(DEFAULT_MODEL).with_params(temperature=0)

    send_message() is async and returns a plain string.
    """

    def __init__(self, api_key: str = "", system_message: str = ""):
        self._api_key = api_key
        self._system_message = system_message
        self._model_name = DEFAULT_MODEL
        self._temperature = None
        self._chat = None  # lazily created

    def with_model(self, model_name: str) -> "LlmChat":
        self._model_name = model_name
        return self

    def with_params(self, temperature: float = None, **kwargs) -> "LlmChat":
        if temperature is not None:
            self._temperature = temperature
        return self

    def _ensure_chat(self):
        """Lazily create the underlying genai chat session."""
        if self._chat is None:
            if self._api_key:
                genai.configure(api_key=self._api_key)
            gen_config = {}
            if self._temperature is not None:
                gen_config["temperature"] = self._temperature

            model = genai.GenerativeModel(
                model_name=self._model_name,
                system_instruction=self._system_message if self._system_message else None,
                generation_config=gen_config if gen_config else None,
            )
            self._chat = model.start_chat(history=[])

    async def send_message(self, message: UserMessage) -> str:
        """Send a message and return the response text (SDK call runs in a worker thread)."""
        self._ensure_chat()
        parts = message.to_genai_parts()
        response = await asyncio.to_thread(self._chat.send_message, parts)
        return response.text


async def ai_call_with_timeout(chat_model: LlmChat, message: UserMessage, timeout_seconds=60, operation_name="AI call"):
    """
    Wrapper for AI calls with timeout protection.
    Prevents indefinite hanging on API timeouts.
    """
    try:
        return await asyncio.wait_for(chat_model.send_message(message), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        logger.error(f"⏱️ TIMEOUT after {timeout_seconds}s: {operation_name}")
        raise TimeoutError(f"{operation_name} exceeded {timeout_seconds}s timeout")


def parse_json_response(response_text: str) -> dict:
    """Parse a JSON object from an LLM reply, tolerating ```json fences."""
    text = response_text.strip()
    if "```json" in text:
        text = text.split("```json")[1].split("```")[0].strip()
    elif "```" in text:
        text = text.split("```")[1].split("```")[0].strip()
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object from the parser")
    return data


class GeminiSemanticParser:
    """SemanticParseCapability backed by Gemini."""

    def __init__(self, api_key: Optional[str] = None, model_name: str = DEFAULT_MODEL, timeout_seconds: float = 60):
        self._api_key = api_key or get_llm_api_key()
        if not self._api_key:
            raise ConfigurationError("GEMINI_API_KEY is not set")
        genai.configure(api_key=self._api_key)
        self._model_name = model_name
        self._timeout_seconds = timeout_seconds

    async def parse(self, text: str) -> SemanticParse:
        # A fresh session per page keeps pages independent of each other
        chat = LlmChat(
            api_key=self._api_key,
            system_message=PARSE_SYSTEM_PROMPT,
        ).with_model(self._model_name).with_params(temperature=0.1)

        prompt = f"Extract structured information from this test document:\n\n{text[:MAX_PARSE_CHARS]}"
        response_text = await ai_call_with_timeout(
            chat,
            UserMessage(text=prompt),
            timeout_seconds=self._timeout_seconds,
            operation_name="Semantic parse",
        )
        data = parse_json_response(response_text)
        data["questions"] = [
            q for q in data.get("questions") or []
            if isinstance(q, dict) and isinstance(q.get("question_number"), int)
        ]
        return SemanticParse.model_validate(data)
