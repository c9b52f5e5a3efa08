from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from openai import AzureOpenAI, OpenAI

from .config import Settings
from .errors import ExtractionError
from .prompts import Prompts

logger = logging.getLogger(__name__)

JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


def parse_json_object(content: str) -> Dict[str, Any]:
    """Parse a JSON object, tolerating prose or code fences around it"""
    content = (content or "").strip()
    try:
        data = json.loads(content)
    except json.JSONDecodeError:
        m = JSON_OBJECT_RE.search(content)
        if not m:
            raise ExtractionError(f"No JSON object in model output: {content[:200]!r}")
        try:
            data = json.loads(m.group(0))
        except json.JSONDecodeError as e:
            raise ExtractionError(f"Malformed JSON in model output: {e}") from e
    if not isinstance(data, dict):
        raise ExtractionError("Model output is not a JSON object")
    return data


class OpenAIClient:
    def __init__(self, settings: Settings):
        if settings.azure_endpoint and settings.azure_key:
            self.client = AzureOpenAI(
                api_version=settings.azure_version,
                azure_endpoint=settings.azure_endpoint,
                api_key=settings.azure_key,
                timeout=settings.llm_timeout,
            )
            self.model = settings.azure_deployment or settings.model
        elif settings.api_key:
            self.client = OpenAI(
                api_key=settings.api_key,
                base_url=settings.base_url,
                timeout=settings.llm_timeout,
            )
            self.model = settings.model
        else:
            raise ValueError("API_KEY or AZURE_OPENAI_ENDPOINT/AZURE_OPENAI_KEY environment variables are required")

    def chat(self, messages: List[Dict[str, str]], **kwargs) -> str:
        """Basic chat completion"""
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=kwargs.get("temperature", 0.3),
                max_tokens=kwargs.get("max_tokens", 256),
            )
            return (resp.choices[0].message.content or "").strip()
        except Exception as e:
            logger.error(f"Chat completion failed: {e}")
            raise

    def chat_json(self, messages: List[Dict[str, str]], **kwargs) -> Dict[str, Any]:
        """Chat completion with JSON response format"""
        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=kwargs.get("temperature", 0.1),
                max_tokens=kwargs.get("max_tokens", 512),
                response_format={"type": "json_object"},
            )
        except Exception as e:
            logger.error(f"JSON chat completion failed: {e}")
            raise
        return parse_json_object(resp.choices[0].message.content or "")

    def complete(self, system: str, user: str, **kwargs) -> str:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        return self.chat(messages, **kwargs)

    def extract_answer(self, node_def, utterance: str) -> Dict[str, Any]:
        """Ask the model to classify `utterance` against the node's schema.

        Returns the raw {"isValid", "extractedValue", "clarificationNeeded"}
        object. Raises on transport errors and on output that is not a JSON
        object; contract checks are left to the caller.
        """
        system_prompt = Prompts.build_extraction_system_prompt(node_def.instruction, node_def.response_schema)
        user_prompt = Prompts.build_extraction_user_prompt(utterance)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        data = self.chat_json(messages, temperature=0.1)
        if "isValid" not in data:
            raise ExtractionError("Model output is missing 'isValid'")
        return data

    def rephrase(self, instruction: str, text: str, history: Optional[List[Any]] = None) -> str:
        """Rewrite `text` conversationally given recent transcript lines"""
        system_prompt = instruction.format(history=Prompts.format_history(history or []))
        result = self.complete(system_prompt, text, temperature=0.7, max_tokens=150)
        if not result:
            raise ExtractionError("Empty paraphrase")
        return result
