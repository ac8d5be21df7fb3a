"""
LLM: OpenAI (primary) or Hugging Face (fallback).
When OPENAI_API_KEY is set, uses OpenAI chat completions; otherwise uses HF router.

Provider failures are logged and yield "", so planning, ranking and answers fall
back to their deterministic paths instead of failing the request.
"""

import logging
from typing import Callable

import httpx
from openai import OpenAI, OpenAIError

from drivesearch.core.config import (
    HF_API_KEY,
    HF_CHAT_URL,
    HF_LLM_MODEL,
    LLM_API_TIMEOUT,
    LLM_MAX_TOKENS,
    OPENAI_API_KEY,
    OPENAI_LLM_MODEL,
)

logger = logging.getLogger(__name__)

# Any prompt -> raw text callable; planner, ranker and answer service accept one for injection
LanguageModel = Callable[[str], str]


def _call_openai(prompt: str, max_new_tokens: int) -> str:
    """Call OpenAI chat completions. Returns generated text."""
    client = OpenAI(api_key=OPENAI_API_KEY, timeout=LLM_API_TIMEOUT)
    try:
        response = client.chat.completions.create(
            model=OPENAI_LLM_MODEL,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_new_tokens,
            temperature=0.1,
        )
    except OpenAIError as e:
        logger.warning("[llm:openai] request failed: %s", e)
        return ""
    msg = response.choices[0].message if response.choices else None
    if not msg or not getattr(msg, "content", None):
        return ""
    out = (msg.content or "").strip()
    logger.info("[llm:openai] OUT response_len=%d", len(out))
    logger.debug("[llm:openai] OUT response_full=%r", out)
    return out


def _call_hf(prompt: str, max_new_tokens: int) -> str:
    """Call Hugging Face router chat completions. Returns generated text."""
    if not HF_API_KEY:
        logger.warning("[llm:hf] no HF_API_KEY")
        return ""
    headers = {"Authorization": f"Bearer {HF_API_KEY}", "Content-Type": "application/json"}
    payload = {
        "model": HF_LLM_MODEL,
        "messages": [{"role": "user", "content": prompt}],
        "max_tokens": max_new_tokens,
    }
    try:
        with httpx.Client(timeout=LLM_API_TIMEOUT) as client:
            response = client.post(HF_CHAT_URL, json=payload, headers=headers)
        if response.status_code != 200:
            logger.warning("[llm:hf] HF LLM error %s: %s", response.status_code, response.text[:200])
            return ""
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        logger.warning("[llm:hf] request failed: %s", e)
        return ""
    choices = data.get("choices") or []
    if choices and isinstance(choices[0], dict):
        msg = choices[0].get("message") or {}
        out = (msg.get("content") or "").strip()
        logger.info("[llm:hf] OUT response_len=%d", len(out))
        logger.debug("[llm:hf] OUT response_full=%r", out)
        return out
    return ""


def generate(prompt: str, max_new_tokens: int = LLM_MAX_TOKENS) -> str:
    """
    Call LLM for text generation. Uses OpenAI when OPENAI_API_KEY is set, else Hugging Face.
    If OpenAI fails or returns empty, falls back to HF.
    Returns generated text ("" when no provider answered).
    """
    logger.info("[llm] IN  prompt_len=%d max_new_tokens=%d", len(prompt), max_new_tokens)
    logger.debug("[llm] prompt_sample=%r", prompt[:500] if len(prompt) > 500 else prompt)
    if OPENAI_API_KEY:
        out = _call_openai(prompt, max_new_tokens)
        if out:
            return out
        logger.info("[llm] OpenAI returned empty; falling back to Hugging Face")
    return _call_hf(prompt, max_new_tokens)
