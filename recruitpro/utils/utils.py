import json
import re
from datetime import datetime

import numpy as np
import requests

from recruitpro.utils.config import get_settings
from recruitpro.utils.exceptions import retry_with_logging
from recruitpro.utils.logging_config import get_logger

logger = get_logger(__name__)

_settings = get_settings()


@retry_with_logging(
    max_attempts=_settings.llm.retry_attempts,
    backoff_factor=0.5,
    exceptions=(requests.ConnectionError, requests.Timeout),
    logger=logger,
)
def ollama_generate(prompt: str, model: str = None, temperature: float = None, json_mode: bool = True) -> str:
    llm = _settings.llm
    body = {
        "model": model or llm.model_name,
        "prompt": prompt,
        "options": {"temperature": llm.temperature if temperature is None else temperature},
        "stream": False,  # one JSON body, not NDJSON chunks
    }
    if json_mode:
        body["format"] = "json"
    resp = requests.post(f"{llm.base_url}/api/generate", json=body, timeout=llm.timeout)
    resp.raise_for_status()
    return resp.json().get("response", "") or ""


def ollama_embed(text: str) -> np.ndarray:
    url = f"{_settings.llm.base_url}/api/embeddings"
    resp = requests.post(
        url,
        json={"model": _settings.embeddings.model_name, "prompt": text},
        timeout=_settings.embeddings.timeout,
    )
    resp.raise_for_status()
    return np.array(resp.json()["embedding"], dtype=np.float32)


def safe_json(s: str, fallback: dict):
    try:
        # heuristics to find JSON inside
        start = s.find("{")
        end = s.rfind("}")
        if start >= 0 and end >= 0:
            return json.loads(s[start:end + 1])
        return fallback
    except (TypeError, ValueError):
        return fallback


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, float(value)))


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def is_valid_email(value: str) -> bool:
    return bool(EMAIL_RE.match(normalize_email(value)))


def utcnow() -> datetime:
    return datetime.utcnow()
