"""Turn raw model text into validated payloads.

Models routinely wrap JSON in markdown fences (```json ... ```) even when told
not to, so fences and surrounding whitespace are stripped before parsing.
"""

import json
import logging
import re

from pydantic import ValidationError

from errors import MalformedResponse
from schemas import InsightPayload, JobsPayload

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r'^```[\w-]*[ \t]*\n?')
_FENCE_CLOSE = re.compile(r'\n?[ \t]*```$')


def strip_code_fences(raw: str) -> str:
    """Strip leading/trailing markdown fences (with or without a language tag)."""
    text = (raw or '').strip()
    text = _FENCE_OPEN.sub('', text, count=1)
    text = _FENCE_CLOSE.sub('', text, count=1)
    return text.strip()


def parse_json_payload(raw: str) -> dict:
    """Strip fences and parse a JSON object, or raise MalformedResponse."""
    text = strip_code_fences(raw)
    if not text:
        raise MalformedResponse('Empty model response')
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f'Response is not valid JSON: {e}') from e
    if not isinstance(data, dict):
        raise MalformedResponse(f'Expected a JSON object, got {type(data).__name__}')
    return data


def parse_jobs_payload(raw: str) -> JobsPayload:
    data = parse_json_payload(raw)
    try:
        payload = JobsPayload.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(f'Job payload does not match schema: {e.error_count()} error(s)') from e
    logger.info('Parsed job payload: %d entries', len(payload.jobs))
    return payload


def parse_insight_payload(raw: str) -> InsightPayload:
    data = parse_json_payload(raw)
    try:
        return InsightPayload.model_validate(data)
    except ValidationError as e:
        raise MalformedResponse(f'Insight payload does not match schema: {e.error_count()} error(s)') from e
