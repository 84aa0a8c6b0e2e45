"""Text generation gateway — ordered Gemini model fallback.

Calls Gemini through Google AI Studio's OpenAI-compatible endpoint. Given a
prompt, each configured model is tried in order (earlier = preferred, cheaper,
faster); the first successful completion wins.

Every attempt produces an AttemptOutcome tagged with what the caller should do
next:
  - success    → return the text
  - skip       → model unavailable (404) or generic error: try the next model
  - retryable  → rate limited (429): wait, then try the next model
  - fatal      → credentials rejected (401/403): stop, no model will work
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

from errors import GenerationFailed

logger = logging.getLogger(__name__)

SUCCESS = 'success'
SKIP = 'skip'
RETRYABLE = 'retryable'
FATAL = 'fatal'

_RATE_LIMIT_KEYWORDS = (
    'rate_limit', 'rate limit', '429', 'quota', 'too many requests',
    'tokens per minute', 'requests per minute', 'requests per day',
    'resource_exhausted',
)
_NOT_FOUND_KEYWORDS = ('404', 'not found', 'not_found', 'is not supported')
_UNAVAILABLE_KEYWORDS = ('503', 'service unavailable', 'service_unavailable',
                         'overloaded', 'unavailable')
_AUTH_KEYWORDS = ('401', '403', 'api key not valid', 'invalid api key',
                  'permission_denied', 'unauthenticated')


@dataclass
class AttemptOutcome:
    kind: str
    model: str
    text: str = ''
    status: Optional[int] = None
    error: Optional[str] = None
    service_unavailable: bool = False


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

def _status_of(error) -> Optional[int]:
    """HTTP status carried by an SDK error, if any."""
    status = getattr(error, 'status_code', None) or getattr(error, 'status', None)
    if status is None:
        response = getattr(error, 'response', None)
        status = getattr(response, 'status_code', None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def _mentions(error, keywords) -> bool:
    err_str = str(error).lower()
    return any(keyword in err_str for keyword in keywords)


def _is_rate_limit_error(error) -> bool:
    """Check if an error is a rate limit / quota exceeded error."""
    status = _status_of(error)
    if status is not None:
        return status == 429
    return _mentions(error, _RATE_LIMIT_KEYWORDS)


def _is_not_found_error(error) -> bool:
    status = _status_of(error)
    if status is not None:
        return status == 404
    return _mentions(error, _NOT_FOUND_KEYWORDS)


def _is_auth_error(error) -> bool:
    status = _status_of(error)
    if status is not None:
        return status in (401, 403)
    return _mentions(error, _AUTH_KEYWORDS)


def _is_unavailable_error(error) -> bool:
    status = _status_of(error)
    if status is not None:
        return status == 503
    return _mentions(error, _UNAVAILABLE_KEYWORDS)


def classify_error(model: str, error) -> AttemptOutcome:
    """Map an exception raised by one model call to a tagged outcome."""
    status = _status_of(error)
    message = str(error)[:200]
    if _is_not_found_error(error):
        kind = SKIP
    elif _is_rate_limit_error(error):
        kind = RETRYABLE
    elif _is_auth_error(error):
        kind = FATAL
    else:
        kind = SKIP
    return AttemptOutcome(kind=kind, model=model, status=status, error=message,
                          service_unavailable=_is_unavailable_error(error))


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class GenerationGateway:
    """Sequencing decorator over an unreliable text-completion capability.

    ``complete(model, prompt) -> str`` defaults to an OpenAI-compatible chat
    completion built from ``settings``; tests pass their own callable.
    """

    def __init__(self, settings, complete=None, sleep=time.sleep):
        self.settings = settings
        self.models = list(settings.models)
        self._complete = complete or self._chat_completion
        self._sleep = sleep
        self._client = None

    def _get_client(self):
        """Lazy-initialise the OpenAI-compatible client."""
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(
                base_url=self.settings.gemini_base_url,
                api_key=self.settings.gemini_api_key,
            )
            logger.info('Initialised Gemini client (%d candidate models)', len(self.models))
        return self._client

    def _chat_completion(self, model: str, prompt: str) -> str:
        response = self._get_client().chat.completions.create(
            model=model,
            messages=[{'role': 'user', 'content': prompt}],
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
            timeout=self.settings.llm_timeout,
        )
        return response.choices[0].message.content or ''

    def attempt(self, model: str, prompt: str) -> AttemptOutcome:
        """Run one candidate and tag the result."""
        t0 = time.time()
        try:
            raw = self._complete(model, prompt)
        except Exception as e:
            return classify_error(model, e)
        text = (raw or '').strip()
        logger.info('[%s] response in %.1fs: %d chars', model, time.time() - t0, len(text))
        return AttemptOutcome(kind=SUCCESS, model=model, text=text)

    def generate(self, prompt: str) -> str:
        """Return the first successful completion, or raise GenerationFailed."""
        outcomes = []
        for index, model in enumerate(self.models):
            outcome = self.attempt(model, prompt)
            outcomes.append(outcome)

            if outcome.kind == SUCCESS:
                logger.info('[%s] generation succeeded', model)
                return outcome.text

            if outcome.kind == FATAL:
                logger.error('[%s] credentials rejected, aborting model fallback: %s',
                             model, outcome.error)
                raise GenerationFailed(f'Model {model} rejected credentials', outcomes)

            has_next = index < len(self.models) - 1
            if outcome.kind == RETRYABLE:
                logger.warning('[%s] rate limited: %s', model, outcome.error)
                if has_next:
                    logger.info('Waiting %.1fs before trying the next model',
                                self.settings.rate_limit_backoff)
                    self._sleep(self.settings.rate_limit_backoff)
            elif outcome.status == 404:
                logger.warning('[%s] model not available, trying next', model)
            else:
                logger.warning('[%s] error: %s', model, outcome.error)

        raise GenerationFailed(f'All {len(self.models)} models failed', outcomes)


def generate_with_retry(gateway, prompt: str, max_attempts: int = 3, sleep=time.sleep) -> str:
    """Run the whole model sequence up to ``max_attempts`` times.

    Only a failure whose outcomes include a 503 / service-unavailable error is
    retried, with exponential backoff (2s, 4s, ...). Anything else re-raises
    immediately.
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return gateway.generate(prompt)
        except GenerationFailed as e:
            if not e.service_unavailable or attempt >= max_attempts:
                logger.error('Generation failed (attempt %d/%d): %s',
                             attempt, max_attempts, e)
                raise
            wait_time = 2 ** attempt
            logger.warning('Service unavailable (attempt %d/%d), waiting %ds before retry',
                           attempt, max_attempts, wait_time)
            sleep(wait_time)
    raise GenerationFailed('No generation attempts were made')
