"""Industry insights — salary ranges, demand, skills and trends per industry.

Same refresh shape as job opportunities with a 7-day TTL: the row is created
on a user's first dashboard visit, regenerated in place when stale, and kept
as-is when regeneration fails.
"""

import logging
import time

from errors import GenerationFailed, MalformedResponse, NotFound, PersistenceError, Unauthorized
from llm_service import generate_with_retry
from models import utcnow
from prompts import build_insight_prompt
from response_parser import parse_insight_payload
from staleness import INSIGHT_TTL, is_stale

logger = logging.getLogger(__name__)


class InsightService:

    def __init__(self, store, gateway, settings, now=utcnow, sleep=time.sleep):
        self.store = store
        self.gateway = gateway
        self.settings = settings
        self._now = now
        self._sleep = sleep

    def get_industry_insights(self, user):
        """Insight for the user's industry, or None if none could be produced yet."""
        if user is None:
            raise Unauthorized('Sign in to view industry insights')
        if not user.industry:
            raise NotFound(f'User {user.id} has not selected an industry')

        existing = self.store.get_insight(user.industry)
        last_updated = existing.last_updated if existing else None
        if not is_stale(last_updated, self._now(), INSIGHT_TTL):
            return existing

        try:
            return self.refresh_industry(user.industry)
        except (GenerationFailed, MalformedResponse, PersistenceError) as e:
            logger.warning('Insight generation failed for %s, keeping existing: %s',
                           user.industry, e)
            return existing

    def refresh_industry(self, industry):
        """Regenerate and upsert unconditionally; raises on failure."""
        now = self._now()
        text = generate_with_retry(self.gateway, build_insight_prompt(industry, now.date()),
                                   max_attempts=self.settings.generation_max_attempts,
                                   sleep=self._sleep)
        payload = parse_insight_payload(text)
        return self.store.upsert_insight(industry, payload, now)

    def refresh_all(self):
        """Weekly pass over every known industry."""
        results = []
        for industry in self.store.list_all_industries():
            try:
                self.refresh_industry(industry)
                results.append({'industry': industry, 'status': 'success'})
            except (GenerationFailed, MalformedResponse, PersistenceError) as e:
                logger.error('Failed to refresh insights for "%s": %s', industry, e)
                results.append({'industry': industry, 'error': str(e), 'status': 'error'})
        return results
