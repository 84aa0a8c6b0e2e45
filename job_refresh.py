"""Job-opportunity refresh orchestrator.

Stateless coordinator invoked per request or per scheduler tick:

  fetch active rows → staleness check → (stale) generate → parse → commit

Generation, parsing and commit failures never reach the caller of the read
path: they fall back to whatever was fetched in the first step. An industry
that had active rows before a failed refresh still has them afterwards, because
the old batch is only deactivated in the same transaction that creates at
least one replacement row.

Concurrent refreshes of the *same* industry are not serialised here; two
overlapping refreshes can both deactivate and both create.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from errors import GenerationFailed, MalformedResponse, NoUsableEntries, PersistenceError
from job_store import DEFAULT_LIMIT
from llm_service import generate_with_retry
from models import utcnow
from prompts import build_jobs_prompt
from response_parser import parse_jobs_payload
from staleness import JOB_TTL, is_stale, most_recent

logger = logging.getLogger(__name__)

SERVED_EXISTING = 'served_existing'
SERVED_REFRESHED = 'served_refreshed'
SERVED_STALE = 'served_stale'
EMPTY = 'empty'


@dataclass
class RefreshResult:
    industry: str
    outcome: str
    jobs: List = field(default_factory=list)
    created: int = 0
    skipped: int = 0
    error: Optional[str] = None


class JobRefresher:

    def __init__(self, store, gateway, settings, now=utcnow, sleep=time.sleep):
        self.store = store
        self.gateway = gateway
        self.settings = settings
        self._now = now
        self._sleep = sleep

    # -----------------------------------------------------------------------
    # Read path
    # -----------------------------------------------------------------------

    def get_job_opportunities(self, industry):
        """Active jobs for ``industry``, refreshing them first if stale."""
        return self.refresh_if_stale(industry).jobs

    def refresh_if_stale(self, industry) -> RefreshResult:
        existing = self.store.find_active(industry, limit=DEFAULT_LIMIT)
        newest = most_recent(job.created_at for job in existing)

        if not is_stale(newest, self._now(), JOB_TTL):
            logger.info('Serving %d fresh jobs for %s', len(existing), industry)
            return RefreshResult(industry, SERVED_EXISTING, jobs=existing)

        logger.info('Jobs for %s are stale (newest=%s), refreshing', industry, newest)
        try:
            return self.refresh_industry(industry)
        except (GenerationFailed, MalformedResponse, PersistenceError) as e:
            outcome = SERVED_STALE if existing else EMPTY
            logger.warning('Refresh failed for %s, serving %d existing jobs: %s',
                           industry, len(existing), e)
            skipped = e.skipped if isinstance(e, NoUsableEntries) else 0
            return RefreshResult(industry, outcome, jobs=existing, skipped=skipped, error=str(e))

    # -----------------------------------------------------------------------
    # Unconditional refresh
    # -----------------------------------------------------------------------

    def refresh_industry(self, industry) -> RefreshResult:
        """Generate → parse → commit, skipping the staleness gate.

        Raises GenerationFailed, MalformedResponse or PersistenceError; on any
        of them the previously active batch is left untouched.
        """
        prompt = build_jobs_prompt(industry, self._now().date(), self.settings.platforms)
        text = generate_with_retry(self.gateway, prompt,
                                   max_attempts=self.settings.generation_max_attempts,
                                   sleep=self._sleep)
        payload = parse_jobs_payload(text)
        created, skipped = self._commit_batch(industry, payload.jobs)
        jobs = self.store.find_active(industry, limit=DEFAULT_LIMIT)
        return RefreshResult(industry, SERVED_REFRESHED, jobs=jobs,
                             created=created, skipped=skipped)

    def _commit_batch(self, industry, entries):
        try:
            deactivated = self.store.deactivate_all(industry)
            created = 0
            skipped = 0
            for entry in entries:
                try:
                    self.store.create(industry, entry)
                    created += 1
                except PersistenceError as e:
                    skipped += 1
                    logger.warning('Skipping job entry for %s: %s', industry, e)

            if not created:
                raise NoUsableEntries(
                    f'No usable job entries for {industry} ({skipped} skipped)', skipped=skipped)

            self.store.commit()
        except PersistenceError:
            self.store.rollback()
            raise

        logger.info('Refreshed %s: %d created, %d skipped, %d deactivated',
                    industry, created, skipped, deactivated)
        return created, skipped

    # -----------------------------------------------------------------------
    # Administrative variant
    # -----------------------------------------------------------------------

    def refresh_all(self):
        """Refresh every known industry, one at a time, and report per industry."""
        results = []
        for industry in self.store.list_all_industries():
            logger.info('Updating job opportunities for %s...', industry)
            try:
                result = self.refresh_industry(industry)
                results.append({
                    'industry': industry,
                    'jobsCreated': result.created,
                    'status': 'success',
                })
            except (GenerationFailed, MalformedResponse, PersistenceError) as e:
                logger.error('Error updating jobs for %s: %s', industry, e)
                results.append({
                    'industry': industry,
                    'error': str(e),
                    'status': 'error',
                })
        return results
