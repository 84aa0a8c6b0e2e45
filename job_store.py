"""Persistence adapter for job opportunities and industry insights.

Thin layer over the Flask-SQLAlchemy session. Writes are not committed until
``commit()`` so a refresh can deactivate the old batch and create the new one
as a unit; each ``create`` runs inside a SAVEPOINT so a single bad entry can be
skipped without poisoning the rest of the batch.
"""

import json
import logging
from datetime import datetime

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from errors import PersistenceError
from models import IndustryInsight, JobOpportunity, User, db
from schemas import JobEntry
from staleness import INSIGHT_TTL

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20


def _as_datetime(d):
    return datetime(d.year, d.month, d.day) if d else None


class JobStore:

    def __init__(self, session=None):
        self.session = session or db.session

    # -----------------------------------------------------------------------
    # Job opportunities
    # -----------------------------------------------------------------------

    def find_active(self, industry, limit=DEFAULT_LIMIT):
        """Active rows for ``industry``, newest postedDate first."""
        return (self.session.query(JobOpportunity)
                .filter_by(industry=industry, is_active=True)
                .order_by(JobOpportunity.posted_date.desc(), JobOpportunity.id.desc())
                .limit(limit)
                .all())

    def deactivate_all(self, industry) -> int:
        """Soft-delete every active row for ``industry`` (uncommitted)."""
        try:
            count = (self.session.query(JobOpportunity)
                     .filter_by(industry=industry, is_active=True)
                     .update({JobOpportunity.is_active: False}, synchronize_session='fetch'))
        except SQLAlchemyError as e:
            raise PersistenceError(f'Could not deactivate jobs for {industry}: {e}') from e
        logger.info('Deactivated %d jobs for %s', count, industry)
        return count

    def create(self, industry, fields) -> JobOpportunity:
        """Validate one raw job entry and stage it as an active row."""
        try:
            entry = fields if isinstance(fields, JobEntry) else JobEntry.model_validate(fields)
        except ValidationError as e:
            raise PersistenceError(f'Invalid job entry: {e.error_count()} error(s)') from e

        job = JobOpportunity(
            title=entry.title,
            company=entry.company,
            location=entry.location,
            type=entry.type,
            industry=industry,
            description=entry.description,
            salary=entry.salary,
            experience=entry.experience,
            platform=entry.platform,
            url=entry.url,
            posted_date=_as_datetime(entry.postedDate),
            deadline=_as_datetime(entry.deadline),
            is_active=True,
        )
        job._set_json('requirements', entry.requirements)
        job._set_json('skills', entry.skills)

        try:
            with self.session.begin_nested():
                self.session.add(job)
        except SQLAlchemyError as e:
            raise PersistenceError(f'Could not create job "{entry.title}": {e}') from e
        return job

    def commit(self):
        try:
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f'Commit failed: {e}') from e

    def rollback(self):
        self.session.rollback()

    # -----------------------------------------------------------------------
    # Industry insights
    # -----------------------------------------------------------------------

    def get_insight(self, industry):
        return self.session.query(IndustryInsight).filter_by(industry=industry).first()

    def upsert_insight(self, industry, payload, now) -> IndustryInsight:
        """Create the insight row on first use, update it in place afterwards."""
        try:
            insight = self.get_insight(industry)
            if insight is None:
                insight = IndustryInsight(industry=industry)
                self.session.add(insight)
            insight.salary_ranges = json.dumps([r.model_dump() for r in payload.salaryRanges])
            insight.growth_rate = payload.growthRate
            insight.demand_level = payload.demandLevel
            insight.market_outlook = payload.marketOutlook
            insight._set_json('top_skills', payload.topSkills)
            insight._set_json('key_trends', payload.keyTrends)
            insight._set_json('recommended_skills', payload.recommendedSkills)
            insight.last_updated = now
            insight.next_update = now + INSIGHT_TTL
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise PersistenceError(f'Could not store insights for {industry}: {e}') from e
        logger.info('Stored insights for %s (next update %s)', industry, insight.next_update)
        return insight

    def list_all_industries(self):
        """Every industry with an insight row or a stored job batch, sorted."""
        insight_rows = self.session.query(IndustryInsight.industry).distinct().all()
        job_rows = self.session.query(JobOpportunity.industry).distinct().all()
        return sorted({row[0] for row in insight_rows + job_rows})

    # -----------------------------------------------------------------------
    # Users
    # -----------------------------------------------------------------------

    def get_user(self, user_id):
        if user_id is None:
            return None
        return self.session.get(User, user_id)
