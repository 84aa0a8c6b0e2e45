import random
from datetime import timedelta

import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError, OperationalError

from conftest import NOW, active_count, fenced
from errors import GenerationFailed
from job_refresh import EMPTY, SERVED_EXISTING, SERVED_REFRESHED, SERVED_STALE
from llm_service import AttemptOutcome
from models import JobOpportunity, db


def _unavailable():
    return GenerationFailed('All 3 models failed', [
        AttemptOutcome(kind='skip', model='model-a', status=503,
                       error='503 Service Unavailable', service_unavailable=True),
    ])


def test_cold_start_finance_returns_eight_jobs_newest_first(refresher, gateway, job_entry):
    offsets = list(range(8))
    random.Random(7).shuffle(offsets)
    entries = [job_entry(i, posted=NOW - timedelta(days=d)) for i, d in enumerate(offsets)]
    gateway.queue(fenced({'jobs': entries}))

    jobs = refresher.get_job_opportunities('finance')

    assert len(jobs) == 8
    assert all(job.industry == 'finance' and job.is_active for job in jobs)
    posted = [job.posted_date for job in jobs]
    assert posted == sorted(posted, reverse=True)
    assert active_count('finance') == 8
    assert JobOpportunity.query.count() == 8


def test_fresh_jobs_are_served_without_generation(refresher, gateway, make_job):
    existing = [make_job('tech', created_at=NOW - timedelta(days=1), index=i) for i in range(5)]

    result = refresher.refresh_if_stale('tech')

    assert result.outcome == SERVED_EXISTING
    assert {job.id for job in result.jobs} == {job.id for job in existing}
    assert gateway.calls == 0


def test_four_day_old_batch_triggers_refresh(refresher, gateway, make_job, job_entry):
    make_job('tech', created_at=NOW - timedelta(days=4))
    gateway.queue(fenced({'jobs': [job_entry(1), job_entry(2)]}))

    result = refresher.refresh_if_stale('tech')

    assert gateway.calls == 1
    assert result.outcome == SERVED_REFRESHED
    assert result.created == 2
    assert active_count('tech') == 2
    # superseded row is deactivated, not deleted
    assert JobOpportunity.query.filter_by(industry='tech', is_active=False).count() == 1


def test_prompt_embeds_industry_date_and_platforms(refresher, gateway, settings, job_entry):
    gateway.queue(fenced({'jobs': [job_entry(1)]}))

    refresher.get_job_opportunities('healthcare')

    prompt = gateway.prompts[0]
    assert '"healthcare"' in prompt
    assert NOW.strftime('%Y-%m-%d') in prompt
    for platform in settings.platforms:
        assert platform in prompt
    assert '"postedDate"' in prompt


def test_generation_failure_keeps_existing_batch(refresher, gateway, make_job):
    existing = [make_job('tech', created_at=NOW - timedelta(days=5), index=i) for i in range(5)]
    gateway.queue(GenerationFailed('All 3 models failed'))

    result = refresher.refresh_if_stale('tech')

    assert result.outcome == SERVED_STALE
    assert result.error
    assert {job.id for job in result.jobs} == {job.id for job in existing}
    assert active_count('tech') == 5


def test_malformed_response_keeps_existing_batch(refresher, gateway, make_job):
    make_job('tech', created_at=NOW - timedelta(days=5))
    gateway.queue('Sorry, I cannot browse job boards.')

    result = refresher.refresh_if_stale('tech')

    assert result.outcome == SERVED_STALE
    assert len(result.jobs) == 1
    assert active_count('tech') == 1


def test_bad_entries_are_skipped_individually(refresher, gateway, make_job, job_entry):
    make_job('finance', created_at=NOW - timedelta(days=10))
    entries = [
        job_entry(1),
        job_entry(2, type='freelance'),
        job_entry(3, postedDate='not a date'),
        job_entry(4),
    ]
    gateway.queue(fenced({'jobs': entries}))

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_REFRESHED
    assert result.created == 2
    assert result.skipped == 2
    assert sorted(job.title for job in result.jobs) == ['Analyst Intern 1', 'Analyst Intern 4']


def test_no_usable_entries_does_not_deactivate(refresher, gateway, make_job):
    make_job('finance', created_at=NOW - timedelta(days=10))
    gateway.queue(fenced({'jobs': [{'title': 'Half an entry'}]}))

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_STALE
    assert result.skipped == 1
    assert active_count('finance') == 1


def test_empty_jobs_list_does_not_deactivate(refresher, gateway, make_job):
    make_job('finance', created_at=NOW - timedelta(days=10))
    gateway.queue(fenced({'jobs': []}))

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_STALE
    assert active_count('finance') == 1


def test_cold_start_failure_is_an_explicit_empty_result(refresher, gateway):
    gateway.queue(GenerationFailed('All 3 models failed'))

    result = refresher.refresh_if_stale('law')

    assert result.outcome == EMPTY
    assert result.jobs == []
    assert result.error


def test_service_unavailable_is_retried_with_backoff(refresher, gateway, sleeps, job_entry):
    gateway.queue(_unavailable(), fenced({'jobs': [job_entry(1)]}))

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_REFRESHED
    assert gateway.calls == 2
    assert sleeps == [2]


def test_service_unavailable_gives_up_after_three_attempts(refresher, gateway, sleeps, make_job):
    make_job('finance', created_at=NOW - timedelta(days=4))
    gateway.queue(_unavailable(), _unavailable(), _unavailable())

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_STALE
    assert gateway.calls == 3
    assert sleeps == [2, 4]


def test_other_generation_failures_are_not_retried(refresher, gateway, sleeps):
    gateway.queue(GenerationFailed('All 3 models failed'), 'unused')

    refresher.refresh_if_stale('finance')

    assert gateway.calls == 1
    assert sleeps == []


def test_refresh_all_reports_per_industry(refresher, gateway, make_insight, make_job, job_entry):
    make_insight('finance')
    make_insight('tech')
    make_job('tech', created_at=NOW - timedelta(hours=1))
    gateway.queue(fenced({'jobs': [job_entry(1), job_entry(2), job_entry(3)]}), 'garbage')

    report = refresher.refresh_all()

    assert report[0] == {'industry': 'finance', 'jobsCreated': 3, 'status': 'success'}
    assert report[1]['industry'] == 'tech'
    assert report[1]['status'] == 'error'
    assert report[1]['error']
    # the administrative refresh ignores freshness, but a failure still keeps the old batch
    assert active_count('tech') == 1
    assert gateway.calls == 2


@pytest.fixture
def rejected_titles():
    """Titles whose INSERT fails at the database level."""
    rejected = set()

    def before_insert(mapper, connection, target):
        if target.title in rejected:
            raise IntegrityError('INSERT INTO "JobOpportunity"', {},
                                 Exception('UNIQUE constraint failed: JobOpportunity.url'))

    event.listen(JobOpportunity, 'before_insert', before_insert)
    yield rejected
    event.remove(JobOpportunity, 'before_insert', before_insert)


def test_database_error_on_one_entry_skips_only_that_entry(refresher, gateway, make_job,
                                                            job_entry, rejected_titles):
    make_job('finance', created_at=NOW - timedelta(days=4))
    rejected_titles.add('Analyst Intern 2')
    gateway.queue(fenced({'jobs': [job_entry(1), job_entry(2), job_entry(3)]}))

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_REFRESHED
    assert result.created == 2
    assert result.skipped == 1
    assert sorted(job.title for job in result.jobs) == ['Analyst Intern 1', 'Analyst Intern 3']
    assert active_count('finance') == 2


def test_database_error_on_every_entry_keeps_existing_batch(refresher, gateway, make_job,
                                                             job_entry, rejected_titles):
    make_job('finance', created_at=NOW - timedelta(days=4))
    rejected_titles.update({'Analyst Intern 1', 'Analyst Intern 2'})
    gateway.queue(fenced({'jobs': [job_entry(1), job_entry(2)]}))

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_STALE
    assert result.skipped == 2
    assert active_count('finance') == 1


def test_commit_failure_keeps_existing_batch(refresher, gateway, make_job, job_entry, monkeypatch):
    make_job('finance', created_at=NOW - timedelta(days=4))
    gateway.queue(fenced({'jobs': [job_entry(1), job_entry(2)]}))

    def locked():
        raise OperationalError('COMMIT', {}, Exception('database is locked'))
    monkeypatch.setattr(db.session, 'commit', locked)

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_STALE
    assert 'Commit failed' in result.error
    assert len(result.jobs) == 1
    assert active_count('finance') == 1
    assert JobOpportunity.query.count() == 1


def test_numeric_salary_and_experience_are_kept(refresher, gateway, job_entry):
    gateway.queue(fenced({'jobs': [job_entry(1, salary=600000), job_entry(2, experience=2)]}))

    result = refresher.refresh_if_stale('finance')

    assert result.outcome == SERVED_REFRESHED
    assert result.created == 2
    by_title = {job.title: job for job in result.jobs}
    assert by_title['Analyst Intern 1'].salary == '600000'
    assert by_title['Analyst Intern 2'].experience == '2'
