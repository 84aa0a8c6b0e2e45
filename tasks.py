"""Scheduled refresh entry points, exposed as Flask CLI commands.

Run from cron (or any scheduler) against the app factory::

    0 6 * * *   FLASK_APP=app flask refresh-jobs
    0 0 * * 0   FLASK_APP=app flask refresh-insights
"""

import json
import logging

import click

logger = logging.getLogger(__name__)

JOBS_SCHEDULE = '0 6 * * *'       # daily, 06:00
INSIGHTS_SCHEDULE = '0 0 * * 0'   # weekly, Sunday midnight


def run_daily_job_refresh(refresher, force=False):
    """Refresh jobs for every known industry.

    By default each industry goes through the staleness gate, so a batch
    younger than the job TTL is left alone. ``force`` regenerates everything.
    """
    if force:
        return refresher.refresh_all()

    results = []
    for industry in refresher.store.list_all_industries():
        result = refresher.refresh_if_stale(industry)
        row = {'industry': industry, 'status': result.outcome, 'jobs': len(result.jobs)}
        if result.skipped:
            row['skipped'] = result.skipped
        if result.error:
            row['error'] = result.error
        results.append(row)
    return results


def run_weekly_insight_refresh(insight_service):
    return insight_service.refresh_all()


def register_commands(app):

    @app.cli.command('refresh-jobs', help=f'Daily job-opportunity refresh (cron: {JOBS_SCHEDULE}).')
    @click.option('--force', is_flag=True, help='Ignore the staleness gate.')
    def refresh_jobs_command(force):
        results = run_daily_job_refresh(app.extensions['job_refresher'], force=force)
        for row in results:
            click.echo(json.dumps(row))
        logger.info('Job refresh finished for %d industries', len(results))

    @app.cli.command('refresh-insights',
                     help=f'Weekly industry-insight refresh (cron: {INSIGHTS_SCHEDULE}).')
    def refresh_insights_command():
        results = run_weekly_insight_refresh(app.extensions['insight_service'])
        for row in results:
            click.echo(json.dumps(row))
        failed = [r for r in results if r['status'] == 'error']
        logger.info('Insight refresh finished: %d ok, %d failed',
                    len(results) - len(failed), len(failed))
