import json
from datetime import datetime, timedelta

import pytest

from app import create_app
from config import Settings
from errors import GenerationFailed
from insight_service import InsightService
from job_refresh import JobRefresher
from job_store import JobStore
from models import IndustryInsight, JobOpportunity, User, db

NOW = datetime(2025, 1, 15, 12, 0, 0)


class FakeGateway:
    """Stands in for GenerationGateway: replays canned texts or raises canned errors."""

    def __init__(self):
        self.responses = []
        self.prompts = []

    def queue(self, *responses):
        self.responses.extend(responses)

    def generate(self, prompt):
        self.prompts.append(prompt)
        if not self.responses:
            raise GenerationFailed('no canned response left')
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def calls(self):
        return len(self.prompts)


def fenced(payload):
    return '```json\n' + json.dumps(payload) + '\n```'


@pytest.fixture
def settings():
    return Settings(
        gemini_api_key='test-key',
        models=['model-a', 'model-b', 'model-c'],
        database_url='sqlite://',
        admin_token='secret-token',
        secret_key='test-secret',
        rate_limit_backoff=2.0,
        generation_max_attempts=3,
    )


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def app(settings, gateway):
    app = create_app(settings, gateway=gateway)
    app.config['TESTING'] = True
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return JobStore()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def refresher(store, gateway, settings, sleeps):
    return JobRefresher(store, gateway, settings, now=lambda: NOW, sleep=sleeps.append)


@pytest.fixture
def insight_service(store, gateway, settings, sleeps):
    return InsightService(store, gateway, settings, now=lambda: NOW, sleep=sleeps.append)


@pytest.fixture
def job_entry():
    def _make(index, posted=NOW, **overrides):
        entry = {
            'title': f'Analyst Intern {index}',
            'company': f'Company {index}',
            'location': 'Mumbai, Maharashtra',
            'type': 'internship',
            'description': 'Support the research desk with market data.',
            'requirements': ['Pursuing a finance degree', 'Advanced Excel'],
            'skills': ['Excel', 'SQL'],
            'salary': '₹20,000 - ₹30,000/month',
            'experience': 'Fresher',
            'platform': 'internshala',
            'url': f'https://internshala.com/internship/detail/{index}',
            'postedDate': posted.strftime('%Y-%m-%d'),
            'deadline': None,
        }
        entry.update(overrides)
        return entry
    return _make


@pytest.fixture
def make_job(app):
    def _make(industry, created_at, posted=None, index=0, is_active=True):
        job = JobOpportunity(
            title=f'{industry.title()} Role {index}',
            company=f'Firm {index}',
            location='Bangalore, Karnataka',
            type='full-time',
            industry=industry,
            description='Existing listing.',
            platform='linkedin',
            url=f'https://www.linkedin.com/jobs/view/{index}',
            posted_date=posted or created_at,
            is_active=is_active,
            created_at=created_at,
        )
        db.session.add(job)
        db.session.commit()
        return job
    return _make


@pytest.fixture
def make_insight(app):
    def _make(industry, last_updated=NOW):
        insight = IndustryInsight(
            industry=industry,
            growth_rate=5.0,
            demand_level='Medium',
            market_outlook='Neutral',
            last_updated=last_updated,
            next_update=last_updated + timedelta(days=7),
        )
        db.session.add(insight)
        db.session.commit()
        return insight
    return _make


@pytest.fixture
def make_user(app):
    def _make(email='student@example.com', industry='finance'):
        user = User(email=email, name='Test Student', industry=industry)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


def active_count(industry):
    return JobOpportunity.query.filter_by(industry=industry, is_active=True).count()
