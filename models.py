"""Database models — users, industry insights, job opportunities."""

import json
from datetime import datetime, timezone

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

JOB_TYPES = ('internship', 'full-time', 'part-time', 'contract')


def utcnow() -> datetime:
    """Naive UTC timestamp (matches what DateTime columns store)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value):
    return value.isoformat() if value else None


class JsonListMixin:
    """List-valued fields stored as JSON text arrays."""

    def _parse_json(self, field_name):
        """Parse a JSON text field into a Python list."""
        val = getattr(self, field_name, '[]')
        try:
            return json.loads(val) if val else []
        except (json.JSONDecodeError, TypeError):
            return []

    def _set_json(self, field_name, value):
        """Serialize a list to JSON text and set on the field."""
        setattr(self, field_name, json.dumps(list(value) if value else []))


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(256), nullable=False, unique=True, index=True)
    name = db.Column(db.String(256))
    industry = db.Column(db.String(200), index=True)   # NULL until onboarding
    created_at = db.Column('createdAt', db.DateTime, default=utcnow)

    def __repr__(self):
        return f'<User {self.email} industry={self.industry}>'


class IndustryInsight(JsonListMixin, db.Model):
    """AI-generated market snapshot, one row per industry, updated in place."""
    __tablename__ = 'IndustryInsight'

    id = db.Column(db.Integer, primary_key=True)
    industry = db.Column(db.String(200), unique=True, nullable=False, index=True)
    salary_ranges = db.Column('salaryRanges', db.Text, default='[]')   # JSON: [{role,min,max,median,location}]
    growth_rate = db.Column('growthRate', db.Float, default=0.0)
    demand_level = db.Column('demandLevel', db.String(10), default='Medium')      # High | Medium | Low
    market_outlook = db.Column('marketOutlook', db.String(10), default='Neutral')  # Positive | Neutral | Negative
    top_skills = db.Column('topSkills', db.Text, default='[]')
    key_trends = db.Column('keyTrends', db.Text, default='[]')
    recommended_skills = db.Column('recommendedSkills', db.Text, default='[]')
    last_updated = db.Column('lastUpdated', db.DateTime, default=utcnow, nullable=False)
    next_update = db.Column('nextUpdate', db.DateTime, nullable=False)

    def __repr__(self):
        return f'<IndustryInsight {self.industry} updated={self.last_updated}>'

    def to_dict(self):
        return {
            'industry': self.industry,
            'salaryRanges': self._parse_json('salary_ranges'),
            'growthRate': self.growth_rate,
            'demandLevel': self.demand_level,
            'marketOutlook': self.market_outlook,
            'topSkills': self._parse_json('top_skills'),
            'keyTrends': self._parse_json('key_trends'),
            'recommendedSkills': self._parse_json('recommended_skills'),
            'lastUpdated': _iso(self.last_updated),
            'nextUpdate': _iso(self.next_update),
        }


class JobOpportunity(JsonListMixin, db.Model):
    """One AI-sourced job listing. Superseded rows are deactivated, never deleted."""
    __tablename__ = 'JobOpportunity'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(500), nullable=False)
    company = db.Column(db.String(300), nullable=False)
    location = db.Column(db.String(300), nullable=False)
    type = db.Column(db.String(20), nullable=False, index=True)
    industry = db.Column(db.String(200), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    requirements = db.Column(db.Text, default='[]')   # JSON array of strings
    skills = db.Column(db.Text, default='[]')         # JSON array of strings
    salary = db.Column(db.String(200))
    experience = db.Column(db.String(100))
    platform = db.Column(db.String(50), nullable=False, index=True)
    url = db.Column(db.String(1024), nullable=False)
    posted_date = db.Column('postedDate', db.DateTime, nullable=False)
    deadline = db.Column(db.DateTime)
    is_active = db.Column('isActive', db.Boolean, default=True, nullable=False, index=True)
    created_at = db.Column('createdAt', db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column('updatedAt', db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f'<JobOpportunity {self.id} {self.title[:30]} active={self.is_active}>'

    def to_dict(self):
        """Convert to the camelCase shape the dashboard consumes."""
        return {
            'id': self.id,
            'title': self.title,
            'company': self.company,
            'location': self.location,
            'type': self.type,
            'industry': self.industry,
            'description': self.description,
            'requirements': self._parse_json('requirements'),
            'skills': self._parse_json('skills'),
            'salary': self.salary,
            'experience': self.experience,
            'platform': self.platform,
            'url': self.url,
            'postedDate': _iso(self.posted_date),
            'deadline': _iso(self.deadline),
            'isActive': self.is_active,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        }
