"""Wire schemas for LLM output — what the prompts ask the model to return.

Pydantic v2 models. The envelope models (``JobsPayload``, ``InsightPayload``)
are validated all-or-nothing by the parser; ``JobEntry`` is validated per
entry when a batch is committed, so one bad listing does not sink the rest.
"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

JobType = Literal['internship', 'full-time', 'part-time', 'contract']
DemandLevel = Literal['High', 'Medium', 'Low']
MarketOutlook = Literal['Positive', 'Neutral', 'Negative']

_NULLISH = {'', 'null', 'none', 'n/a', 'not specified'}


def _coerce_date(value):
    """Accept YYYY-MM-DD, full ISO timestamps, or date/datetime objects."""
    if value is None or isinstance(value, date):
        return value.date() if isinstance(value, datetime) else value
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned.lower() in _NULLISH:
            return None
        return date.fromisoformat(cleaned[:10])
    raise ValueError(f'not a date: {value!r}')


def _string_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(v).strip() for v in value if str(v).strip()]


class JobEntry(BaseModel):
    """One listing inside ``{"jobs": [...]}``."""
    model_config = ConfigDict(extra='ignore', str_strip_whitespace=True)

    title: str = Field(min_length=1)
    company: str = Field(min_length=1)
    location: str = Field(min_length=1)
    type: JobType
    description: str = ''
    requirements: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    salary: Optional[str] = None
    experience: Optional[str] = None
    platform: str = Field(min_length=1)
    url: str = Field(min_length=1)
    postedDate: date
    deadline: Optional[date] = None

    @field_validator('type', mode='before')
    @classmethod
    def _normalise_type(cls, value):
        if isinstance(value, str):
            return value.strip().lower().replace('_', '-').replace('fulltime', 'full-time')
        return value

    @field_validator('platform', mode='before')
    @classmethod
    def _normalise_platform(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator('salary', 'experience', mode='before')
    @classmethod
    def _numbers_as_text(cls, value):
        # "salary": 600000, "experience": 2
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator('requirements', 'skills', mode='before')
    @classmethod
    def _lists(cls, value):
        return _string_list(value)

    @field_validator('postedDate', 'deadline', mode='before')
    @classmethod
    def _dates(cls, value):
        return _coerce_date(value)


class JobsPayload(BaseModel):
    """Envelope: ``jobs`` must be a list of objects; entries stay raw here."""
    jobs: List[dict]


class SalaryRange(BaseModel):
    model_config = ConfigDict(extra='ignore')

    role: str
    min: float
    max: float
    median: float
    location: str = ''


class InsightPayload(BaseModel):
    model_config = ConfigDict(extra='ignore')

    salaryRanges: List[SalaryRange] = Field(default_factory=list)
    growthRate: float
    demandLevel: DemandLevel
    topSkills: List[str] = Field(default_factory=list)
    marketOutlook: MarketOutlook
    keyTrends: List[str] = Field(default_factory=list)
    recommendedSkills: List[str] = Field(default_factory=list)

    @field_validator('growthRate', mode='before')
    @classmethod
    def _percent(cls, value):
        # "12.5%" → 12.5
        if isinstance(value, str):
            return value.strip().rstrip('%')
        return value

    @field_validator('topSkills', 'keyTrends', 'recommendedSkills', mode='before')
    @classmethod
    def _lists(cls, value):
        return _string_list(value)
