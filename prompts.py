"""Prompt templates for job-opportunity and industry-insight generation."""

_JOBS_TEMPLATE = """Find and list REAL-WORLD job opportunities for "{industry}" roles available on FREE job platforms such as:
{platform_lines}

ONLY include jobs that are:
- Currently ACTIVE and accepting applications
- Posted within the last 30 days
- Full-time or Internship positions
- Have REAL application URLs that lead directly to actual job posting pages OR platform-specific industry pages

For each job, provide: exact title, real company name, location (city, state), type, a 1-2 sentence description,
key requirements, required skills, salary range (if available, realistic for {year}), experience level
(e.g. "Fresher", "0-2 years", "2-5 years"), platform source, URL, posted date and application deadline (or null).

URL PRIORITY ORDER:
1. Direct job posting page (preferred)
2. Platform industry-specific page (fallback)
3. Platform job search page with relevant filters (last resort)

REQUIREMENTS:
- Return ONLY the JSON below, without any extra text, notes, markdown or explanations
- Include between 8 and 10 real, active job opportunities
- Focus on internships and entry-level roles for students
- Prioritize diverse companies and locations
- Use today's date ({today}) for postedDate when the posting date is unknown
- EXCLUDE paid or sponsored listings

Output format (strictly JSON only):
{{"jobs":[{{"title":"string","company":"string","location":"string","type":"internship|full-time|part-time|contract","description":"string","requirements":["string"],"skills":["string"],"salary":"string","experience":"string","platform":"{platform_tags}","url":"string","postedDate":"YYYY-MM-DD","deadline":"YYYY-MM-DD or null"}}]}}"""


_INSIGHT_TEMPLATE = """Analyze the current state of the {industry} industry as of {today} and provide insights in ONLY the following JSON format without any additional notes or explanations:
{{"salaryRanges":[{{"role":"string","min":NUMBER,"max":NUMBER,"median":NUMBER,"location":"string"}}],"growthRate":NUMBER,"demandLevel":"High|Medium|Low","topSkills":["skill1","skill2"],"marketOutlook":"Positive|Neutral|Negative","keyTrends":["trend1","trend2"],"recommendedSkills":["skill1","skill2"]}}

IMPORTANT: Return ONLY the JSON. No additional text, notes, or markdown formatting.
Include at least 5 common roles for salary ranges.
Growth rate should be a percentage.
Include at least 5 skills and trends."""


def platform_tag(platform: str) -> str:
    """'LinkedIn Jobs' → 'linkedin', 'Indeed India' → 'indeed', 'Unstop.com' → 'unstop'."""
    return platform.split('.')[0].split()[0].lower()


def build_jobs_prompt(industry: str, today, platforms) -> str:
    """Prompt asking for ``{"jobs": [...]}`` listings for one industry."""
    tags = []
    for p in platforms:
        tag = platform_tag(p)
        if tag not in tags:
            tags.append(tag)
    return _JOBS_TEMPLATE.format(
        industry=industry,
        platform_lines='\n'.join(f'- {p}' for p in platforms),
        platform_tags='|'.join(tags + ['other']),
        today=today.isoformat(),
        year=today.year,
    )


def build_insight_prompt(industry: str, today) -> str:
    return _INSIGHT_TEMPLATE.format(industry=industry, today=today.isoformat())
