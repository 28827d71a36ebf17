"""Prompts for AI-assisted match analysis and CV extraction."""
from src.matching.normalizer import CandidateFeatures, JobFeatures

MATCH_SYSTEM_PROMPT = (
    "You are an expert South African recruitment AI specializing in job matching. "
    "Analyze CV-job compatibility considering SA market factors like B-BBEE, NQF levels, "
    "local industry dynamics, and cultural fit. Respond with detailed JSON analysis."
)

EXTRACTION_SYSTEM_PROMPT = (
    "You are a South African CV parsing expert. Extract structured information "
    "from CVs, paying attention to SA-specific qualifications, B-BBEE status, and NQF levels."
)

NOT_SPECIFIED = "Not specified"

# Upper bound on CV/description text sent to the provider
MAX_TEXT_CHARS = 6000


def _join(values) -> str:
    values = [v for v in values if v]
    return ", ".join(values) if values else NOT_SPECIFIED


def _salary(low, high) -> str:
    if low is None and high is None:
        return NOT_SPECIFIED
    if low is None or high is None or low == high:
        return f"R{(low if low is not None else high):,.0f}"
    return f"R{low:,.0f} - R{high:,.0f}"


def build_match_prompt(job: JobFeatures, candidate: CandidateFeatures) -> str:
    """User prompt asking for the JSON match analysis."""
    bbbee = candidate.bbbee_status or (
        f"Level {candidate.bbbee_level}" if candidate.bbbee_level else NOT_SPECIFIED
    )
    experience = job.experience_level.value if job.experience_level else NOT_SPECIFIED
    location = "Remote" if job.is_remote else _join([job.location, job.province])

    return f"""
Analyze this CV-Job match for the South African market:

**CANDIDATE PROFILE:**
- Skills: {_join(sorted(candidate.skills))}
- Experience: {candidate.experience_level.value} ({candidate.years_of_experience} years stated)
- Location: {_join(candidate.places)}
- Industry: {_join([candidate.industry] + candidate.preferred_industries)}
- Education: {candidate.education.value}
- B-BBEE Status: {bbbee}
- NQF Level: {candidate.nqf_level or NOT_SPECIFIED}
- Salary Expectation: {_salary(candidate.desired_salary_min, candidate.desired_salary_max)}
- CV Text: {candidate.cv_text[:MAX_TEXT_CHARS] or NOT_SPECIFIED}

**JOB REQUIREMENTS:**
- Position: {job.title or NOT_SPECIFIED}
- Description: {job.description[:MAX_TEXT_CHARS] or NOT_SPECIFIED}
- Required Skills: {_join(job.required_skills)}
- Preferred Skills: {_join(job.preferred_skills)}
- Experience Required: {experience}
- Location: {location}
- Industry: {job.industry or NOT_SPECIFIED}
- Salary Range: {_salary(job.salary_min, job.salary_max)}
- B-BBEE Preference: {job.bbbee_preference or NOT_SPECIFIED}
- NQF Requirement: {job.nqf_requirement or NOT_SPECIFIED}

Provide analysis as JSON with these exact fields:
{{
  "skillsScore": 0-100,
  "experienceScore": 0-100,
  "culturalFitScore": 0-100,
  "salaryCompatibility": 0-100,
  "locationScore": 0-100,
  "overallMatchScore": 0-100,
  "matchReasons": ["reason1", "reason2"],
  "skillsMatched": ["skill1", "skill2"],
  "skillsGap": ["missing_skill1", "missing_skill2"],
  "recommendations": ["recommendation1", "recommendation2"]
}}

Consider SA context:
- B-BBEE requirements and opportunities
- NQF education levels and recognition
- Local market salary expectations
- Transport and location logistics in SA cities
- Language requirements (English, Afrikaans, local languages)
"""


def build_extraction_prompt(cv_text: str) -> str:
    """User prompt asking for structured CV fields."""
    return (
        "Extract structured data from this CV text. Return JSON with: extractedSkills, "
        "experience, education, bbbeeStatus, nqfLevel, languages.\n\n"
        f"CV Text: {cv_text[:MAX_TEXT_CHARS]}"
    )
