"""
Scoring Service

PURPOSE:
Score how well a candidate profile fits a requirement set, for both
course admissions and job postings. Pure functions, no I/O.

TWO FORMULAS (kept separate on purpose, see DESIGN.md):
1. primary    - fixed weights GPA 40 / experience 30 / certificates 30.
                Absent criteria still contribute (flat 40, 30 or 15, 30),
                so the weights always sum to 100. Used for ranking.
2. normalized - only present criteria count: GPA 30 / experience 30 /
                certificates 20 / field relevance 20, divided by the sum of
                the present weights. GPA and experience ratios are
                uncapped. Attached to job-match notifications.

MATCHING RULES:
- Certificates: case-insensitive exact name match
- Field relevance: a relevant field is a case-insensitive substring of
  the candidate's field of study
- A criterion is present when its value is truthy (min_gpa=0 or an
  empty list is treated as absent)
"""

from typing import Callable, Dict, Iterable, List, Tuple, TypeVar

from placement_engine.schemas.schemas import CandidateProfile, RequirementSet

T = TypeVar("T")

# Primary formula weights
PRIMARY_GPA_WEIGHT = 40
PRIMARY_EXPERIENCE_WEIGHT = 30
PRIMARY_EXPERIENCE_NONE = 15  # no requirement and no experience at all
PRIMARY_CERTIFICATE_WEIGHT = 30

# Normalized formula weights
NORMALIZED_GPA_WEIGHT = 30
NORMALIZED_EXPERIENCE_WEIGHT = 30
NORMALIZED_CERTIFICATE_WEIGHT = 20
NORMALIZED_FIELD_WEIGHT = 20


# ============================================================
# CRITERION HELPERS
# ============================================================

def total_experience(candidate: CandidateProfile) -> float:
    """Sum of years across all work experience entries."""
    return sum(exp.years for exp in candidate.work_experience)


def certificate_matches(candidate: CandidateProfile, required: List[str]) -> int:
    """Number of required certificate names the candidate holds."""
    held = {cert.name.lower() for cert in candidate.certificates}
    return sum(1 for name in required if name.lower() in held)


def has_all_certificates(candidate: CandidateProfile, required: List[str]) -> bool:
    return certificate_matches(candidate, required) == len(required)


def field_is_relevant(candidate: CandidateProfile, relevant_fields: List[str]) -> bool:
    if not candidate.field_of_study:
        return False
    field_of_study = candidate.field_of_study.lower()
    return any(field.lower() in field_of_study for field in relevant_fields)


def _ratio(value: float, required: float) -> float:
    return min(1.0, value / required)


# ============================================================
# QUALIFICATION PREDICATE
# ============================================================

def unmet_requirements(candidate: CandidateProfile, requirements: RequirementSet) -> List[str]:
    """
    Names of the requirement rules the candidate fails.

    Returns an empty list when every present requirement is met.
    """
    failed = []

    if requirements.min_gpa and candidate.gpa < requirements.min_gpa:
        failed.append("gpa")

    if requirements.experience_years and total_experience(candidate) < requirements.experience_years:
        failed.append("experience")

    if requirements.certificates and not has_all_certificates(candidate, requirements.certificates):
        failed.append("certificates")

    if requirements.relevant_fields and not field_is_relevant(candidate, requirements.relevant_fields):
        failed.append("field")

    return failed


def meets_requirements(candidate: CandidateProfile, requirements: RequirementSet) -> bool:
    """AND across every present requirement field."""
    return not unmet_requirements(candidate, requirements)


# ============================================================
# SCORING STRATEGIES
# ============================================================

def primary_score(candidate: CandidateProfile, requirements: RequirementSet) -> float:
    """
    Fixed-weight 40/30/30 score in [0, 100].

    Example:
        gpa 2.0 vs min_gpa 4.0, no experience, no other requirement
        -> 20 + 15 + 30 = 65
    """
    score = 0.0

    if requirements.min_gpa:
        score += _ratio(candidate.gpa, requirements.min_gpa) * PRIMARY_GPA_WEIGHT
    else:
        score += PRIMARY_GPA_WEIGHT

    experience = total_experience(candidate)
    if requirements.experience_years:
        score += _ratio(experience, requirements.experience_years) * PRIMARY_EXPERIENCE_WEIGHT
    else:
        score += PRIMARY_EXPERIENCE_WEIGHT if experience > 0 else PRIMARY_EXPERIENCE_NONE

    if requirements.certificates:
        matched = certificate_matches(candidate, requirements.certificates)
        score += (matched / len(requirements.certificates)) * PRIMARY_CERTIFICATE_WEIGHT
    else:
        score += PRIMARY_CERTIFICATE_WEIGHT

    return min(100.0, score)


def normalized_score(candidate: CandidateProfile, requirements: RequirementSet) -> float:
    """
    Score normalized over present criteria only.

    GPA and experience ratios are not capped, so a candidate above the
    minimum scores over 100 (gpa 4.0 vs min_gpa 3.0 -> 133.33).
    Returns 0 when the requirement set is empty.
    """
    score = 0.0
    total = 0

    if requirements.min_gpa:
        total += NORMALIZED_GPA_WEIGHT
        score += (candidate.gpa / requirements.min_gpa) * NORMALIZED_GPA_WEIGHT

    if requirements.experience_years:
        total += NORMALIZED_EXPERIENCE_WEIGHT
        score += (total_experience(candidate) / requirements.experience_years) * NORMALIZED_EXPERIENCE_WEIGHT

    if requirements.certificates:
        total += NORMALIZED_CERTIFICATE_WEIGHT
        matched = certificate_matches(candidate, requirements.certificates)
        score += (matched / len(requirements.certificates)) * NORMALIZED_CERTIFICATE_WEIGHT

    if requirements.relevant_fields:
        total += NORMALIZED_FIELD_WEIGHT
        if field_is_relevant(candidate, requirements.relevant_fields):
            score += NORMALIZED_FIELD_WEIGHT

    return (score / total) * 100 if total > 0 else 0.0


ScoringStrategy = Callable[[CandidateProfile, RequirementSet], float]

SCORING_STRATEGIES: Dict[str, ScoringStrategy] = {
    "primary": primary_score,
    "normalized": normalized_score,
}


def score(
    candidate: CandidateProfile,
    requirements: RequirementSet,
    strategy: str = "primary",
) -> float:
    """Score with a named strategy ("primary" or "normalized")."""
    try:
        scorer = SCORING_STRATEGIES[strategy]
    except KeyError:
        raise ValueError(f"Unknown scoring strategy '{strategy}'")
    return scorer(candidate, requirements)


def rank_candidates(
    items: Iterable[T],
    profile_of: Callable[[T], CandidateProfile],
    requirements: RequirementSet,
    strategy: str = "primary",
) -> List[Tuple[T, float]]:
    """
    Score every item and sort by score, highest first.

    Ties keep input order (sorted() is stable).
    """
    scored = [(item, score(profile_of(item), requirements, strategy)) for item in items]
    return sorted(scored, key=lambda pair: pair[1], reverse=True)
