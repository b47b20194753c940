"""Data models for the career analysis payload returned by the provider."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

AnalysisStatus = Literal["needs_clarification", "analyzing", "complete"]


class CamelModel(BaseModel):
    """Accepts snake_case or the camelCase keys used by backups and the provider prompt."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PrimaryPlan(CamelModel):
    title: str
    rationale: str = ""
    fit_score: int = Field(default=0, ge=0, le=100)
    roles: List[str] = Field(default_factory=list)
    industries: List[str] = Field(default_factory=list)
    risk_factors: List[str] = Field(default_factory=list)
    mitigations: List[str] = Field(default_factory=list)


class AlternativePlan(CamelModel):
    title: str
    rationale: str = ""


class CareerPlans(CamelModel):
    a: PrimaryPlan = Field(alias="A")
    b: AlternativePlan = Field(alias="B")
    c: AlternativePlan = Field(alias="C")


class Competencies(CamelModel):
    core: List[str] = Field(default_factory=list)
    supporting: List[str] = Field(default_factory=list)
    certifications: List[str] = Field(default_factory=list)


class Portfolio(CamelModel):
    suggested_projects: List[str] = Field(default_factory=list)


class MilestoneTimeline(CamelModel):
    month0_3: List[str] = Field(default_factory=list, alias="month0_3")
    month3_6: List[str] = Field(default_factory=list, alias="month3_6")
    month6_12: List[str] = Field(default_factory=list, alias="month6_12")


class PlanADeepDive(CamelModel):
    """Deep dive on the primary plan: demand, competencies, and a 12-month timeline."""

    impact: str = ""
    scope: str = ""
    future_demand: str = ""
    market_outlook: str = ""
    geo_notes: str = ""
    competencies: Competencies = Field(default_factory=Competencies)
    tools_stack: List[str] = Field(default_factory=list)
    portfolio: Portfolio = Field(default_factory=Portfolio)
    timeline: MilestoneTimeline = Field(default_factory=MilestoneTimeline)
    risks: List[str] = Field(default_factory=list)


class SkillToLearn(CamelModel):
    name: str
    level: str = ""


class LearningResource(CamelModel):
    name: str
    provider: str = ""
    type: str = ""
    reason: str = ""


class Roadmap(CamelModel):
    skills_to_learn: List[SkillToLearn] = Field(default_factory=list)
    courses_and_resources: List[LearningResource] = Field(default_factory=list)
    communities_and_events: List[str] = Field(default_factory=list)
    interview_prep_topics: List[str] = Field(default_factory=list)
    next_actions: List[str] = Field(default_factory=list)


class AnalysisContent(CamelModel):
    """The provider-authored part of an analysis, before it is versioned and stored."""

    status: AnalysisStatus = "complete"
    clarifications: List[str] = Field(default_factory=list)
    interests_confirmed: bool = True
    plans: CareerPlans
    plan_a_deep_dive: Optional[PlanADeepDive] = None
    summary: str = ""
    roadmap: Optional[Roadmap] = None


__all__ = [
    "AlternativePlan",
    "AnalysisContent",
    "AnalysisStatus",
    "CamelModel",
    "CareerPlans",
    "Competencies",
    "LearningResource",
    "MilestoneTimeline",
    "PlanADeepDive",
    "Portfolio",
    "PrimaryPlan",
    "Roadmap",
    "SkillToLearn",
]
