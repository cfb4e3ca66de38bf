## Pydantic Schemas for intake data and structured output
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DeliveryMode = Literal["face_to_face", "online", "blended", "workplace", "mixed"]

UNIT_CODE_PATTERN = r"^[A-Z]{3}[A-Z0-9]{6,10}$"
SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"


# -------------------------
# Intake (user input)
# -------------------------
class QualificationInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = Field(min_length=1, max_length=300)
    code: Optional[str] = None
    level: Optional[str] = None


class DurationInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    weeks: int = Field(ge=1, le=208)
    total_hours: float = Field(gt=0, le=10000)


class ResourcesInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    facilities: List[str] = Field(default_factory=list)
    equipment: List[str] = Field(default_factory=list)
    materials: List[str] = Field(default_factory=list)
    technology: List[str] = Field(default_factory=list)


class TrainerInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    primary_trainer: Optional[str] = None
    additional_trainers: List[str] = Field(default_factory=list)


class ClassSizeInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    min: Optional[int] = Field(default=None, ge=1)
    max: Optional[int] = Field(default=None, ge=1)
    target: Optional[int] = Field(default=None, ge=1)


class IntakeRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    qualification: QualificationInput
    duration: DurationInput
    delivery_mode: DeliveryMode
    cohort_profile: str = ""
    resources: Optional[ResourcesInput] = None
    assessment_preferences: List[str] = Field(default_factory=list)
    unit_list: Optional[str] = None
    trainer_details: Optional[TrainerInput] = None
    start_date: Optional[str] = None
    venue: Optional[str] = None
    class_size: Optional[ClassSizeInput] = None

    @property
    def hours_per_week(self) -> float:
        return self.duration.total_hours / self.duration.weeks


# -------------------------
# Generated plan (model output)
# -------------------------
class _PlanModel(BaseModel):
    # strict: no silent "3" -> 3 coercion; unknown keys are dropped
    model_config = ConfigDict(frozen=True, strict=True, extra="ignore")


class PlanMetadata(_PlanModel):
    schema_version: str = Field(pattern=SEMVER_PATTERN)
    project_type: Literal["unit_plan", "session_plan", "assessment_plan"] = "unit_plan"
    generated_at: str
    generator_model: Optional[str] = None
    reserved: Dict[str, object] = Field(default_factory=dict)

    @field_validator("generated_at")
    @classmethod
    def _iso_datetime(cls, v: str) -> str:
        try:
            datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError("must be an ISO-8601 datetime")
        return v


class Qualification(_PlanModel):
    code: Optional[str] = None
    title: str = Field(min_length=5)
    level: Optional[Literal[
        "Certificate I", "Certificate II", "Certificate III", "Certificate IV",
        "Diploma", "Advanced Diploma", "Short Course", "Skill Set", "",
    ]] = None
    packaging_rules: Optional[str] = None


class Duration(_PlanModel):
    weeks: int = Field(ge=1, le=208)
    total_hours: float = Field(ge=1, le=10000)
    hours_per_week: Optional[float] = Field(default=None, ge=0)
    study_mode: Optional[Literal["full_time", "part_time", "flexible", ""]] = None


class TrainerDetails(_PlanModel):
    primary_trainer: Optional[str] = None
    additional_trainers: Optional[List[str]] = None
    qualifications_required: Optional[List[str]] = None


class ClassSize(_PlanModel):
    min: Optional[int] = Field(default=None, ge=1)
    max: Optional[int] = Field(default=None, ge=1)
    target: Optional[int] = Field(default=None, ge=1)


class PlanMeta(_PlanModel):
    qualification: Qualification
    duration: Duration
    delivery_mode: DeliveryMode
    cohort_profile: str = Field(min_length=10)
    trainer_details: Optional[TrainerDetails] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    venue: Optional[str] = None
    class_size: Optional[ClassSize] = None


class Activity(_PlanModel):
    title: str = Field(min_length=3)
    duration_hours: float = Field(ge=0.25, le=40)
    delivery_method: Literal[
        "lecture", "workshop", "tutorial", "practical", "online_module", "simulation",
        "workplace_visit", "guest_speaker", "group_work", "self_paced", "project", "other",
    ]
    description: Optional[str] = None
    resources: Optional[List[str]] = None
    learning_outcomes: Optional[List[str]] = None


AssessmentType = Literal[
    "written", "practical", "project", "portfolio", "observation", "presentation",
    "roleplay", "case_study", "exam", "interview", "recognition", "other",
]


class Assessment(_PlanModel):
    title: str = Field(min_length=3)
    type: AssessmentType
    units_assessed: List[str] = Field(min_length=1)
    due_date: Optional[str] = None
    duration_hours: Optional[float] = Field(default=None, ge=0)
    weighting: Optional[str] = None
    description: Optional[str] = None


class WeekPlan(_PlanModel):
    week_number: int = Field(ge=1)
    week_theme: Optional[str] = None
    units_covered: Optional[List[str]] = None
    activities: List[Activity]
    assessments: Optional[List[Assessment]] = None
    notes: Optional[str] = None

    @property
    def total_hours(self) -> float:
        return sum(a.duration_hours for a in self.activities)


class AssessmentTask(_PlanModel):
    task_name: str
    method: str
    description: Optional[str] = None


class Unit(_PlanModel):
    unit_code: str = Field(pattern=UNIT_CODE_PATTERN)
    unit_title: str = Field(min_length=5)
    nominal_hours: float = Field(ge=1, le=1000)
    unit_type: Optional[Literal["core", "elective", "prerequisite", ""]] = None
    delivery_methods: Optional[List[Literal[
        "face_to_face", "online", "workplace", "simulation", "blended", "self_paced",
    ]]] = None
    assessment_methods: Optional[List[Literal[
        "written", "practical", "project", "portfolio", "observation", "presentation",
        "roleplay", "case_study", "exam", "interview", "recognition",
        "third_party_report", "logbook",
    ]]] = None
    assessment_tasks: Optional[List[AssessmentTask]] = None
    prerequisites: Optional[List[str]] = None
    weeks_scheduled: Optional[List[int]] = None
    learning_resources: Optional[List[str]] = None

    @field_validator("weeks_scheduled")
    @classmethod
    def _positive_weeks(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is not None and any(w < 1 for w in v):
            raise ValueError("week numbers must be >= 1")
        return v


class PlanResources(_PlanModel):
    facilities: Optional[List[str]] = None
    equipment: Optional[List[str]] = None
    materials: Optional[List[str]] = None
    technology: Optional[List[str]] = None
    external: Optional[List[str]] = None


Level = Literal["low", "medium", "high"]


class Risk(_PlanModel):
    risk_description: str = Field(min_length=10)
    category: Optional[Literal[
        "learner", "trainer", "resource", "compliance", "scheduling",
        "assessment", "external", "other",
    ]] = None
    likelihood: Level
    impact: Level
    mitigation: Optional[str] = None


class Assumption(_PlanModel):
    assumption: str = Field(min_length=10)
    category: Optional[Literal[
        "learner_capability", "resource_availability", "trainer_qualification",
        "scheduling", "compliance", "other",
    ]] = None
    validation_required: Optional[bool] = None


class ComplianceNotes(_PlanModel):
    volume_of_learning: Optional[str] = None
    training_packaging_compliance: Optional[str] = None
    assessment_validation: Optional[str] = None
    trainer_assessor_requirements: Optional[str] = None


class ValidatedPlan(_PlanModel):
    metadata: PlanMetadata
    meta: PlanMeta
    weekly_plan: List[WeekPlan] = Field(min_length=1)
    units: List[Unit] = Field(min_length=1)
    resources: Optional[PlanResources] = None
    risks: Optional[List[Risk]] = None
    assumptions: Optional[List[Assumption]] = None
    confidence_score: float = Field(ge=0, le=1)
    generation_notes: Optional[str] = None
    compliance_notes: Optional[ComplianceNotes] = None

    @property
    def weekly_hours_total(self) -> float:
        return sum(w.total_hours for w in self.weekly_plan)


class ValidationIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    message: str
    expected: Optional[str] = None
    received: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"
