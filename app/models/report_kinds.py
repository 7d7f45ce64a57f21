"""
Report kinds: the schema + template pairs the builder knows how to produce.

A catalog is built once at startup and passed to the services that need it;
nothing here is mutated after construction.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from app.errors import UnknownReportKindError


@dataclass(frozen=True)
class Schema:
    """Ordered field names of one report kind; every default is ``""``."""

    name: str
    keys: Tuple[str, ...]

    def defaults(self) -> Dict[str, str]:
        """Return a fresh ``{key: ""}`` mapping in schema order."""
        return {key: "" for key in self.keys}

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def __len__(self) -> int:
        return len(self.keys)


@dataclass(frozen=True)
class ReportKind:
    key: str
    label: str
    assessment_type: str     # prose name used in the extraction prompt
    schema: Schema
    template_filename: str
    output_filename: str


# ---------------------------------------------------------------------------
# CYP assessment schemas
# ---------------------------------------------------------------------------

def _cyp_keys(screening_field: str) -> Tuple[str, ...]:
    """Field list shared by both CYP reports; only the screening field differs."""
    return (
        "AssessmentDate", "ReportDate",
        "ClientFirstName", "ClientSurname", "ClientAge", "DOB", "NHSNumber",
        "ClientID", "ClientAddress",
        "AssessmentOutcome",
        "AssessmentMode", "HistoryProvidedBy", "ChildPresenceConfirmation",
        "WhoWeAssessed", "Consent", "UnderstandingOfAppointment", "ReasonForReferral",
        "PregnancyBirthHistory", "BirthDetails", "Allergies", "Medications",
        "Immunisations", "Vision", "Hearing", "Safeguarding",
        "Babyhood", "DevelopmentalMilestones", "SpeechLanguage", "Regression",
        "Toileting", "NurseryStart", "NurseryConcerns", "SeparationAnxiety",
        "SocialPlaySkills",
        "HouseholdDetails", "MothersAgeOccupation", "FathersAgeOccupation",
        "Siblings", "FamilyHistory", "SignificantLifeEvents",
        "AnxietyMood", "MentalHealthServices", "SelfHarmSuicidalConcerns",
        "AttentionAndConcentration", "ActivityLevels", "Impulsivity",
        "RiskyBehaviours", "DangerAwareness",
        "ExecutiveFunctioning", "EmotionalRegulation", "SelfCareAndIndependence",
        "SocialCommunication", "FriendshipsAndRelationships",
        "RestrictedRepetitiveBehaviours", "SensoryIssues",
        "Education", "ObservationsFromClinicalInterview", "PhysicalExamination",
        "WhyDiagnosis",
        "RecommendationsGeneral", screening_field, "ADHDMedication",
        "SpeechLanguageOTEdPsych", "PhysicalHealth", "Sleep", "MentalHealthSupport",
        "SummaryAndClosing", "ClinicianName", "ClinicianTitle",
    )


# ADHD reports recommend autism screening where indicated, and vice versa
ADHD_SCHEMA = Schema(name="cyp_adhd", keys=_cyp_keys("AutismScreening"))
AUTISM_SCHEMA = Schema(name="cyp_autism", keys=_cyp_keys("ADHDScreening"))


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class ReportCatalog:
    """Read-only lookup of report kinds by selector."""

    def __init__(self, kinds: Tuple[ReportKind, ...], default_key: str) -> None:
        self._kinds: Mapping[str, ReportKind] = MappingProxyType(
            {kind.key: kind for kind in kinds}
        )
        if default_key not in self._kinds:
            raise ValueError(f"Default report kind {default_key!r} is not in the catalog")
        self.default_key = default_key

    def resolve(self, selector: Optional[str]) -> ReportKind:
        """
        Return the kind named by *selector* (blank → default).

        Raises:
            UnknownReportKindError: selector is not a known report kind.
        """
        key = (selector or "").strip() or self.default_key
        kind = self._kinds.get(key)
        if kind is None:
            raise UnknownReportKindError(
                "Invalid template type",
                details=f"Unknown template type: {key}. "
                        f"Expected one of: {', '.join(self._kinds)}",
            )
        return kind

    def __iter__(self) -> Iterator[ReportKind]:
        return iter(self._kinds.values())

    def __len__(self) -> int:
        return len(self._kinds)

    def keys(self) -> Tuple[str, ...]:
        return tuple(self._kinds)


def build_default_catalog(default_key: str = "cyp_adhd") -> ReportCatalog:
    """The CYP ADHD and CYP autism report kinds."""
    return ReportCatalog(
        (
            ReportKind(
                key="cyp_adhd",
                label="CYP ADHD assessment report",
                assessment_type="ADHD",
                schema=ADHD_SCHEMA,
                template_filename="CYP ADHD.docx",
                output_filename="CYP_ADHD_Report.docx",
            ),
            ReportKind(
                key="cyp_autism",
                label="CYP autism assessment report",
                assessment_type="autism",
                schema=AUTISM_SCHEMA,
                template_filename="CYP Autism.docx",
                output_filename="CYP_Autism_Report.docx",
            ),
        ),
        default_key=default_key,
    )
