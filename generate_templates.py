"""Generate starter DOCX report templates with a {{tag}} for every schema field."""
import argparse
import os
import re

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt, RGBColor

from app.config import settings
from app.models.report_kinds import ReportKind, build_default_catalog

# Report layout: (heading, fields).  "{screening}" is the kind-specific field.
SECTIONS = [
    ("Client Details", [
        "ClientFirstName", "ClientSurname", "ClientAge", "DOB", "NHSNumber",
        "ClientID", "ClientAddress",
    ]),
    ("Assessment", [
        "AssessmentDate", "ReportDate", "AssessmentOutcome", "AssessmentMode",
        "HistoryProvidedBy", "ChildPresenceConfirmation", "WhoWeAssessed",
        "Consent", "UnderstandingOfAppointment", "ReasonForReferral",
    ]),
    ("Medical History", [
        "PregnancyBirthHistory", "BirthDetails", "Allergies", "Medications",
        "Immunisations", "Vision", "Hearing", "Safeguarding",
    ]),
    ("Early Development", [
        "Babyhood", "DevelopmentalMilestones", "SpeechLanguage", "Regression",
        "Toileting", "NurseryStart", "NurseryConcerns", "SeparationAnxiety",
        "SocialPlaySkills",
    ]),
    ("Family and Social History", [
        "HouseholdDetails", "MothersAgeOccupation", "FathersAgeOccupation",
        "Siblings", "FamilyHistory", "SignificantLifeEvents",
    ]),
    ("Mental Health", [
        "AnxietyMood", "MentalHealthServices", "SelfHarmSuicidalConcerns",
    ]),
    ("Presenting Difficulties", [
        "AttentionAndConcentration", "ActivityLevels", "Impulsivity",
        "RiskyBehaviours", "DangerAwareness", "ExecutiveFunctioning",
        "EmotionalRegulation", "SelfCareAndIndependence", "SocialCommunication",
        "FriendshipsAndRelationships", "RestrictedRepetitiveBehaviours",
        "SensoryIssues",
    ]),
    ("Education and Observations", [
        "Education", "ObservationsFromClinicalInterview", "PhysicalExamination",
    ]),
    ("Diagnosis", ["WhyDiagnosis"]),
    ("Recommendations", [
        "RecommendationsGeneral", "{screening}", "ADHDMedication",
        "SpeechLanguageOTEdPsych", "PhysicalHealth", "Sleep", "MentalHealthSupport",
    ]),
    ("Summary", ["SummaryAndClosing", "ClinicianName", "ClinicianTitle"]),
]

# Fields rendered inline after a bold label rather than as a narrative block
INLINE_FIELDS = {
    "ClientFirstName", "ClientSurname", "ClientAge", "DOB", "NHSNumber",
    "ClientID", "ClientAddress", "AssessmentDate", "ReportDate",
    "AssessmentMode", "ClinicianName", "ClinicianTitle",
}


def humanize(key):
    """'SelfHarmSuicidalConcerns' -> 'Self Harm Suicidal Concerns'."""
    return re.sub(r"(?<=[a-z])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])", " ", key)


def add_field(doc, key):
    tag = "{{%s}}" % key
    if key in INLINE_FIELDS:
        p = doc.add_paragraph()
        run = p.add_run(f"{humanize(key)}: ")
        run.bold = True
        p.add_run(tag)
        return p

    label = doc.add_paragraph()
    run = label.add_run(humanize(key))
    run.bold = True
    run.font.color.rgb = RGBColor(40, 40, 40)
    return doc.add_paragraph(tag)


def build_template(kind: ReportKind):
    screening = next(k for k in kind.schema.keys if k.endswith("Screening"))

    doc = Document()
    style = doc.styles['Normal']
    style.font.name = 'Calibri'
    style.font.size = Pt(11)

    header = doc.sections[0].header.paragraphs[0]
    header.text = "NeuroSense  |  {{ClientFirstName}} {{ClientSurname}}  |  NHS {{NHSNumber}}"

    title = doc.add_heading(kind.label, level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    placed = set()
    for heading, keys in SECTIONS:
        doc.add_heading(heading, level=1)
        for key in keys:
            key = screening if key == "{screening}" else key
            add_field(doc, key)
            placed.add(key)

    leftover = [k for k in kind.schema.keys if k not in placed]
    if leftover:
        doc.add_heading("Other", level=1)
        for key in leftover:
            add_field(doc, key)

    return doc


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--out", default=settings.TEMPLATE_DIR, help="output directory")
    parser.add_argument("--force", action="store_true", help="overwrite existing templates")
    args = parser.parse_args()

    os.makedirs(args.out, exist_ok=True)
    for kind in build_default_catalog():
        path = os.path.join(args.out, kind.template_filename)
        if os.path.exists(path) and not args.force:
            print(f"skip   {path} (exists; use --force to overwrite)")
            continue
        build_template(kind).save(path)
        print(f"wrote  {path} ({len(kind.schema)} fields)")


if __name__ == "__main__":
    main()
