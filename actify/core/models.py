"""
Entity catalogue for the default schema registry.
Each entity type is a list of field descriptors; relation fields carry no column.
"""

from typing import List

from .schema import FieldDescription


def _id() -> FieldDescription:
    return FieldDescription(name="id", type="String", is_required=True, is_id=True, is_unique=True)


def _str(name: str, required: bool = False, unique: bool = False) -> FieldDescription:
    return FieldDescription(name=name, type="String", is_required=required, is_unique=unique)


def _int(name: str, required: bool = False) -> FieldDescription:
    return FieldDescription(name=name, type="Int", is_required=required)


def _float(name: str, required: bool = False) -> FieldDescription:
    return FieldDescription(name=name, type="Float", is_required=required)


def _bool(name: str) -> FieldDescription:
    return FieldDescription(name=name, type="Boolean", is_required=True)


def _date(name: str, required: bool = False) -> FieldDescription:
    return FieldDescription(name=name, type="DateTime", is_required=required)


def _rel(name: str, to: str, many: bool = False) -> FieldDescription:
    return FieldDescription(name=name, type=to, is_list=many, is_relation=True, relation_to=to)


def _timestamps() -> List[FieldDescription]:
    return [_date("createdAt", required=True), _date("updatedAt", required=True)]


ENTITY_FIELDS = {
    "User": [
        _id(), _str("name"), _str("email", required=True, unique=True), _str("role", required=True),
        _str("passwordHash"), _str("image"),
        _rel("activities", "Activity", many=True),
        _rel("volunteeringParticipations", "VolunteeringParticipation", many=True),
        _rel("alumniProfile", "AlumniProfile"),
        *_timestamps(),
    ],
    "Activity": [
        _id(), _str("studentId", required=True), _str("name", required=True), _str("category"),
        _str("description"), _str("role"), _str("organization"),
        _date("startDate"), _date("endDate"), _float("hoursPerWeek"), _float("totalHours"),
        _str("status"),
        _rel("student", "User"), _rel("verification", "Verification"),
        *_timestamps(),
    ],
    "Verification": [
        _id(), _str("activityId", required=True, unique=True), _str("studentId", required=True),
        _str("verifierEmail"), _str("status", required=True), _str("token", unique=True),
        _str("comment"),
        _rel("activity", "Activity"),
        *_timestamps(),
    ],
    "Organization": [
        _id(), _str("name", required=True, unique=True), _str("description"), _str("category"),
        _str("leadership"), _str("presidentName"), _str("contactEmail"), _str("status", required=True),
        _str("createdById"),
        _rel("createdBy", "User"),
        *_timestamps(),
    ],
    "VolunteeringOpportunity": [
        _id(), _str("title", required=True), _str("organization"), _str("description"),
        _str("category"), _str("location"), _float("totalHours"), _str("status", required=True),
        _date("startDate"), _date("endDate"),
        _rel("participations", "VolunteeringParticipation", many=True),
        *_timestamps(),
    ],
    "VolunteeringParticipation": [
        _id(), _str("studentId", required=True), _str("opportunityId"), _str("activityName"),
        _str("organizationName"), _float("totalHours", required=True), _str("status", required=True),
        _bool("verified"), _date("startDate"),
        _rel("student", "User"), _rel("opportunity", "VolunteeringOpportunity"),
        *_timestamps(),
    ],
    "VolunteeringGoal": [
        _id(), _str("studentId", required=True), _float("targetHours", required=True), _str("description"),
        _rel("student", "User"),
        *_timestamps(),
    ],
    "AlumniProfile": [
        _id(), _str("userId", unique=True), _str("displayName"), _str("fullName"), _str("contactEmail"),
        _str("privacy", required=True), _str("intendedMajor"), _str("careerInterestTags"),
        _int("graduationYear"),
        _rel("user", "User"), _rel("applications", "AlumniApplication", many=True),
        *_timestamps(),
    ],
    "AlumniApplication": [
        _id(), _str("alumniProfileId", required=True), _str("rawText"), _str("sourceFileName"),
        _str("status"),
        _rel("alumniProfile", "AlumniProfile"),
        _rel("essays", "ExtractedEssay", many=True),
        _rel("activities", "ExtractedActivity", many=True),
        _rel("awards", "ExtractedAward", many=True),
        _rel("results", "AdmissionResult", many=True),
        *_timestamps(),
    ],
    "ExtractedEssay": [
        _id(), _str("applicationId", required=True), _str("topic"), _str("prompt"), _str("summary"),
        _str("tags"),
        _rel("application", "AlumniApplication"),
        _date("createdAt", required=True),
    ],
    "ExtractedActivity": [
        _id(), _str("applicationId", required=True), _str("title"), _str("organization"), _str("role"),
        _str("description"), _float("hours"), _str("years"),
        _rel("application", "AlumniApplication"),
        _date("createdAt", required=True),
    ],
    "ExtractedAward": [
        _id(), _str("applicationId", required=True), _str("title"), _str("level"), _int("year"),
        _str("description"),
        _rel("application", "AlumniApplication"),
        _date("createdAt", required=True),
    ],
    "AdmissionResult": [
        _id(), _str("applicationId", required=True), _str("collegeName", required=True),
        _str("decision"), _str("decisionRound"), _str("rankBucket"),
        _rel("application", "AlumniApplication"),
        _date("createdAt", required=True),
    ],
    "Settings": [
        _id(), _str("key", required=True, unique=True), _str("value"),
        _date("updatedAt", required=True),
    ],
}

TABLE_NAMES = {
    "User": "users",
    "Activity": "activities",
    "Verification": "verifications",
    "Organization": "organizations",
    "VolunteeringOpportunity": "volunteering_opportunities",
    "VolunteeringParticipation": "volunteering_participations",
    "VolunteeringGoal": "volunteering_goals",
    "AlumniProfile": "alumni_profiles",
    "AlumniApplication": "alumni_applications",
    "ExtractedEssay": "extracted_essays",
    "ExtractedActivity": "extracted_activities",
    "ExtractedAward": "extracted_awards",
    "AdmissionResult": "admission_results",
    "Settings": "settings",
}

DESCRIPTIONS = {
    "User": "Platform users (students and admins)",
    "Activity": "Student extracurricular activities",
    "Verification": "Activity verification requests and status",
    "Organization": "School clubs and organizations",
    "VolunteeringOpportunity": "Available volunteering opportunities",
    "VolunteeringParticipation": "Student volunteering participation records",
    "VolunteeringGoal": "Student volunteering hour goals",
    "AlumniProfile": "Alumni user profiles",
    "AlumniApplication": "Alumni college application data",
    "ExtractedActivity": "Activities from alumni applications",
    "ExtractedEssay": "Essays from alumni applications",
    "ExtractedAward": "Awards from alumni applications",
    "AdmissionResult": "College admission outcomes",
    "Settings": "Platform configuration settings",
}
