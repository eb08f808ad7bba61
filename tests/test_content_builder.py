"""
Tests for the content builder recipes.
"""

from actify.vector.content import build_content, get_supported_entity_types, is_entity_type_supported


def test_supported_entity_types():
    supported = get_supported_entity_types()

    for name in ["AlumniApplication", "ExtractedEssay", "ExtractedActivity", "ExtractedAward",
                 "AdmissionResult", "Organization", "VolunteeringOpportunity", "Activity",
                 "VolunteeringParticipation"]:
        assert name in supported
    assert not is_entity_type_supported("User")
    assert not is_entity_type_supported("Settings")


def test_unsupported_type_returns_none():
    assert build_content("User", {"id": "u1", "name": "Ada"}) is None


def test_organization_content_is_labeled_and_scrubbed():
    content = build_content("Organization", {
        "id": "o1",
        "name": "Robotics Club",
        "description": "Contact us at club@example.com or 555-123-4567",
        "category": "STEM",
        "presidentName": "Ada",
        "status": "APPROVED",
    })

    assert content.owner_id is None
    assert "Organization: Robotics Club" in content.content
    assert "Category: STEM" in content.content
    assert "President: Ada" in content.content
    assert "club@example.com" not in content.content
    assert "555-123-4567" not in content.content
    assert "APPROVED" not in content.content


def test_missing_fields_are_skipped():
    content = build_content("ExtractedAward", {"id": "a1", "title": "Science Olympiad", "year": 2021})
    assert content.content == "Award: Science Olympiad\nYear: 2021"


def test_activity_carries_owner():
    content = build_content("Activity", {"id": "a1", "studentId": "student-1", "name": "Debate"})
    assert content.owner_id == "student-1"
    assert content.content == "Activity: Debate"


def test_essay_tags_are_flattened():
    content = build_content("ExtractedEssay", {
        "id": "e1", "topic": "Resilience", "tags": '["grit", "family"]'
    })
    assert content.content == "Topic: Resilience\nTags: grit, family"


def test_essay_with_malformed_tags():
    content = build_content("ExtractedEssay", {"id": "e1", "topic": "Resilience", "tags": "not json"})
    assert content.content == "Topic: Resilience"


def test_empty_content_returns_none():
    assert build_content("AlumniApplication", {"id": "app1", "rawText": "   "}) is None
    assert build_content("AdmissionResult", {"id": "r1"}) is None
    assert build_content("Organization", None) is None
